"""FastAPI routes exposing per-document history engines."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from history_engine.errors import InvalidState, UnknownCommand, UnknownCommandType
from history_engine.models import ExecuteRequest, HistoryStatus
from history_engine.repository import HistoryRepository, get_history_repository
from history_engine.service import HistoryEngine

router = APIRouter(prefix="/history", tags=["history"])


def _require(document_id: str, repo: HistoryRepository) -> HistoryEngine:
    engine = repo.get(document_id)
    if engine is None:
        raise HTTPException(status_code=404, detail=f"history {document_id} not found")
    return engine


@router.get("/{document_id}", response_model=HistoryStatus)
def get_status(document_id: str, repo: HistoryRepository = Depends(get_history_repository)):
    return _require(document_id, repo).status()


@router.post("/{document_id}/commands", response_model=HistoryStatus)
def execute_command(
    document_id: str,
    req: ExecuteRequest,
    repo: HistoryRepository = Depends(get_history_repository),
):
    existing = repo.get(document_id)
    engine = existing or repo.get_or_create(document_id)
    try:
        engine.execute(req.name, silent=req.silent, undoable=req.undoable)
    except UnknownCommand as exc:
        if existing is None:
            repo.drop(document_id)
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return engine.status()


@router.post("/{document_id}/undo", response_model=HistoryStatus)
def undo(
    document_id: str,
    steps: int = Query(1, ge=1),
    repo: HistoryRepository = Depends(get_history_repository),
):
    engine = _require(document_id, repo)
    engine.undo(steps)
    return engine.status()


@router.post("/{document_id}/redo", response_model=HistoryStatus)
def redo(
    document_id: str,
    steps: int = Query(1, ge=1),
    repo: HistoryRepository = Depends(get_history_repository),
):
    engine = _require(document_id, repo)
    engine.redo(steps)
    return engine.status()


@router.post("/{document_id}/compress", response_model=HistoryStatus)
def compress(document_id: str, repo: HistoryRepository = Depends(get_history_repository)):
    engine = _require(document_id, repo)
    engine.compress_history()
    return engine.status()


@router.delete("/{document_id}")
def delete_history(document_id: str, repo: HistoryRepository = Depends(get_history_repository)):
    engine = _require(document_id, repo)
    engine.clear()
    repo.drop(document_id)
    return {"status": "deleted"}


@router.get("/{document_id}/state")
def export_state(document_id: str, repo: HistoryRepository = Depends(get_history_repository)):
    return _require(document_id, repo).export_state().model_dump(by_alias=True)


@router.put("/{document_id}/state", response_model=HistoryStatus)
def import_state(
    document_id: str,
    payload: Dict[str, Any],
    repo: HistoryRepository = Depends(get_history_repository),
):
    existing = repo.get(document_id)
    engine = existing or repo.get_or_create(document_id)
    try:
        engine.import_state(payload)
    except (InvalidState, UnknownCommandType) as exc:
        if existing is None:
            repo.drop(document_id)
        raise HTTPException(status_code=400, detail=str(exc))
    return engine.status()
