"""Per-document engine storage."""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Protocol

from history_engine.config import config_from_env
from history_engine.service import HistoryEngine

EngineSetup = Callable[[HistoryEngine], None]


class HistoryRepository(Protocol):
    def get(self, document_id: str) -> HistoryEngine | None:
        ...

    def get_or_create(self, document_id: str) -> HistoryEngine:
        ...

    def drop(self, document_id: str) -> bool:
        ...

    def list_ids(self) -> List[str]:
        ...


class InMemoryHistoryRepository:
    """One engine per document id, created on first access.

    ``setup`` runs once for each new engine, typically to register command
    factories.
    """

    def __init__(self, setup: Optional[EngineSetup] = None) -> None:
        self._engines: Dict[str, HistoryEngine] = {}
        self._setup = setup

    def get(self, document_id: str) -> HistoryEngine | None:
        return self._engines.get(document_id)

    def get_or_create(self, document_id: str) -> HistoryEngine:
        engine = self._engines.get(document_id)
        if engine is None:
            engine = HistoryEngine(config_from_env())
            if self._setup:
                self._setup(engine)
            self._engines[document_id] = engine
        return engine

    def drop(self, document_id: str) -> bool:
        return self._engines.pop(document_id, None) is not None

    def list_ids(self) -> List[str]:
        return sorted(self._engines)


_default_repo: Optional[HistoryRepository] = None


def get_history_repository() -> HistoryRepository:
    global _default_repo
    if _default_repo is None:
        _default_repo = InMemoryHistoryRepository()
    return _default_repo


def set_history_repository(repo: HistoryRepository) -> None:
    global _default_repo
    _default_repo = repo
