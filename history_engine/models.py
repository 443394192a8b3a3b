"""Schemas for history engine configuration, snapshots and persisted state."""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SerializedCommand(BaseModel):
    """Tagged payload a registry factory can rebuild a command from."""

    kind: str
    data: Any = None


class EngineConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # None means unbounded
    max_stack_size: Optional[int] = Field(default=None, ge=0, alias="maxStackSize")
    snapshot_interval: int = Field(default=10, gt=0, alias="snapshotInterval")
    compress_threshold: int = Field(default=100, gt=0, alias="compressThreshold")
    merge_window: float = Field(default=1000, ge=0, alias="mergeWindow", description="Milliseconds")


class Snapshot(BaseModel):
    """Serialized checkpoint of both stacks, keyed by undo depth."""

    depth: int = Field(..., ge=0)
    undo_stack: List[SerializedCommand] = Field(default_factory=list)
    redo_stack: List[SerializedCommand] = Field(default_factory=list)


class HistoryStatus(BaseModel):
    """Payload delivered to change listeners."""

    model_config = ConfigDict(populate_by_name=True)

    can_undo: bool = Field(..., alias="canUndo")
    can_redo: bool = Field(..., alias="canRedo")
    undo_stack_size: int = Field(..., alias="undoStackSize")
    redo_stack_size: int = Field(..., alias="redoStackSize")


class ExportedState(BaseModel):
    """Transportable engine state: both stacks plus configuration."""

    model_config = ConfigDict(populate_by_name=True)

    undo_stack: List[SerializedCommand] = Field(..., alias="undoStack")
    redo_stack: List[SerializedCommand] = Field(..., alias="redoStack")
    max_stack_size: Optional[int] = Field(default=None, alias="maxStackSize")
    snapshot_interval: Optional[int] = Field(default=None, alias="snapshotInterval")
    compress_threshold: Optional[int] = Field(default=None, alias="compressThreshold")
    merge_window: Optional[float] = Field(default=None, alias="mergeWindow")


class ExecuteRequest(BaseModel):
    name: str
    silent: bool = False
    undoable: bool = True
