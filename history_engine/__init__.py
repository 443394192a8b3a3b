"""Command history engine: undo/redo, transactions, snapshots, persistence."""

from history_engine.commands import Command, CompositeCommand, MergeableCommand
from history_engine.errors import HistoryError, InvalidState, UnknownCommand, UnknownCommandType
from history_engine.models import EngineConfig, ExportedState, HistoryStatus, SerializedCommand, Snapshot
from history_engine.registry import CommandRegistry
from history_engine.service import EngineStatus, HistoryEngine

__all__ = [
    "Command",
    "MergeableCommand",
    "CompositeCommand",
    "CommandRegistry",
    "HistoryEngine",
    "EngineStatus",
    "EngineConfig",
    "ExportedState",
    "HistoryStatus",
    "SerializedCommand",
    "Snapshot",
    "HistoryError",
    "UnknownCommand",
    "UnknownCommandType",
    "InvalidState",
]
