"""Errors raised by the history engine."""
from __future__ import annotations


class HistoryError(Exception):
    """Base history engine error."""


class UnknownCommand(HistoryError):
    """Raised when a by-name execute has no registered factory."""


class UnknownCommandType(HistoryError):
    """Raised when a serialized command kind has no registered factory."""


class InvalidState(HistoryError):
    """Raised when an imported state payload is malformed."""
