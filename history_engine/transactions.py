"""Nested groups of deferred commands."""
from __future__ import annotations

from typing import List, Optional

from history_engine.commands import Command, CompositeCommand


class TransactionManager:
    """Stack of pending command groups.

    Commands placed in a group are not executed here; the engine runs them
    when the outermost transaction commits.
    """

    def __init__(self) -> None:
        self._groups: List[List[Command]] = []

    @property
    def active(self) -> bool:
        return bool(self._groups)

    @property
    def depth(self) -> int:
        return len(self._groups)

    def begin(self) -> None:
        self._groups.append([])

    def record(self, command: Command) -> None:
        self._groups[-1].append(command)

    def pop(self) -> Optional[List[Command]]:
        if not self._groups:
            return None
        return self._groups.pop()

    def clear(self) -> None:
        self._groups.clear()


def collapse(group: List[Command]) -> Optional[Command]:
    """Returns the single entry a committed group becomes, if any."""
    if not group:
        return None
    if len(group) == 1:
        return group[0]
    return CompositeCommand(group)
