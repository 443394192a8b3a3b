"""Command contract for history entries."""
from __future__ import annotations

import abc
from typing import Any, Callable, Iterable, List, Mapping, Union

from history_engine.models import SerializedCommand

COMPOSITE_KIND = "CompositeCommand"

Payload = Union[SerializedCommand, Mapping[str, Any]]


class Command(abc.ABC):
    """A reversible unit of effect.

    ``execute`` is re-invoked on every redo, so it must be safe to call more
    than once. Plain commands never merge; see :class:`MergeableCommand`.
    """

    @abc.abstractmethod
    def execute(self) -> Any:
        """Applies the effect. The return value is handed back to the caller."""

    @abc.abstractmethod
    def undo(self) -> None:
        """Reverses the most recent execute."""

    @abc.abstractmethod
    def serialize(self) -> Payload:
        """Returns a ``{kind, data}`` payload a registry factory can rebuild from."""


class MergeableCommand(Command):
    """Command that can fold an adjacent history entry into itself.

    On execute the engine asks the newer command about the previous stack top
    (``newer.can_merge(top)`` then ``newer.merge(top)``). When compressing, the
    running accumulator is the receiver and the next newer entry the argument.
    Merge is not commutative.
    """

    @abc.abstractmethod
    def can_merge(self, other: Command) -> bool:
        ...

    @abc.abstractmethod
    def merge(self, other: Command) -> Command:
        """Returns a new command representing the combined effect."""


def can_merge(receiver: Command, other: Command) -> bool:
    return isinstance(receiver, MergeableCommand) and bool(receiver.can_merge(other))


def to_payload(command: Command) -> SerializedCommand:
    return SerializedCommand.model_validate(command.serialize())


class CompositeCommand(Command):
    """Ordered bundle of commands executed and undone as one history entry."""

    def __init__(self, commands: Iterable[Command]):
        self.commands: List[Command] = list(commands)

    def execute(self) -> None:
        for command in self.commands:
            command.execute()

    def undo(self) -> None:
        for command in reversed(self.commands):
            command.undo()

    def serialize(self) -> SerializedCommand:
        return SerializedCommand(
            kind=COMPOSITE_KIND,
            data=[to_payload(cmd).model_dump() for cmd in self.commands],
        )

    @classmethod
    def from_payload(cls, data: Any, deserialize: Callable[[Payload], Command]) -> "CompositeCommand":
        return cls(deserialize(item) for item in (data or []))

    def __len__(self) -> int:
        return len(self.commands)

    def __repr__(self) -> str:
        return f"CompositeCommand({self.commands!r})"
