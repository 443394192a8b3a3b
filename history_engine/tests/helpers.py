from __future__ import annotations

from typing import Any, List, Optional

from history_engine.commands import Command, MergeableCommand
from history_engine.models import SerializedCommand
from history_engine.registry import CommandRegistry
from history_engine.service import HistoryEngine


class FakeClock:
    def __init__(self, start: float = 10_000.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current

    def advance(self, ms: float) -> None:
        self.now += ms


class Counter:
    def __init__(self, value: int = 0):
        self.value = value


class IncrementCommand(MergeableCommand):
    def __init__(self, counter: Counter, amount: int = 1):
        self.counter = counter
        self.amount = amount

    def execute(self) -> int:
        self.counter.value += self.amount
        return self.counter.value

    def undo(self) -> None:
        self.counter.value -= self.amount

    def serialize(self) -> SerializedCommand:
        return SerializedCommand(kind="increment", data={"amount": self.amount})

    def can_merge(self, other: Command) -> bool:
        return isinstance(other, IncrementCommand) and other.counter is self.counter

    def merge(self, other: Command) -> Command:
        return IncrementCommand(self.counter, self.amount + other.amount)


class RecordingCommand(Command):
    """Writes 'name.execute' / 'name.undo' into a shared journal."""

    def __init__(self, name: str, journal: List[str]):
        self.name = name
        self.journal = journal

    def execute(self) -> str:
        self.journal.append(f"{self.name}.execute")
        return self.name

    def undo(self) -> None:
        self.journal.append(f"{self.name}.undo")

    def serialize(self) -> dict:
        return {"kind": "record", "data": {"name": self.name}}

    def __repr__(self) -> str:
        return f"RecordingCommand({self.name!r})"


class FailingCommand(Command):
    def __init__(self, fail_on_execute: bool = False, fail_on_undo: bool = False):
        self.fail_on_execute = fail_on_execute
        self.fail_on_undo = fail_on_undo

    def execute(self) -> None:
        if self.fail_on_execute:
            raise RuntimeError("execute failed")

    def undo(self) -> None:
        if self.fail_on_undo:
            raise RuntimeError("undo failed")

    def serialize(self) -> SerializedCommand:
        return SerializedCommand(kind="failing", data=None)


class CallbackCommand(Command):
    """Runs a callback from inside execute or undo."""

    def __init__(self, on_execute=None, on_undo=None):
        self.on_execute = on_execute
        self.on_undo = on_undo
        self.executed = 0

    def execute(self) -> Any:
        self.executed += 1
        if self.on_execute:
            return self.on_execute()
        return None

    def undo(self) -> None:
        if self.on_undo:
            self.on_undo()

    def serialize(self) -> SerializedCommand:
        return SerializedCommand(kind="callback")


def make_registry(journal: Optional[List[str]] = None, counter: Optional[Counter] = None) -> CommandRegistry:
    journal = journal if journal is not None else []
    counter = counter if counter is not None else Counter()
    registry = CommandRegistry()
    registry.register("record", lambda data=None: RecordingCommand((data or {}).get("name", "anon"), journal))
    registry.register("increment", lambda data=None: IncrementCommand(counter, (data or {}).get("amount", 1)))
    registry.register("failing", lambda data=None: FailingCommand())
    return registry


def make_engine(journal: Optional[List[str]] = None, counter: Optional[Counter] = None, **kwargs: Any) -> HistoryEngine:
    kwargs.setdefault("clock", FakeClock())
    return HistoryEngine(registry=make_registry(journal, counter), **kwargs)


def kinds(commands: List[Command]) -> List[str]:
    return [SerializedCommand.model_validate(cmd.serialize()).kind for cmd in commands]
