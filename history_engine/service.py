"""History engine: undo/redo stacks with merge, transactions, snapshots and persistence."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Union

from pydantic import ValidationError

from history_engine.commands import Command, can_merge, to_payload
from history_engine.errors import HistoryError, InvalidState
from history_engine.models import EngineConfig, ExportedState, HistoryStatus, Snapshot
from history_engine.notifier import ChangeNotifier, Listener
from history_engine.registry import CommandRegistry
from history_engine.snapshots import SnapshotStore
from history_engine.transactions import TransactionManager, collapse

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[str, BaseException], None]


class EngineStatus(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


def _now_ms() -> float:
    return datetime.now(timezone.utc).timestamp() * 1000


def _log_error(message: str, exc: BaseException) -> None:
    logger.error(f"{message}: {exc}", exc_info=exc)


def _resolve_config(config: Optional[EngineConfig], overrides: Mapping[str, Any]) -> EngineConfig:
    """Falsy overrides keep the defaults; a max_stack_size of 0 means unbounded."""
    values = (config or EngineConfig()).model_dump()
    values.update({key: value for key, value in overrides.items() if value})
    if not values.get("max_stack_size"):
        values["max_stack_size"] = None
    try:
        return EngineConfig(**values)
    except ValidationError as exc:
        raise InvalidState(f"Invalid engine configuration: {exc}") from exc


class HistoryEngine:
    """Records reversible commands and traverses them backward and forward.

    One instance per logical document. Not thread-safe: the busy flag only
    stops a command's own execute/undo from re-entering the engine.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        registry: Optional[CommandRegistry] = None,
        clock: Optional[Callable[[], float]] = None,
        error_reporter: Optional[ErrorReporter] = None,
        **overrides: Any,
    ) -> None:
        self.config = _resolve_config(config, overrides)
        self.registry = registry or CommandRegistry()
        self.undo_stack: List[Command] = []
        self.redo_stack: List[Command] = []
        self.snapshots = SnapshotStore()
        self.transactions = TransactionManager()
        self._notifier = ChangeNotifier()
        self._state = EngineStatus.IDLE
        self._clock = clock or _now_ms
        self._report = error_reporter or _log_error
        self._last_execution_ms: Optional[float] = None

    # --- state ---

    @property
    def state(self) -> EngineStatus:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is EngineStatus.BUSY

    @property
    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0

    def status(self) -> HistoryStatus:
        return HistoryStatus(
            can_undo=self.can_undo,
            can_redo=self.can_redo,
            undo_stack_size=len(self.undo_stack),
            redo_stack_size=len(self.redo_stack),
        )

    # --- registry / listeners ---

    def register_command(self, name: str, factory: Callable[..., Command]) -> None:
        self.registry.register(name, factory)

    def add_listener(self, listener: Listener) -> None:
        self._notifier.add(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._notifier.remove(listener)

    def notify(self) -> None:
        self._notifier.notify(self.status())

    # --- execute ---

    def execute(
        self,
        command: Union[Command, str],
        *,
        silent: bool = False,
        undoable: bool = True,
    ) -> Any:
        """Runs a command (or a registered command name) and records it.

        Inside an open transaction the command is only queued and ``None`` is
        returned. Reentrant calls are ignored. Unknown names and errors raised
        by the command's execute are reported and re-raised.
        """
        if self.busy:
            logger.debug("Ignoring reentrant execute")
            return None
        self._state = EngineStatus.BUSY
        try:
            try:
                if isinstance(command, str):
                    command = self.registry.create(command)

                if self.transactions.active:
                    self.transactions.record(command)
                    return None

                result = command.execute()
            except Exception as exc:
                self._report("Error executing command", exc)
                raise

            if undoable:
                self._record(command)

            if not silent:
                self.notify()
            return result
        finally:
            self._state = EngineStatus.IDLE

    def _record(self, command: Command) -> None:
        now = self._clock()
        top = self.undo_stack[-1] if self.undo_stack else None
        if (
            top is not None
            and self._last_execution_ms is not None
            and now - self._last_execution_ms < self.config.merge_window
            and can_merge(command, top)
        ):
            self.undo_stack[-1] = command.merge(top)
        else:
            self.undo_stack.append(command)

        self._last_execution_ms = now
        self.redo_stack.clear()

        limit = self.config.max_stack_size
        while limit is not None and len(self.undo_stack) > limit:
            self.undo_stack.pop(0)

        depth = len(self.undo_stack)
        if depth and depth % self.config.snapshot_interval == 0:
            self.create_snapshot()

        if depth > self.config.compress_threshold:
            self.compress_history()

    # --- undo / redo ---

    def undo(self, steps: int = 1) -> bool:
        """Undoes up to ``steps`` entries. Returns False on a no-op or failure.

        A failing undo is reported, not raised; the engine then falls back to
        the closest snapshot at or below the current depth. Entries popped
        before the failure are not put back unless a snapshot restores them.
        """
        if self.busy or not self.undo_stack or steps < 1:
            return False
        self._state = EngineStatus.BUSY
        try:
            undone: List[Command] = []
            for _ in range(steps):
                if not self.undo_stack:
                    break
                command = self.undo_stack.pop()
                command.undo()
                undone.insert(0, command)
            self.redo_stack.extend(undone)
        except Exception as exc:
            self._report("Error undoing command", exc)
            self.recover_from_snapshot()
            return False
        else:
            self.notify()
            return True
        finally:
            self._state = EngineStatus.IDLE

    def redo(self, steps: int = 1) -> bool:
        """Re-executes up to ``steps`` undone entries. Mirrors :meth:`undo`."""
        if self.busy or not self.redo_stack or steps < 1:
            return False
        self._state = EngineStatus.BUSY
        try:
            redone: List[Command] = []
            for _ in range(steps):
                if not self.redo_stack:
                    break
                command = self.redo_stack.pop()
                command.execute()
                redone.insert(0, command)
            self.undo_stack.extend(redone)
        except Exception as exc:
            self._report("Error redoing command", exc)
            self.recover_from_snapshot()
            return False
        else:
            self.notify()
            return True
        finally:
            self._state = EngineStatus.IDLE

    # --- transactions ---

    def begin_transaction(self) -> None:
        self.transactions.begin()

    def commit_transaction(self) -> Any:
        """Pops the innermost group and executes it as a single entry.

        When still nested, the entry is queued into the enclosing group.
        """
        group = self.transactions.pop()
        if group is None:
            return None
        entry = collapse(group)
        if entry is None:
            return None
        return self.execute(entry)

    def abort_transaction(self) -> None:
        """Drops the innermost group, calling undo on its commands newest first.

        Queued commands were never executed, yet their undo still runs.
        """
        group = self.transactions.pop()
        if group is None:
            return
        logger.warning(f"Aborting transaction with {len(group)} queued command(s)")
        for command in reversed(group):
            command.undo()

    # --- snapshots ---

    def create_snapshot(self) -> Snapshot:
        snapshot = self.snapshots.capture(self.undo_stack, self.redo_stack)
        logger.debug(f"Snapshot stored at depth {snapshot.depth}")
        return snapshot

    def recover_from_snapshot(self) -> bool:
        """Restores both stacks from the deepest snapshot not above the current depth."""
        snapshot = self.snapshots.latest_at_or_below(len(self.undo_stack))
        if snapshot is None:
            logger.warning(f"No snapshot at or below depth {len(self.undo_stack)}; stacks left as is")
        else:
            undo_stack = self.registry.deserialize_many(snapshot.undo_stack)
            redo_stack = self.registry.deserialize_many(snapshot.redo_stack)
            self.undo_stack, self.redo_stack = undo_stack, redo_stack
            logger.info(f"Recovered history from snapshot at depth {snapshot.depth}")
        self.notify()
        return snapshot is not None

    # --- compression ---

    def compress_history(self) -> None:
        """Folds adjacent mergeable entries of the undo stack, oldest first."""
        compressed: List[Command] = []
        current: Optional[Command] = None
        for command in self.undo_stack:
            if current is not None and can_merge(current, command):
                current = current.merge(command)
            else:
                if current is not None:
                    compressed.append(current)
                current = command
        if current is not None:
            compressed.append(current)
        logger.debug(f"Compressed undo stack {len(self.undo_stack)} -> {len(compressed)}")
        self.undo_stack = compressed

    def clear(self) -> None:
        self.undo_stack = []
        self.redo_stack = []
        self.snapshots.clear()
        self.notify()

    # --- persistence ---

    def export_state(self) -> ExportedState:
        return ExportedState(
            undo_stack=[to_payload(cmd) for cmd in self.undo_stack],
            redo_stack=[to_payload(cmd) for cmd in self.redo_stack],
            max_stack_size=self.config.max_stack_size,
            snapshot_interval=self.config.snapshot_interval,
            compress_threshold=self.config.compress_threshold,
            merge_window=self.config.merge_window,
        )

    def import_state(self, state: Union[ExportedState, Mapping[str, Any]]) -> None:
        """Replaces both stacks and configuration from an exported state.

        Both stacks are rebuilt before either is assigned, so a failure leaves
        the engine untouched. Falsy config fields keep the current values.
        """
        if isinstance(state, ExportedState):
            parsed = state
        elif isinstance(state, Mapping):
            try:
                parsed = ExportedState.model_validate(state)
            except ValidationError as exc:
                raise InvalidState(f"Failed to import state: {exc}") from exc
        else:
            raise InvalidState("Invalid state object")

        try:
            undo_stack = self.registry.deserialize_many(parsed.undo_stack)
            redo_stack = self.registry.deserialize_many(parsed.redo_stack)
            config = EngineConfig(
                max_stack_size=parsed.max_stack_size or self.config.max_stack_size,
                snapshot_interval=parsed.snapshot_interval or self.config.snapshot_interval,
                compress_threshold=parsed.compress_threshold or self.config.compress_threshold,
                merge_window=parsed.merge_window or self.config.merge_window,
            )
        except HistoryError:
            raise
        except Exception as exc:
            raise InvalidState(f"Failed to import state: {exc}") from exc

        self.undo_stack, self.redo_stack = undo_stack, redo_stack
        self.config = config
        self._state = EngineStatus.IDLE
        self._last_execution_ms = None
        self.transactions.clear()
        self.snapshots.clear()
        logger.info(f"Imported history state: undo={len(undo_stack)} redo={len(redo_stack)}")
        self.notify()

    def serialize_state(self) -> str:
        return self.export_state().model_dump_json(by_alias=True)

    def deserialize_state(self, text: str) -> None:
        try:
            state = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise InvalidState(f"Failed to deserialize state: {exc}") from exc
        self.import_state(state)
