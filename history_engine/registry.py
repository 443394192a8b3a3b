"""Name-to-factory mapping used for by-name execute and deserialization."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from history_engine.commands import COMPOSITE_KIND, Command, CompositeCommand, Payload
from history_engine.errors import InvalidState, UnknownCommand, UnknownCommandType
from history_engine.models import SerializedCommand

logger = logging.getLogger(__name__)

CommandFactory = Callable[..., Command]


class CommandRegistry:
    """Per-engine registry. Factories take no arguments for by-name execute and
    the payload's ``data`` when rebuilding a serialized command."""

    def __init__(self) -> None:
        self._factories: Dict[str, CommandFactory] = {}
        self.register(COMPOSITE_KIND, lambda data=None: CompositeCommand.from_payload(data, self.deserialize))

    def register(self, name: str, factory: CommandFactory) -> None:
        if name in self._factories:
            logger.debug(f"Replacing command factory '{name}'")
        self._factories[name] = factory

    def unregister(self, name: str) -> bool:
        return self._factories.pop(name, None) is not None

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def create(self, name: str) -> Command:
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownCommand(f"Unknown command: {name}")
        return factory()

    def deserialize(self, payload: Payload) -> Command:
        try:
            serialized = SerializedCommand.model_validate(payload)
        except ValidationError as exc:
            raise InvalidState(f"Malformed command payload: {exc}") from exc
        factory = self._factories.get(serialized.kind)
        if factory is None:
            raise UnknownCommandType(f"Unknown command type: {serialized.kind}")
        return factory(serialized.data)

    def deserialize_many(self, payloads: Any) -> List[Command]:
        return [self.deserialize(item) for item in payloads]
