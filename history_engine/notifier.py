"""Change listeners for history state."""
from __future__ import annotations

from typing import Callable, List

from history_engine.models import HistoryStatus

Listener = Callable[[HistoryStatus], None]


class ChangeNotifier:
    """De-duplicated, insertion-ordered listener set.

    Membership is by equality, not hash. Listener exceptions propagate to
    whoever triggered the notification.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def add(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, status: HistoryStatus) -> None:
        # copy so a listener may unsubscribe itself
        for listener in list(self._listeners):
            listener(status)
