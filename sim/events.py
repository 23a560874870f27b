"""Observer contract between the simulation and whatever displays it.

Subsystems publish :class:`Notification` objects; subscribers get them
synchronously in subscription order. Inside :meth:`EventBus.deferred`
published notifications are queued instead and delivered, in order, once
the outermost block exits. Payloads are plain data snapshots, so
a subscriber can never reach into live simulation state.
"""

from __future__ import annotations

import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterator, List

logger = logging.getLogger(__name__)


class NotificationKind(Enum):
    TICK = "tick"
    BUILDING_CONSTRUCTED = "building_constructed"
    BUILDING_UPGRADED = "building_upgraded"
    BUILDING_REPAIRED = "building_repaired"
    WORKER_ASSIGNED = "worker_assigned"
    WORKER_REMOVED = "worker_removed"
    FAME_GAINED = "fame_gained"
    RANK_UP = "rank_up"
    SEASON_CHANGED = "season_changed"
    NEW_YEAR = "new_year"
    REGION_EXPLORED = "region_explored"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[Notification], None]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._queue: Deque[Notification] = deque()
        self._held = 0

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Register ``fn`` and return a callable that unregisters it."""
        self._subscribers.append(fn)

        def unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return unsubscribe

    @property
    def pending(self) -> int:
        return len(self._queue)

    def publish(self, note: Notification) -> None:
        if self._held:
            self.emit(note)
        else:
            self._dispatch(note)

    def emit(self, note: Notification) -> None:
        """Queue ``note`` for the next :meth:`drain`."""
        self._queue.append(note)

    def drain(self) -> int:
        """Deliver queued notifications in order and return how many went out.

        A subscriber that raises stops the drain; notifications not yet
        delivered stay queued.
        """
        sent = 0
        while self._queue:
            self._dispatch(self._queue.popleft())
            sent += 1
        return sent

    @contextmanager
    def deferred(self) -> Iterator["EventBus"]:
        self._held += 1
        try:
            yield self
        finally:
            self._held -= 1
        if not self._held:
            self.drain()

    def _dispatch(self, note: Notification) -> None:
        logger.debug("publish %s: %s", note.kind.value, note.message)
        for fn in list(self._subscribers):
            fn(note)


__all__ = ["EventBus", "Notification", "NotificationKind", "Subscriber"]
