"""In-process realtime hub delivering row change notifications."""

import asyncio
import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """Row-level change with before/after snapshots."""

    table: str
    event: str
    old: dict[str, Any] = field(default_factory=dict)
    new: dict[str, Any] = field(default_factory=dict)


ChangeHandler = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by RealtimeHub.subscribe(); call close() to unsubscribe."""

    def __init__(
        self,
        hub: "RealtimeHub",
        table: str,
        event: str,
        handler: ChangeHandler,
        loop: asyncio.AbstractEventLoop | None,
    ) -> None:
        self._hub = hub
        self.table = table
        self.event = event
        self.handler = handler
        self.loop = loop
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._hub._unsubscribe(self)

    def deliver(self, change: ChangeEvent) -> None:
        if self.closed:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self.loop is not None and self.loop is not running and not self.loop.is_closed():
            # Publisher runs on another thread (e.g. a sync route handler)
            self.loop.call_soon_threadsafe(self._call, change)
        else:
            self._call(change)

    def _call(self, change: ChangeEvent) -> None:
        if self.closed:
            return
        try:
            self.handler(change)
        except Exception:
            logger.exception("Realtime handler failed for %s %s", change.table, change.event)


class RealtimeHub:
    """Pub/sub of row changes, keyed by table name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: defaultdict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, table: str, handler: ChangeHandler, event: str = UPDATE) -> Subscription:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        sub = Subscription(self, table, event, handler, loop)
        with self._lock:
            self._subs[table].append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.table, [])
            if sub in subs:
                subs.remove(sub)

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subs.get(table, []))

    def publish(self, change: ChangeEvent) -> int:
        """Deliver a change to matching subscribers. Returns the delivery count."""
        with self._lock:
            targets = [
                s for s in self._subs.get(change.table, [])
                if s.event in (change.event, "*")
            ]
        for sub in targets:
            sub.deliver(change)
        logger.debug("Published %s on %s to %d subscribers", change.event, change.table, len(targets))
        return len(targets)
