# -*- coding: utf-8 -*-
"""
Realtime hub

Per-channel subscriptions keyed by table plus an optional row filter:
``column = value``, or ``column in members`` where ``members`` is a live set
the subscriber keeps current. Store mutations publish ``ChangeEvent`` objects
here; matching subscribers receive them on their own event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, List, Optional
from uuid import uuid4

from ..store.base import ChangeEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelFilter:
    table: str
    column: Optional[str] = None
    value: Any = None
    members: Optional[AbstractSet[Any]] = field(default=None, compare=False)

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        if self.column is None:
            return True
        if self.members is not None:
            return event.record.get(self.column) in self.members
        return event.record.get(self.column) == self.value


@dataclass
class Subscription:
    filters: List[ChannelFilter]
    loop: asyncio.AbstractEventLoop
    queue: "asyncio.Queue[ChangeEvent]"
    id: str = field(default_factory=lambda: str(uuid4()))

    def wants(self, event: ChangeEvent) -> bool:
        return any(f.matches(event) for f in self.filters)


class RealtimeHub:
    """Fan-out of store change events to websocket subscribers."""

    def __init__(self) -> None:
        self._subs: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, *filters: ChannelFilter) -> Subscription:
        """Register a subscription. Must be called from the consuming event loop."""
        sub = Subscription(
            filters=list(filters),
            loop=asyncio.get_running_loop(),
            queue=asyncio.Queue(),
        )
        with self._lock:
            self._subs[sub.id] = sub
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subs.pop(sub.id, None)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver ``event`` to matching subscribers. Safe to call from any thread."""
        with self._lock:
            targets = [s for s in self._subs.values() if s.wants(event)]
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(sub.queue.put_nowait, event)
            except RuntimeError:
                # Event loop already closed: the websocket went away without unsubscribing.
                logger.warning("Dropping realtime subscriber %s (loop closed)", sub.id)
                self.unsubscribe(sub)


hub = RealtimeHub()
