# -*- coding: utf-8 -*-
"""
Realtime WebSocket module

Snapshot feeds: on connect the client receives the current snapshot, and each
change event on the subscribed channels triggers a full refetch that is pushed
again. Events arriving while a refetch is in flight are coalesced.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from .hub import ChannelFilter, RealtimeHub, Subscription, hub

logger = logging.getLogger(__name__)

SnapshotBuilder = Callable[[], Awaitable[Dict[str, Any]]]


class RealtimeManager:
    """Tracks open snapshot feeds."""

    def __init__(self, realtime_hub: Optional[RealtimeHub] = None):
        self.hub = realtime_hub or hub
        # Active connections
        self.active_connections: Dict[str, WebSocket] = {}
        self._send_locks: Dict[str, asyncio.Lock] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = str(uuid4())
        self.active_connections[connection_id] = websocket
        self._send_locks[connection_id] = asyncio.Lock()
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self.active_connections.pop(connection_id, None)
        self._send_locks.pop(connection_id, None)

    async def send_snapshot(self, connection_id: str, build: SnapshotBuilder) -> None:
        websocket = self.active_connections.get(connection_id)
        lock = self._send_locks.get(connection_id)
        if websocket is None or lock is None:
            return
        snapshot = await build()
        async with lock:
            await websocket.send_json(snapshot)

    async def _pump(self, connection_id: str, sub: Subscription, build: SnapshotBuilder) -> None:
        try:
            while connection_id in self.active_connections:
                await sub.queue.get()
                while not sub.queue.empty():
                    sub.queue.get_nowait()
                await self.send_snapshot(connection_id, build)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Realtime feed %s stopped: %s", connection_id, exc)
            await self._close(connection_id, code=1011)

    async def _close(self, connection_id: str, code: int) -> None:
        """Close the socket so the client reconnects and resubscribes."""
        websocket = self.active_connections.get(connection_id)
        if websocket is None or websocket.application_state != WebSocketState.CONNECTED:
            return
        try:
            await websocket.close(code=code)
        except RuntimeError as exc:
            logger.debug("Close of %s raced the client: %s", connection_id, exc)

    async def serve(
        self,
        websocket: WebSocket,
        channels: Iterable[ChannelFilter],
        build: SnapshotBuilder,
    ) -> None:
        """Run a snapshot feed until the client disconnects.

        The client may send ``{"type": "refresh"}`` to force a refetch; any
        other message is ignored.
        """
        connection_id = await self.connect(websocket)
        sub = self.hub.subscribe(*channels)
        pump: Optional[asyncio.Task] = None
        try:
            await self.send_snapshot(connection_id, build)
            pump = asyncio.create_task(self._pump(connection_id, sub, build))
            while True:
                message = await websocket.receive_json()
                if isinstance(message, dict) and message.get("type") == "refresh":
                    await self.send_snapshot(connection_id, build)
        except WebSocketDisconnect:
            pass
        except Exception as exc:
            logger.error("WebSocket error: %s", exc)
        finally:
            if pump is not None:
                pump.cancel()
            self.hub.unsubscribe(sub)
            self.disconnect(connection_id)


realtime_manager = RealtimeManager()
