# -*- coding: utf-8 -*-
"""Notification inbox endpoints."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query, WebSocket

from ..auth.security import get_current_user, get_websocket_user, require_staff
from ..realtime.hub import ChannelFilter
from ..realtime.websocket import realtime_manager
from .models import (
    BulkUpdateResponse,
    NotificationCreateRequest,
    NotificationItem,
    NotificationListResponse,
    UnreadCountResponse,
)
from .storage import (
    create_notification,
    delete_read,
    list_notifications,
    mark_all_read,
    mark_read,
    snapshot,
    unread_count,
)

router = APIRouter(tags=["Notifications"])


@router.get("/api/notifications", response_model=NotificationListResponse, summary="My notifications, newest first")
def list_my_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=200, ge=1, le=500),
    user: dict = Depends(get_current_user),
):
    rows = list_notifications(user_id=user["id"], unread_only=unread_only, limit=limit)
    return NotificationListResponse(
        items=[NotificationItem(**r) for r in rows],
        unread_count=unread_count(user["id"]),
    )


@router.get("/api/notifications/unread-count", response_model=UnreadCountResponse, summary="Unread notifications")
def get_unread_count(user: dict = Depends(get_current_user)):
    return UnreadCountResponse(unread_count=unread_count(user["id"]))


@router.post("/api/notifications", response_model=NotificationItem, status_code=201, summary="Send a notification")
def send_notification(payload: NotificationCreateRequest, user: dict = Depends(require_staff)):
    row = create_notification(user_id=payload.user_id, type=payload.type, content=payload.content)
    return NotificationItem(**row)


@router.post("/api/notifications/read-all", response_model=BulkUpdateResponse, summary="Mark all as read")
def read_all(user: dict = Depends(get_current_user)):
    return BulkUpdateResponse(updated=mark_all_read(user["id"]))


@router.post("/api/notifications/{notification_id}/read", response_model=NotificationItem, summary="Mark one as read")
def read_one(notification_id: str, user: dict = Depends(get_current_user)):
    return NotificationItem(**mark_read(user_id=user["id"], notification_id=notification_id))


@router.delete("/api/notifications/read", response_model=BulkUpdateResponse, summary="Delete read notifications")
def clear_read(user: dict = Depends(get_current_user)):
    return BulkUpdateResponse(updated=delete_read(user["id"]))


@router.websocket("/api/ws/notifications")
async def notifications_websocket(websocket: WebSocket):
    user = get_websocket_user(websocket)
    if not user:
        await websocket.close(code=4401)
        return

    async def build() -> dict:
        return await asyncio.to_thread(snapshot, user["id"])

    await realtime_manager.serve(
        websocket,
        [ChannelFilter("notifications", "user_id", user["id"])],
        build,
    )
