# -*- coding: utf-8 -*-
"""Notification inbox storage helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from ..store import get_store


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _normalize(row: Dict[str, Any]) -> Dict[str, Any]:
    content = row.get("content")
    if not isinstance(content, dict):
        row = {**row, "content": {"message": content} if content else {}}
    return row


def create_notification(*, user_id: str, type: str, content: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    row = get_store().insert(
        "notifications",
        {
            "user_id": user_id,
            "type": type,
            "content": content or {},
            "is_read": False,
            "created_at": _utc_now(),
        },
    )[0]
    return _normalize(row)


def list_notifications(*, user_id: str, unread_only: bool = False, limit: int = 200) -> List[Dict[str, Any]]:
    query = get_store().table("notifications").eq("user_id", user_id)
    if unread_only:
        query = query.eq("is_read", False)
    rows = query.order("created_at", desc=True).limit(limit).execute()
    return [_normalize(r) for r in rows]


def unread_count(user_id: str) -> int:
    return get_store().table("notifications").eq("user_id", user_id).eq("is_read", False).count()


def mark_read(*, user_id: str, notification_id: str) -> Dict[str, Any]:
    rows = (
        get_store()
        .table("notifications")
        .eq("id", notification_id)
        .eq("user_id", user_id)
        .update({"is_read": True})
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Notification not found")
    return _normalize(rows[0])


def mark_all_read(user_id: str) -> int:
    rows = get_store().table("notifications").eq("user_id", user_id).eq("is_read", False).update({"is_read": True})
    return len(rows)


def delete_read(user_id: str) -> int:
    rows = get_store().table("notifications").eq("user_id", user_id).eq("is_read", True).delete()
    return len(rows)


def snapshot(user_id: str) -> Dict[str, Any]:
    items = list_notifications(user_id=user_id)
    return {
        "type": "snapshot",
        "unread_count": unread_count(user_id),
        "items": items,
    }
