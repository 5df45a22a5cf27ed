# -*- coding: utf-8 -*-
"""Notification inbox models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

NotificationType = Literal[
    "appointment_reminder",
    "daily_log_reminder",
    "new_weekly_summary",
    "new_message",
    "meal_plan_assigned",
    "patient_invited",
    "system",
]


class NotificationCreateRequest(BaseModel):
    user_id: str
    type: NotificationType = "system"
    content: Dict[str, Any] = Field(default_factory=dict)


class NotificationItem(BaseModel):
    id: str
    user_id: str
    type: str
    content: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool = False
    created_at: str


class NotificationListResponse(BaseModel):
    items: List[NotificationItem]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class BulkUpdateResponse(BaseModel):
    updated: int
