# -*- coding: utf-8 -*-
"""Patient activity feed endpoints (dashboard widget)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, WebSocket

from ..auth.security import STAFF_ROLES, get_websocket_user, require_staff
from ..realtime.hub import ChannelFilter
from ..realtime.websocket import realtime_manager
from .aggregator import AUDIT_SOURCE, WEIGHT_SOURCE, aggregate_activity, filter_activities
from .models import ActivityCategory, ActivityFeedResponse, ActivityItemModel

router = APIRouter(tags=["Activity"])


@router.get("/api/activity", response_model=ActivityFeedResponse, summary="Recent activity of my patients")
async def get_activity(
    q: str | None = Query(default=None, description="Patient name contains (case-insensitive)"),
    category: ActivityCategory | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=1000, description="Per-source fetch cap"),
    user: dict = Depends(require_staff),
):
    feed = await aggregate_activity(user["id"], limit=limit)
    items = filter_activities(feed.items, search=q, category=category)
    return ActivityFeedResponse(
        items=[ActivityItemModel(**i.to_dict()) for i in items],
        total=len(items),
        truncated_sources=feed.truncated_sources,
    )


@router.websocket("/api/ws/activity")
async def activity_websocket(websocket: WebSocket):
    user = get_websocket_user(websocket)
    if not user or user.get("role") not in STAFF_ROLES:
        await websocket.close(code=4401)
        return

    search = websocket.query_params.get("q")
    category = websocket.query_params.get("category")
    # Patients whose audit and weight rows wake this feed; refreshed on each snapshot.
    roster: set = set()

    async def snapshot() -> dict:
        feed = await aggregate_activity(user["id"])
        if feed.patient_ids:
            roster.intersection_update(feed.patient_ids)
        roster.update(feed.patient_ids)
        items = filter_activities(feed.items, search=search, category=category)
        return {
            "type": "snapshot",
            "items": [i.to_dict() for i in items],
            "total": len(items),
            "truncated_sources": feed.truncated_sources,
        }

    await realtime_manager.serve(
        websocket,
        [
            ChannelFilter(AUDIT_SOURCE, "patient_id", members=roster),
            ChannelFilter(WEIGHT_SOURCE, "patient_id", members=roster),
            ChannelFilter("profiles", "nutritionist_id", user["id"]),
        ],
        snapshot,
    )
