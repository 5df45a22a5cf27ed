# -*- coding: utf-8 -*-
"""
Patient activity aggregation

Builds one reverse-chronological feed of patient events for a nutritionist's
dashboard from two independently windowed sources: the meal audit log and the
weight (growth) records. Each source returns at most ``limit`` rows, newest
first; the normalized rows are merged and fully re-sorted.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..config import settings
from ..store import Store, get_store

logger = logging.getLogger(__name__)

AUDIT_SOURCE = "meal_audit_log"
WEIGHT_SOURCE = "growth_records"

CATEGORIES = ("meal", "edit", "delete", "weight", "other")

# action -> (verb, category)
_AUDIT_ACTIONS = {
    "create": ("registered", "meal"),
    "update": ("edited", "edit"),
    "delete": ("deleted", "delete"),
}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class ActivityItem:
    id: str
    type: str
    patient_id: str
    patient_name: str
    description: str
    detail: str
    timestamp: str
    calories: Optional[float] = None
    weight: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ActivityFeed:
    items: List[ActivityItem] = field(default_factory=list)
    truncated_sources: List[str] = field(default_factory=list)
    patient_ids: List[str] = field(default_factory=list)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 store timestamp; unparseable values sort last."""
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            ts = datetime.fromisoformat(text)
        except ValueError:
            return _EPOCH
    else:
        return _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _details(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def normalize_audit_row(row: Dict[str, Any], patient_names: Dict[str, str]) -> Optional[ActivityItem]:
    patient_id = row.get("patient_id")
    if patient_id not in patient_names:
        return None
    verb, category = _AUDIT_ACTIONS.get(row.get("action") or "", ("", "other"))
    calories = _details(row.get("details")).get("total_calories")
    if calories is None:
        calories = 0
    meal_type = row.get("meal_type") or ""
    description = f"{verb} {meal_type}".strip() if verb else ""
    return ActivityItem(
        id=f"audit-{row.get('id')}",
        type=category,
        patient_id=patient_id,
        patient_name=patient_names[patient_id],
        description=description,
        detail=f"{_format_number(calories)} kcal",
        timestamp=row.get("created_at") or "",
        calories=calories,
    )


def normalize_weight_row(row: Dict[str, Any], patient_names: Dict[str, str]) -> Optional[ActivityItem]:
    patient_id = row.get("patient_id")
    if patient_id not in patient_names:
        return None
    weight = row.get("weight")
    return ActivityItem(
        id=f"weight-{row.get('id')}",
        type="weight",
        patient_id=patient_id,
        patient_name=patient_names[patient_id],
        description="registered weight",
        detail=f"{_format_number(weight)} kg",
        timestamp=row.get("created_at") or "",
        weight=weight,
    )


def merge_activities(*sources: Iterable[ActivityItem]) -> List[ActivityItem]:
    """Concatenate normalized sources and sort newest first."""
    combined = [item for source in sources for item in source]
    combined.sort(key=lambda item: parse_timestamp(item.timestamp), reverse=True)
    return combined


def filter_activities(
    items: List[ActivityItem],
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> List[ActivityItem]:
    """Case-insensitive name substring plus category equality; ``all`` or empty disables a filter."""
    term = (search or "").strip().lower()
    kind = (category or "").strip().lower()
    out = items
    if term:
        out = [i for i in out if term in (i.patient_name or "").lower()]
    if kind and kind != "all":
        out = [i for i in out if i.type == kind]
    return list(out)


def _fetch_roster(store: Store, nutritionist_id: str) -> Dict[str, str]:
    rows = (
        store.table("profiles")
        .select("id", "name")
        .eq("nutritionist_id", nutritionist_id)
        .eq("user_type", "patient")
        .execute()
    )
    return {r["id"]: r.get("name") or "" for r in rows}


def _fetch_window(store: Store, table: str, columns: List[str], patient_ids: List[str], limit: int) -> List[Dict[str, Any]]:
    return (
        store.table(table)
        .select(*columns)
        .in_("patient_id", patient_ids)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )


async def aggregate_activity(
    nutritionist_id: Optional[str],
    *,
    limit: Optional[int] = None,
    store: Optional[Store] = None,
) -> ActivityFeed:
    """Fetch, normalize and merge the activity of every patient of ``nutritionist_id``.

    Any store failure aborts the whole aggregation: the error is logged and an
    empty feed is returned.
    """
    if not nutritionist_id:
        return ActivityFeed()
    store = store or get_store()
    cap = int(limit if limit is not None else settings.activity_fetch_limit)

    try:
        roster = await asyncio.to_thread(_fetch_roster, store, nutritionist_id)
        if not roster:
            return ActivityFeed()
        patient_ids = list(roster)

        audit_rows, weight_rows = await asyncio.gather(
            asyncio.to_thread(
                _fetch_window,
                store,
                AUDIT_SOURCE,
                ["id", "patient_id", "action", "meal_type", "details", "created_at"],
                patient_ids,
                cap,
            ),
            asyncio.to_thread(
                _fetch_window,
                store,
                WEIGHT_SOURCE,
                ["id", "patient_id", "weight", "created_at"],
                patient_ids,
                cap,
            ),
        )

        audit_items = [i for i in (normalize_audit_row(r, roster) for r in audit_rows) if i]
        weight_items = [i for i in (normalize_weight_row(r, roster) for r in weight_rows) if i]
    except Exception as exc:
        logger.error("Activity aggregation failed for %s: %s", nutritionist_id, exc)
        return ActivityFeed()

    truncated = [
        name
        for name, rows in ((AUDIT_SOURCE, audit_rows), (WEIGHT_SOURCE, weight_rows))
        if cap and len(rows) >= cap
    ]
    return ActivityFeed(
        items=merge_activities(audit_items, weight_items),
        truncated_sources=truncated,
        patient_ids=patient_ids,
    )
