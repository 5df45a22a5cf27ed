# -*- coding: utf-8 -*-
"""Clinical recommendation storage helpers.

Lifecycle: ``pending`` -> ``accepted`` | ``dismissed`` -> ``applied``.
Transitions are not enforced; any known status may be set and unknown values
fall back to ``pending``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from ..store import get_store

STATUSES = ("pending", "accepted", "dismissed", "applied")
DEFAULT_STATUS = "pending"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _normalize(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **row,
        "input_snapshot": _as_dict(row.get("input_snapshot")),
        "output_snapshot": _as_dict(row.get("output_snapshot")),
        "metadata": _as_dict(row.get("metadata")),
    }


def list_recommendations(
    *,
    nutritionist_id: str,
    patient_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 30,
) -> List[Dict[str, Any]]:
    query = get_store().table("clinical_recommendations").eq("nutritionist_id", nutritionist_id)
    if patient_id:
        query = query.eq("patient_id", patient_id)
    if status:
        query = query.eq("status", status)
    return [_normalize(r) for r in query.order("created_at", desc=True).limit(limit).execute()]


def get_recommendation(recommendation_id: str) -> Dict[str, Any]:
    row = get_store().table("clinical_recommendations").eq("id", recommendation_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return _normalize(row)


def create_recommendation(*, nutritionist_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    now = _utc_now()
    row = get_store().insert(
        "clinical_recommendations",
        {
            "nutritionist_id": nutritionist_id,
            "patient_id": data["patient_id"],
            "recommendation_key": data.get("recommendation_key"),
            "source_module": data.get("source_module") or "copilot_v1",
            "title": data["title"],
            "recommendation_text": data.get("recommendation_text"),
            "rationale": data.get("rationale"),
            "confidence_score": data.get("confidence_score"),
            "input_snapshot": _as_dict(data.get("input_snapshot")),
            "output_snapshot": _as_dict(data.get("output_snapshot")),
            "metadata": _as_dict(data.get("metadata")),
            "status": DEFAULT_STATUS,
            "created_at": now,
            "updated_at": now,
        },
    )[0]
    return _normalize(row)


def update_recommendation_status(
    recommendation_id: str,
    *,
    status: str,
    actor_user_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    current = get_recommendation(recommendation_id)
    safe_status = status if status in STATUSES else DEFAULT_STATUS
    now = _utc_now()

    values: Dict[str, Any] = {
        "status": safe_status,
        "metadata": {**current["metadata"], **_as_dict(metadata)},
        "updated_at": now,
    }
    if safe_status == "accepted":
        values["accepted_by"] = actor_user_id
        values["accepted_at"] = now
    elif safe_status == "applied":
        values["applied_at"] = now
        if not current.get("accepted_by"):
            values["accepted_by"] = actor_user_id
        if not current.get("accepted_at"):
            values["accepted_at"] = now

    rows = get_store().table("clinical_recommendations").eq("id", recommendation_id).update(values)
    return _normalize(rows[0])
