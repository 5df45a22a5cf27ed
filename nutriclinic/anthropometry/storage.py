# -*- coding: utf-8 -*-
"""Growth record storage helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from ..store import get_store


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def compute_bmi(weight: Any, height_cm: Any) -> Optional[float]:
    try:
        w = float(weight)
        h = float(height_cm) / 100.0
    except (TypeError, ValueError):
        return None
    if w <= 0 or h <= 0:
        return None
    return round(w / (h * h), 1)


def _with_bmi(row: Dict[str, Any], fallback_height: Optional[float]) -> Dict[str, Any]:
    return {**row, "bmi": compute_bmi(row.get("weight"), row.get("height") or fallback_height)}


def _profile_height(patient_id: str) -> Optional[float]:
    profile = get_store().table("profiles").select("height_cm").eq("id", patient_id).first()
    return (profile or {}).get("height_cm")


def create_record(
    *,
    patient_id: str,
    weight: float,
    height: Optional[float] = None,
    body_fat: Optional[float] = None,
    waist: Optional[float] = None,
    record_date: Optional[str] = None,
    notes: Optional[str] = None,
    created_at: Optional[str] = None,
) -> Dict[str, Any]:
    store = get_store()
    record_date = record_date or date.today().isoformat()
    latest = (
        store.table("growth_records")
        .select("record_date")
        .eq("patient_id", patient_id)
        .order("record_date", desc=True)
        .first()
    )
    row = store.insert(
        "growth_records",
        {
            "patient_id": patient_id,
            "weight": weight,
            "height": height,
            "body_fat": body_fat,
            "waist": waist,
            "record_date": record_date,
            "notes": notes,
            "created_at": created_at or _utc_now(),
        },
    )[0]
    # Back-dated measurements leave the profile untouched.
    if not latest or record_date >= (latest.get("record_date") or ""):
        profile_values: Dict[str, Any] = {"weight_kg": weight}
        if height:
            profile_values["height_cm"] = height
        store.table("profiles").eq("id", patient_id).update(profile_values)
    return _with_bmi(row, _profile_height(patient_id))


def list_records(patient_id: str, *, limit: int = 200) -> List[Dict[str, Any]]:
    rows = (
        get_store()
        .table("growth_records")
        .eq("patient_id", patient_id)
        .order("record_date", desc=True)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    height = _profile_height(patient_id)
    return [_with_bmi(r, height) for r in rows]


def get_record(record_id: str) -> Dict[str, Any]:
    row = get_store().table("growth_records").eq("id", record_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Record not found")
    return row


def delete_record(record_id: str) -> Dict[str, Any]:
    row = get_record(record_id)
    get_store().table("growth_records").eq("id", record_id).delete()
    return row


def record_stats(patient_id: str) -> Dict[str, Any]:
    rows = list_records(patient_id, limit=1000)
    if not rows:
        return {"count": 0}
    latest, first = rows[0], rows[-1]
    change = None
    if latest.get("weight") is not None and first.get("weight") is not None:
        change = round(float(latest["weight"]) - float(first["weight"]), 2)
    return {
        "count": len(rows),
        "first_weight": first.get("weight"),
        "latest_weight": latest.get("weight"),
        "weight_change": change,
        "latest_bmi": latest.get("bmi"),
        "first_date": first.get("record_date"),
        "latest_date": latest.get("record_date"),
    }
