# -*- coding: utf-8 -*-
"""Meal plan storage helpers.

The plan body (description, active days, meals and their foods) is kept in the
``payload`` JSON column; the daily totals are denormalized into columns so the
plan list does not need to open the payload.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from ..notifications.storage import create_notification
from ..store import get_store
from .models import ALL_DAYS

logger = logging.getLogger(__name__)

NUTRIENTS = ("calories", "protein", "carbs", "fat")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _safe_date(value: Any) -> Optional[str]:
    if isinstance(value, str) and len(value) >= 10:
        return value[:10]
    return None


def recalculate_meals(meals: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Recompute each meal's totals from its foods."""
    out = []
    for meal in meals:
        foods = list(meal.get("foods") or [])
        totals = {f"total_{n}": round(sum(float(f.get(n) or 0) for f in foods), 2) for n in NUTRIENTS}
        out.append({**meal, "foods": foods, **totals})
    return out


def daily_totals(meals: List[Dict[str, Any]]) -> Dict[str, float]:
    return {
        f"daily_{n}": round(sum(float(m.get(f"total_{n}") or 0) for m in meals), 2)
        for n in NUTRIENTS
    }


def _row_to_plan(row: Dict[str, Any]) -> Dict[str, Any]:
    payload = row.get("payload") if isinstance(row.get("payload"), dict) else {}
    return {
        "id": row["id"],
        "patient_id": row["patient_id"],
        "nutritionist_id": row["nutritionist_id"],
        "name": row.get("name") or "",
        "description": payload.get("description"),
        "status": row.get("status") or "active",
        "is_active": bool(row.get("is_active")),
        "active_days": payload.get("active_days") or list(ALL_DAYS),
        "start_date": row.get("start_date"),
        "end_date": row.get("end_date"),
        "meals": payload.get("meals") or [],
        "daily_calories": row.get("daily_calories") or 0,
        "daily_protein": row.get("daily_protein") or 0,
        "daily_carbs": row.get("daily_carbs") or 0,
        "daily_fat": row.get("daily_fat") or 0,
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


def _notify_patient(plan: Dict[str, Any]) -> None:
    create_notification(
        user_id=plan["patient_id"],
        type="meal_plan_assigned",
        content={"meal_plan_id": plan["id"], "name": plan["name"], "message": f"New meal plan: {plan['name']}"},
    )


def _deactivate_others(patient_id: str, keep_id: Optional[str] = None) -> int:
    query = get_store().table("meal_plans").eq("patient_id", patient_id).eq("is_active", True)
    if keep_id:
        query = query.neq("id", keep_id)
    return len(query.update({"is_active": False, "updated_at": _utc_now()}))


def get_plan(plan_id: str) -> Dict[str, Any]:
    row = get_store().table("meal_plans").eq("id", plan_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return _row_to_plan(row)


def create_plan(*, nutritionist_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    meals = recalculate_meals(data.get("meals") or [])
    activate = bool(data.get("activate", True))
    if activate:
        _deactivate_others(data["patient_id"])

    now = _utc_now()
    row = get_store().insert(
        "meal_plans",
        {
            "patient_id": data["patient_id"],
            "nutritionist_id": nutritionist_id,
            "name": data["name"],
            "status": "active",
            "is_active": activate,
            "start_date": _safe_date(data.get("start_date")) or date.today().isoformat(),
            "end_date": _safe_date(data.get("end_date")),
            "payload": {
                "description": data.get("description"),
                "active_days": data.get("active_days") or list(ALL_DAYS),
                "meals": meals,
            },
            **daily_totals(meals),
            "created_at": now,
            "updated_at": now,
        },
    )[0]
    plan = _row_to_plan(row)
    if activate:
        _notify_patient(plan)
    return plan


def list_plans(patient_id: str, *, only_active: bool = False) -> List[Dict[str, Any]]:
    query = get_store().table("meal_plans").eq("patient_id", patient_id)
    if only_active:
        query = query.eq("is_active", True)
    return [_row_to_plan(r) for r in query.order("created_at", desc=True).execute()]


def get_active_plan(patient_id: str) -> Optional[Dict[str, Any]]:
    plans = list_plans(patient_id, only_active=True)
    return plans[0] if plans else None


def update_plan(plan_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    current = get_plan(plan_id)
    payload = {
        "description": current.get("description"),
        "active_days": current.get("active_days"),
        "meals": current.get("meals"),
    }
    values: Dict[str, Any] = {}
    if "name" in changes and changes["name"]:
        values["name"] = changes["name"]
    for key in ("start_date", "end_date"):
        if key in changes:
            values[key] = _safe_date(changes[key])
    if "description" in changes:
        payload["description"] = changes["description"]
    if changes.get("active_days") is not None:
        payload["active_days"] = changes["active_days"]
    if changes.get("meals") is not None:
        payload["meals"] = recalculate_meals(changes["meals"])
        values.update(daily_totals(payload["meals"]))
    values["payload"] = payload
    values["updated_at"] = _utc_now()
    rows = get_store().table("meal_plans").eq("id", plan_id).update(values)
    return _row_to_plan(rows[0])


def set_active_plan(plan_id: str) -> Dict[str, Any]:
    plan = get_plan(plan_id)
    _deactivate_others(plan["patient_id"], keep_id=plan_id)
    rows = (
        get_store()
        .table("meal_plans")
        .eq("id", plan_id)
        .update({"is_active": True, "status": "active", "updated_at": _utc_now()})
    )
    activated = _row_to_plan(rows[0])
    _notify_patient(activated)
    logger.info("Meal plan %s active for patient %s", plan_id, plan["patient_id"])
    return activated


def archive_plan(plan_id: str) -> Dict[str, Any]:
    get_plan(plan_id)
    rows = (
        get_store()
        .table("meal_plans")
        .eq("id", plan_id)
        .update({"is_active": False, "status": "archived", "updated_at": _utc_now()})
    )
    return _row_to_plan(rows[0])


def delete_plan(plan_id: str) -> Dict[str, Any]:
    plan = get_plan(plan_id)
    get_store().table("meal_plans").eq("id", plan_id).delete()
    return plan
