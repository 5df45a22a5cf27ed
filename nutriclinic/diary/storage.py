# -*- coding: utf-8 -*-
"""Food diary storage helpers.

Every meal mutation appends one row to ``meal_audit_log``. The row carries the
meal's type/date/time at the time of the action and a ``details`` JSON blob
with the meal totals (``total_calories`` etc.) and, for updates, a
``changes`` map ``{field: {"old": ..., "new": ...}}``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from fastapi import HTTPException

from ..errors import StoreError
from ..store import get_store

NUTRIENTS = ("calories", "protein", "carbs", "fat")
TRACKED_FIELDS = ("meal_type", "meal_date", "meal_time", "notes")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def compute_totals(items: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    totals = {f"total_{n}": 0.0 for n in NUTRIENTS}
    for item in items:
        for n in NUTRIENTS:
            totals[f"total_{n}"] += float(item.get(n) or 0)
    return {k: round(v, 2) for k, v in totals.items()}


def _item_rows(meal_id: str, items: Iterable[Dict[str, Any]], created_at: str) -> List[Dict[str, Any]]:
    rows = []
    for item in items:
        rows.append(
            {
                "meal_id": meal_id,
                "food_id": item.get("food_id"),
                "name": item["name"],
                "quantity": item.get("quantity") or 0,
                "unit": item.get("unit") or "g",
                "calories": item.get("calories") or 0,
                "protein": item.get("protein") or 0,
                "carbs": item.get("carbs") or 0,
                "fat": item.get("fat") or 0,
                "created_at": created_at,
            }
        )
    return rows


def _write_audit(
    meal: Dict[str, Any],
    action: str,
    *,
    changes: Optional[Dict[str, Any]] = None,
    created_at: Optional[str] = None,
) -> Dict[str, Any]:
    details: Dict[str, Any] = {k: meal.get(k) or 0 for k in (f"total_{n}" for n in NUTRIENTS)}
    if changes:
        details["changes"] = changes
    return get_store().insert(
        "meal_audit_log",
        {
            "meal_id": meal["id"],
            "patient_id": meal["patient_id"],
            "action": action,
            "meal_type": meal.get("meal_type"),
            "meal_date": meal.get("meal_date"),
            "meal_time": meal.get("meal_time"),
            "details": details,
            "created_at": created_at or _utc_now(),
        },
    )[0]


def _attach_items(meals: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not meals:
        return meals
    items = get_store().table("meal_items").in_("meal_id", [m["id"] for m in meals]).execute()
    by_meal: Dict[str, List[Dict[str, Any]]] = {}
    for item in items:
        by_meal.setdefault(item["meal_id"], []).append(item)
    return [{**m, "items": by_meal.get(m["id"], [])} for m in meals]


def get_meal(meal_id: str) -> Dict[str, Any]:
    meal = get_store().table("meals").eq("id", meal_id).first()
    if not meal:
        raise HTTPException(status_code=404, detail="Meal not found")
    return _attach_items([meal])[0]


def create_meal(
    *,
    patient_id: str,
    meal_type: str,
    meal_date: str,
    items: List[Dict[str, Any]],
    meal_time: Optional[str] = None,
    notes: Optional[str] = None,
    created_at: Optional[str] = None,
) -> Dict[str, Any]:
    """Insert a meal with its items and log the ``create`` audit row.

    ``created_at`` overrides the timestamp (used when back-filling history).
    """
    store = get_store()
    now = created_at or _utc_now()
    meal = store.insert(
        "meals",
        {
            "patient_id": patient_id,
            "meal_type": meal_type,
            "meal_date": meal_date,
            "meal_time": meal_time,
            "notes": notes,
            **compute_totals(items),
            "created_at": now,
            "updated_at": now,
        },
    )[0]
    try:
        saved_items = store.insert("meal_items", _item_rows(meal["id"], items, now))
        _write_audit(meal, "create", created_at=now)
    except StoreError:
        # No meal without its items and audit row.
        store.table("meal_items").eq("meal_id", meal["id"]).delete()
        store.table("meals").eq("id", meal["id"]).delete()
        raise
    return {**meal, "items": saved_items}


def update_meal(meal_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    store = get_store()
    current = get_meal(meal_id)
    values: Dict[str, Any] = {}
    diff: Dict[str, Any] = {}

    for field in TRACKED_FIELDS:
        if field in changes and changes[field] != current.get(field):
            values[field] = changes[field]
            diff[field] = {"old": current.get(field), "new": changes[field]}

    new_items = changes.get("items")
    if new_items is not None:
        old_names = [i.get("name") for i in current.get("items") or []]
        new_names = [i.get("name") for i in new_items]
        values.update(compute_totals(new_items))
        if old_names != new_names or values["total_calories"] != current.get("total_calories"):
            diff["foods"] = {"old": old_names, "new": new_names}

    if not values:
        return current

    now = _utc_now()
    values["updated_at"] = now
    updated = store.table("meals").eq("id", meal_id).update(values)[0]
    if new_items is not None:
        store.table("meal_items").eq("meal_id", meal_id).delete()
        store.insert("meal_items", _item_rows(meal_id, new_items, now))
    _write_audit(updated, "update", changes=diff, created_at=now)
    return get_meal(meal_id)


def delete_meal(meal_id: str) -> Dict[str, Any]:
    store = get_store()
    meal = get_meal(meal_id)
    store.table("meal_items").eq("meal_id", meal_id).delete()
    store.table("meals").eq("id", meal_id).delete()
    _write_audit(meal, "delete")
    return meal


def list_meals(
    *,
    patient_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    meal_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    query = get_store().table("meals").eq("patient_id", patient_id)
    if start_date:
        query = query.gte("meal_date", start_date)
    if end_date:
        query = query.lte("meal_date", end_date)
    if meal_type:
        query = query.eq("meal_type", meal_type)
    rows = query.order("meal_date", desc=True).order("meal_time", desc=True).limit(limit).offset(offset).execute()
    return _attach_items(rows)


def extract_changes(details: Any) -> List[Dict[str, Any]]:
    """Flatten ``details.changes`` into ``[{field, old, new}]``."""
    if not isinstance(details, dict) or not isinstance(details.get("changes"), dict):
        return []
    out = []
    for field, change in details["changes"].items():
        change = change if isinstance(change, dict) else {}
        out.append({"field": field, "old": change.get("old"), "new": change.get("new")})
    return out


def audit_history(
    *,
    patient_id: Optional[str] = None,
    meal_id: Optional[str] = None,
    action: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    query = get_store().table("meal_audit_log")
    if patient_id:
        query = query.eq("patient_id", patient_id)
    if meal_id:
        query = query.eq("meal_id", meal_id)
    if action:
        query = query.eq("action", action)
    if start_date:
        query = query.gte("meal_date", start_date)
    if end_date:
        query = query.lte("meal_date", end_date)
    rows = query.order("created_at", desc=True).limit(limit).execute()
    out = []
    for row in rows:
        details = row.get("details") if isinstance(row.get("details"), dict) else {}
        out.append({**row, "details": details, "changes": extract_changes(details)})
    return out


def nutritional_summary(*, patient_id: str, start_date: str, end_date: str) -> Dict[str, Any]:
    meals = _attach_items(
        get_store()
        .table("meals")
        .eq("patient_id", patient_id)
        .gte("meal_date", start_date)
        .lte("meal_date", end_date)
        .execute()
    )
    totals = {n: 0.0 for n in NUTRIENTS}
    for meal in meals:
        for item in meal.get("items") or []:
            for n in NUTRIENTS:
                totals[n] += float(item.get(n) or 0)

    days = len({m["meal_date"] for m in meals}) if meals else 1
    return {
        "total_meals": len(meals),
        "days": days,
        "avg_calories_per_day": round(totals["calories"] / days),
        "avg_protein_per_day": round(totals["protein"] / days),
        "avg_carbs_per_day": round(totals["carbs"] / days),
        "avg_fat_per_day": round(totals["fat"] / days),
        "totals": {n: round(v) for n, v in totals.items()},
    }


def diary_adherence(*, patient_id: str, days: int = 30, today: Optional[date] = None) -> Dict[str, Any]:
    """Days with at least one meal over the last ``days`` days and the current streak.

    The streak counts consecutive logged days backwards from today; an empty
    today does not break it.
    """
    today = today or date.today()
    start = today - timedelta(days=max(days - 1, 0))
    meals = (
        get_store()
        .table("meals")
        .select("meal_date")
        .eq("patient_id", patient_id)
        .gte("meal_date", start.isoformat())
        .lte("meal_date", today.isoformat())
        .execute()
    )
    logged = {m["meal_date"] for m in meals}

    streak = 0
    for offset in range(days):
        day = (today - timedelta(days=offset)).isoformat()
        if day in logged:
            streak += 1
        elif offset != 0:
            break

    return {
        "total_days": days,
        "days_with_records": len(logged),
        "adherence_percentage": round(len(logged) / days * 100) if days else 0,
        "current_streak": streak,
        "total_meals": len(meals),
    }


def list_foods(*, search: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
    query = get_store().table("foods")
    if search:
        query = query.ilike("name", f"%{search.strip()}%")
    return query.order("name").limit(limit).execute()


def create_food(data: Dict[str, Any]) -> Dict[str, Any]:
    return get_store().insert("foods", {**data, "created_at": _utc_now()})[0]
