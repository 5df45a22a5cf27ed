# -*- coding: utf-8 -*-
"""Patient weight goal storage helpers.

Viability compares the daily energy balance a goal needs against safe limits
and, when both are known, against the patient's energy expenditure and the
calories of the active meal plan. ``required_daily_deficit`` is the daily
deficit in kcal: positive for weight loss, negative (a surplus) for gain.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from fastapi import HTTPException

from ..meal_plans.storage import get_active_plan
from ..store import get_store

logger = logging.getLogger(__name__)

# 1 kg of body fat is roughly 7700 kcal.
CALORIES_PER_KG = 7700
MAX_SAFE_DEFICIT = 1000
MIN_EFFECTIVE_DEFICIT = 200
MAX_SAFE_SURPLUS = 500
IDEAL_DEFICIT = 500
IDEAL_SURPLUS = 300
PLAN_TOLERANCE = 300

GOAL_STATUSES = ("active", "paused", "completed", "cancelled")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _to_date(value: Union[str, date]) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}") from None


def _days_between(start: Union[str, date], end: Union[str, date]) -> int:
    return (_to_date(end) - _to_date(start)).days


def default_title(goal_type: str, initial_weight: float, target_weight: float) -> str:
    change = abs(float(target_weight) - float(initial_weight))
    if goal_type == "weight_loss":
        return f"Perder {change:.1f}kg"
    if goal_type == "weight_gain":
        return f"Ganhar {change:.1f}kg"
    if goal_type == "weight_maintenance":
        return f"Manter {float(initial_weight):g}kg"
    return "Meta personalizada"


def minimum_deadline(weight_change: float) -> int:
    """Fewest days that keep the daily deficit (or surplus) within safe limits."""
    if weight_change == 0:
        return 1
    limit = MAX_SAFE_DEFICIT if weight_change < 0 else MAX_SAFE_SURPLUS
    return math.ceil(abs(weight_change) * CALORIES_PER_KG / limit)


def ideal_deadline(weight_change: float) -> int:
    if weight_change == 0:
        return 1
    pace = IDEAL_DEFICIT if weight_change < 0 else IDEAL_SURPLUS
    return math.ceil(abs(weight_change) * CALORIES_PER_KG / pace)


def deadline_recommendation(initial_weight: float, target_weight: float, start_date: str) -> Dict[str, Any]:
    change = float(target_weight) - float(initial_weight)
    start = _to_date(start_date)
    min_days = minimum_deadline(change)
    ideal_days = ideal_deadline(change)
    return {
        "weight_change": round(abs(change), 2),
        "min_days": min_days,
        "ideal_days": ideal_days,
        "min_date": (start + timedelta(days=min_days)).isoformat(),
        "ideal_date": (start + timedelta(days=ideal_days)).isoformat(),
    }


def calculate_viability(
    goal: Dict[str, Any],
    *,
    energy_expenditure: Optional[float] = None,
    plan_calories: Optional[float] = None,
) -> Dict[str, Any]:
    total_change = float(goal["target_weight"]) - float(goal["initial_weight"])
    days = _days_between(goal["start_date"], goal["target_date"])
    if days <= 0:
        return {
            "is_realistic": False,
            "viability_score": 1,
            "viability_notes": "Target date must be after the start date.",
            "warnings": [{"type": "invalid_dates", "message": "Invalid target date"}],
            "required_daily_deficit": 0,
            "daily_calorie_goal": None,
        }

    losing, gaining = total_change < 0, total_change > 0
    deficit = -total_change / days * CALORIES_PER_KG
    result: Dict[str, Any] = {
        "is_realistic": True,
        "viability_score": 5,
        "required_daily_deficit": round(deficit),
        "daily_calorie_goal": None,
    }
    notes: List[str] = []
    warnings: List[Dict[str, str]] = []

    def _cap(score: int) -> None:
        result["viability_score"] = min(result["viability_score"], score)

    if losing and deficit > MAX_SAFE_DEFICIT:
        result["is_realistic"] = False
        result["viability_score"] = 1
        warnings.append({"type": "too_aggressive", "message": f"A deficit of {round(deficit)} kcal/day is unsafe."})
        notes.append("Extend the deadline or lower the weight target.")
    if losing and deficit < MIN_EFFECTIVE_DEFICIT:
        _cap(3)
        warnings.append({"type": "too_slow", "message": f"A deficit of only {round(deficit)} kcal/day is very slow."})
        notes.append("The goal may be too conservative.")
    if gaining and -deficit > MAX_SAFE_SURPLUS:
        result["is_realistic"] = False
        result["viability_score"] = 1
        warnings.append({"type": "gain_too_fast", "message": f"A surplus of {round(-deficit)} kcal/day is excessive."})
        notes.append("Gaining this fast favours fat accumulation.")

    if energy_expenditure and plan_calories:
        current_deficit = energy_expenditure - plan_calories
        ideal_calories = energy_expenditure - deficit
        result["daily_calorie_goal"] = round(ideal_calories)
        if abs(current_deficit - deficit) > PLAN_TOLERANCE:
            _cap(3)
            if current_deficit < deficit:
                warnings.append(
                    {
                        "type": "plan_too_high_calories",
                        "message": f"The plan provides {round(plan_calories)} kcal/day; the goal needs about {round(ideal_calories)}.",
                    }
                )
            else:
                warnings.append(
                    {
                        "type": "plan_too_low_calories",
                        "message": f"The plan provides {round(plan_calories)} kcal/day, below the {round(ideal_calories)} the goal needs.",
                    }
                )
        else:
            notes.append("The active meal plan fits the deadline.")
    else:
        _cap(3)
        warnings.append({"type": "missing_data", "message": "Energy expenditure or active meal plan missing."})
        if not energy_expenditure:
            notes.append("No energy expenditure provided.")
        if not plan_calories:
            notes.append("No active meal plan.")

    if days < 7:
        _cap(2)
        warnings.append({"type": "too_short_deadline", "message": "Deadline too short."})
    if days > 365:
        _cap(4)
        warnings.append({"type": "long_deadline", "message": "Deadline too long; consider intermediate goals."})

    result["viability_notes"] = "\n".join(notes)
    result["warnings"] = warnings
    return result


def goal_viability(goal: Dict[str, Any], patient_id: str, energy_expenditure: Optional[float] = None) -> Dict[str, Any]:
    plan = get_active_plan(patient_id)
    result = calculate_viability(
        goal,
        energy_expenditure=energy_expenditure,
        plan_calories=(plan or {}).get("daily_calories") or None,
    )
    result["meal_plan_id"] = (plan or {}).get("id")
    return result


def progress_percentage(initial_weight: Any, target_weight: Any, current_weight: Any) -> float:
    total = float(initial_weight) - float(target_weight)
    if total == 0:
        return 100.0
    raw = (float(initial_weight) - float(current_weight)) / total * 100
    return max(0.0, round(raw, 2))


def days_remaining(target_date: str, today: Optional[date] = None) -> int:
    return _days_between(today or date.today(), target_date)


def progress_status(goal: Dict[str, Any], today: Optional[date] = None) -> Optional[str]:
    """``ahead`` / ``behind`` / ``on_track`` against a linear schedule; None unless active."""
    if not goal or goal.get("status") != "active":
        return None
    total = _days_between(goal["start_date"], goal["target_date"])
    if total <= 0:
        return None
    elapsed = _days_between(goal["start_date"], today or date.today())
    difference = float(goal.get("progress_percentage") or 0) - elapsed / total * 100
    if difference >= 10:
        return "ahead"
    if difference <= -10:
        return "behind"
    return "on_track"


def public_goal(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        **row,
        "warnings": row.get("warnings") or [],
        "days_remaining": days_remaining(row["target_date"]),
        "progress_status": progress_status(row),
    }


def get_goal(goal_id: str) -> Dict[str, Any]:
    row = get_store().table("patient_goals").eq("id", goal_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Goal not found")
    return row


def create_goal(
    data: Dict[str, Any],
    *,
    patient_id: str,
    nutritionist_id: str,
    energy_expenditure: Optional[float] = None,
) -> Dict[str, Any]:
    goal = {
        "goal_type": data["goal_type"],
        "initial_weight": data["initial_weight"],
        "target_weight": data["target_weight"],
        "start_date": data.get("start_date") or date.today().isoformat(),
        "target_date": data["target_date"],
    }
    now = _utc_now()
    row = get_store().insert(
        "patient_goals",
        {
            **goal,
            "patient_id": patient_id,
            "nutritionist_id": nutritionist_id,
            "title": data.get("title") or default_title(goal["goal_type"], goal["initial_weight"], goal["target_weight"]),
            "description": data.get("description"),
            "current_weight": goal["initial_weight"],
            "progress_percentage": 0,
            **goal_viability(goal, patient_id, energy_expenditure),
            "status": "active",
            "created_at": now,
            "updated_at": now,
        },
    )[0]
    logger.info("Goal %s created for patient %s (score %s)", row["id"], patient_id, row.get("viability_score"))
    return public_goal(row)


def list_goals(patient_id: str, *, status: Optional[Iterable[str]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    query = get_store().table("patient_goals").eq("patient_id", patient_id)
    statuses = list(status or [])
    if len(statuses) == 1:
        query = query.eq("status", statuses[0])
    elif statuses:
        query = query.in_("status", statuses)
    query = query.order("created_at", desc=True)
    if limit:
        query = query.limit(limit)
    return [public_goal(r) for r in query.execute()]


def active_goal(patient_id: str) -> Optional[Dict[str, Any]]:
    goals = list_goals(patient_id, status=["active"], limit=1)
    return goals[0] if goals else None


def _update(goal_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
    values["updated_at"] = _utc_now()
    return get_store().table("patient_goals").eq("id", goal_id).update(values)[0]


def update_goal(goal_id: str, changes: Dict[str, Any], *, energy_expenditure: Optional[float] = None) -> Dict[str, Any]:
    """Edit title/description/targets; viability is recomputed when targets move."""
    current = get_goal(goal_id)
    values = {k: v for k, v in changes.items() if v is not None}
    targets = ("initial_weight", "target_weight", "start_date", "target_date")
    if any(k in values for k in targets) or energy_expenditure is not None:
        goal = {"goal_type": current["goal_type"], **{k: values.get(k, current[k]) for k in targets}}
        values.update(goal_viability(goal, current["patient_id"], energy_expenditure))
        values["progress_percentage"] = progress_percentage(
            goal["initial_weight"], goal["target_weight"], current.get("current_weight") or goal["initial_weight"]
        )
    if not values:
        return public_goal(current)
    return public_goal(_update(goal_id, values))


def update_progress(goal_id: str, current_weight: float) -> Dict[str, Any]:
    """Record the current weight; reaching 100% completes the goal."""
    goal = get_goal(goal_id)
    if goal["status"] != "active":
        raise HTTPException(status_code=409, detail=f"Goal is {goal['status']}")
    progress = progress_percentage(goal["initial_weight"], goal["target_weight"], current_weight)
    values: Dict[str, Any] = {"current_weight": current_weight, "progress_percentage": progress}
    if progress >= 100:
        values.update({"status": "completed", "completion_date": date.today().isoformat()})
        logger.info("Goal %s reached", goal_id)
    return public_goal(_update(goal_id, values))


def _transition(goal_id: str, allowed: Iterable[str], values: Dict[str, Any]) -> Dict[str, Any]:
    goal = get_goal(goal_id)
    if goal["status"] not in allowed:
        raise HTTPException(status_code=409, detail=f"Goal is {goal['status']}")
    return public_goal(_update(goal_id, values))


def complete_goal(goal_id: str) -> Dict[str, Any]:
    return _transition(goal_id, ("active", "paused"), {"status": "completed", "completion_date": date.today().isoformat()})


def cancel_goal(goal_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
    values: Dict[str, Any] = {"status": "cancelled"}
    if reason:
        values["description"] = reason
    return _transition(goal_id, ("active", "paused"), values)


def pause_goal(goal_id: str) -> Dict[str, Any]:
    return _transition(goal_id, ("active",), {"status": "paused"})


def resume_goal(goal_id: str) -> Dict[str, Any]:
    return _transition(goal_id, ("paused",), {"status": "active"})


def delete_goal(goal_id: str) -> Dict[str, Any]:
    goal = get_goal(goal_id)
    get_store().table("patient_goals").eq("id", goal_id).delete()
    return goal
