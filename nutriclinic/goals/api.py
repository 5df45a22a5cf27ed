# -*- coding: utf-8 -*-
"""Patient goal endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user, require_staff
from ..patients.storage import ensure_patient_access
from .models import (
    DeadlineRecommendation,
    Goal,
    GoalCancelRequest,
    GoalCreateRequest,
    GoalListResponse,
    GoalProgressRequest,
    GoalUpdateRequest,
)
from .storage import (
    GOAL_STATUSES,
    active_goal,
    cancel_goal,
    complete_goal,
    create_goal,
    deadline_recommendation,
    delete_goal,
    get_goal,
    list_goals,
    pause_goal,
    public_goal,
    resume_goal,
    update_goal,
    update_progress,
)

router = APIRouter(prefix="/api/goals", tags=["Goals"])


def _goal_for(user: dict, goal_id: str) -> dict:
    goal = get_goal(goal_id)
    ensure_patient_access(user, goal["patient_id"])
    return goal


@router.get("/deadline", response_model=DeadlineRecommendation, summary="Minimum and ideal deadline")
def deadline_api(
    initial_weight: float = Query(..., gt=0),
    target_weight: float = Query(..., gt=0),
    start_date: str = Query(..., description="YYYY-MM-DD"),
    user: dict = Depends(require_staff),
):
    return DeadlineRecommendation(**deadline_recommendation(initial_weight, target_weight, start_date))


@router.post("", response_model=Goal, status_code=201, summary="Create a weight goal")
def create_goal_api(payload: GoalCreateRequest, user: dict = Depends(require_staff)):
    ensure_patient_access(user, payload.patient_id)
    data = payload.model_dump(exclude={"patient_id", "energy_expenditure"})
    return Goal(
        **create_goal(
            data,
            patient_id=payload.patient_id,
            nutritionist_id=user["id"],
            energy_expenditure=payload.energy_expenditure,
        )
    )


@router.get("/patient/{patient_id}", response_model=GoalListResponse, summary="A patient's goals")
def list_goals_api(
    patient_id: str,
    status: List[str] = Query(default=[]),
    limit: int | None = Query(default=None, ge=1, le=500),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    unknown = [s for s in status if s not in GOAL_STATUSES]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown status: {unknown[0]}")
    return GoalListResponse(items=[Goal(**g) for g in list_goals(patient_id, status=status, limit=limit)])


@router.get("/patient/{patient_id}/active", response_model=Goal, summary="The patient's active goal")
def active_goal_api(patient_id: str, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, patient_id)
    goal = active_goal(patient_id)
    if not goal:
        raise HTTPException(status_code=404, detail="No active goal")
    return Goal(**goal)


@router.get("/{goal_id}", response_model=Goal, summary="Get a goal")
def get_goal_api(goal_id: str, user: dict = Depends(get_current_user)):
    return Goal(**public_goal(_goal_for(user, goal_id)))


@router.patch("/{goal_id}", response_model=Goal, summary="Update a goal")
def update_goal_api(goal_id: str, payload: GoalUpdateRequest, user: dict = Depends(require_staff)):
    _goal_for(user, goal_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"energy_expenditure"})
    return Goal(**update_goal(goal_id, changes, energy_expenditure=payload.energy_expenditure))


@router.post("/{goal_id}/progress", response_model=Goal, summary="Record the current weight")
def progress_api(goal_id: str, payload: GoalProgressRequest, user: dict = Depends(require_staff)):
    _goal_for(user, goal_id)
    return Goal(**update_progress(goal_id, payload.current_weight))


@router.post("/{goal_id}/complete", response_model=Goal, summary="Mark a goal as completed")
def complete_goal_api(goal_id: str, user: dict = Depends(require_staff)):
    _goal_for(user, goal_id)
    return Goal(**complete_goal(goal_id))


@router.post("/{goal_id}/cancel", response_model=Goal, summary="Cancel a goal")
def cancel_goal_api(goal_id: str, payload: GoalCancelRequest | None = None, user: dict = Depends(require_staff)):
    _goal_for(user, goal_id)
    return Goal(**cancel_goal(goal_id, payload.reason if payload else None))


@router.post("/{goal_id}/pause", response_model=Goal, summary="Pause a goal")
def pause_goal_api(goal_id: str, user: dict = Depends(require_staff)):
    _goal_for(user, goal_id)
    return Goal(**pause_goal(goal_id))


@router.post("/{goal_id}/resume", response_model=Goal, summary="Resume a paused goal")
def resume_goal_api(goal_id: str, user: dict = Depends(require_staff)):
    _goal_for(user, goal_id)
    return Goal(**resume_goal(goal_id))


@router.delete("/{goal_id}", summary="Delete a goal")
def delete_goal_api(goal_id: str, user: dict = Depends(require_staff)):
    _goal_for(user, goal_id)
    delete_goal(goal_id)
    return {"status": "deleted", "goal_id": goal_id}
