# -*- coding: utf-8 -*-
"""Demo data endpoints (nutritionists and super admins only)."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import require_staff
from ..patients.models import PatientItem
from ..patients.storage import ensure_patient_access
from .seeding import (
    create_ghost_patient,
    ensure_food_bank,
    fill_daily_diary,
    is_demo_email,
    seed_demo_practice,
    seed_meal_history,
    seed_weight_series,
    teardown_demo_data,
)

router = APIRouter(prefix="/api/demo", tags=["Demo data"])


def _demo_patient(user: dict, patient_id: str) -> dict:
    patient = ensure_patient_access(user, patient_id)
    if not is_demo_email(patient.get("email")):
        raise HTTPException(status_code=400, detail="Not a demo patient")
    return patient


@router.post("/foods", summary="Seed the food bank when empty")
def seed_foods_api(user: dict = Depends(require_staff)):
    return {"added": ensure_food_bank()}


@router.post("/patients", response_model=PatientItem, status_code=201, summary="Create a ghost patient")
def create_ghost_api(user: dict = Depends(require_staff)):
    return PatientItem(**create_ghost_patient(user["id"]))


@router.post("/patients/{patient_id}/diary", summary="Fill one day of the diary")
def fill_diary_api(
    patient_id: str,
    day: date | None = Query(default=None, description="YYYY-MM-DD, default today"),
    user: dict = Depends(require_staff),
):
    _demo_patient(user, patient_id)
    result = fill_daily_diary(patient_id, day)
    return {"total_meals": result["total_meals"], "total_items": result["total_items"]}


@router.post("/patients/{patient_id}/history", summary="Fill the diary for past days")
def meal_history_api(
    patient_id: str,
    days: int = Query(default=7, ge=1, le=90),
    user: dict = Depends(require_staff),
):
    _demo_patient(user, patient_id)
    return seed_meal_history(patient_id, days)


@router.post("/patients/{patient_id}/weights", summary="Weekly weight series")
def weight_series_api(
    patient_id: str,
    weeks: int = Query(default=8, ge=1, le=104),
    start_weight: float | None = Query(default=None, gt=0),
    weekly_delta: float = Query(default=-0.5, ge=-5, le=5),
    user: dict = Depends(require_staff),
):
    _demo_patient(user, patient_id)
    records = seed_weight_series(patient_id, weeks, start_weight, weekly_delta)
    return {"created": len(records)}


@router.post("/seed", summary="Ghost patients with diaries and weights")
def seed_api(
    patients: int = Query(default=3, ge=1, le=20),
    days: int = Query(default=7, ge=1, le=90),
    weeks: int = Query(default=8, ge=1, le=104),
    user: dict = Depends(require_staff),
):
    result = seed_demo_practice(user["id"], patients=patients, days=days, weeks=weeks)
    return {"patient_ids": [p["id"] for p in result["patients"]], "days": days, "weeks": weeks}


@router.delete("", summary="Remove every ghost patient and their records")
def teardown_api(user: dict = Depends(require_staff)):
    return {"deleted": teardown_demo_data(user["id"])}
