# -*- coding: utf-8 -*-
"""Food diary endpoints."""

from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user, require_staff
from ..patients.storage import ensure_patient_access
from .models import (
    AuditAction,
    AuditEntry,
    AuditListResponse,
    DiaryAdherence,
    Food,
    FoodCreateRequest,
    FoodListResponse,
    Meal,
    MealCreateRequest,
    MealListResponse,
    MealType,
    MealUpdateRequest,
    NutritionalSummary,
)
from .storage import (
    audit_history,
    create_food,
    create_meal,
    delete_meal,
    diary_adherence,
    get_meal,
    list_foods,
    list_meals,
    nutritional_summary,
    update_meal,
)

router = APIRouter(prefix="/api/diary", tags=["Food diary"])
foods_router = APIRouter(prefix="/api/foods", tags=["Foods"])


@router.post("/meals", response_model=Meal, status_code=201, summary="Log a meal")
def create_meal_api(payload: MealCreateRequest, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, payload.patient_id)
    meal = create_meal(
        patient_id=payload.patient_id,
        meal_type=payload.meal_type,
        meal_date=payload.meal_date,
        meal_time=payload.meal_time,
        notes=payload.notes,
        items=[i.model_dump() for i in payload.items],
    )
    return Meal(**meal)


@router.get("/meals/{meal_id}", response_model=Meal, summary="Get a meal")
def get_meal_api(meal_id: str, user: dict = Depends(get_current_user)):
    meal = get_meal(meal_id)
    ensure_patient_access(user, meal["patient_id"])
    return Meal(**meal)


@router.patch("/meals/{meal_id}", response_model=Meal, summary="Edit a meal")
def update_meal_api(meal_id: str, payload: MealUpdateRequest, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, get_meal(meal_id)["patient_id"])
    changes = payload.model_dump(exclude_unset=True)
    if payload.items is not None:
        changes["items"] = [i.model_dump() for i in payload.items]
    return Meal(**update_meal(meal_id, changes))


@router.delete("/meals/{meal_id}", summary="Delete a meal")
def delete_meal_api(meal_id: str, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, get_meal(meal_id)["patient_id"])
    delete_meal(meal_id)
    return {"status": "deleted", "meal_id": meal_id}


@router.get("/{patient_id}/meals", response_model=MealListResponse, summary="List a patient's meals")
def list_meals_api(
    patient_id: str,
    start_date: str | None = Query(default=None, description="YYYY-MM-DD"),
    end_date: str | None = Query(default=None, description="YYYY-MM-DD"),
    meal_type: MealType | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    rows = list_meals(
        patient_id=patient_id,
        start_date=start_date,
        end_date=end_date,
        meal_type=meal_type,
        limit=limit,
        offset=offset,
    )
    return MealListResponse(items=[Meal(**r) for r in rows])


@router.get("/{patient_id}/audit", response_model=AuditListResponse, summary="Diary audit history of a patient")
def audit_history_api(
    patient_id: str,
    action: AuditAction | None = Query(default=None),
    meal_id: str | None = Query(default=None),
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    rows = audit_history(
        patient_id=patient_id,
        meal_id=meal_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return AuditListResponse(items=[AuditEntry(**r) for r in rows])


@router.get("/{patient_id}/summary", response_model=NutritionalSummary, summary="Nutritional summary for a period")
def summary_api(
    patient_id: str,
    start_date: str | None = Query(default=None, description="YYYY-MM-DD, default 7 days ago"),
    end_date: str | None = Query(default=None, description="YYYY-MM-DD, default today"),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    today = date.today()
    return NutritionalSummary(
        **nutritional_summary(
            patient_id=patient_id,
            start_date=start_date or (today - timedelta(days=7)).isoformat(),
            end_date=end_date or today.isoformat(),
        )
    )


@router.get("/{patient_id}/adherence", response_model=DiaryAdherence, summary="Diary adherence and streak")
def adherence_api(
    patient_id: str,
    days: int = Query(default=30, ge=1, le=365),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    return DiaryAdherence(**diary_adherence(patient_id=patient_id, days=days))


@foods_router.get("", response_model=FoodListResponse, summary="Search the food bank")
def list_foods_api(
    q: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    user: dict = Depends(get_current_user),
):
    return FoodListResponse(items=[Food(**r) for r in list_foods(search=q, limit=limit)])


@foods_router.post("", response_model=Food, status_code=201, summary="Add a food to the bank")
def create_food_api(payload: FoodCreateRequest, user: dict = Depends(require_staff)):
    return Food(**create_food(payload.model_dump()))
