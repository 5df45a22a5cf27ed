# -*- coding: utf-8 -*-
"""Meal plan endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ..auth.security import get_current_user, require_staff
from ..auth.storage import get_user_by_id
from ..patients.storage import ensure_patient_access
from ..reports import MealPlanReport, PDFReportGenerator
from .models import MealPlan, MealPlanCreateRequest, MealPlanListResponse, MealPlanUpdateRequest
from .storage import (
    archive_plan,
    create_plan,
    daily_totals,
    delete_plan,
    get_plan,
    list_plans,
    set_active_plan,
    update_plan,
)

router = APIRouter(prefix="/api/meal-plans", tags=["Meal plans"])


def _plan_for(user: dict, plan_id: str) -> dict:
    plan = get_plan(plan_id)
    ensure_patient_access(user, plan["patient_id"])
    return plan


@router.post("", response_model=MealPlan, status_code=201, summary="Create a meal plan")
def create_plan_api(payload: MealPlanCreateRequest, user: dict = Depends(require_staff)):
    ensure_patient_access(user, payload.patient_id)
    return MealPlan(**create_plan(nutritionist_id=user["id"], data=payload.model_dump()))


@router.get("/patient/{patient_id}", response_model=MealPlanListResponse, summary="A patient's meal plans")
def list_plans_api(
    patient_id: str,
    only_active: bool = Query(default=False),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    return MealPlanListResponse(items=[MealPlan(**p) for p in list_plans(patient_id, only_active=only_active)])


@router.get("/{plan_id}", response_model=MealPlan, summary="Get a meal plan")
def get_plan_api(plan_id: str, user: dict = Depends(get_current_user)):
    return MealPlan(**_plan_for(user, plan_id))


@router.patch("/{plan_id}", response_model=MealPlan, summary="Update a meal plan")
def update_plan_api(plan_id: str, payload: MealPlanUpdateRequest, user: dict = Depends(require_staff)):
    _plan_for(user, plan_id)
    return MealPlan(**update_plan(plan_id, payload.model_dump(exclude_unset=True)))


@router.post("/{plan_id}/activate", response_model=MealPlan, summary="Make this the active plan")
def activate_plan_api(plan_id: str, user: dict = Depends(require_staff)):
    _plan_for(user, plan_id)
    return MealPlan(**set_active_plan(plan_id))


@router.post("/{plan_id}/archive", response_model=MealPlan, summary="Archive a meal plan")
def archive_plan_api(plan_id: str, user: dict = Depends(require_staff)):
    _plan_for(user, plan_id)
    return MealPlan(**archive_plan(plan_id))


@router.delete("/{plan_id}", summary="Delete a meal plan")
def delete_plan_api(plan_id: str, user: dict = Depends(require_staff)):
    _plan_for(user, plan_id)
    delete_plan(plan_id)
    return {"status": "deleted", "plan_id": plan_id}


@router.get("/{plan_id}/pdf", summary="Download the plan as PDF")
def plan_pdf_api(plan_id: str, user: dict = Depends(get_current_user)):
    plan = get_plan(plan_id)
    patient = ensure_patient_access(user, plan["patient_id"])
    nutritionist = get_user_by_id(plan["nutritionist_id"]) or {}
    report = MealPlanReport(
        plan_name=plan["name"],
        patient_name=patient.get("name") or "",
        nutritionist_name=nutritionist.get("name") or nutritionist.get("email") or "",
        start_date=plan.get("start_date"),
        end_date=plan.get("end_date"),
        description=plan.get("description"),
        meals=plan["meals"],
        daily_totals=daily_totals(plan["meals"]),
    )
    content = PDFReportGenerator().generate_meal_plan(report)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="meal-plan-{plan_id}.pdf"'},
    )
