# -*- coding: utf-8 -*-
"""Clinical recommendation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import require_staff
from ..patients.storage import ensure_patient_access
from .models import (
    Recommendation,
    RecommendationCreateRequest,
    RecommendationListResponse,
    RecommendationStatus,
    RecommendationStatusRequest,
)
from .storage import (
    create_recommendation,
    get_recommendation,
    list_recommendations,
    update_recommendation_status,
)

router = APIRouter(prefix="/api/recommendations", tags=["Clinical recommendations"])


def _own(user: dict, recommendation_id: str) -> dict:
    row = get_recommendation(recommendation_id)
    if user.get("role") != "super_admin" and row["nutritionist_id"] != user["id"]:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return row


@router.get("", response_model=RecommendationListResponse, summary="List my recommendations")
def list_recommendations_api(
    patient_id: str | None = Query(default=None),
    status: RecommendationStatus | None = Query(default=None),
    limit: int = Query(default=30, ge=1, le=200),
    user: dict = Depends(require_staff),
):
    rows = list_recommendations(nutritionist_id=user["id"], patient_id=patient_id, status=status, limit=limit)
    return RecommendationListResponse(items=[Recommendation(**r) for r in rows])


@router.post("", response_model=Recommendation, status_code=201, summary="Create a recommendation")
def create_recommendation_api(payload: RecommendationCreateRequest, user: dict = Depends(require_staff)):
    ensure_patient_access(user, payload.patient_id)
    return Recommendation(**create_recommendation(nutritionist_id=user["id"], data=payload.model_dump()))


@router.post("/{recommendation_id}/status", response_model=Recommendation, summary="Change status")
def update_status_api(
    recommendation_id: str,
    payload: RecommendationStatusRequest,
    user: dict = Depends(require_staff),
):
    _own(user, recommendation_id)
    row = update_recommendation_status(
        recommendation_id,
        status=payload.status,
        actor_user_id=user["id"],
        metadata=payload.metadata,
    )
    return Recommendation(**row)


@router.post("/{recommendation_id}/accept", response_model=Recommendation, summary="Accept")
def accept_api(recommendation_id: str, user: dict = Depends(require_staff)):
    _own(user, recommendation_id)
    return Recommendation(**update_recommendation_status(recommendation_id, status="accepted", actor_user_id=user["id"]))


@router.post("/{recommendation_id}/dismiss", response_model=Recommendation, summary="Dismiss")
def dismiss_api(recommendation_id: str, user: dict = Depends(require_staff)):
    _own(user, recommendation_id)
    return Recommendation(**update_recommendation_status(recommendation_id, status="dismissed", actor_user_id=user["id"]))


@router.post("/{recommendation_id}/apply", response_model=Recommendation, summary="Mark as applied")
def apply_api(recommendation_id: str, user: dict = Depends(require_staff)):
    _own(user, recommendation_id)
    return Recommendation(**update_recommendation_status(recommendation_id, status="applied", actor_user_id=user["id"]))
