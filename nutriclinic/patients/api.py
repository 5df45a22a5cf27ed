# -*- coding: utf-8 -*-
"""Patient roster endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..auth.security import get_current_user, require_staff
from ..config import settings
from ..functions.client import invoke
from ..notifications.storage import create_notification
from ..store import get_store
from .models import (
    PatientInviteRequest,
    PatientInviteResponse,
    PatientItem,
    PatientListResponse,
    PatientUpdateRequest,
)
from .storage import (
    create_patient_profile,
    deactivate_patient,
    ensure_patient_access,
    list_patients,
    update_patient,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["Patients"])


def _notify_invited(user: dict, patient_id: str, email: str, name: str) -> None:
    create_notification(
        user_id=user["id"],
        type="patient_invited",
        content={"patient_id": patient_id, "email": email, "name": name, "message": f"{name} was invited"},
    )


@router.get("", response_model=PatientListResponse, summary="List my patients")
def list_my_patients(
    q: str | None = Query(default=None, description="Name contains"),
    active: bool | None = Query(default=None),
    user: dict = Depends(require_staff),
):
    rows = list_patients(nutritionist_id=user["id"], search=q, active=active)
    return PatientListResponse(items=[PatientItem(**r) for r in rows], total=len(rows))


@router.post("/invite", response_model=PatientInviteResponse, status_code=201, summary="Invite a new patient")
def invite_patient(
    payload: PatientInviteRequest,
    request: Request,
    user: dict = Depends(require_staff),
):
    email = payload.email.lower().strip()
    fields = payload.model_dump(exclude={"email", "name", "redirect_to", "metadata"}, exclude_none=True)

    if settings.functions_url:
        metadata = {
            **payload.metadata,
            **fields,
            "name": payload.name,
            "user_type": "patient",
            "nutritionist_id": user["id"],
        }
        redirect_to = payload.redirect_to or f"{str(request.base_url).rstrip('/')}/update-password"
        result = invoke(
            "create-patient",
            {"email": email, "metadata": metadata, "redirectTo": redirect_to},
        )
        patient_id = str((result or {}).get("userId") or "")
        if not patient_id:
            raise HTTPException(status_code=502, detail="create-patient returned no userId")
        logger.info("Invited patient %s via create-patient", patient_id)
        _notify_invited(user, patient_id, email, payload.name)
        return PatientInviteResponse(patient_id=patient_id, invited=True)

    if get_store().table("profiles").eq("email", email).first():
        raise HTTPException(status_code=409, detail="Email already registered")
    row = create_patient_profile(nutritionist_id=user["id"], email=email, name=payload.name, fields=fields)
    _notify_invited(user, row["id"], email, payload.name)
    return PatientInviteResponse(patient_id=row["id"], invited=False)


@router.get("/{patient_id}", response_model=PatientItem, summary="Get a patient profile")
def get_patient_api(patient_id: str, user: dict = Depends(get_current_user)):
    return PatientItem(**ensure_patient_access(user, patient_id))


@router.patch("/{patient_id}", response_model=PatientItem, summary="Update a patient profile")
def update_patient_api(
    patient_id: str,
    payload: PatientUpdateRequest,
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    changes = payload.model_dump(exclude_unset=True)
    if user.get("role") == "patient":
        changes.pop("is_active", None)
    return PatientItem(**update_patient(patient_id, changes))


@router.delete("/{patient_id}", response_model=PatientItem, summary="Deactivate a patient")
def deactivate_patient_api(patient_id: str, user: dict = Depends(require_staff)):
    ensure_patient_access(user, patient_id)
    return PatientItem(**deactivate_patient(patient_id))
