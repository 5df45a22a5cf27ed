# -*- coding: utf-8 -*-
"""Appointment (agenda) endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user, require_staff
from ..billing.models import Transaction
from ..patients.storage import ensure_patient_access
from .models import (
    Appointment,
    AppointmentCreateRequest,
    AppointmentCreateResponse,
    AppointmentListResponse,
    AppointmentStatusRequest,
    AppointmentUpdateRequest,
)
from .storage import (
    create_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    list_patient_appointments,
    set_status,
    update_appointment,
)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


def _own(user: dict, appointment_id: str) -> dict:
    row = get_appointment(appointment_id)
    if user.get("role") != "super_admin" and row["nutritionist_id"] != user["id"]:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return row


@router.post("", response_model=AppointmentCreateResponse, status_code=201, summary="Schedule an appointment")
def create_appointment_api(payload: AppointmentCreateRequest, user: dict = Depends(require_staff)):
    ensure_patient_access(user, payload.patient_id)
    appointment, transaction = create_appointment(nutritionist_id=user["id"], data=payload.model_dump())
    return AppointmentCreateResponse(
        appointment=Appointment(**appointment),
        transaction=Transaction(**transaction) if transaction else None,
    )


@router.get("", response_model=AppointmentListResponse, summary="My agenda")
def list_appointments_api(
    start: str | None = Query(default=None, description="ISO datetime, inclusive"),
    end: str | None = Query(default=None, description="ISO datetime, inclusive"),
    status: str | None = Query(default=None),
    patient_id: str | None = Query(default=None),
    user: dict = Depends(require_staff),
):
    rows = list_appointments(user["id"], start=start, end=end, status=status, patient_id=patient_id)
    return AppointmentListResponse(items=[Appointment(**r) for r in rows])


@router.get("/mine", response_model=AppointmentListResponse, summary="Upcoming appointments of the patient")
def my_appointments_api(user: dict = Depends(get_current_user)):
    if user.get("role") != "patient":
        raise HTTPException(status_code=403, detail="Only patients have their own agenda")
    now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    rows = list_patient_appointments(user["id"], upcoming_from=now[:10])
    return AppointmentListResponse(items=[Appointment(**r) for r in rows])


@router.get("/{appointment_id}", response_model=Appointment, summary="Get an appointment")
def get_appointment_api(appointment_id: str, user: dict = Depends(require_staff)):
    return Appointment(**_own(user, appointment_id))


@router.patch("/{appointment_id}", response_model=Appointment, summary="Update an appointment")
def update_appointment_api(
    appointment_id: str,
    payload: AppointmentUpdateRequest,
    user: dict = Depends(require_staff),
):
    _own(user, appointment_id)
    return Appointment(**update_appointment(appointment_id, payload.model_dump(exclude_unset=True)))


@router.post("/{appointment_id}/status", response_model=Appointment, summary="Change status")
def status_api(appointment_id: str, payload: AppointmentStatusRequest, user: dict = Depends(require_staff)):
    _own(user, appointment_id)
    return Appointment(**set_status(appointment_id, payload.status))


@router.delete("/{appointment_id}", summary="Delete an appointment")
def delete_appointment_api(appointment_id: str, user: dict = Depends(require_staff)):
    _own(user, appointment_id)
    delete_appointment(appointment_id)
    return {"status": "deleted", "appointment_id": appointment_id}
