# -*- coding: utf-8 -*-
"""Appointment storage helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException

from ..billing.storage import create_transaction
from ..errors import StoreError
from ..notifications.storage import create_notification
from ..patients.storage import patient_names
from ..store import get_store

logger = logging.getLogger(__name__)

STATUSES = (
    "scheduled",
    "confirmed",
    "awaiting_confirmation",
    "completed",
    "cancelled",
    "no_show",
)

UPDATABLE = ("appointment_time", "duration_minutes", "appointment_type", "status", "notes")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _with_names(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    names = patient_names(sorted({r["patient_id"] for r in rows}))
    return [{**r, "patient_name": names.get(r["patient_id"])} for r in rows]


def get_appointment(appointment_id: str) -> Dict[str, Any]:
    row = get_store().table("appointments").eq("id", appointment_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return _with_names([row])[0]


def billing_line(
    patient_name: str,
    billing: Optional[Dict[str, Any]],
) -> Tuple[float, str, Optional[str]]:
    """Amount, description and service id for the appointment's income entry.

    A zero amount means no transaction is recorded.
    """
    if not billing:
        return 0.0, "", None
    service_id = billing.get("service_id")
    if service_id:
        service = get_store().table("services").eq("id", service_id).first()
        if not service:
            return 0.0, "", service_id
        return float(service.get("price") or 0), f"Agendamento: {patient_name} - {service['name']}", service_id
    if billing.get("custom_price"):
        custom = billing.get("custom_description")
        description = f"Agendamento: {patient_name} - {custom}" if custom else f"Agendamento: {patient_name}"
        return float(billing["custom_price"]), description, None
    return 0.0, "", None


def create_appointment(
    *,
    nutritionist_id: str,
    data: Dict[str, Any],
) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    now = _utc_now()
    appointment = get_store().insert(
        "appointments",
        {
            "nutritionist_id": nutritionist_id,
            "patient_id": data["patient_id"],
            "appointment_time": data["appointment_time"],
            "duration_minutes": data.get("duration_minutes") or 60,
            "appointment_type": data.get("appointment_type") or "first_appointment",
            "status": data.get("status") or "scheduled",
            "notes": data.get("notes"),
            "created_at": now,
            "updated_at": now,
        },
    )[0]
    appointment = _with_names([appointment])[0]
    patient_name = appointment.get("patient_name") or "Paciente"

    transaction = None
    amount, description, service_id = billing_line(patient_name, data.get("billing"))
    if amount > 0 and description:
        day = str(appointment["appointment_time"])[:10]
        try:
            transaction = create_transaction(
                nutritionist_id=nutritionist_id,
                data={
                    "patient_id": appointment["patient_id"],
                    "type": "income",
                    "category": "consulta" if service_id else "outros",
                    "description": description,
                    "amount": amount,
                    "transaction_date": day,
                    "due_date": day,
                    "status": "pending",
                    "service_id": service_id,
                    "appointment_id": appointment["id"],
                },
            )
        except StoreError:
            # The appointment stands; the entry can be added by hand.
            logger.exception("Could not record the transaction for appointment %s", appointment["id"])

    create_notification(
        user_id=appointment["patient_id"],
        type="appointment_reminder",
        content={
            "appointment_id": appointment["id"],
            "appointment_time": appointment["appointment_time"],
            "message": f"Appointment scheduled for {appointment['appointment_time']}",
        },
    )
    return appointment, transaction


def list_appointments(
    nutritionist_id: str,
    *,
    start: Optional[str] = None,
    end: Optional[str] = None,
    status: Optional[str] = None,
    patient_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    query = get_store().table("appointments").eq("nutritionist_id", nutritionist_id)
    if start:
        query = query.gte("appointment_time", start)
    if end:
        query = query.lte("appointment_time", end)
    if status:
        query = query.eq("status", status)
    if patient_id:
        query = query.eq("patient_id", patient_id)
    return _with_names(query.order("appointment_time").execute())


def list_patient_appointments(patient_id: str, *, upcoming_from: Optional[str] = None) -> List[Dict[str, Any]]:
    query = get_store().table("appointments").eq("patient_id", patient_id)
    if upcoming_from:
        query = query.gte("appointment_time", upcoming_from)
    return _with_names(query.order("appointment_time").execute())


def update_appointment(appointment_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    values = {k: v for k, v in changes.items() if k in UPDATABLE and v is not None}
    if "status" in values and values["status"] not in STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {values['status']}")
    if not values:
        return get_appointment(appointment_id)
    values["updated_at"] = _utc_now()
    rows = get_store().table("appointments").eq("id", appointment_id).update(values)
    if not rows:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return _with_names(rows)[0]


def set_status(appointment_id: str, status: str) -> Dict[str, Any]:
    if status not in STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    return update_appointment(appointment_id, {"status": status})


def delete_appointment(appointment_id: str) -> Dict[str, Any]:
    row = get_appointment(appointment_id)
    get_store().table("appointments").eq("id", appointment_id).delete()
    return row
