# -*- coding: utf-8 -*-
"""Patient roster storage helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..store import get_store

PROFILE_FIELDS = (
    "name",
    "birth_date",
    "gender",
    "phone",
    "goal",
    "height_cm",
    "weight_kg",
    "is_active",
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def list_patients(
    *,
    nutritionist_id: str,
    search: Optional[str] = None,
    active: Optional[bool] = None,
) -> List[Dict[str, Any]]:
    query = (
        get_store()
        .table("profiles")
        .eq("nutritionist_id", nutritionist_id)
        .eq("user_type", "patient")
    )
    if search:
        query = query.ilike("name", f"%{search.strip()}%")
    if active is not None:
        query = query.eq("is_active", active)
    return query.order("name").execute()


def get_patient(patient_id: str) -> Optional[Dict[str, Any]]:
    return get_store().table("profiles").eq("id", patient_id).eq("user_type", "patient").first()


def ensure_patient_access(user: Dict[str, Any], patient_id: str) -> Dict[str, Any]:
    """Return the patient profile if ``user`` may see it, else raise 404/403.

    Nutritionists see their own roster, patients only themselves, super
    admins everyone.
    """
    patient = get_patient(patient_id)
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")
    role = user.get("role")
    if role == "super_admin":
        return patient
    if role == "nutritionist" and patient.get("nutritionist_id") == user["id"]:
        return patient
    if role == "patient" and patient["id"] == user["id"]:
        return patient
    raise HTTPException(status_code=403, detail="Forbidden")


def create_patient_profile(
    *,
    nutritionist_id: str,
    email: str,
    name: str,
    fields: Dict[str, Any] | None = None,
    patient_id: Optional[str] = None,
) -> Dict[str, Any]:
    now = _utc_now()
    row: Dict[str, Any] = {
        "id": patient_id or str(uuid4()),
        "name": name,
        "email": email.lower().strip(),
        "user_type": "patient",
        "nutritionist_id": nutritionist_id,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    for key, value in (fields or {}).items():
        if key in PROFILE_FIELDS and value is not None:
            row[key] = value
    return get_store().insert("profiles", row)[0]


def update_patient(patient_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    values = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
    if not values:
        patient = get_patient(patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient
    values["updated_at"] = _utc_now()
    rows = get_store().table("profiles").eq("id", patient_id).update(values)
    if not rows:
        raise HTTPException(status_code=404, detail="Patient not found")
    return rows[0]


def deactivate_patient(patient_id: str) -> Dict[str, Any]:
    return update_patient(patient_id, {"is_active": False})


def patient_names(patient_ids: List[str]) -> Dict[str, str]:
    if not patient_ids:
        return {}
    rows = get_store().table("profiles").select("id", "name").in_("id", patient_ids).execute()
    return {r["id"]: r.get("name") or "" for r in rows}
