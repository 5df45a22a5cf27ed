# -*- coding: utf-8 -*-
"""Appointment models for API payloads."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..billing.models import Transaction

AppointmentType = Literal["first_appointment", "return", "evaluation", "online", "in_person"]

AppointmentStatus = Literal[
    "scheduled",
    "confirmed",
    "awaiting_confirmation",
    "completed",
    "cancelled",
    "no_show",
]


class AppointmentBilling(BaseModel):
    """Optional income entry created together with the appointment."""
    service_id: Optional[str] = None
    custom_price: Optional[float] = Field(default=None, gt=0)
    custom_description: Optional[str] = None


class AppointmentCreateRequest(BaseModel):
    patient_id: str
    appointment_time: str = Field(..., description="ISO datetime")
    duration_minutes: int = Field(default=60, ge=5, le=600)
    appointment_type: AppointmentType = "first_appointment"
    status: AppointmentStatus = "scheduled"
    notes: Optional[str] = None
    billing: Optional[AppointmentBilling] = None


class AppointmentUpdateRequest(BaseModel):
    appointment_time: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=5, le=600)
    appointment_type: Optional[AppointmentType] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None


class AppointmentStatusRequest(BaseModel):
    status: str


class Appointment(BaseModel):
    id: str
    nutritionist_id: str
    patient_id: str
    patient_name: Optional[str] = None
    appointment_time: str
    duration_minutes: int = 60
    appointment_type: str
    status: str
    notes: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None


class AppointmentCreateResponse(BaseModel):
    appointment: Appointment
    transaction: Optional[Transaction] = None


class AppointmentListResponse(BaseModel):
    items: List[Appointment]
