# -*- coding: utf-8 -*-
"""Patient roster models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Gender = Literal["male", "female", "other"]


class PatientInviteRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    name: str = Field(..., min_length=1, max_length=200)
    birth_date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    gender: Optional[Gender] = None
    phone: Optional[str] = None
    goal: Optional[str] = None
    height_cm: Optional[float] = Field(default=None, gt=0)
    weight_kg: Optional[float] = Field(default=None, gt=0)
    redirect_to: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PatientInviteResponse(BaseModel):
    patient_id: str
    invited: bool


class PatientUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    birth_date: Optional[str] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = None
    goal: Optional[str] = None
    height_cm: Optional[float] = Field(default=None, gt=0)
    weight_kg: Optional[float] = Field(default=None, gt=0)
    is_active: Optional[bool] = None


class PatientItem(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    nutritionist_id: Optional[str] = None
    birth_date: Optional[str] = None
    gender: Optional[str] = None
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    goal: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None


class PatientListResponse(BaseModel):
    items: List[PatientItem]
    total: int
