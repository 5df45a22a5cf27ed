# -*- coding: utf-8 -*-
"""Anthropometry (growth record) models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class GrowthRecordCreateRequest(BaseModel):
    patient_id: str
    weight: float = Field(..., gt=0, lt=500, description="kg")
    height: Optional[float] = Field(default=None, gt=0, lt=300, description="cm")
    body_fat: Optional[float] = Field(default=None, ge=0, le=100, description="%")
    waist: Optional[float] = Field(default=None, gt=0, description="cm")
    record_date: Optional[str] = Field(default=None, description="YYYY-MM-DD, default today")
    notes: Optional[str] = None


class GrowthRecord(BaseModel):
    id: str
    patient_id: str
    weight: Optional[float] = None
    height: Optional[float] = None
    body_fat: Optional[float] = None
    waist: Optional[float] = None
    record_date: Optional[str] = None
    notes: Optional[str] = None
    bmi: Optional[float] = None
    created_at: str


class GrowthRecordListResponse(BaseModel):
    items: List[GrowthRecord]


class GrowthStats(BaseModel):
    count: int
    first_weight: Optional[float] = None
    latest_weight: Optional[float] = None
    weight_change: Optional[float] = None
    latest_bmi: Optional[float] = None
    first_date: Optional[str] = None
    latest_date: Optional[str] = None
