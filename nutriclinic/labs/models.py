# -*- coding: utf-8 -*-
"""Lab result models."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

LabStatus = Literal["normal", "low", "high", "pending"]


class LabResultCreateRequest(BaseModel):
    patient_id: str
    test_name: str = Field(..., min_length=1, max_length=200)
    test_value: Optional[Union[float, str]] = None
    test_unit: Optional[str] = None
    reference_min: Optional[float] = None
    reference_max: Optional[float] = None
    test_date: str = Field(..., description="YYYY-MM-DD")
    notes: Optional[str] = None


class LabResultUpdateRequest(BaseModel):
    test_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    test_value: Optional[Union[float, str]] = None
    test_unit: Optional[str] = None
    reference_min: Optional[float] = None
    reference_max: Optional[float] = None
    test_date: Optional[str] = None
    notes: Optional[str] = None


class LabResult(BaseModel):
    id: str
    patient_id: str
    test_name: str
    test_value: Optional[str] = None
    test_unit: Optional[str] = None
    reference_min: Optional[float] = None
    reference_max: Optional[float] = None
    status: LabStatus
    test_date: str
    notes: Optional[str] = None
    has_pdf: bool = False
    created_at: str


class LabResultListResponse(BaseModel):
    items: List[LabResult]


class LabResultGroupedResponse(BaseModel):
    groups: Dict[str, List[LabResult]]
