# -*- coding: utf-8 -*-
"""Clinical recommendation models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

RecommendationStatus = Literal["pending", "accepted", "dismissed", "applied"]


class RecommendationCreateRequest(BaseModel):
    patient_id: str
    recommendation_key: str = Field(..., min_length=1, max_length=120)
    title: str = Field(..., min_length=1, max_length=300)
    recommendation_text: Optional[str] = None
    rationale: Optional[str] = None
    confidence_score: Optional[float] = Field(default=None, ge=0, le=1)
    source_module: str = "copilot_v1"
    input_snapshot: Dict[str, Any] = Field(default_factory=dict)
    output_snapshot: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RecommendationStatusRequest(BaseModel):
    # Unknown values fall back to "pending".
    status: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Recommendation(BaseModel):
    id: str
    nutritionist_id: str
    patient_id: str
    recommendation_key: Optional[str] = None
    source_module: Optional[str] = None
    title: str
    recommendation_text: Optional[str] = None
    rationale: Optional[str] = None
    confidence_score: Optional[float] = None
    status: RecommendationStatus
    input_snapshot: Dict[str, Any] = Field(default_factory=dict)
    output_snapshot: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    accepted_by: Optional[str] = None
    accepted_at: Optional[str] = None
    applied_at: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None


class RecommendationListResponse(BaseModel):
    items: List[Recommendation]
