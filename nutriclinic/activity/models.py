# -*- coding: utf-8 -*-
"""Activity feed models."""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

ActivityCategory = Literal["all", "meal", "edit", "delete", "weight", "other"]


class ActivityItemModel(BaseModel):
    id: str
    type: str
    patient_id: str
    patient_name: str
    description: str
    detail: str
    timestamp: str
    calories: Any = None
    weight: Optional[float] = None


class ActivityFeedResponse(BaseModel):
    items: List[ActivityItemModel]
    total: int
    truncated_sources: List[str] = Field(
        default_factory=list,
        description="Sources that hit the fetch cap; older events from them are not shown.",
    )
