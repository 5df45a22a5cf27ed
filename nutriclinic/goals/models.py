# -*- coding: utf-8 -*-
"""Patient weight goal models."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

GoalType = Literal["weight_loss", "weight_gain", "weight_maintenance", "custom"]
GoalStatus = Literal["active", "paused", "completed", "cancelled"]
ProgressStatus = Literal["ahead", "on_track", "behind"]


class GoalCreateRequest(BaseModel):
    patient_id: str
    goal_type: GoalType = "weight_loss"
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    initial_weight: float = Field(..., gt=0, lt=500)
    target_weight: float = Field(..., gt=0, lt=500)
    start_date: Optional[str] = Field(default=None, description="YYYY-MM-DD, default today")
    target_date: str = Field(..., description="YYYY-MM-DD")
    energy_expenditure: Optional[float] = Field(default=None, gt=0, description="Total energy expenditure, kcal/day")


class GoalUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    initial_weight: Optional[float] = Field(default=None, gt=0, lt=500)
    target_weight: Optional[float] = Field(default=None, gt=0, lt=500)
    start_date: Optional[str] = None
    target_date: Optional[str] = None
    energy_expenditure: Optional[float] = Field(default=None, gt=0)


class GoalProgressRequest(BaseModel):
    current_weight: float = Field(..., gt=0, lt=500)


class GoalCancelRequest(BaseModel):
    reason: Optional[str] = None


class GoalWarning(BaseModel):
    type: str
    message: str


class Goal(BaseModel):
    id: str
    patient_id: str
    nutritionist_id: str
    goal_type: str
    title: str
    description: Optional[str] = None
    initial_weight: float
    target_weight: float
    current_weight: Optional[float] = None
    progress_percentage: float = 0
    start_date: str
    target_date: str
    completion_date: Optional[str] = None
    status: GoalStatus
    is_realistic: bool = True
    viability_score: Optional[int] = None
    viability_notes: Optional[str] = None
    warnings: List[GoalWarning] = Field(default_factory=list)
    required_daily_deficit: Optional[int] = None
    daily_calorie_goal: Optional[int] = None
    meal_plan_id: Optional[str] = None
    days_remaining: int
    progress_status: Optional[ProgressStatus] = None
    created_at: str
    updated_at: Optional[str] = None


class GoalListResponse(BaseModel):
    items: List[Goal]


class DeadlineRecommendation(BaseModel):
    weight_change: float
    min_days: int
    ideal_days: int
    min_date: str
    ideal_date: str
