# -*- coding: utf-8 -*-
"""Meal plan models for API payloads."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PlanStatus = Literal["active", "archived"]

Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

ALL_DAYS: List[str] = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class PlanFood(BaseModel):
    food_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(..., gt=0)
    unit: str = "g"
    calories: float = Field(default=0, ge=0)
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fat: float = Field(default=0, ge=0)
    notes: Optional[str] = None


class PlanMeal(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    meal_type: Optional[str] = None
    meal_time: Optional[str] = Field(default=None, description="HH:MM")
    notes: Optional[str] = None
    foods: List[PlanFood] = Field(default_factory=list)
    total_calories: float = 0
    total_protein: float = 0
    total_carbs: float = 0
    total_fat: float = 0


class MealPlanCreateRequest(BaseModel):
    patient_id: str
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    active_days: List[Weekday] = Field(default_factory=lambda: list(ALL_DAYS))
    start_date: Optional[str] = Field(default=None, description="YYYY-MM-DD, default today")
    end_date: Optional[str] = None
    meals: List[PlanMeal] = Field(default_factory=list)
    activate: bool = True


class MealPlanUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    active_days: Optional[List[Weekday]] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    meals: Optional[List[PlanMeal]] = None


class MealPlan(BaseModel):
    id: str
    patient_id: str
    nutritionist_id: str
    name: str
    description: Optional[str] = None
    status: PlanStatus
    is_active: bool
    active_days: List[str] = Field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    meals: List[PlanMeal] = Field(default_factory=list)
    daily_calories: float = 0
    daily_protein: float = 0
    daily_carbs: float = 0
    daily_fat: float = 0
    created_at: str
    updated_at: Optional[str] = None


class MealPlanListResponse(BaseModel):
    items: List[MealPlan]
