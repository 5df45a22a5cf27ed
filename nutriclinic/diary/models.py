# -*- coding: utf-8 -*-
"""Food diary models: meals, items, audit history and the food bank."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

MealType = Literal[
    "breakfast",
    "morning_snack",
    "lunch",
    "afternoon_snack",
    "snack",
    "dinner",
    "supper",
]

AuditAction = Literal["create", "update", "delete"]


class MealItemInput(BaseModel):
    food_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(..., gt=0)
    unit: str = "g"
    calories: float = Field(default=0, ge=0)
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fat: float = Field(default=0, ge=0)


class MealCreateRequest(BaseModel):
    patient_id: str
    meal_type: MealType
    meal_date: str = Field(..., description="YYYY-MM-DD")
    meal_time: Optional[str] = Field(default=None, description="HH:MM")
    notes: Optional[str] = None
    items: List[MealItemInput] = Field(..., min_length=1)


class MealUpdateRequest(BaseModel):
    meal_type: Optional[MealType] = None
    meal_date: Optional[str] = None
    meal_time: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[MealItemInput]] = Field(default=None, min_length=1)


class MealItem(BaseModel):
    id: str
    food_id: Optional[str] = None
    name: str
    quantity: float
    unit: Optional[str] = None
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0


class Meal(BaseModel):
    id: str
    patient_id: str
    meal_type: str
    meal_date: str
    meal_time: Optional[str] = None
    notes: Optional[str] = None
    total_calories: float = 0
    total_protein: float = 0
    total_carbs: float = 0
    total_fat: float = 0
    items: List[MealItem] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MealListResponse(BaseModel):
    items: List[Meal]


class AuditChange(BaseModel):
    field: str
    old: Any = None
    new: Any = None


class AuditEntry(BaseModel):
    id: str
    meal_id: Optional[str] = None
    patient_id: str
    action: str
    meal_type: Optional[str] = None
    meal_date: Optional[str] = None
    meal_time: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    changes: List[AuditChange] = Field(default_factory=list)
    created_at: str


class AuditListResponse(BaseModel):
    items: List[AuditEntry]


class NutrientTotals(BaseModel):
    calories: int
    protein: int
    carbs: int
    fat: int


class NutritionalSummary(BaseModel):
    total_meals: int
    days: int
    avg_calories_per_day: int
    avg_protein_per_day: int
    avg_carbs_per_day: int
    avg_fat_per_day: int
    totals: NutrientTotals


class DiaryAdherence(BaseModel):
    total_days: int
    days_with_records: int
    adherence_percentage: int
    current_streak: int
    total_meals: int


class FoodCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    calories: float = Field(..., ge=0, description="kcal per base_qty")
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fat: float = Field(default=0, ge=0)
    base_qty: float = Field(default=100, gt=0, description="Reference quantity in grams")


class Food(BaseModel):
    id: str
    name: str
    calories: float
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    base_qty: float = 100


class FoodListResponse(BaseModel):
    items: List[Food]
