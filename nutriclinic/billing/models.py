# -*- coding: utf-8 -*-
"""Billing models: services, transactions and monthly figures."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

TransactionType = Literal["income", "expense"]
TransactionStatus = Literal["pending", "paid", "overdue", "cancelled"]
SortOrder = Literal["asc", "desc"]


class ServiceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    category: Optional[str] = None
    description: Optional[str] = None


class ServiceUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    description: Optional[str] = None


class Service(BaseModel):
    id: str
    nutritionist_id: str
    name: str
    price: float
    category: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True
    created_at: str
    updated_at: Optional[str] = None


class ServiceListResponse(BaseModel):
    items: List[Service]


class TransactionCreateRequest(BaseModel):
    type: TransactionType
    amount: float = Field(..., gt=0)
    transaction_date: str = Field(..., description="YYYY-MM-DD")
    description: Optional[str] = None
    category: Optional[str] = None
    patient_id: Optional[str] = None
    due_date: Optional[str] = None
    status: Optional[TransactionStatus] = None
    # Used only when ``status`` is omitted.
    is_paid: bool = False
    service_id: Optional[str] = None
    appointment_id: Optional[str] = None


class TransactionUpdateRequest(BaseModel):
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(default=None, gt=0)
    transaction_date: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    patient_id: Optional[str] = None
    due_date: Optional[str] = None
    status: Optional[TransactionStatus] = None
    service_id: Optional[str] = None


class TransactionStatusRequest(BaseModel):
    status: TransactionStatus


class RescheduleRequest(BaseModel):
    transaction_date: str = Field(..., description="YYYY-MM-DD; also becomes the due date")


class Transaction(BaseModel):
    id: str
    nutritionist_id: str
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    type: TransactionType
    category: Optional[str] = None
    description: Optional[str] = None
    amount: float
    transaction_date: str
    due_date: Optional[str] = None
    status: TransactionStatus
    service_id: Optional[str] = None
    appointment_id: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None


class TransactionListResponse(BaseModel):
    items: List[Transaction]
    total: int
    page: Optional[int] = None
    page_size: Optional[int] = None


class FinancialSummary(BaseModel):
    year: int
    month: int
    income: float
    net_income: float
    expenses: float
    net_result: float
    overdue: float


class CashFlowPoint(BaseModel):
    date: str
    income: float
    expenses: float


class CashFlowResponse(BaseModel):
    aggregation: Literal["day", "week"]
    items: List[CashFlowPoint]


class ExpenseCategory(BaseModel):
    name: str
    value: float


class ExpenseDistributionResponse(BaseModel):
    items: List[ExpenseCategory]
