# -*- coding: utf-8 -*-
"""Billing endpoints: services, transactions, monthly figures and receipts."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from ..auth.security import require_staff
from ..patients.storage import ensure_patient_access
from ..reports import PDFReportGenerator
from .models import (
    CashFlowResponse,
    ExpenseDistributionResponse,
    FinancialSummary,
    RescheduleRequest,
    Service,
    ServiceCreateRequest,
    ServiceListResponse,
    ServiceUpdateRequest,
    SortOrder,
    Transaction,
    TransactionCreateRequest,
    TransactionListResponse,
    TransactionStatus,
    TransactionStatusRequest,
    TransactionType,
    TransactionUpdateRequest,
)
from .storage import (
    cash_flow,
    create_service,
    create_transaction,
    delete_service,
    delete_transaction,
    expense_distribution,
    financial_summary,
    get_service,
    get_transaction,
    list_services,
    list_transactions,
    pending_payments,
    receipt_for,
    reschedule_transaction,
    update_service,
    update_transaction,
    update_transaction_status,
)

router = APIRouter(prefix="/api/billing", tags=["Billing"])


def _own_service(user: dict, service_id: str) -> dict:
    row = get_service(service_id)
    if user.get("role") != "super_admin" and row["nutritionist_id"] != user["id"]:
        raise HTTPException(status_code=404, detail="Service not found")
    return row


def _own_transaction(user: dict, transaction_id: str) -> dict:
    row = get_transaction(transaction_id)
    if user.get("role") != "super_admin" and row["nutritionist_id"] != user["id"]:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return row


def _month(year: int | None, month: int | None) -> tuple[int, int]:
    today = date.today()
    return year or today.year, month or today.month


# ---- Services ----

@router.get("/services", response_model=ServiceListResponse, summary="Active services")
def list_services_api(user: dict = Depends(require_staff)):
    return ServiceListResponse(items=[Service(**r) for r in list_services(user["id"])])


@router.post("/services", response_model=Service, status_code=201, summary="Create a service")
def create_service_api(payload: ServiceCreateRequest, user: dict = Depends(require_staff)):
    return Service(**create_service(nutritionist_id=user["id"], data=payload.model_dump()))


@router.patch("/services/{service_id}", response_model=Service, summary="Update a service")
def update_service_api(service_id: str, payload: ServiceUpdateRequest, user: dict = Depends(require_staff)):
    _own_service(user, service_id)
    return Service(**update_service(service_id, payload.model_dump(exclude_unset=True)))


@router.delete("/services/{service_id}", summary="Deactivate a service")
def delete_service_api(service_id: str, user: dict = Depends(require_staff)):
    _own_service(user, service_id)
    delete_service(service_id)
    return {"status": "deleted", "service_id": service_id}


# ---- Transactions ----

@router.get("/transactions", response_model=TransactionListResponse, summary="List transactions")
def list_transactions_api(
    type: TransactionType | None = Query(default=None),
    status: TransactionStatus | None = Query(default=None),
    q: str | None = Query(default=None, description="Description contains"),
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    page: int | None = Query(default=None, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=200),
    sort: str = Query(default="transaction_date"),
    order: SortOrder = Query(default="desc"),
    user: dict = Depends(require_staff),
):
    rows, total = list_transactions(
        user["id"],
        type=type,
        status=status,
        search=q,
        year=year,
        month=month,
        page=page,
        page_size=page_size,
        sort_field=sort,
        sort_order=order,
    )
    return TransactionListResponse(
        items=[Transaction(**r) for r in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/transactions", response_model=Transaction, status_code=201, summary="Record a transaction")
def create_transaction_api(payload: TransactionCreateRequest, user: dict = Depends(require_staff)):
    if payload.patient_id:
        ensure_patient_access(user, payload.patient_id)
    return Transaction(**create_transaction(nutritionist_id=user["id"], data=payload.model_dump()))


@router.get("/transactions/{transaction_id}", response_model=Transaction, summary="Get a transaction")
def get_transaction_api(transaction_id: str, user: dict = Depends(require_staff)):
    return Transaction(**_own_transaction(user, transaction_id))


@router.patch("/transactions/{transaction_id}", response_model=Transaction, summary="Update a transaction")
def update_transaction_api(
    transaction_id: str,
    payload: TransactionUpdateRequest,
    user: dict = Depends(require_staff),
):
    _own_transaction(user, transaction_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("patient_id"):
        ensure_patient_access(user, changes["patient_id"])
    return Transaction(**update_transaction(transaction_id, changes))


@router.delete("/transactions/{transaction_id}", summary="Delete a transaction")
def delete_transaction_api(transaction_id: str, user: dict = Depends(require_staff)):
    _own_transaction(user, transaction_id)
    delete_transaction(transaction_id)
    return {"status": "deleted", "transaction_id": transaction_id}


@router.post("/transactions/{transaction_id}/status", response_model=Transaction, summary="Change payment status")
def update_status_api(
    transaction_id: str,
    payload: TransactionStatusRequest,
    user: dict = Depends(require_staff),
):
    _own_transaction(user, transaction_id)
    return Transaction(**update_transaction_status(transaction_id, payload.status))


@router.post("/transactions/{transaction_id}/reschedule", response_model=Transaction, summary="Move the date")
def reschedule_api(transaction_id: str, payload: RescheduleRequest, user: dict = Depends(require_staff)):
    _own_transaction(user, transaction_id)
    return Transaction(**reschedule_transaction(transaction_id, payload.transaction_date))


@router.get("/transactions/{transaction_id}/receipt", summary="Payment receipt PDF")
def receipt_api(transaction_id: str, user: dict = Depends(require_staff)):
    row = _own_transaction(user, transaction_id)
    if row["type"] != "income":
        raise HTTPException(status_code=400, detail="Receipts are only issued for income")
    content = PDFReportGenerator().generate_receipt(receipt_for(row))
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="recibo-{transaction_id}.pdf"'},
    )


@router.get("/pending", response_model=TransactionListResponse, summary="Pending income due by today")
def pending_api(user: dict = Depends(require_staff)):
    rows = pending_payments(user["id"])
    return TransactionListResponse(items=[Transaction(**r) for r in rows], total=len(rows))


# ---- Monthly figures ----

@router.get("/summary", response_model=FinancialSummary, summary="Monthly income, expenses and overdue")
def summary_api(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    user: dict = Depends(require_staff),
):
    y, m = _month(year, month)
    return FinancialSummary(**financial_summary(user["id"], year=y, month=m))


@router.get("/cash-flow", response_model=CashFlowResponse, summary="Income and expenses per day or week")
def cash_flow_api(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    aggregation: str = Query(default="day", pattern="^(day|week)$"),
    user: dict = Depends(require_staff),
):
    y, m = _month(year, month)
    return CashFlowResponse(
        aggregation=aggregation,
        items=cash_flow(user["id"], year=y, month=m, aggregation=aggregation),
    )


@router.get("/expenses/distribution", response_model=ExpenseDistributionResponse, summary="Expenses by category")
def expense_distribution_api(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    user: dict = Depends(require_staff),
):
    y, m = _month(year, month)
    return ExpenseDistributionResponse(items=expense_distribution(user["id"], year=y, month=m))
