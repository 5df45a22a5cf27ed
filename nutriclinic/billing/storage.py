# -*- coding: utf-8 -*-
"""Billing storage helpers.

Monthly figures are computed in Python over the month's rows; the store only
filters by nutritionist and date window.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException

from ..patients.storage import patient_names
from ..reports import ReceiptData
from ..store import Query, get_store

logger = logging.getLogger(__name__)

SORT_FIELDS = ("transaction_date", "due_date", "amount", "created_at", "description", "status")

TRANSACTION_FIELDS = (
    "type",
    "amount",
    "transaction_date",
    "description",
    "category",
    "patient_id",
    "due_date",
    "status",
    "service_id",
    "appointment_id",
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _amount(row: Dict[str, Any]) -> float:
    try:
        return float(row.get("amount") or 0)
    except (TypeError, ValueError):
        return 0.0


def month_bounds(year: int, month: int) -> Tuple[str, str]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last).isoformat()


# ---- Services ----

def list_services(nutritionist_id: str) -> List[Dict[str, Any]]:
    rows = get_store().table("services").eq("nutritionist_id", nutritionist_id).order("name").execute()
    return [r for r in rows if r.get("is_active") is not False]


def get_service(service_id: str) -> Dict[str, Any]:
    row = get_store().table("services").eq("id", service_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Service not found")
    return row


def create_service(*, nutritionist_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    now = _utc_now()
    return get_store().insert(
        "services",
        {
            "nutritionist_id": nutritionist_id,
            "name": data["name"],
            "price": float(data["price"]),
            "category": data.get("category"),
            "description": data.get("description"),
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        },
    )[0]


def update_service(service_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    values = {k: v for k, v in changes.items() if k in ("name", "price", "category", "description")}
    values["updated_at"] = _utc_now()
    rows = get_store().table("services").eq("id", service_id).update(values)
    if not rows:
        raise HTTPException(status_code=404, detail="Service not found")
    return rows[0]


def delete_service(service_id: str) -> Dict[str, Any]:
    """Soft delete: the service disappears from lists but old transactions keep the reference."""
    rows = get_store().table("services").eq("id", service_id).update(
        {"is_active": False, "updated_at": _utc_now()}
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Service not found")
    return rows[0]


# ---- Transactions ----

def _with_patient_names(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    names = patient_names(sorted({r["patient_id"] for r in rows if r.get("patient_id")}))
    return [{**r, "patient_name": names.get(r.get("patient_id") or "")} for r in rows]


def _filtered(
    nutritionist_id: str,
    *,
    type: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> Query:
    query = get_store().table("financial_transactions").eq("nutritionist_id", nutritionist_id)
    if type:
        query = query.eq("type", type)
    if status:
        query = query.eq("status", status)
    if search:
        query = query.ilike("description", f"%{search.strip()}%")
    if year and month:
        start, end = month_bounds(year, month)
        query = query.gte("transaction_date", start).lte("transaction_date", end)
    return query


def list_transactions(
    nutritionist_id: str,
    *,
    type: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
    sort_field: str = "transaction_date",
    sort_order: str = "desc",
) -> Tuple[List[Dict[str, Any]], int]:
    if sort_field not in SORT_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {sort_field}")
    filters = dict(type=type, status=status, search=search, year=year, month=month)

    query = _filtered(nutritionist_id, **filters).order(sort_field, desc=sort_order != "asc")
    if page and page_size:
        query = query.offset((page - 1) * page_size).limit(page_size)
    rows = query.execute()
    total = _filtered(nutritionist_id, **filters).count()
    return _with_patient_names(rows), total


def get_transaction(transaction_id: str) -> Dict[str, Any]:
    row = get_store().table("financial_transactions").eq("id", transaction_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return _with_patient_names([row])[0]


def create_transaction(*, nutritionist_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    values = {k: data.get(k) for k in TRANSACTION_FIELDS}
    if not values.get("status"):
        values["status"] = "paid" if data.get("is_paid") else "pending"
    if values["status"] == "pending" and not values.get("due_date"):
        values["due_date"] = values["transaction_date"]
    now = _utc_now()
    row = get_store().insert(
        "financial_transactions",
        {**values, "nutritionist_id": nutritionist_id, "amount": float(values["amount"]), "created_at": now, "updated_at": now},
    )[0]
    return _with_patient_names([row])[0]


def _update(transaction_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
    values["updated_at"] = _utc_now()
    rows = get_store().table("financial_transactions").eq("id", transaction_id).update(values)
    if not rows:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return _with_patient_names(rows)[0]


def update_transaction(transaction_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    return _update(transaction_id, {k: v for k, v in changes.items() if k in TRANSACTION_FIELDS})


def update_transaction_status(transaction_id: str, status: str) -> Dict[str, Any]:
    return _update(transaction_id, {"status": status})


def reschedule_transaction(transaction_id: str, new_date: str) -> Dict[str, Any]:
    return _update(transaction_id, {"transaction_date": new_date, "due_date": new_date})


def delete_transaction(transaction_id: str) -> Dict[str, Any]:
    row = get_transaction(transaction_id)
    get_store().table("financial_transactions").eq("id", transaction_id).delete()
    return row


def pending_payments(nutritionist_id: str, *, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Pending income whose transaction date has arrived, oldest first."""
    today = today or date.today()
    rows = (
        get_store()
        .table("financial_transactions")
        .eq("nutritionist_id", nutritionist_id)
        .eq("type", "income")
        .eq("status", "pending")
        .lte("transaction_date", today.isoformat())
        .order("transaction_date")
        .execute()
    )
    return _with_patient_names(rows)


# ---- Monthly figures ----

def _month_rows(nutritionist_id: str, year: int, month: int) -> List[Dict[str, Any]]:
    return _filtered(nutritionist_id, year=year, month=month).order("transaction_date").execute()


def financial_summary(nutritionist_id: str, *, year: int, month: int) -> Dict[str, Any]:
    rows = _month_rows(nutritionist_id, year, month)
    income = sum(_amount(r) for r in rows if r.get("type") == "income")
    expenses = sum(_amount(r) for r in rows if r.get("type") == "expense")
    overdue = sum(_amount(r) for r in rows if r.get("status") == "overdue")
    return {
        "year": year,
        "month": month,
        "income": round(income, 2),
        "net_income": round(income, 2),
        "expenses": round(expenses, 2),
        "net_result": round(income - expenses, 2),
        "overdue": round(overdue, 2),
    }


def cash_flow(nutritionist_id: str, *, year: int, month: int, aggregation: str = "day") -> List[Dict[str, Any]]:
    grouped: Dict[str, Dict[str, Any]] = {}
    for row in _month_rows(nutritionist_id, year, month):
        day = date.fromisoformat(str(row["transaction_date"])[:10])
        if aggregation == "week":
            # Weeks start on Sunday.
            day = day - timedelta(days=(day.weekday() + 1) % 7)
        key = day.isoformat()
        bucket = grouped.setdefault(key, {"date": key, "income": 0.0, "expenses": 0.0})
        if row.get("type") == "income":
            bucket["income"] += _amount(row)
        else:
            bucket["expenses"] += _amount(row)
    return [grouped[k] for k in sorted(grouped)]


def expense_distribution(nutritionist_id: str, *, year: int, month: int) -> List[Dict[str, Any]]:
    totals: Dict[str, float] = {}
    for row in _month_rows(nutritionist_id, year, month):
        if row.get("type") != "expense":
            continue
        category = row.get("category") or "outros"
        totals[category] = totals.get(category, 0.0) + _amount(row)
    return [
        {"name": (name[:1].upper() + name[1:]).replace("_", " ", 1), "value": round(value, 2)}
        for name, value in totals.items()
    ]


def receipt_for(transaction: Dict[str, Any]) -> ReceiptData:
    store = get_store()
    provider = store.table("profiles").eq("id", transaction["nutritionist_id"]).first() or {}
    if not provider.get("email"):
        user = store.table("users").select("email").eq("id", transaction["nutritionist_id"]).first() or {}
        provider = {**provider, "email": user.get("email")}
    return ReceiptData(
        transaction_id=transaction["id"],
        amount=_amount(transaction),
        description=transaction.get("description") or "",
        transaction_date=transaction.get("transaction_date"),
        patient_name=transaction.get("patient_name") or "",
        provider_name=provider.get("name") or "",
        provider_email=provider.get("email"),
        provider_phone=provider.get("phone"),
    )
