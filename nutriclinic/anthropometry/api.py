# -*- coding: utf-8 -*-
"""Anthropometry endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user
from ..patients.storage import ensure_patient_access
from .models import GrowthRecord, GrowthRecordCreateRequest, GrowthRecordListResponse, GrowthStats
from .storage import create_record, delete_record, get_record, list_records, record_stats

router = APIRouter(prefix="/api/anthropometry", tags=["Anthropometry"])


@router.post("", response_model=GrowthRecord, status_code=201, summary="Register a measurement")
def create_record_api(payload: GrowthRecordCreateRequest, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, payload.patient_id)
    return GrowthRecord(**create_record(**payload.model_dump()))


@router.get("/{patient_id}", response_model=GrowthRecordListResponse, summary="Measurements, newest first")
def list_records_api(
    patient_id: str,
    limit: int = Query(default=200, ge=1, le=1000),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    return GrowthRecordListResponse(items=[GrowthRecord(**r) for r in list_records(patient_id, limit=limit)])


@router.get("/{patient_id}/latest", response_model=GrowthRecord, summary="Latest measurement")
def latest_record_api(patient_id: str, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, patient_id)
    rows = list_records(patient_id, limit=1)
    if not rows:
        raise HTTPException(status_code=404, detail="No measurements")
    return GrowthRecord(**rows[0])


@router.get("/{patient_id}/stats", response_model=GrowthStats, summary="Weight evolution")
def stats_api(patient_id: str, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, patient_id)
    return GrowthStats(**record_stats(patient_id))


@router.delete("/records/{record_id}", summary="Delete a measurement")
def delete_record_api(record_id: str, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, get_record(record_id)["patient_id"])
    delete_record(record_id)
    return {"status": "deleted", "record_id": record_id}
