# -*- coding: utf-8 -*-
"""Lab result endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse

from ..auth.security import get_current_user, require_staff
from ..files import storage as files
from ..patients.storage import ensure_patient_access
from .models import (
    LabResult,
    LabResultCreateRequest,
    LabResultGroupedResponse,
    LabResultListResponse,
    LabResultUpdateRequest,
)
from .storage import (
    LAB_BUCKET,
    abnormal_lab_results,
    attach_pdf,
    create_lab_result,
    delete_lab_result,
    get_lab_result,
    group_by_test_name,
    list_lab_results,
    update_lab_result,
)

router = APIRouter(prefix="/api/labs", tags=["Lab results"])


@router.post("/results", response_model=LabResult, status_code=201, summary="Record a lab result")
def create_result_api(payload: LabResultCreateRequest, user: dict = Depends(require_staff)):
    ensure_patient_access(user, payload.patient_id)
    return LabResult(**create_lab_result(payload.model_dump()))


@router.patch("/results/{result_id}", response_model=LabResult, summary="Update a lab result")
def update_result_api(result_id: str, payload: LabResultUpdateRequest, user: dict = Depends(require_staff)):
    ensure_patient_access(user, get_lab_result(result_id)["patient_id"])
    return LabResult(**update_lab_result(result_id, payload.model_dump(exclude_unset=True)))


@router.delete("/results/{result_id}", summary="Delete a lab result")
def delete_result_api(result_id: str, user: dict = Depends(require_staff)):
    ensure_patient_access(user, get_lab_result(result_id)["patient_id"])
    delete_lab_result(result_id)
    return {"status": "deleted", "result_id": result_id}


@router.post("/results/{result_id}/pdf", response_model=LabResult, summary="Attach the lab report PDF")
def upload_pdf_api(
    result_id: str,
    file: UploadFile = File(...),
    user: dict = Depends(require_staff),
):
    ensure_patient_access(user, get_lab_result(result_id)["patient_id"])
    if (file.content_type or "") != "application/pdf":
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")
    try:
        return LabResult(**attach_pdf(result_id, file.file))
    finally:
        file.file.close()


@router.get("/results/{result_id}/pdf", summary="Download the lab report PDF")
def download_pdf_api(result_id: str, user: dict = Depends(get_current_user)):
    row = get_lab_result(result_id)
    ensure_patient_access(user, row["patient_id"])
    if not row.get("pdf_path"):
        raise HTTPException(status_code=404, detail="No PDF attached")
    path = files.local_path(LAB_BUCKET, row["pdf_path"])
    return FileResponse(path, media_type="application/pdf", filename=f"{row['test_name']}.pdf")


@router.get("/{patient_id}", response_model=LabResultListResponse, summary="A patient's lab results")
def list_results_api(
    patient_id: str,
    test_name: str | None = Query(default=None),
    since: str | None = Query(default=None, description="YYYY-MM-DD"),
    limit: int = Query(default=50, ge=1, le=500),
    user: dict = Depends(get_current_user),
):
    ensure_patient_access(user, patient_id)
    rows = list_lab_results(patient_id, test_name=test_name, since=since, limit=limit)
    return LabResultListResponse(items=[LabResult(**r) for r in rows])


@router.get("/{patient_id}/grouped", response_model=LabResultGroupedResponse, summary="Lab history by test")
def grouped_results_api(patient_id: str, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, patient_id)
    grouped = group_by_test_name(list_lab_results(patient_id, limit=500))
    return LabResultGroupedResponse(
        groups={name: [LabResult(**r) for r in rows] for name, rows in grouped.items()}
    )


@router.get("/{patient_id}/abnormal", response_model=LabResultListResponse, summary="Out-of-range results")
def abnormal_results_api(patient_id: str, user: dict = Depends(get_current_user)):
    ensure_patient_access(user, patient_id)
    return LabResultListResponse(items=[LabResult(**r) for r in abnormal_lab_results(patient_id)])
