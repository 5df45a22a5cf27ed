# -*- coding: utf-8 -*-
"""Avatar upload endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ..auth.security import get_current_user
from ..store import get_store
from .storage import replace_avatar

router = APIRouter(prefix="/api/profile", tags=["Profile"])

_IMAGE_TYPES = {"image/png", "image/jpeg", "image/webp", "image/gif"}


@router.post("/avatar", summary="Replace my avatar")
def upload_avatar(
    file: UploadFile = File(...),
    user: dict = Depends(get_current_user),
):
    if (file.content_type or "") not in _IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Avatar must be a PNG, JPEG, WebP or GIF image")
    try:
        url = replace_avatar(user["id"], file.filename or "", file.file)
    finally:
        file.file.close()

    now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    get_store().table("profiles").eq("id", user["id"]).update({"avatar_url": url, "updated_at": now})
    return {"avatar_url": url}
