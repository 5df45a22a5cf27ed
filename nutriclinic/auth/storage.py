# -*- coding: utf-8 -*-
"""Auth: user rows and their profiles in the record store."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from ..store import get_store


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return get_store().table("users").eq("email", email.lower().strip()).first()


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    user = get_store().table("users").eq("id", user_id).first()
    if not user:
        return None
    profile = get_store().table("profiles").select("name", "avatar_url").eq("id", user_id).first() or {}
    return {**user, "name": profile.get("name"), "avatar_url": profile.get("avatar_url")}


def create_user(*, email: str, password_hash: str, role: str, name: str) -> Dict[str, Any]:
    """Insert the login row and the matching profile (same id).

    A patient invited by a nutritionist already has a profile; registering
    with that email claims it instead of creating a second one.
    """
    store = get_store()
    now = _utc_now()
    email_norm = email.lower().strip()

    invited = None
    if role == "patient":
        invited = store.table("profiles").eq("email", email_norm).eq("user_type", "patient").first()
    user_id = invited["id"] if invited else str(uuid4())

    user = store.insert(
        "users",
        {"id": user_id, "email": email_norm, "password_hash": password_hash, "role": role, "created_at": now},
    )[0]
    if invited:
        return {**user, "name": invited.get("name"), "avatar_url": invited.get("avatar_url")}
    store.insert(
        "profiles",
        {
            "id": user_id,
            "name": name,
            "email": email_norm,
            "user_type": role,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        },
    )
    return {**user, "name": name, "avatar_url": None}
