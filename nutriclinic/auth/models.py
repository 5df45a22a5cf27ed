# -*- coding: utf-8 -*-
"""Auth: Pydantic models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["nutritionist", "patient", "super_admin"]


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    role: Literal["nutritionist", "patient"] = "nutritionist"


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class UserPublic(BaseModel):
    id: str
    email: str
    role: Role
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: str


class AuthResponse(BaseModel):
    user: UserPublic
    token: str
