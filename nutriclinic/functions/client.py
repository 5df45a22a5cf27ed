# -*- coding: utf-8 -*-
"""Serverless function invocation (``POST {functions_url}/functions/v1/<name>``)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..errors import FunctionInvocationError

logger = logging.getLogger(__name__)


def _headers(auth_token: Optional[str]) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.functions_key:
        headers["apikey"] = settings.functions_key
    token = auth_token or settings.functions_key
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _envelope_error(data: Any) -> Optional[str]:
    if isinstance(data, dict) and data.get("error"):
        err = data["error"]
        if isinstance(err, dict):
            return str(err.get("message") or err)
        return str(err)
    return None


def invoke(
    name: str,
    body: Dict[str, Any],
    *,
    auth_token: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Any:
    """Call a named function and return its payload.

    The response is a JSON envelope: ``{"data": ...}`` is unwrapped, any other
    object is returned as-is, and ``{"error": "..."}`` raises
    ``FunctionInvocationError`` (``logical=True`` when the status was 2xx).
    """
    if not settings.functions_url:
        raise FunctionInvocationError(name, "functions endpoint is not configured")

    url = f"{settings.functions_url.rstrip('/')}/functions/v1/{name}"
    try:
        with httpx.Client(timeout=settings.http_timeout, transport=transport) as client:
            resp = client.post(url, json=body, headers=_headers(auth_token))
    except httpx.HTTPError as exc:
        logger.error("Function %s unreachable: %s", name, exc)
        raise FunctionInvocationError(name, str(exc)) from exc

    try:
        data = resp.json() if resp.content else None
    except ValueError:
        data = None

    error = _envelope_error(data)
    if resp.status_code >= 400:
        message = error or resp.text.strip() or f"HTTP {resp.status_code}"
        raise FunctionInvocationError(name, message, status_code=resp.status_code)
    if error:
        raise FunctionInvocationError(name, error, logical=True, status_code=resp.status_code)

    if isinstance(data, dict) and "data" in data:
        return data["data"]
    return data
