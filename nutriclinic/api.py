# -*- coding: utf-8 -*-
"""
Nutriclinic API

Nutrition practice backend: patients, agenda, food diary, anthropometry,
lab results, meal plans, billing, notifications and the activity feed.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .activity.api import router as activity_router
from .anthropometry.api import router as anthropometry_router
from .appointments.api import router as appointments_router
from .auth.api import router as auth_router
from .auth.security import get_current_user_from_request
from .billing.api import router as billing_router
from .config import settings
from .demo.api import router as demo_router
from .diary.api import foods_router, router as diary_router
from .errors import DemoSeedError, FileStorageError, FunctionInvocationError, StoreError
from .files.api import router as files_router
from .goals.api import router as goals_router
from .labs.api import router as labs_router
from .meal_plans.api import router as meal_plans_router
from .notifications.api import router as notifications_router
from .patients.api import router as patients_router
from .recommendations.api import router as recommendations_router
from .store import get_store

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Nutriclinic",
    description="Nutrition practice management API",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup_init_store() -> None:
    store = get_store()
    logger.info("Record store ready: %s", type(store).__name__)


_AUTH_EXEMPT_PREFIXES = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
)


@app.middleware("http")
async def _auth_gate(request: Request, call_next):
    path = request.url.path
    if path.startswith("/api") and path != "/api/health" and not any(path.startswith(p) for p in _AUTH_EXEMPT_PREFIXES):
        try:
            user = get_current_user_from_request(request)
            request.state.user = user
        except HTTPException as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError):
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(FunctionInvocationError)
async def _function_error(request: Request, exc: FunctionInvocationError):
    logger.error("Function %s failed: %s", exc.function, exc.message)
    return JSONResponse(status_code=400 if exc.logical else 502, content={"detail": exc.message})


@app.exception_handler(FileStorageError)
async def _file_storage_error(request: Request, exc: FileStorageError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(DemoSeedError)
async def _demo_seed_error(request: Request, exc: DemoSeedError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.include_router(auth_router)
app.include_router(files_router)
app.include_router(patients_router)
app.include_router(appointments_router)
app.include_router(diary_router)
app.include_router(foods_router)
app.include_router(anthropometry_router)
app.include_router(goals_router)
app.include_router(labs_router)
app.include_router(meal_plans_router)
app.include_router(recommendations_router)
app.include_router(billing_router)
app.include_router(notifications_router)
app.include_router(activity_router)
app.include_router(demo_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": app.version,
        "store": "rest" if settings.store_url else "sqlite",
        "timestamp": datetime.now().isoformat(),
    }


# Avatars are public; lab PDFs go through /api/labs/results/{id}/pdf.
# An absolute public URL means another server hosts the files.
avatars_dir = settings.storage_root / "avatars"
avatars_dir.mkdir(parents=True, exist_ok=True)
if settings.public_storage_url.startswith("/"):
    app.mount(f"{settings.public_storage_url}/avatars", StaticFiles(directory=avatars_dir), name="avatars")


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("NUTRICLINIC_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("NUTRICLINIC_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("nutriclinic.api:app", host=host, port=port, reload=False)
