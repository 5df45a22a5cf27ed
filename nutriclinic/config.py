from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional


class Settings:
    """Centralized configuration for the nutrition practice backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("NUTRICLINIC_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("NUTRICLINIC_DB_PATH") or (self.data_root / "nutriclinic.db")
        ).expanduser()

        # ---- Remote store (PostgREST-style). Empty means the local SQLite store. ----
        self.store_url: Optional[str] = (os.environ.get("NUTRICLINIC_STORE_URL") or "").strip() or None
        self.store_key: Optional[str] = os.environ.get("NUTRICLINIC_STORE_KEY") or None

        # ---- Serverless functions (patient invitation etc.) ----
        self.functions_url: Optional[str] = (os.environ.get("NUTRICLINIC_FUNCTIONS_URL") or "").strip() or None
        self.functions_key: Optional[str] = os.environ.get("NUTRICLINIC_FUNCTIONS_KEY") or self.store_key
        self.http_timeout: float = float(os.environ.get("NUTRICLINIC_HTTP_TIMEOUT") or "30")

        # ---- File storage ----
        self.storage_root: Path = Path(
            os.environ.get("NUTRICLINIC_STORAGE_ROOT") or (self.data_root / "storage")
        ).expanduser()
        self.public_storage_url: str = (
            os.environ.get("NUTRICLINIC_PUBLIC_STORAGE_URL") or "/storage"
        ).rstrip("/")
        self.max_upload_mb: int = int(os.environ.get("NUTRICLINIC_MAX_UPLOAD_MB") or "5")

        # ---- Auth ----
        # In production you MUST set NUTRICLINIC_JWT_SECRET.
        self.jwt_secret: str = os.environ.get("NUTRICLINIC_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("NUTRICLINIC_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = (os.environ.get("NUTRICLINIC_COOKIE_SECURE") or "").strip() in {"1", "true", "True"}

        # ---- Dashboard / demo ----
        self.activity_fetch_limit: int = int(os.environ.get("NUTRICLINIC_ACTIVITY_LIMIT") or "100")
        self.demo_email_domain: str = (
            os.environ.get("NUTRICLINIC_DEMO_DOMAIN") or "demo.nutriclinic.local"
        ).strip().lstrip("@")
        self.app_name: str = os.environ.get("NUTRICLINIC_APP_NAME") or "Nutriclinic"

        self.log_level: str = (os.environ.get("NUTRICLINIC_LOG_LEVEL") or "INFO").upper()

        cors = os.environ.get("NUTRICLINIC_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
