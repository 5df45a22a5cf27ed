# -*- coding: utf-8 -*-
"""File storage: buckets on disk under ``settings.storage_root``.

Paths are ``<bucket>/<folder>/<name>``; public URLs are served by the
``/storage`` static mount.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import BinaryIO, Iterable, List, Union
from uuid import uuid4

from ..config import settings
from ..errors import FileStorageError

BUCKETS = ("avatars", "lab-results")

_SEGMENT = re.compile(r"^[A-Za-z0-9_.\-]+$")


def _bucket_root(bucket: str) -> Path:
    if bucket not in BUCKETS:
        raise FileStorageError(f"Unknown bucket: {bucket}")
    return settings.storage_root / bucket


def _resolve(bucket: str, path: str) -> Path:
    parts = [p for p in (path or "").strip("/").split("/") if p]
    if not parts or any(p in {".", ".."} or not _SEGMENT.match(p) for p in parts):
        raise FileStorageError(f"Invalid storage path: {path!r}")
    return _bucket_root(bucket).joinpath(*parts)


def safe_suffix(filename: str) -> str:
    suffix = Path(filename or "").suffix.lower()
    if not suffix or len(suffix) > 12:
        return ""
    if not re.fullmatch(r"\.[a-z0-9]+", suffix):
        return ""
    return suffix


def upload(bucket: str, path: str, data: Union[bytes, BinaryIO], *, upsert: bool = False) -> str:
    """Store ``data`` at ``bucket/path``. Returns the stored path."""
    target = _resolve(bucket, path)
    if target.exists() and not upsert:
        raise FileStorageError(f"Object already exists: {bucket}/{path}")
    target.parent.mkdir(parents=True, exist_ok=True)

    max_bytes = int(settings.max_upload_mb) * 1024 * 1024
    size = 0
    try:
        with target.open("wb") as f:
            if isinstance(data, (bytes, bytearray)):
                size = len(data)
                if size > max_bytes:
                    raise FileStorageError(f"File too large (> {settings.max_upload_mb} MB)")
                f.write(data)
            else:
                while True:
                    chunk = data.read(1024 * 256)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > max_bytes:
                        raise FileStorageError(f"File too large (> {settings.max_upload_mb} MB)")
                    f.write(chunk)
    except FileStorageError:
        target.unlink(missing_ok=True)
        raise
    except OSError as exc:
        raise FileStorageError(f"Upload failed: {exc}") from exc
    return "/".join(target.relative_to(_bucket_root(bucket)).parts)


def list_folder(bucket: str, folder: str) -> List[str]:
    """Names of the files directly under ``bucket/folder`` (empty if missing)."""
    root = _resolve(bucket, folder)
    if not root.is_dir():
        return []
    return sorted(p.name for p in root.iterdir() if p.is_file())


def remove(bucket: str, paths: Iterable[str]) -> List[str]:
    removed: List[str] = []
    for path in paths:
        target = _resolve(bucket, path)
        try:
            if target.is_dir():
                shutil.rmtree(target)
            elif target.exists():
                target.unlink()
            else:
                continue
        except OSError as exc:
            raise FileStorageError(f"Remove failed for {bucket}/{path}: {exc}") from exc
        removed.append(path)
    return removed


def local_path(bucket: str, path: str) -> Path:
    target = _resolve(bucket, path)
    if not target.is_file():
        raise FileStorageError(f"Object not found: {bucket}/{path}")
    return target


def public_url(bucket: str, path: str) -> str:
    _resolve(bucket, path)
    return f"{settings.public_storage_url}/{bucket}/{path.strip('/')}"


def replace_avatar(user_id: str, filename: str, data: Union[bytes, BinaryIO]) -> str:
    """Drop every file under the user's avatar folder, upload the new one, return its public URL."""
    existing = list_folder("avatars", user_id)
    if existing:
        remove("avatars", [f"{user_id}/{name}" for name in existing])
    stored = upload("avatars", f"{user_id}/{uuid4().hex}{safe_suffix(filename) or '.png'}", data, upsert=True)
    return public_url("avatars", stored)
