# -*- coding: utf-8 -*-
"""
Record store

``get_store()`` returns the process-wide store: the hosted REST backend when
``NUTRICLINIC_STORE_URL`` is configured, the local SQLite file otherwise.
"""

from __future__ import annotations

import threading
from typing import Optional

from ..config import settings
from .base import ChangeEvent, Query, Store
from .rest import RestStore
from .sqlite import SQLiteStore

_store: Optional[Store] = None
_lock = threading.Lock()


def build_store() -> Store:
    from ..realtime.hub import hub

    if settings.store_url:
        store: Store = RestStore(settings.store_url, settings.store_key, timeout=settings.http_timeout)
    else:
        store = SQLiteStore(settings.app_db_path)
    store.add_listener(hub.publish)
    return store


def get_store() -> Store:
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                _store = build_store()
    return _store


def set_store(store: Optional[Store]) -> None:
    """Replace the process-wide store (used by tests and the demo CLI)."""
    global _store
    with _lock:
        _store = store


__all__ = [
    "ChangeEvent",
    "Query",
    "RestStore",
    "SQLiteStore",
    "Store",
    "build_store",
    "get_store",
    "set_store",
]
