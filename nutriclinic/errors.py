# -*- coding: utf-8 -*-
"""Exceptions shared across domains."""

from __future__ import annotations

from typing import Optional


class NutriclinicError(Exception):
    """Base class for errors raised outside the HTTP layer."""


class StoreError(NutriclinicError):
    """A query or mutation against the record store failed."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FunctionInvocationError(NutriclinicError):
    """A serverless function call failed.

    ``logical`` is set when the function answered 2xx but carried an ``error``
    string inside its response envelope.
    """

    def __init__(self, function: str, message: str, *, logical: bool = False, status_code: Optional[int] = None) -> None:
        super().__init__(f"{function}: {message}")
        self.function = function
        self.message = message
        self.logical = logical
        self.status_code = status_code


class FileStorageError(NutriclinicError):
    """Upload, listing or removal in the file storage failed."""


class DemoSeedError(NutriclinicError):
    """Demo data could not be generated."""
