"""
Error types and logging helpers shared by services and routes.

Service-layer failures are raised as ``HTTPException`` subclasses so
FastAPI renders them as ``{"detail": ...}`` without extra handlers.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import HTTPException


class BadRequestError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=404, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=409, detail=detail)


class PreconditionError(HTTPException):
    """State does not allow the operation yet (e.g. report still generating)."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)


class DependentRecordError(HTTPException):
    """Deletion refused because other rows still reference the record."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=400, detail=detail)


class ReportGenerationError(HTTPException):
    def __init__(self, detail: str = "Failed to generate report") -> None:
        super().__init__(status_code=500, detail=detail)


def log_exception(
    logger: logging.Logger,
    message: str,
    *,
    extra: Optional[dict[str, Any]] = None,
    exc: Optional[BaseException] = None,
) -> None:
    """Log an error with traceback and structured context."""
    payload = dict(extra or {})
    if exc is not None:
        payload.setdefault("error", str(exc))
        logger.error("%s %s", message, payload, exc_info=(type(exc), exc, exc.__traceback__))
        return
    logger.exception("%s %s", message, payload)
