"""Leave workflow error taxonomy and the FastAPI handlers that render it.

Every failure leaves the API in the same envelope the successful responses
use: ``{"success": false, "message": ..., "kind": ...}``, with ``errors``
for per-field validation messages and ``data`` for extra context such as
the remaining balance.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class LeaveError(Exception):
    kind = "leave_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Leave request could not be processed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        context: Optional[Dict[str, Any]] = None,
        errors: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.context = context or {}
        self.errors = errors
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "message": self.message, "kind": self.kind}
        if self.errors:
            payload["errors"] = self.errors
        if self.context:
            payload["data"] = self.context
        return payload


class ValidationError(LeaveError):
    kind = "validation_error"
    default_message = "Validation failed"


class PastDateError(LeaveError):
    kind = "past_date"
    default_message = "Cannot select past dates"


class OverlapError(LeaveError):
    kind = "overlap"
    default_message = "Leave request overlaps with existing request"


class InsufficientBalanceError(LeaveError):
    kind = "insufficient_balance"
    default_message = "Insufficient leave balance"

    def __init__(self, message: Optional[str] = None, *, remaining_days: int = 0) -> None:
        super().__init__(message, context={"remaining_days": remaining_days})
        self.remaining_days = remaining_days


class Unauthorized(LeaveError):
    kind = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorised to perform this action"


class NotFound(LeaveError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Leave request not found"


class AlreadyProcessed(LeaveError):
    kind = "already_processed"
    default_message = "Request has already been processed"


def _field_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = defaultdict(list)
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "__root__"
        grouped[field].append(error.get("msg", "Invalid value"))
    return dict(grouped)


async def leave_error_handler(request: Request, exc: LeaveError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Validation failed",
            "kind": ValidationError.kind,
            "errors": _field_errors(exc),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "internal_error",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LeaveError, leave_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
