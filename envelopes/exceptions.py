from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class EnvelopeAPIError(Exception):
    """
    Base exception for the envelopes API.

    Carries the HTTP status and a stable error code so every failure
    is rendered as the same structured JSON body.
    """

    def __init__(
        self,
        message: str,
        code: str = "ENVELOPE_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "status": "Error",
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class EnvelopeNotFoundError(EnvelopeAPIError):
    """Raised when no envelope matches the requested id."""

    def __init__(self, envelope_id: Any):
        super().__init__(
            message="There is no envelope with this id",
            code="ENVELOPE_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"envelope_id": str(envelope_id)},
        )


class EmptyCollectionError(EnvelopeAPIError):
    """Raised when listing envelopes and the table is empty."""

    def __init__(self):
        super().__init__(
            message="There are no envelopes",
            code="EMPTY_COLLECTION",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class InvalidTransferError(EnvelopeAPIError):
    def __init__(self, message: str, **details: Any):
        super().__init__(
            message=message,
            code="INVALID_TRANSFER",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class InsufficientBudgetError(EnvelopeAPIError):
    """Raised when a transfer would drive the source budget below zero."""

    def __init__(self, envelope_id: int, budget: int, amount: int):
        super().__init__(
            message=f"Envelope {envelope_id} has a budget of {budget}, cannot transfer {amount}",
            code="INSUFFICIENT_BUDGET",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"envelope_id": envelope_id, "budget": budget, "amount": amount},
        )


class StorageError(EnvelopeAPIError):
    """Raised when the underlying query fails; the session has been rolled back."""

    def __init__(self, action: str):
        super().__init__(
            message=f"Storage error while {action}",
            code="STORAGE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


async def envelope_api_exception_handler(request: Request, exc: EnvelopeAPIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> 422 invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "status": "Error",
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "Error",
            "code": "INTERNAL_ERROR",
            "message": "Internal server error",
        },
    )
