from __future__ import annotations
from typing import Any
from fastapi import HTTPException


class AppError(HTTPException):
    """HTTPException with a stable machine-readable code."""

    status_code_default = 500
    code_default = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None, details: Any = None, headers: dict | None = None):
        super().__init__(status_code=self.status_code_default, detail=message, headers=headers)
        self.code = code or self.code_default
        self.message = message
        self.details = details


class BadRequest(AppError):
    status_code_default = 400
    code_default = "VALIDATION_FAILED"


class Unauthorized(AppError):
    status_code_default = 401
    code_default = "UNAUTHORIZED"


class Forbidden(AppError):
    status_code_default = 403
    code_default = "INSUFFICIENT_PERMISSIONS"


class NotFound(AppError):
    status_code_default = 404
    code_default = "NOT_FOUND"


class Conflict(AppError):
    status_code_default = 409
    code_default = "CONFLICT"


class PayloadTooLarge(AppError):
    status_code_default = 413
    code_default = "FILE_TOO_LARGE"


class UpstreamError(AppError):
    status_code_default = 502
    code_default = "UPSTREAM_FAILED"


# Fallback codes for plain HTTPException raised by the framework
STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    422: "VALIDATION_FAILED",
}


def error_body(exc: HTTPException) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "code": getattr(exc, "code", None) or STATUS_CODES.get(exc.status_code, "ERROR"),
        "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
    }
    details = getattr(exc, "details", None)
    if details is not None:
        body["errors"] = details
    return body
