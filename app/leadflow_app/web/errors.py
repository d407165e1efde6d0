from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from leadflow_app.core.env import LEADFLOW_ERROR_INCLUDE_DETAILS, get_env_bool
from leadflow_app.core.errors import DispatchError, NotFoundError
from leadflow_app.infrastructure.db import DataConnectionError, DataExecutionError, DataQueryError

ERROR_CODE_VALIDATION = "VALIDATION_ERROR"
ERROR_CODE_BAD_REQUEST = "BAD_REQUEST"
ERROR_CODE_NOT_FOUND = "NOT_FOUND"
ERROR_CODE_UNAUTHORIZED = "UNAUTHORIZED"
ERROR_CODE_FORBIDDEN = "FORBIDDEN"
ERROR_CODE_DISPATCH_FAILED = "DISPATCH_FAILED"
ERROR_CODE_DB_CONNECTION = "DB_CONNECTION_ERROR"
ERROR_CODE_DB_QUERY = "DB_QUERY_ERROR"
ERROR_CODE_DB_EXECUTION = "DB_EXECUTION_ERROR"
ERROR_CODE_INTERNAL = "INTERNAL_SERVER_ERROR"

_HTTP_STATUS_CODES = {
    400: ERROR_CODE_BAD_REQUEST,
    401: ERROR_CODE_UNAUTHORIZED,
    403: ERROR_CODE_FORBIDDEN,
    404: ERROR_CODE_NOT_FOUND,
    422: ERROR_CODE_VALIDATION,
}


@dataclass(frozen=True)
class ApiErrorSpec:
    status_code: int
    code: str
    message: str
    details: str | None = None
    extra: dict[str, Any] | None = None


@dataclass(frozen=True)
class _ErrorRule:
    exc_type: type[Exception]
    status_code: int
    code: str
    # None means the exception text is safe to show to the caller.
    public_message: str | None = None

    def to_spec(self, exc: Exception) -> ApiErrorSpec:
        if self.public_message is None:
            return ApiErrorSpec(self.status_code, self.code, str(exc) or "Request could not be completed.")
        return ApiErrorSpec(self.status_code, self.code, self.public_message, details=str(exc))


# Checked in order; storage and domain errors before the ValueError catch-all.
_ERROR_RULES: tuple[_ErrorRule, ...] = (
    _ErrorRule(
        DataConnectionError,
        503,
        ERROR_CODE_DB_CONNECTION,
        "Database connection is unavailable. Please try again shortly.",
    ),
    _ErrorRule(DataQueryError, 500, ERROR_CODE_DB_QUERY, "Failed to read lead data."),
    _ErrorRule(DataExecutionError, 500, ERROR_CODE_DB_EXECUTION, "Failed to save lead data."),
    _ErrorRule(NotFoundError, 404, ERROR_CODE_NOT_FOUND),
    _ErrorRule(ValueError, 400, ERROR_CODE_BAD_REQUEST),
)


def request_id_from_request(request: Request) -> str:
    request_id = str(getattr(request.state, "request_id", "") or "").strip()
    return request_id or str(request.headers.get("x-request-id", "")).strip() or "-"


def build_api_error_payload(
    *,
    code: str,
    message: str,
    request_id: str,
    details: str | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": False,
        "error": str(message),
        "code": str(code),
        "request_id": str(request_id or "-"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if extra:
        payload.update(extra)
    if details and get_env_bool(LEADFLOW_ERROR_INCLUDE_DETAILS, default=False):
        payload["details"] = str(details)
    return payload


def error_response(request: Request, error_spec: ApiErrorSpec) -> JSONResponse:
    request_id = request_id_from_request(request)
    payload = build_api_error_payload(
        code=error_spec.code,
        message=error_spec.message,
        request_id=request_id,
        details=error_spec.details,
        extra=error_spec.extra,
    )
    return JSONResponse(payload, status_code=error_spec.status_code, headers={"X-Request-ID": request_id})


def _validation_spec(exc: RequestValidationError) -> ApiErrorSpec:
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        return ApiErrorSpec(400, ERROR_CODE_BAD_REQUEST, "Request body must be valid JSON.", details=str(errors))
    return ApiErrorSpec(
        422,
        ERROR_CODE_VALIDATION,
        "Request validation failed. Check field values and try again.",
        details=str(errors),
    )


def normalize_exception(exc: Exception) -> ApiErrorSpec:
    """Translate any exception raised while serving a request into the API error shape."""
    if isinstance(exc, RequestValidationError):
        return _validation_spec(exc)

    if isinstance(exc, DispatchError):
        return ApiErrorSpec(
            502,
            ERROR_CODE_DISPATCH_FAILED,
            "Failed to trigger the n8n workflow.",
            details=str(exc),
            extra={"jobId": exc.job_id} if exc.job_id else None,
        )

    if isinstance(exc, StarletteHTTPException):
        return ApiErrorSpec(
            int(exc.status_code),
            _HTTP_STATUS_CODES.get(int(exc.status_code), ERROR_CODE_INTERNAL),
            str(exc.detail or "HTTP request failed."),
        )

    for rule in _ERROR_RULES:
        if isinstance(exc, rule.exc_type):
            return rule.to_spec(exc)

    return ApiErrorSpec(
        500,
        ERROR_CODE_INTERNAL,
        "An unexpected error occurred. Please contact support if this continues.",
        details=f"{exc.__class__.__name__}: {exc}",
    )
