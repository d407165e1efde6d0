from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import re
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from leadflow_app.core.env import (
    LEADFLOW_PERF_LOG_ENABLED,
    LEADFLOW_REQUEST_ID_HEADER_ENABLED,
    LEADFLOW_SECURITY_HEADERS_ENABLED,
    LEADFLOW_SLOW_QUERY_MS,
    get_env_bool,
    get_env_float,
)
from leadflow_app.infrastructure.db import (
    RequestPerf,
    clear_request_perf_context,
    get_request_perf_context,
    start_request_perf_context,
)
from leadflow_app.infrastructure.local_db_bootstrap import ensure_local_db_ready
from leadflow_app.infrastructure.logging import setup_app_logging
from leadflow_app.web.errors import ApiErrorSpec, error_response, normalize_exception
from leadflow_app.web.routers import router as api_router
from leadflow_app.web.runtime import get_config, get_repo

LOGGER = logging.getLogger(__name__)
PERF_LOGGER = logging.getLogger("leadflow_app.perf")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
_INBOUND_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")


def _request_id_for(request: Request) -> str:
    # n8n and proxies may send their own id; keep it when it is well formed.
    inbound = str(request.headers.get("x-request-id", "")).strip()
    if _INBOUND_REQUEST_ID.fullmatch(inbound):
        return inbound
    return uuid.uuid4().hex[:12]


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return str(getattr(route, "path", "") or request.url.path or "/")


def _log_api_error(request: Request, exc: Exception, error_spec: ApiErrorSpec) -> None:
    server_side = error_spec.status_code >= 500
    (LOGGER.error if server_side else LOGGER.warning)(
        "API request failed. code=%s status=%s %s %s",
        error_spec.code,
        error_spec.status_code,
        request.method,
        request.url.path,
        exc_info=exc if server_side else None,
        extra={
            "event": "api_error",
            "error_code": error_spec.code,
            "status_code": error_spec.status_code,
            "user_id": getattr(request.state, "user_id", None),
        },
    )


def _log_request_perf(request: Request, status_code: int, elapsed_ms: float, perf: RequestPerf) -> None:
    route = _route_label(request)
    PERF_LOGGER.info(
        "request_perf method=%s path=%s status=%s total_ms=%.2f db_calls=%s db_ms=%.2f db_max_ms=%.2f db_errors=%s",
        request.method,
        route,
        status_code,
        elapsed_ms,
        perf.db_calls,
        perf.db_total_ms,
        perf.db_max_ms,
        perf.db_errors,
        extra={"event": "request_perf", "path": route, "status_code": status_code},
    )
    for query in perf.slow_queries:
        PERF_LOGGER.warning(
            "request_slow_sql op=%s ms=%.2f rows=%s hash=%s sql=%s",
            query["operation"],
            query["elapsed_ms"],
            query["rows"],
            query["sql_hash"],
            query["sql"],
            extra={"event": "request_slow_sql", "path": route},
        )


def create_app() -> FastAPI:
    setup_app_logging()
    perf_enabled = get_env_bool(LEADFLOW_PERF_LOG_ENABLED, default=False)
    echo_request_id = get_env_bool(LEADFLOW_REQUEST_ID_HEADER_ENABLED, default=True)
    slow_query_ms = get_env_float(LEADFLOW_SLOW_QUERY_MS, default=750.0, min_value=1.0)

    @asynccontextmanager
    async def _lifespan(_app: FastAPI):
        config = get_config()
        ensure_local_db_ready(config)
        LOGGER.info(
            "Leadflow API starting. env=%s database=%s",
            config.env,
            "sqlite" if config.use_local_db else "postgres",
            extra={"event": "app_startup"},
        )
        yield
        if get_repo.cache_info().currsize:
            get_repo.cache_clear()

    app = FastAPI(title="Leadflow", lifespan=_lifespan)

    if get_env_bool(LEADFLOW_SECURITY_HEADERS_ENABLED, default=True):

        @app.middleware("http")
        async def _security_headers(request: Request, call_next):
            response = await call_next(request)
            for header, value in SECURITY_HEADERS.items():
                response.headers.setdefault(header, value)
            return response

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        request_id = _request_id_for(request)
        request.state.request_id = request_id
        token = start_request_perf_context(
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            slow_query_ms=slow_query_ms,
        )
        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                error_spec = normalize_exception(exc)
                _log_api_error(request, exc, error_spec)
                response = error_response(request, error_spec)
            perf = get_request_perf_context()
            if perf_enabled and perf is not None:
                elapsed_ms = (time.perf_counter() - started) * 1000.0
                _log_request_perf(request, response.status_code, elapsed_ms, perf)
            if echo_request_id:
                response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_perf_context(token)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        error_spec = normalize_exception(exc)
        _log_api_error(request, exc, error_spec)
        return error_response(request, error_spec)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(request, normalize_exception(exc))

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception):
        error_spec = normalize_exception(exc)
        _log_api_error(request, exc, error_spec)
        return error_response(request, error_spec)

    app.include_router(api_router)
    return app
