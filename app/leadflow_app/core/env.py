from __future__ import annotations

import os

LEADFLOW_ENV = "LEADFLOW_ENV"
LEADFLOW_USE_LOCAL_DB = "LEADFLOW_USE_LOCAL_DB"
LEADFLOW_LOCAL_DB_PATH = "LEADFLOW_LOCAL_DB_PATH"
LEADFLOW_LOCAL_DB_AUTO_INIT = "LEADFLOW_LOCAL_DB_AUTO_INIT"
LEADFLOW_LOCAL_DB_RESET_ON_START = "LEADFLOW_LOCAL_DB_RESET_ON_START"
LEADFLOW_DATABASE_URL = "LEADFLOW_DATABASE_URL"
SUPABASE_DB_URL = "SUPABASE_DB_URL"
LEADFLOW_DB_SCHEMA = "LEADFLOW_DB_SCHEMA"
LEADFLOW_DB_CONNECT_TIMEOUT_SEC = "LEADFLOW_DB_CONNECT_TIMEOUT_SEC"
LEADFLOW_SLOW_QUERY_MS = "LEADFLOW_SLOW_QUERY_MS"
LEADFLOW_SQL_TRACE_ENABLED = "LEADFLOW_SQL_TRACE_ENABLED"

LEADFLOW_N8N_SEND_MAIL_WEBHOOK_URL = "LEADFLOW_N8N_SEND_MAIL_WEBHOOK_URL"
LEADFLOW_N8N_TIMEOUT_SEC = "LEADFLOW_N8N_TIMEOUT_SEC"
LEADFLOW_N8N_COMPANY_INFO_WEBHOOK_URL = "LEADFLOW_N8N_COMPANY_INFO_WEBHOOK_URL"
LEADFLOW_N8N_COMPANY_INFO_TIMEOUT_SEC = "LEADFLOW_N8N_COMPANY_INFO_TIMEOUT_SEC"
LEADFLOW_PUBLIC_BASE_URL = "LEADFLOW_PUBLIC_BASE_URL"
LEADFLOW_IMPORT_CHUNK_SIZE = "LEADFLOW_IMPORT_CHUNK_SIZE"
LEADFLOW_ACTION_MAX_ROWS = "LEADFLOW_ACTION_MAX_ROWS"

LEADFLOW_LOG_LEVEL = "LEADFLOW_LOG_LEVEL"
LEADFLOW_LOG_JSON = "LEADFLOW_LOG_JSON"
LEADFLOW_LOG_CAPTURE_ROOT = "LEADFLOW_LOG_CAPTURE_ROOT"
LEADFLOW_PERF_LOG_ENABLED = "LEADFLOW_PERF_LOG_ENABLED"
LEADFLOW_ERROR_INCLUDE_DETAILS = "LEADFLOW_ERROR_INCLUDE_DETAILS"
LEADFLOW_REQUEST_ID_HEADER_ENABLED = "LEADFLOW_REQUEST_ID_HEADER_ENABLED"
LEADFLOW_SECURITY_HEADERS_ENABLED = "LEADFLOW_SECURITY_HEADERS_ENABLED"

LEADFLOW_TRUST_FORWARDED_IDENTITY_HEADERS = "LEADFLOW_TRUST_FORWARDED_IDENTITY_HEADERS"
LEADFLOW_FORWARDED_USER_HEADER = "LEADFLOW_FORWARDED_USER_HEADER"
LEADFLOW_FORWARDED_ROLE_HEADER = "LEADFLOW_FORWARDED_ROLE_HEADER"
LEADFLOW_TEST_USER = "LEADFLOW_TEST_USER"
LEADFLOW_TEST_ROLE = "LEADFLOW_TEST_ROLE"

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}


def get_env(name: str, default: str = "") -> str:
    value = os.getenv(name)
    if value is None:
        return default
    return str(value).strip()


def get_env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or not str(value).strip():
        return default
    return str(value).strip().lower() in _TRUE_VALUES


def get_env_int(name: str, default: int, min_value: int | None = None) -> int:
    try:
        parsed = int(get_env(name, ""))
    except ValueError:
        parsed = int(default)
    if min_value is not None:
        parsed = max(int(min_value), parsed)
    return parsed


def get_env_float(name: str, default: float, min_value: float | None = None) -> float:
    try:
        parsed = float(get_env(name, ""))
    except ValueError:
        parsed = float(default)
    if min_value is not None:
        parsed = max(float(min_value), parsed)
    return parsed
