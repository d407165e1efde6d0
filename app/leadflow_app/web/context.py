from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from starlette.exceptions import HTTPException

from leadflow_app.core.env import (
    LEADFLOW_FORWARDED_ROLE_HEADER,
    LEADFLOW_FORWARDED_USER_HEADER,
    LEADFLOW_TEST_ROLE,
    LEADFLOW_TEST_USER,
    get_env,
)
from leadflow_app.web.runtime import get_config, trust_forwarded_identity_headers

DEFAULT_FORWARDED_USER_HEADER = "x-forwarded-user-id"
DEFAULT_FORWARDED_ROLE_HEADER = "x-forwarded-role"
DEFAULT_ROLE = "user"


@dataclass(frozen=True)
class RequestContext:
    user_id: str
    role: str = DEFAULT_ROLE


def sanitize_header_identity_value(value: str) -> str:
    text = str(value or "").strip()
    if not text:
        return ""
    if any(ch in text for ch in ("\r", "\n", "\t", "\x00")):
        return ""
    if len(text) > 320:
        return ""
    return text


def resolve_request_context(request: Request) -> RequestContext | None:
    config = get_config()
    if trust_forwarded_identity_headers(config):
        user_header = get_env(LEADFLOW_FORWARDED_USER_HEADER, DEFAULT_FORWARDED_USER_HEADER) or DEFAULT_FORWARDED_USER_HEADER
        role_header = get_env(LEADFLOW_FORWARDED_ROLE_HEADER, DEFAULT_FORWARDED_ROLE_HEADER) or DEFAULT_FORWARDED_ROLE_HEADER
        user_id = sanitize_header_identity_value(request.headers.get(user_header, ""))
        if user_id:
            role = sanitize_header_identity_value(request.headers.get(role_header, "")) or DEFAULT_ROLE
            return RequestContext(user_id=user_id, role=role)
    if config.is_dev_env:
        test_user = sanitize_header_identity_value(get_env(LEADFLOW_TEST_USER, ""))
        if test_user:
            return RequestContext(user_id=test_user, role=get_env(LEADFLOW_TEST_ROLE, DEFAULT_ROLE) or DEFAULT_ROLE)
    return None


def require_user_context(request: Request) -> RequestContext:
    """FastAPI dependency for routes that act on behalf of a signed-in user."""
    context = resolve_request_context(request)
    if context is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    request.state.user_id = context.user_id
    return context
