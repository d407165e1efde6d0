from __future__ import annotations

from typing import Any

from leadflow_app.core.errors import NotFoundError
from leadflow_app.repository import LeadRepository

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


def require_sheet(repo: LeadRepository, user_id: str, sheet_id: int) -> dict[str, Any]:
    sheet = repo.get_sheet(user_id, sheet_id)
    if sheet is None:
        raise NotFoundError("Lead file not found.")
    return sheet


def parse_optional_bool(value: str | None, field_name: str) -> bool | None:
    text = str(value or "").strip().lower()
    if not text:
        return None
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"{field_name} must be true or false.")


def parse_optional_int(value: str | None, field_name: str) -> int | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be an integer.") from exc


def clean_cell(value: str | None) -> str | None:
    text = str(value or "").strip()
    return text or None
