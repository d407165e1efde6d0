from __future__ import annotations

from typing import Any, Mapping, Sequence

from leadflow_app.leads.constants import COLUMN_ALIASES, SKIP_COLUMN


def _header_text(header: Any) -> str:
    if header is None:
        return ""
    return str(header)


def resolve_header_index(
    headers: Sequence[Any],
    aliases: Sequence[str],
    explicit_mapping: str | None = None,
) -> int:
    """Return the column index for a field, or -1 when it is not present.

    An explicit mapping must match a header exactly; aliases are tried in
    priority order and match case-insensitively after trimming.
    """
    if explicit_mapping == SKIP_COLUMN:
        return -1
    texts = [_header_text(header) for header in headers]
    if isinstance(explicit_mapping, str) and explicit_mapping:
        for index, text in enumerate(texts):
            if text == explicit_mapping:
                return index
    normalized = [text.strip().lower() for text in texts]
    for alias in aliases:
        wanted = alias.strip().lower()
        for index, text in enumerate(normalized):
            if text == wanted:
                return index
    return -1


def resolve_columns(
    headers: Sequence[Any],
    mapping: Mapping[str, Any] | None = None,
) -> dict[str, int]:
    explicit = mapping or {}
    resolved: dict[str, int] = {}
    for field_key, aliases in COLUMN_ALIASES.items():
        value = explicit.get(field_key)
        resolved[field_key] = resolve_header_index(
            headers,
            aliases,
            value if isinstance(value, str) else None,
        )
    return resolved


def suggest_mapping(headers: Sequence[Any]) -> dict[str, str]:
    suggestions: dict[str, str] = {}
    for field_key, aliases in COLUMN_ALIASES.items():
        index = resolve_header_index(headers, aliases)
        suggestions[field_key] = _header_text(headers[index]) if index >= 0 else ""
    return suggestions
