from __future__ import annotations

from collections.abc import Iterable
import re

import bleach

_ALLOWED_TAGS: list[str] = [
    "a",
    "b",
    "strong",
    "i",
    "em",
    "u",
    "p",
    "br",
    "div",
    "span",
    "small",
    "sub",
    "sup",
    "ul",
    "ol",
    "li",
    "h1",
    "h2",
    "h3",
    "h4",
    "blockquote",
    "hr",
    "table",
    "thead",
    "tbody",
    "tr",
    "th",
    "td",
    "img",
]

_ALLOWED_ATTRS: dict[str, Iterable[str]] = {
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "title", "width", "height"],
    "td": ["colspan", "rowspan", "align", "valign"],
    "th": ["colspan", "rowspan", "align", "valign"],
    "table": ["cellpadding", "cellspacing", "border", "width"],
}

_ALLOWED_PROTOCOLS = ["http", "https", "mailto", "tel"]

# bleach keeps the text of stripped tags; these are dropped with their content.
_DROP_WITH_CONTENT = re.compile(
    r"<(script|style|iframe|object|embed|form)\b[^>]*>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)


def sanitize_signature_html(content: str) -> str:
    """Return signature HTML safe to store and send, or "" if nothing survives."""
    if not isinstance(content, str) or not content.strip():
        return ""
    without_blocks = _DROP_WITH_CONTENT.sub("", content)
    cleaned = bleach.clean(
        without_blocks,
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRS,
        protocols=_ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    return cleaned.strip()
