from __future__ import annotations

import sys
from pathlib import Path

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from leadflow_app.leads.columns import resolve_columns, resolve_header_index, suggest_mapping
from leadflow_app.leads.constants import COLUMN_ALIASES, FIELD_BUSINESS_EMAIL, FIELD_WEBSITE_URL, SKIP_COLUMN

EMAIL_ALIASES = COLUMN_ALIASES[FIELD_BUSINESS_EMAIL]


def test_explicit_mapping_wins_over_aliases() -> None:
    headers = ["Email", "Contact"]
    assert resolve_header_index(headers, EMAIL_ALIASES, "Contact") == 1


def test_explicit_mapping_is_exact_match_then_falls_back_to_aliases() -> None:
    headers = ["Email", "Contact"]
    assert resolve_header_index(headers, EMAIL_ALIASES, "contact") == 0


def test_skip_sentinel_disables_the_field() -> None:
    assert resolve_header_index(["Email"], EMAIL_ALIASES, SKIP_COLUMN) == -1


def test_aliases_are_tried_in_priority_order() -> None:
    headers = ["business_email", "Email", "Business Emails"]
    assert resolve_header_index(headers, EMAIL_ALIASES) == 2


def test_alias_match_trims_and_ignores_case() -> None:
    assert resolve_header_index(["  EMAIL "], EMAIL_ALIASES) == 0


def test_first_matching_header_wins_for_duplicates() -> None:
    assert resolve_header_index(["Email", "Email"], EMAIL_ALIASES) == 0


def test_missing_column_resolves_to_minus_one() -> None:
    assert resolve_header_index(["Name", "Phone"], EMAIL_ALIASES) == -1
    assert resolve_header_index([], EMAIL_ALIASES) == -1


def test_none_headers_are_tolerated() -> None:
    assert resolve_header_index([None, "Website"], COLUMN_ALIASES[FIELD_WEBSITE_URL]) == 1


def test_resolve_columns_ignores_non_string_mapping_values() -> None:
    headers = ["Company", "Email", "URL"]
    resolved = resolve_columns(headers, {FIELD_BUSINESS_EMAIL: 3, FIELD_WEBSITE_URL: None, "other": "Company"})
    assert resolved == {FIELD_BUSINESS_EMAIL: 1, FIELD_WEBSITE_URL: 2}


def test_resolve_columns_with_explicit_mapping_and_skip() -> None:
    headers = ["Mail", "Site"]
    resolved = resolve_columns(headers, {FIELD_BUSINESS_EMAIL: "Mail", FIELD_WEBSITE_URL: SKIP_COLUMN})
    assert resolved == {FIELD_BUSINESS_EMAIL: 0, FIELD_WEBSITE_URL: -1}


def test_suggest_mapping_returns_header_text_or_blank() -> None:
    assert suggest_mapping(["Business Email", "Phone"]) == {
        FIELD_BUSINESS_EMAIL: "Business Email",
        FIELD_WEBSITE_URL: "",
    }
