from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import urlsplit

LOGGER = logging.getLogger(__name__)

WEBSITE_NAME_MAX_LENGTH = 255
INTELLIGENCE_KEYS = ("company_intelligence", "companyIntelligence")

# Plain text columns of the company profile; a missing value clears the column.
PROFILE_TEXT_FIELDS = {
    "companyName": "company_name",
    "companyType": "company_type",
    "theHook": "the_hook",
    "whatTheyDo": "what_they_do",
    "valueProposition": "value_proposition",
}
# JSON columns (string or list); a missing value keeps what is stored.
PROFILE_JSON_FIELDS = {
    "industryExpertise": "industry_expertise",
    "fullTechSummary": "full_tech_summary",
    "serviceCatalog": "service_catalog",
    "brandTone": "brand_tone",
}


def validate_website(website_name: Any, website_url: Any) -> tuple[str, str]:
    name = str(website_name or "").strip()
    if not name:
        raise ValueError("websiteName is required.")
    if len(name) > WEBSITE_NAME_MAX_LENGTH:
        raise ValueError(f"websiteName must be at most {WEBSITE_NAME_MAX_LENGTH} characters.")
    url = str(website_url or "").strip()
    parts = urlsplit(url)
    if parts.scheme.lower() not in {"http", "https"} or not parts.netloc:
        raise ValueError("websiteUrl must be an absolute http(s) URL.")
    return name, url


def normalize_extracted_data(answer: Any) -> Any:
    """Unwrap the lookup answer to ``[{"company_intelligence": {...}}, ...]`` where possible.

    The workflow answers either ``{"data": ...}`` or the payload itself, and
    sometimes a single intelligence object instead of a list of them.
    """
    data = answer
    if isinstance(answer, dict) and answer.get("data") is not None:
        data = answer["data"]
    if isinstance(data, dict) and any(key in data for key in INTELLIGENCE_KEYS):
        return [data]
    return data


def submit_website(repo: Any, engine: Any, user_id: str, website_name: Any, website_url: Any) -> dict[str, Any]:
    name, url = validate_website(website_name, website_url)
    # DispatchError propagates; nothing is stored when the lookup fails.
    answer = engine.request_json({"websiteName": name, "websiteUrl": url})
    extracted = normalize_extracted_data(answer)
    submission = repo.create_website_submission(user_id, name, url, extracted)
    LOGGER.info(
        "Stored company lookup %s for %s.",
        submission["id"],
        url,
        extra={"event": "website_submission_stored", "user_id": user_id, "submission_id": submission["id"]},
    )
    return {"submission": submission, "data": extracted}


def save_company_profile(repo: Any, user_id: str, values: Mapping[str, Any]) -> dict[str, Any]:
    """Create the user's company profile, or update the latest one in place."""
    name, url = validate_website(values.get("websiteName"), values.get("websiteUrl"))
    columns: dict[str, Any] = {"website_name": name, "website_url": url}
    for key, column in PROFILE_TEXT_FIELDS.items():
        text = str(values[key]).strip() if values.get(key) is not None else ""
        columns[column] = text or None
    latest = repo.get_latest_company_info(user_id)
    for key, column in PROFILE_JSON_FIELDS.items():
        value = values.get(key)
        if value is not None:
            columns[column] = value
        elif latest is None:
            columns[column] = None

    if latest is None:
        return repo.create_company_info(user_id, columns)
    return repo.update_company_info(user_id, int(latest["id"]), columns)
