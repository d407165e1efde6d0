from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Any

from leadflow_app.leads.constants import (
    PERSONAL_EMAIL_DOMAINS,
    REJECT_MISSING_OR_INVALID_EMAIL,
    REJECT_PERSONAL_DOMAIN,
)

_EMAIL_SHAPE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


@dataclass(frozen=True)
class Classification:
    eligible: bool
    reason: str | None = None


ELIGIBLE = Classification(eligible=True)


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].strip().lower()


def classify(business_email: Any, website_url: Any = None) -> Classification:
    """Decide whether a spreadsheet row can be imported.

    Only the email decides eligibility; the website URL is carried along
    untouched. Never raises.
    """
    if not isinstance(business_email, str):
        return Classification(eligible=False, reason=REJECT_MISSING_OR_INVALID_EMAIL)
    email = business_email.strip()
    if not email or _EMAIL_SHAPE.fullmatch(email) is None:
        return Classification(eligible=False, reason=REJECT_MISSING_OR_INVALID_EMAIL)
    if email_domain(email) in PERSONAL_EMAIL_DOMAINS:
        return Classification(eligible=False, reason=REJECT_PERSONAL_DOMAIN)
    return ELIGIBLE
