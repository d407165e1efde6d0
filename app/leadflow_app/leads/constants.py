from __future__ import annotations

REJECT_MISSING_OR_INVALID_EMAIL = "missing_or_invalid_email"
REJECT_PERSONAL_DOMAIN = "personal_domain"
REJECT_REASONS = (REJECT_MISSING_OR_INVALID_EMAIL, REJECT_PERSONAL_DOMAIN)

PERSONAL_EMAIL_DOMAINS = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "live.com",
        "icloud.com",
        "aol.com",
        "protonmail.com",
    }
)

SUPPORTED_FILE_EXTENSIONS = ("csv", "xls", "xlsx")
IMPORT_OPTION_NEW = "new"
IMPORT_OPTION_ADD = "add"
IMPORT_OPTIONS = (IMPORT_OPTION_NEW, IMPORT_OPTION_ADD)
SHEET_NAME_MAX_LENGTH = 255

FIELD_BUSINESS_EMAIL = "businessEmail"
FIELD_WEBSITE_URL = "websiteUrl"
SKIP_COLUMN = "__skip__"
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    FIELD_BUSINESS_EMAIL: (
        "Business Emails",
        "Email",
        "Business Email",
        "business_email",
        "business email",
    ),
    FIELD_WEBSITE_URL: (
        "Website URLs",
        "Website",
        "URL",
        "Website URL",
        "website_url",
        "website url",
    ),
}

# Lead row email status (shown to users).
EMAIL_STATUS_PENDING = "Pending"
EMAIL_STATUS_COMPLETED = "Completed"
EMAIL_STATUS_FAILED = "Failed"
EMAIL_STATUSES = (EMAIL_STATUS_PENDING, EMAIL_STATUS_COMPLETED, EMAIL_STATUS_FAILED)

# Per-row status inside an action run (reported by the workflow engine).
RUN_ROW_PENDING = "pending"
RUN_ROW_COMPLETED = "completed"
RUN_ROW_FAILED = "failed"
RUN_ROW_TERMINAL_STATUSES = (RUN_ROW_COMPLETED, RUN_ROW_FAILED)

RUN_STATE_CREATED = "created"
RUN_STATE_DISPATCHED = "dispatched"
RUN_STATE_DISPATCH_FAILED = "dispatch_failed"
RUN_STATE_COMPLETED = "completed"

ACTION_SEND_MAIL = "send_mail"
SUPPORTED_ACTIONS = (ACTION_SEND_MAIL,)

_RUN_ROW_TO_EMAIL_STATUS = {
    RUN_ROW_PENDING: EMAIL_STATUS_PENDING,
    RUN_ROW_COMPLETED: EMAIL_STATUS_COMPLETED,
    RUN_ROW_FAILED: EMAIL_STATUS_FAILED,
}


def run_row_status_to_email_status(status: str) -> str:
    """Map a run-row status reported by the engine to the lead row's email status."""
    try:
        return _RUN_ROW_TO_EMAIL_STATUS[status]
    except KeyError as exc:
        raise ValueError(f"Unknown run row status: {status!r}.") from exc
