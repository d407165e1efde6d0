from __future__ import annotations

from dataclasses import dataclass, field
import logging
import secrets
from typing import Any, Sequence
import uuid

from leadflow_app.core.errors import DispatchError, NotFoundError
from leadflow_app.leads.constants import (
    ACTION_SEND_MAIL,
    RUN_ROW_PENDING,
    RUN_ROW_TERMINAL_STATUSES,
    RUN_STATE_COMPLETED,
    RUN_STATE_DISPATCH_FAILED,
    RUN_STATE_DISPATCHED,
    SUPPORTED_ACTIONS,
    run_row_status_to_email_status,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 500


@dataclass(frozen=True)
class RunResult:
    job_id: str
    state: str
    statuses: dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {"jobId": self.job_id, "state": self.state, "statuses": dict(self.statuses)}


def _coerce_row_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("Row ids must be integers.")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError("Row ids must be integers.") from exc


def select_target_rows(
    repo: Any,
    sheet_id: int,
    row_ids: Sequence[Any] | None,
    row_count: int | None,
    *,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> list[dict[str, Any]]:
    if row_ids:
        requested = list(dict.fromkeys(_coerce_row_id(value) for value in row_ids))[:max_rows]
        rows = repo.rows_for_action_by_ids(sheet_id, requested)
    elif row_count is not None:
        if int(row_count) <= 0:
            raise ValueError("rowCount must be a positive integer.")
        rows = repo.first_rows_for_action(sheet_id, min(int(row_count), max_rows))
    else:
        raise ValueError("Provide rowIds or rowCount to specify which rows to run.")
    if not rows:
        raise ValueError("No rows of this lead file match the selection.")
    return rows


def run_action(
    repo: Any,
    engine: Any,
    user_id: str,
    sheet_id: int,
    action: str,
    row_ids: Sequence[Any] | None = None,
    row_count: int | None = None,
    *,
    callback_url_base: str,
    max_rows: int = DEFAULT_MAX_ROWS,
) -> RunResult:
    """Persist an action run for the selected rows and hand it to the workflow engine.

    A failed hand-off keeps the run, marked ``dispatch_failed``, and raises
    DispatchError carrying the job id.
    """
    action_clean = str(action or ACTION_SEND_MAIL).strip()
    if action_clean not in SUPPORTED_ACTIONS:
        raise ValueError("Only send_mail action is supported.")

    sheet = repo.get_sheet(user_id, sheet_id)
    if sheet is None:
        raise NotFoundError("Lead file not found.")

    rows = select_target_rows(repo, sheet_id, row_ids, row_count, max_rows=max_rows)
    target_ids = [int(row["id"]) for row in rows]

    signature: dict[str, Any] = {"id": None, "name": None, "content": ""}
    if sheet.get("signatureId") is not None:
        found = repo.get_signature(user_id, sheet["signatureId"])
        if found is not None:
            signature = {"id": found["id"], "name": found["name"], "content": found["content"]}

    job_id = str(uuid.uuid4())
    callback_token = secrets.token_urlsafe(32)
    repo.create_action_run(
        run_id=job_id,
        sheet_id=sheet_id,
        user_id=user_id,
        action=action_clean,
        callback_token=callback_token,
        row_ids=target_ids,
    )

    payload = {
        "userId": user_id,
        "leadSheetId": sheet_id,
        "jobId": job_id,
        "callbackUrl": f"{callback_url_base}?token={callback_token}",
        "callbackToken": callback_token,
        "signatureContent": signature["content"],
        "signature": signature,
        "rowCount": len(rows),
        "leads": [
            {
                "row_id": int(row["id"]),
                "businessEmail": row.get("business_email"),
                "websiteUrl": row.get("website_url"),
            }
            for row in rows
        ],
    }
    try:
        engine.dispatch(payload)
    except Exception as exc:
        # The run row already exists; it must never stay in "created".
        message = str(exc) if isinstance(exc, DispatchError) else f"Workflow engine dispatch failed ({type(exc).__name__})."
        repo.set_action_run_state(job_id, RUN_STATE_DISPATCH_FAILED, message)
        LOGGER.warning(
            "Dispatch of job %s failed: %s",
            job_id,
            message,
            exc_info=not isinstance(exc, DispatchError),
            extra={"event": "action_dispatch_failed", "job_id": job_id, "sheet_id": sheet_id},
        )
        raise DispatchError(message, job_id=job_id) from exc

    repo.set_action_run_state(job_id, RUN_STATE_DISPATCHED)
    LOGGER.info(
        "Dispatched job %s with %s rows.",
        job_id,
        len(target_ids),
        extra={"event": "action_dispatched", "job_id": job_id, "sheet_id": sheet_id, "user_id": user_id},
    )
    return RunResult(
        job_id=job_id,
        state=RUN_STATE_DISPATCHED,
        statuses={str(row_id): RUN_ROW_PENDING for row_id in target_ids},
    )


def apply_callback(repo: Any, token: str, row_id: Any, status: str) -> dict[str, Any]:
    token_clean = str(token or "").strip()
    if not token_clean:
        raise ValueError("Callback token is required.")
    status_clean = str(status or "").strip().lower()
    if status_clean not in RUN_ROW_TERMINAL_STATUSES:
        raise ValueError("status must be one of: completed, failed.")
    row_id_clean = _coerce_row_id(row_id)

    run = repo.get_action_run_by_token(token_clean)
    if run is None:
        raise NotFoundError("Unknown callback token.")
    job_id = str(run["id"])
    if not repo.update_action_run_row(job_id, row_id_clean, status_clean):
        raise NotFoundError("Row is not part of this job.")

    try:
        repo.set_row_email_status(row_id_clean, run_row_status_to_email_status(status_clean))
    except Exception:
        LOGGER.warning(
            "Could not mirror callback status onto lead row %s of job %s.",
            row_id_clean,
            job_id,
            exc_info=True,
            extra={"event": "callback_row_status_failed", "job_id": job_id, "row_id": row_id_clean},
        )
    return {"jobId": job_id, "rowId": row_id_clean, "status": status_clean}


def get_run_status(repo: Any, user_id: str, sheet_id: int, job_id: str) -> dict[str, Any]:
    run = repo.get_action_run(user_id, sheet_id, job_id)
    if run is None:
        raise NotFoundError("Job not found.")
    run_rows = repo.list_action_run_rows(job_id)
    statuses = {str(item["row_id"]): item["status"] for item in run_rows}
    all_terminal = bool(run_rows) and all(item["status"] in RUN_ROW_TERMINAL_STATUSES for item in run_rows)
    return {
        "jobId": job_id,
        "state": str(run["state"]),
        "statuses": statuses,
        "rowIds": [item["row_id"] for item in run_rows],
        "isComplete": all_terminal or run["state"] == RUN_STATE_COMPLETED,
    }
