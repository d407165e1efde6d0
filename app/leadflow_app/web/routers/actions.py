from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from leadflow_app.leads.actions import get_run_status, run_action
from leadflow_app.web.context import RequestContext, require_user_context
from leadflow_app.web.runtime import get_config, get_engine_client, get_repo
from leadflow_app.web.schemas import RunActionBody

router = APIRouter(prefix="/api")


@router.post("/lead-files/{sheet_id}/run-action")
def run_lead_file_action(sheet_id: int, body: RunActionBody, user: RequestContext = Depends(require_user_context)):
    config = get_config()
    result = run_action(
        get_repo(),
        get_engine_client(),
        user.user_id,
        sheet_id,
        body.action,
        row_ids=body.rowIds,
        row_count=body.rowCount,
        callback_url_base=config.callback_url_base,
        max_rows=config.action_max_rows,
    )
    return JSONResponse(result.to_payload(), status_code=201)


@router.get("/lead-files/{sheet_id}/run-status/{job_id}")
def lead_file_run_status(sheet_id: int, job_id: str, user: RequestContext = Depends(require_user_context)):
    return JSONResponse(get_run_status(get_repo(), user.user_id, sheet_id, job_id))
