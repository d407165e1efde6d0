from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from leadflow_app.leads.actions import apply_callback
from leadflow_app.web.runtime import get_repo
from leadflow_app.web.schemas import CallbackBody

router = APIRouter(prefix="/api")


# The callback token is the only credential; no user context applies here.
@router.post("/n8n-callback")
def n8n_callback(body: CallbackBody, token: str = ""):
    apply_callback(get_repo(), token, body.rowId, body.status)
    return JSONResponse({"ok": True})
