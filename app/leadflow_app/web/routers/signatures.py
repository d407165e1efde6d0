from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from leadflow_app.core.errors import NotFoundError
from leadflow_app.leads.signatures import sanitize_signature_html
from leadflow_app.web.context import RequestContext, require_user_context
from leadflow_app.web.runtime import get_repo
from leadflow_app.web.schemas import SignatureCreateBody

router = APIRouter(prefix="/api")


@router.get("/signatures")
def list_signatures(user: RequestContext = Depends(require_user_context)):
    return JSONResponse(get_repo().list_signatures(user.user_id))


@router.post("/signatures")
def create_signature(body: SignatureCreateBody, user: RequestContext = Depends(require_user_context)):
    name = body.name.strip()
    if not name:
        raise ValueError("name is required")
    if not body.content.strip():
        raise ValueError("content is required")
    content = sanitize_signature_html(body.content)
    if not content:
        raise ValueError("Invalid HTML content")
    signature = get_repo().create_signature(user.user_id, name, content)
    return JSONResponse(signature, status_code=201)


@router.delete("/signatures/{signature_id}")
def delete_signature(signature_id: int, user: RequestContext = Depends(require_user_context)):
    if not get_repo().delete_signature(user.user_id, signature_id):
        raise NotFoundError("Signature not found.")
    return JSONResponse({"ok": True, "deleted": signature_id})
