from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response

from leadflow_app.core.errors import NotFoundError
from leadflow_app.leads.columns import suggest_mapping
from leadflow_app.leads.export import build_export
from leadflow_app.leads.import_pipeline import import_lead_file, validate_sheet_name
from leadflow_app.leads.parsing import parse_headers
from leadflow_app.web.context import RequestContext, require_user_context
from leadflow_app.web.routers.common import parse_optional_bool, parse_optional_int, require_sheet
from leadflow_app.web.runtime import get_config, get_repo
from leadflow_app.web.schemas import SheetCreateBody, SheetDeleteBody, SheetUpdateBody

router = APIRouter(prefix="/api")


def _require_signature(repo, user_id: str, signature_id: int | None) -> None:
    if signature_id is not None and repo.get_signature(user_id, signature_id) is None:
        raise ValueError("Signature not found.")


@router.get("/lead-files")
def list_lead_files(user: RequestContext = Depends(require_user_context)):
    repo = get_repo()
    return JSONResponse(repo.list_sheets(user.user_id))


@router.post("/lead-files")
def create_lead_file(body: SheetCreateBody, user: RequestContext = Depends(require_user_context)):
    repo = get_repo()
    sheet_name = validate_sheet_name(body.sheetName)
    _require_signature(repo, user.user_id, body.signatureId)
    sheet = repo.create_sheet(user.user_id, sheet_name, signature_id=body.signatureId)
    return JSONResponse(sheet, status_code=201)


@router.delete("/lead-files")
def delete_lead_files(body: SheetDeleteBody, user: RequestContext = Depends(require_user_context)):
    requested = body.requested_ids()
    if not requested:
        raise ValueError("Provide ids or id of the lead files to delete.")
    deleted = get_repo().delete_sheets(user.user_id, requested)
    if deleted == 0:
        raise NotFoundError("No matching lead files found.")
    return JSONResponse({"success": True, "deletedCount": deleted})


@router.patch("/lead-files/{sheet_id}")
def update_lead_file(sheet_id: int, body: SheetUpdateBody, user: RequestContext = Depends(require_user_context)):
    repo = get_repo()
    require_sheet(repo, user.user_id, sheet_id)
    updates = {}
    if "sheetName" in body.model_fields_set:
        updates["sheet_name"] = validate_sheet_name(body.sheetName)
    if "signatureId" in body.model_fields_set:
        _require_signature(repo, user.user_id, body.signatureId)
        updates["signature_id"] = body.signatureId
    if not updates:
        raise ValueError("Provide sheetName or signatureId to update.")
    sheet = repo.update_sheet(user.user_id, sheet_id, updates)
    if sheet is None:
        raise NotFoundError("Lead file not found.")
    return JSONResponse(sheet)


@router.post("/lead-files/parse-headers")
def parse_lead_file_headers(
    file: UploadFile = File(...),
    user: RequestContext = Depends(require_user_context),
):
    headers = parse_headers(file.file.read(), file.filename or "")
    return JSONResponse({"headers": headers, "suggestedMapping": suggest_mapping(headers)})


@router.post("/lead-files/import")
def import_lead_file_route(
    file: UploadFile = File(...),
    option: str = Form("new"),
    sheetName: str | None = Form(None),
    targetLeadFileId: str | None = Form(None),
    signatureId: str | None = Form(None),
    mapping: str | None = Form(None),
    user: RequestContext = Depends(require_user_context),
):
    summary = import_lead_file(
        get_repo(),
        user.user_id,
        file.file.read(),
        file.filename or "",
        option,
        sheet_name=sheetName,
        target_sheet_id=parse_optional_int(targetLeadFileId, "targetLeadFileId"),
        mapping=mapping,
        signature_id=parse_optional_int(signatureId, "signatureId"),
        chunk_size=get_config().import_chunk_size,
    )
    return JSONResponse(summary.to_payload(), status_code=201)


@router.get("/lead-files/{sheet_id}/export")
def export_lead_file(
    sheet_id: int,
    format: str = "csv",
    includeHeaders: str | None = None,
    user: RequestContext = Depends(require_user_context),
):
    repo = get_repo()
    sheet = require_sheet(repo, user.user_id, sheet_id)
    include_headers = parse_optional_bool(includeHeaders, "includeHeaders")
    export = build_export(
        repo.export_rows(sheet_id),
        sheet["sheetName"],
        export_format=format,
        include_headers=True if include_headers is None else include_headers,
    )
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.file_name}"'},
    )
