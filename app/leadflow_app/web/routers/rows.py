from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from leadflow_app.core.errors import NotFoundError
from leadflow_app.leads.reindex import reindex_sheet
from leadflow_app.repository_rows import ROW_PAGE_SIZE_MAX, ROW_SORT_COLUMNS
from leadflow_app.web.context import RequestContext, require_user_context
from leadflow_app.web.routers.common import clean_cell, parse_optional_bool, require_sheet
from leadflow_app.web.runtime import get_repo
from leadflow_app.web.schemas import RowsCreateBody, RowsDeleteBody, RowUpdateBody

router = APIRouter(prefix="/api")


@router.get("/lead-files/{sheet_id}/rows")
def list_lead_rows(
    sheet_id: int,
    page: int = 1,
    pageSize: int = 50,
    search: str = "",
    sortBy: str = "rowIndex",
    sortOrder: str = "asc",
    hasEmail: str | None = None,
    hasUrl: str | None = None,
    emailStatus: str | None = None,
    hasReplied: str | None = None,
    user: RequestContext = Depends(require_user_context),
):
    if page < 1:
        raise ValueError("page must be at least 1.")
    if pageSize < 1 or pageSize > ROW_PAGE_SIZE_MAX:
        raise ValueError(f"pageSize must be between 1 and {ROW_PAGE_SIZE_MAX}.")
    if sortBy not in ROW_SORT_COLUMNS:
        raise ValueError(f"sortBy must be one of: {', '.join(ROW_SORT_COLUMNS)}.")
    sort_order = sortOrder.strip().lower()
    if sort_order not in {"asc", "desc"}:
        raise ValueError("sortOrder must be asc or desc.")

    repo = get_repo()
    require_sheet(repo, user.user_id, sheet_id)
    rows, total = repo.list_rows(
        sheet_id,
        page=page,
        page_size=pageSize,
        search=search,
        sort_by=sortBy,
        sort_order=sort_order,
        has_email=parse_optional_bool(hasEmail, "hasEmail"),
        has_url=parse_optional_bool(hasUrl, "hasUrl"),
        email_status=(emailStatus or "").strip() or None,
        has_replied=parse_optional_bool(hasReplied, "hasReplied"),
    )
    return JSONResponse({"rows": rows, "total": total})


@router.post("/lead-files/{sheet_id}/rows")
def add_lead_rows(sheet_id: int, body: RowsCreateBody, user: RequestContext = Depends(require_user_context)):
    repo = get_repo()
    require_sheet(repo, user.user_id, sheet_id)
    if body.rows is not None:
        if not body.rows:
            raise ValueError("rows must not be empty.")
        created = repo.add_rows(
            sheet_id,
            [(clean_cell(item.businessEmail), clean_cell(item.websiteUrl)) for item in body.rows],
        )
        return JSONResponse({"rows": created}, status_code=201)

    email, website = clean_cell(body.businessEmail), clean_cell(body.websiteUrl)
    if email is None and website is None:
        raise ValueError("businessEmail or websiteUrl is required.")
    created = repo.add_rows(sheet_id, [(email, website)])
    return JSONResponse(created[0], status_code=201)


@router.patch("/lead-files/{sheet_id}/rows/{row_id}")
def update_lead_row(
    sheet_id: int,
    row_id: int,
    body: RowUpdateBody,
    user: RequestContext = Depends(require_user_context),
):
    repo = get_repo()
    require_sheet(repo, user.user_id, sheet_id)
    updates = {}
    if "businessEmail" in body.model_fields_set:
        updates["business_email"] = clean_cell(body.businessEmail)
    if "websiteUrl" in body.model_fields_set:
        updates["website_url"] = clean_cell(body.websiteUrl)
    if "hasReplied" in body.model_fields_set:
        updates["has_replied"] = body.hasReplied
    if not updates:
        raise ValueError("Provide businessEmail or websiteUrl to update.")
    row = repo.update_row(sheet_id, row_id, updates)
    if row is None:
        raise NotFoundError("Row not found.")
    return JSONResponse(row)


@router.delete("/lead-files/{sheet_id}/rows")
def delete_lead_rows(sheet_id: int, body: RowsDeleteBody, user: RequestContext = Depends(require_user_context)):
    if not body.ids:
        raise ValueError("ids must not be empty.")
    repo = get_repo()
    require_sheet(repo, user.user_id, sheet_id)
    deleted = repo.delete_rows(sheet_id, body.ids)
    return JSONResponse({"deleted": deleted})


@router.post("/lead-files/{sheet_id}/rows/reindex")
def reindex_lead_rows(sheet_id: int, user: RequestContext = Depends(require_user_context)):
    updated = reindex_sheet(get_repo(), user.user_id, sheet_id)
    return JSONResponse({"ok": True, "updated": updated})
