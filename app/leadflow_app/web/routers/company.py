from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from leadflow_app.leads.company_info import save_company_profile, submit_website
from leadflow_app.web.context import RequestContext, require_user_context
from leadflow_app.web.runtime import get_company_info_client, get_repo
from leadflow_app.web.schemas import CompanyInfoBody, WebsiteInfoBody

router = APIRouter(prefix="/api")


@router.post("/website-info")
def submit_website_info(body: WebsiteInfoBody, user: RequestContext = Depends(require_user_context)):
    result = submit_website(get_repo(), get_company_info_client(), user.user_id, body.websiteName, body.websiteUrl)
    return JSONResponse({"success": True, **result}, status_code=201)


@router.get("/website-info")
def list_website_info(limit: int = 50, user: RequestContext = Depends(require_user_context)):
    if limit < 1 or limit > 200:
        raise ValueError("limit must be between 1 and 200.")
    return JSONResponse({"submissions": get_repo().list_website_submissions(user.user_id, limit=limit)})


@router.get("/my-company-info")
def get_my_company_info(user: RequestContext = Depends(require_user_context)):
    return JSONResponse({"data": get_repo().get_latest_company_info(user.user_id)})


@router.post("/my-company-info")
def save_my_company_info(body: CompanyInfoBody, user: RequestContext = Depends(require_user_context)):
    profile = save_company_profile(get_repo(), user.user_id, body.model_dump())
    return JSONResponse({"success": True, "data": profile})
