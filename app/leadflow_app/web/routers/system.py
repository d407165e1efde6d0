from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from leadflow_app.web.runtime import get_config, get_repo

router = APIRouter(prefix="/api")


@router.get("/health")
def health():
    config = get_config()
    repo = get_repo()
    return JSONResponse(
        {
            "ok": repo.ping(),
            "env": config.env,
            "database": repo.client.dialect,
        }
    )
