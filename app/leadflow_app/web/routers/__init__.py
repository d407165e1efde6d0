from fastapi import APIRouter

from leadflow_app.web.routers.actions import router as actions_router
from leadflow_app.web.routers.callbacks import router as callbacks_router
from leadflow_app.web.routers.company import router as company_router
from leadflow_app.web.routers.lead_files import router as lead_files_router
from leadflow_app.web.routers.rows import router as rows_router
from leadflow_app.web.routers.signatures import router as signatures_router
from leadflow_app.web.routers.system import router as system_router


router = APIRouter()
router.include_router(system_router)
router.include_router(lead_files_router)
router.include_router(rows_router)
router.include_router(actions_router)
router.include_router(callbacks_router)
router.include_router(signatures_router)
router.include_router(company_router)
