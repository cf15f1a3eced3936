"""Central API router: mounts the file, chart and admin routers under ``/api``."""
from fastapi import APIRouter

from .admin import router as admin_router
from .charts import router as charts_router
from .files import router as files_router

router = APIRouter(prefix="/api")

router.include_router(files_router)
router.include_router(charts_router)
router.include_router(admin_router)
