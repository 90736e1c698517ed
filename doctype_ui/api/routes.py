from fastapi import APIRouter
from doctype_ui.api.routes_health import router as health_router
from doctype_ui.api.routes_contracts import router as contracts_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(contracts_router, tags=["contracts"])
