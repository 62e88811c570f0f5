"""
Admin module sub-routers organized by domain.
"""
from fastapi import APIRouter

from app.modules.admin.routers.users import router as users_router
from app.modules.admin.routers.metrics import router as metrics_router

# Main admin router
router = APIRouter(prefix="/api/admin", tags=["admin"])

# Include all sub-routers
router.include_router(users_router)
router.include_router(metrics_router)
