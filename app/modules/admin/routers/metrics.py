"""
Admin metrics endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_principal
from app.core.permissions import Principal
from app.modules.admin.schemas import AdminMetricsResponse
from app.modules.admin.services import AdminService

router = APIRouter(tags=["admin-metrics"])


@router.get("/metrics", response_model=AdminMetricsResponse)
async def get_metrics(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Get user counts by role and the total number of applications"""
    service = AdminService(db)
    return await service.get_metrics(principal)
