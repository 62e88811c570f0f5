"""
Admin user management endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_db
from app.core.dependencies import get_current_active_principal
from app.core.permissions import Principal
from app.modules.users.models import UserRole
from app.modules.users.schemas import UpdateActiveRequest, UpdateRoleRequest, UserProfileResponse
from app.modules.users.services import UserService

router = APIRouter(prefix="/users", tags=["admin-users"])


@router.get("", response_model=List[UserProfileResponse])
async def list_users(
    role: Optional[UserRole] = None,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """List all users, optionally filtered by role"""
    return await UserService.list_users(db, principal, role)


@router.put("/{user_id}/role", response_model=UserProfileResponse)
async def update_user_role(
    user_id: int,
    request: UpdateRoleRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Change a user's role"""
    return await UserService.set_role(db, principal, user_id, request.role)


@router.put("/{user_id}/active", response_model=UserProfileResponse)
async def update_user_active(
    user_id: int,
    request: UpdateActiveRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Enable or disable a user's account"""
    return await UserService.set_active(db, principal, user_id, request.active)
