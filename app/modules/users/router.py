from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_active_principal
from app.core.permissions import Principal
from app.core.security import TokenVerifier, get_token_verifier
from app.modules.users import schemas
from app.modules.users.services import UserService

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/auth/register", response_model=schemas.UserProfileResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: schemas.RegisterRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new account.

    - Username must be unique
    - Role is always the configured default (CUSTOMER)
    """
    return await UserService.register_user(db, user_data)


@router.post("/auth/login", response_model=schemas.TokenResponse)
async def login(
    login_data: schemas.LoginRequest,
    db: AsyncSession = Depends(get_db),
    verifier: TokenVerifier = Depends(get_token_verifier)
):
    """
    Login with username and password.

    Returns a signed access token carrying username and role.
    """
    issued = await UserService.login(db, verifier, login_data.username, login_data.password)

    if not issued:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )

    token, user = issued
    return schemas.TokenResponse(access_token=token, username=user.username, role=user.role)


@router.get("/users/me", response_model=schemas.UserProfileResponse)
async def read_profile(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Get the current user's profile"""
    return await UserService.get_by_id(db, principal.user_id)


@router.put("/users/me", response_model=schemas.UserProfileResponse)
async def update_profile(
    profile: schemas.UpdateProfileRequest,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_active_principal)
):
    """Update the current user's profile"""
    return await UserService.update_profile(db, principal.user_id, profile)
