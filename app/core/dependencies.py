from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.exceptions import VerificationError
from app.core.permissions import Principal
from app.core.security import TokenVerifier, get_token_verifier
from app.modules.users.models import UserRole
from app.modules.users.services import UserService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_principal(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    verifier: TokenVerifier = Depends(get_token_verifier)
) -> Principal:
    """Build the request principal from the bearer token"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        claims = verifier.verify(token)
        role = UserRole(claims.role)
    except (VerificationError, ValueError):
        raise credentials_exception

    # Token proves identity at issue time; the account must still exist
    user = await UserService.get_by_username(db, claims.username)
    if user is None:
        raise credentials_exception

    return Principal(
        user_id=user.id,
        username=user.username,
        role=role,
        active=user.active
    )


async def get_current_active_principal(
    principal: Principal = Depends(get_current_principal)
) -> Principal:
    """Ensure user account is active"""
    if not principal.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled. Please contact support."
        )
    return principal
