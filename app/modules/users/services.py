import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.permissions import Action, Principal, authorize
from app.core.security import TokenVerifier, get_password_hash, verify_password
from app.modules.users.models import User, UserRole
from app.modules.users import schemas

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user management operations"""

    @staticmethod
    async def register_user(db: AsyncSession, user_data: schemas.RegisterRequest) -> User:
        """Register a new user with the default role"""
        username = (user_data.username or "").strip()
        if not username or not user_data.password or not user_data.password.strip():
            raise ValidationError(
                "Username and password are required",
                fields=["username", "password"]
            )

        if await UserService.get_by_username(db, username):
            raise ConflictError("Username already exists")

        user = User(
            username=username,
            hashed_password=get_password_hash(user_data.password),
            role=UserRole(settings.DEFAULT_ROLE),
            active=True,
            full_name=user_data.full_name,
            email=user_data.email,
            phone=user_data.phone
        )

        try:
            db.add(user)
            await db.commit()
            await db.refresh(user)
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Username already exists")

        logger.info(f"Registered user {user.username} with role {user.role.value}")
        return user

    @staticmethod
    async def authenticate_user(db: AsyncSession, username: str, password: str) -> Optional[User]:
        """Return the user when the password matches and the account is active"""
        user = await UserService.get_by_username(db, username)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        if not user.active:
            logger.info(f"Login refused for inactive user {user.username}")
            return None

        return user

    @staticmethod
    async def login(
        db: AsyncSession,
        verifier: TokenVerifier,
        username: str,
        password: str
    ) -> Optional[Tuple[str, User]]:
        """Authenticate and issue an access token"""
        user = await UserService.authenticate_user(db, username, password)
        if not user:
            return None

        token = verifier.issue(user.username, user.role.value)
        return token, user

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    async def update_profile(
        db: AsyncSession,
        user_id: int,
        profile: schemas.UpdateProfileRequest
    ) -> User:
        """Update the optional profile fields that were provided"""
        user = await UserService.get_by_id(db, user_id)

        for field, value in profile.model_dump(exclude_unset=True).items():
            setattr(user, field, value)

        await db.commit()
        await db.refresh(user)
        return user

    # ============================================================
    # Administration
    # ============================================================

    @staticmethod
    async def list_users(
        db: AsyncSession,
        actor: Principal,
        role: Optional[UserRole] = None
    ) -> List[User]:
        authorize(actor, Action.VIEW_USERS)

        query = select(User).order_by(User.id)
        if role is not None:
            query = query.where(User.role == role)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def set_role(db: AsyncSession, actor: Principal, user_id: int, role: UserRole) -> User:
        authorize(actor, Action.MANAGE_USERS)

        user = await UserService.get_by_id(db, user_id)
        previous = user.role
        user.role = role
        await db.commit()
        await db.refresh(user)

        logger.info(f"{actor.username} changed role of {user.username} from {previous.value} to {role.value}")
        return user

    @staticmethod
    async def set_active(db: AsyncSession, actor: Principal, user_id: int, active: bool) -> User:
        authorize(actor, Action.MANAGE_USERS)

        user = await UserService.get_by_id(db, user_id)
        user.active = active
        await db.commit()
        await db.refresh(user)

        logger.info(f"{actor.username} set {user.username} active={active}")
        return user

    @staticmethod
    async def count_by_role(db: AsyncSession, role: UserRole) -> int:
        result = await db.execute(select(func.count(User.id)).where(User.role == role))
        return result.scalar()
