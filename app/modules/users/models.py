from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class UserRole(str, enum.Enum):
    """User role enumeration"""
    ADMIN = "ADMIN"          # Full access, user management
    ANALYST = "ANALYST"      # Loan approvals
    CUSTOMER = "CUSTOMER"    # Applies for loans


class User(Base):
    """Application user with credentials and role"""
    __tablename__ = "users"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True)

    # Authentication
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Authorization
    role = Column(SQLEnum(UserRole), default=UserRole.CUSTOMER, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    # Profile
    full_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
