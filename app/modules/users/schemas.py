from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from app.modules.users.models import UserRole


# Authentication
class RegisterRequest(BaseModel):
    """Self-registration request; the role is always the configured default"""
    username: str = Field(..., max_length=100)
    password: str
    full_name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    role: UserRole


# Profile
class UserProfileResponse(BaseModel):
    id: int
    username: str
    role: UserRole
    active: bool
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UpdateProfileRequest(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)


# Administration
class UpdateRoleRequest(BaseModel):
    role: UserRole


class UpdateActiveRequest(BaseModel):
    active: bool
