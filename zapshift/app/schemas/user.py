"""
User Pydantic schemas.
"""

from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional
from zapshift.app.models.enums import UserRole
from zapshift.app.schemas.common import CamelModel


class UserCreate(CamelModel):
    """
    Schema for recording a signed-in user.

    The role is always USER on creation; any role sent by the client is ignored.
    """
    email: EmailStr = Field(..., description="Verified email from the identity provider")
    name: Optional[str] = Field(None, max_length=150)
    photo_url: Optional[str] = Field(None, max_length=500, alias="photoURL")


class UserResponse(CamelModel):
    id: int
    email: str
    name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    role: UserRole
    created_at: datetime


class RoleUpdate(CamelModel):
    role: UserRole


class RoleResponse(CamelModel):
    role: UserRole
