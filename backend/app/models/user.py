from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    """
    用户角色（线上协议字面值）：admin | editor | author
    """

    ADMIN = "admin"
    EDITOR = "editor"
    AUTHOR = "author"


class UserProfile(BaseModel):
    """
    Database model for public.user_profiles
    """

    id: UUID
    auth_subject: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole = UserRole.AUTHOR
    bio: Optional[str] = None
    institution: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=120)
    bio: Optional[str] = Field(default=None, max_length=2000)
    institution: Optional[str] = Field(default=None, max_length=200)

    @field_validator("full_name", "bio", "institution", mode="before")
    @classmethod
    def _strip(cls, v):
        # 中文注释: 空字符串视为“未填写”，不覆盖已有值
        if v is None:
            return None
        if isinstance(v, str):
            return v.strip() or None
        return v


class UpdateRoleRequest(BaseModel):
    role: UserRole
