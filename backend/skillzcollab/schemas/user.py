from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from uuid import UUID
from datetime import datetime

RoleName = Literal["user", "admin", "super_admin"]

class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    phone_number: str | None = None
    alternate_email: str | None = None
    social_links: dict = Field(default_factory=dict)
    role: str
    is_verified: bool
    is_active: bool
    followed_tags: list = Field(default_factory=list)
    skills: list = Field(default_factory=list)
    specialities: list = Field(default_factory=list)
    last_login: datetime | None = None
    created_at: datetime

class AuthResult(BaseModel):
    user: UserPublic
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    message: str | None = None

class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, max_length=100)
    bio: str | None = None
    phone_number: str | None = Field(default=None, max_length=32)
    alternate_email: EmailStr | None = None
    social_links: dict | None = None
    skills: list[str] | None = None
    specialities: list[str] | None = None

class UserUpdate(ProfileUpdate):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    profile_image_url: str | None = None
    followed_tags: list[UUID] | None = None
    # admin-only fields
    role: RoleName | None = None
    is_active: bool | None = None
    is_verified: bool | None = None

class AdminApproval(BaseModel):
    approved: bool
    reason: str | None = None
