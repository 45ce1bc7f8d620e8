from __future__ import annotations
import re
from typing import Literal
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")

def check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not re.search(r"[a-z]", value) or not re.search(r"[A-Z]", value) or not re.search(r"\d", value):
        raise ValueError("Password must contain at least one lowercase letter, one uppercase letter and one number")
    return value

class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: Literal["user", "admin"] = "user"
    display_name: str | None = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        if not USERNAME_RE.match(v):
            raise ValueError("Username may only contain letters, numbers and underscores")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password_strength(v)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    role: Literal["user", "admin", "super_admin"] | None = None

class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(max_length=128)

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password_strength(v)

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime

class VerifyResponse(BaseModel):
    valid: bool
    claims: dict
