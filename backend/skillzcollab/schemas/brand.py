from __future__ import annotations
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from uuid import UUID
from datetime import datetime

class BrandCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    contact_email: EmailStr
    registered_office: str | None = None
    address: str | None = None
    business_field: str | None = Field(default=None, max_length=200)
    logo_url: str | None = None
    website_url: str | None = None

class BrandUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    contact_email: EmailStr | None = None
    registered_office: str | None = None
    address: str | None = None
    business_field: str | None = Field(default=None, max_length=200)
    logo_url: str | None = None
    website_url: str | None = None

class BrandPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    contact_email: str
    registered_office: str | None = None
    address: str | None = None
    business_field: str | None = None
    logo_url: str | None = None
    website_url: str | None = None
    owner_id: UUID | None = None
    created_at: datetime

class BrandStats(BaseModel):
    brand_id: UUID
    total_briefs: int
    active_briefs: int
    status_breakdown: dict[str, int]
