from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime
from skillzcollab.schemas.upload import FileMeta

class PortfolioCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    files: list[FileMeta] = Field(default_factory=list)

class PortfolioUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    files: list[FileMeta] | None = None

class CreativeCreate(BaseModel):
    portfolio_id: UUID
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    files: list[FileMeta] = Field(default_factory=list)

class CreativeUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    files: list[FileMeta] | None = None

class CreativePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    portfolio_id: UUID
    title: str
    description: str | None = None
    files: list = Field(default_factory=list)
    created_at: datetime

class PortfolioPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    description: str | None = None
    like_count: int
    files: list = Field(default_factory=list)
    created_at: datetime

class PortfolioDetail(PortfolioPublic):
    creatives: list[CreativePublic] = Field(default_factory=list)
