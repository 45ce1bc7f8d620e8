from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime
from skillzcollab.schemas.upload import FileMeta

class SubmissionCreate(BaseModel):
    brief_id: UUID
    description: str | None = None
    files: list[FileMeta] = Field(min_length=1)

class SubmissionUpdate(BaseModel):
    description: str | None = None
    files: list[FileMeta] | None = None
    # admin-only
    is_finalist: bool | None = None
    is_winner: bool | None = None

class SubmissionPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    brief_id: UUID
    user_id: UUID
    description: str | None = None
    files: list = Field(default_factory=list)
    is_finalist: bool
    is_winner: bool
    likes: int
    votes: int
    created_at: datetime
    updated_at: datetime
