from __future__ import annotations
from typing import Literal
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime
from skillzcollab.schemas.upload import FileMeta

BriefStatus = Literal["draft", "submission", "in_review", "winner"]

class TagRef(BaseModel):
    id: UUID

class BriefBase(BaseModel):
    description: str | None = None
    is_paid: bool | None = None
    prize_amount: Decimal | None = Field(default=None, ge=0)
    submission_deadline: datetime | None = None
    voting_start: datetime | None = None
    voting_end: datetime | None = None
    is_active: bool | None = None
    tags: list[UUID | TagRef] | None = None
    files: list[FileMeta] | None = None
    # data URLs or bare base64, uploaded to the "briefs" folder
    base64_images: list[str] | None = None

class BriefCreate(BriefBase):
    title: str = Field(min_length=1, max_length=200)
    brand_id: UUID | None = None
    status: BriefStatus = "draft"

class BriefUpdate(BriefBase):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    status: BriefStatus | None = None
    winner_user_id: UUID | None = None
    # present only so it can be rejected
    brand_id: UUID | None = None

class BriefPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    brand_id: UUID
    title: str
    description: str | None = None
    is_paid: bool
    prize_amount: Decimal | None = None
    submission_deadline: datetime | None = None
    voting_start: datetime | None = None
    voting_end: datetime | None = None
    winner_user_id: UUID | None = None
    status: str
    crm_user_id: UUID | None = None
    is_active: bool
    tags: list = Field(default_factory=list)
    files: list = Field(default_factory=list)
    participants: list = Field(default_factory=list)
    created_at: datetime
