from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, ConfigDict
from uuid import UUID
from datetime import datetime

ReactionType = Literal["like", "vote"]

class ReactionCreate(BaseModel):
    type: ReactionType

class ReactionToggle(BaseModel):
    submission_id: UUID
    type: ReactionType

class ReactionUpdate(BaseModel):
    type: ReactionType

class ReactionPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    user_id: UUID
    type: str
    created_at: datetime

class ToggleResult(BaseModel):
    active: bool
    reaction: ReactionPublic | None = None
    likes: int
    votes: int
