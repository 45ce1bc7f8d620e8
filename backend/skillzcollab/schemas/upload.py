from __future__ import annotations
from pydantic import BaseModel, Field

class FileMeta(BaseModel):
    id: str = Field(min_length=1)
    filename: str = Field(min_length=1)
    size: int = Field(ge=0)
    type: str = Field(min_length=1)
    url: str = Field(min_length=1)
    hash: str = Field(min_length=1)
