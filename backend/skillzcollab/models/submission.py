from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, Boolean, Integer, DateTime, ForeignKey, Uuid, UniqueConstraint, func
from skillzcollab.db import Base, JSONType, utcnow


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)

    brief_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("briefs.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    files: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)  # [{id, filename, size, type, url, hash}]

    is_finalist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_winner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # derived from reactions; recomputed on every reaction write
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("brief_id", "user_id", name="uq_submission_one_per_brief"),
    )
