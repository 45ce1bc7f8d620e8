from __future__ import annotations
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, Numeric, DateTime, ForeignKey, Uuid, func
from skillzcollab.db import Base, JSONType, utcnow

BRIEF_STATUSES = ("draft", "submission", "in_review", "winner")
ACTIVE_STATUSES = ("submission", "in_review")


class Brief(Base):
    __tablename__ = "briefs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    # fixed at creation
    brand_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("brands.id", ondelete="CASCADE"), index=True, nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    prize_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    submission_deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voting_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voting_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    winner_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")  # 'draft'|'submission'|'in_review'|'winner'
    crm_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(), ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)          # [{id, name, description}]
    files: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)         # [FileMeta]
    participants: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)  # user ids as strings

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
