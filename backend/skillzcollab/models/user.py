from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, DateTime, Uuid, UniqueConstraint, func
from skillzcollab.db import Base, JSONType, utcnow

ROLES = ("user", "admin", "super_admin")
ADMIN_ROLES = ("admin", "super_admin")


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    # null for accounts created through Google sign-in
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text(), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text(), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    alternate_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    social_links: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user")  # 'user'|'admin'|'super_admin'
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    followed_tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)  # tag ids as strings
    skills: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    specialities: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_logout_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # same email may hold one account per role
        UniqueConstraint("email", "role", name="uq_users_email_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
