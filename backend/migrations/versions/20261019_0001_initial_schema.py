from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)
JSONB = postgresql.JSONB(astext_type=sa.Text())
NOW = sa.text("now()")

def _timestamps(updated: bool = True) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=NOW, nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=NOW, nullable=False))
    return cols

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("google_id", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("profile_image_url", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("alternate_email", sa.String(length=255), nullable=True),
        sa.Column("social_links", JSONB, server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("role", sa.String(length=16), server_default="user", nullable=False),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("followed_tags", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("skills", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("specialities", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("last_login", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_logout_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", "role", name="uq_users_email_role"),
        sa.UniqueConstraint("google_id", name="uq_users_google_id"),
        sa.CheckConstraint("role IN ('user','admin','super_admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "tags",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_tags_name"),
    )
    # case-insensitive uniqueness
    op.create_index("ux_tags_name_lower", "tags", [sa.text("lower(name)")], unique=True)

    op.create_table(
        "brands",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=False),
        sa.Column("registered_office", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("business_field", sa.String(length=200), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("website_url", sa.Text(), nullable=True),
        sa.Column("owner_id", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("contact_email", name="uq_brands_contact_email"),
    )
    op.create_index("ix_brands_owner_id", "brands", ["owner_id"])

    op.create_table(
        "briefs",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("brand_id", UUID, sa.ForeignKey("brands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("prize_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("submission_deadline", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("voting_start", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("voting_end", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("winner_user_id", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(length=16), server_default="draft", nullable=False),
        sa.Column("crm_user_id", UUID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("tags", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("files", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("participants", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        *_timestamps(updated=False),
        sa.CheckConstraint("status IN ('draft','submission','in_review','winner')", name="ck_briefs_status"),
    )
    op.create_index("ix_briefs_brand_id", "briefs", ["brand_id"])
    op.create_index("ix_briefs_crm_user_id", "briefs", ["crm_user_id"])

    op.create_table(
        "submissions",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("brief_id", UUID, sa.ForeignKey("briefs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("files", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("is_finalist", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_winner", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("likes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("votes", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("brief_id", "user_id", name="uq_submission_one_per_brief"),
    )
    op.create_index("ix_submissions_brief_id", "submissions", ["brief_id"])
    op.create_index("ix_submissions_user_id", "submissions", ["user_id"])

    op.create_table(
        "reactions",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("submission_id", UUID, sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=8), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("submission_id", "user_id", "type", name="uq_reaction_one_per_type"),
        sa.CheckConstraint("type IN ('like','vote')", name="ck_reactions_type"),
    )
    op.create_index("ix_reactions_submission_id", "reactions", ["submission_id"])
    op.create_index("ix_reactions_user_id", "reactions", ["user_id"])

    op.create_table(
        "portfolios",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("like_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("files", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_portfolios_user_id", "portfolios", ["user_id"])

    op.create_table(
        "creatives",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("portfolio_id", UUID, sa.ForeignKey("portfolios.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("files", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_creatives_portfolio_id", "creatives", ["portfolio_id"])

def downgrade() -> None:
    for table in ("creatives", "portfolios", "reactions", "submissions", "briefs", "brands", "tags", "users"):
        op.drop_table(table)
