"""Initial plebiscite schema

Revision ID: 5c2e8a41f0b7
Revises:
Create Date: 2026-10-19 09:12:31.804113

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e8a41f0b7'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )


def upgrade() -> None:
    """Create every table; the two cyclic foreign keys are added last."""

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("login", sa.String(60), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("capital_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("top_endorsement_id", sa.Integer, nullable=True),
        _timestamp(),
    )

    # --- sub_instances / categories ---
    op.create_table(
        "sub_instances",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
    )
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
    )

    # --- ideas ---
    op.create_table(
        "ideas",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(60), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "category_id", sa.Integer,
            sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "user_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "sub_instance_id", sa.Integer,
            sa.ForeignKey("sub_instances.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="published"),
        sa.Column("official_status", sa.SmallInteger, nullable=False, server_default="0"),
        sa.Column("official_value", sa.SmallInteger, server_default="0"),
        sa.Column("position", sa.Integer, server_default="0"),
        sa.Column("position_24hr", sa.Integer, server_default="0"),
        sa.Column("position_7days", sa.Integer, server_default="0"),
        sa.Column("position_30days", sa.Integer, server_default="0"),
        sa.Column("position_24hr_change", sa.Integer, server_default="0"),
        sa.Column("position_7days_change", sa.Integer, server_default="0"),
        sa.Column("position_30days_change", sa.Integer, server_default="0"),
        sa.Column("position_endorsed_24hr", sa.Integer, nullable=True),
        sa.Column("position_endorsed_7days", sa.Integer, nullable=True),
        sa.Column("position_endorsed_30days", sa.Integer, nullable=True),
        sa.Column("score", sa.Float, server_default="0"),
        sa.Column("trending_score", sa.Float, server_default="0"),
        sa.Column("controversial_score", sa.Float, server_default="0"),
        sa.Column("is_controversial", sa.Boolean, server_default=sa.false()),
        sa.Column("endorsements_count", sa.Integer, server_default="0"),
        sa.Column("up_endorsements_count", sa.Integer, server_default="0"),
        sa.Column("down_endorsements_count", sa.Integer, server_default="0"),
        sa.Column("flags_count", sa.Integer, server_default="0"),
        sa.Column("cached_issue_list", sa.Text, nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(200), nullable=True),
        sa.Column("change_id", sa.Integer, nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp(),
        _timestamp("updated_at"),
    )
    op.create_index("ix_ideas_status", "ideas", ["status"])
    op.create_index("ix_ideas_user_id", "ideas", ["user_id"])
    op.create_index("ix_ideas_position", "ideas", ["position"])

    # --- endorsements ---
    op.create_table(
        "endorsements",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("value", sa.SmallInteger, nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("position", sa.Integer, nullable=True),
        sa.Column(
            "sub_instance_id", sa.Integer,
            sa.ForeignKey("sub_instances.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "referral_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(200), nullable=True),
        _timestamp(),
        _timestamp("updated_at"),
        sa.UniqueConstraint("idea_id", "user_id", name="uq_endorsements_idea_user"),
        sa.CheckConstraint("value IN (1, -1)", name="ck_endorsements_value"),
    )
    op.create_index("ix_endorsements_user_status", "endorsements", ["user_id", "status"])

    # --- points ---
    op.create_table(
        "points",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "other_idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "user_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("value", sa.SmallInteger, server_default="0"),
        sa.Column("status", sa.String(20), server_default="published"),
        sa.Column("helpful_count", sa.Integer, server_default="0"),
        sa.Column("unhelpful_count", sa.Integer, server_default="0"),
        sa.Column("endorser_helpful_count", sa.Integer, server_default="0"),
        sa.Column("endorser_unhelpful_count", sa.Integer, server_default="0"),
        sa.Column("opposer_helpful_count", sa.Integer, server_default="0"),
        sa.Column("opposer_unhelpful_count", sa.Integer, server_default="0"),
        _timestamp(),
    )
    op.create_index("ix_points_idea_id", "points", ["idea_id"])
    op.create_index("ix_points_other_idea_id", "points", ["other_idea_id"])

    # --- capital_entries ---
    op.create_table(
        "capital_entries",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column(
            "recipient_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("amount", sa.Integer, nullable=False, server_default="0"),
        _timestamp(),
    )

    # --- activities / comments ---
    op.create_table(
        "activities",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column(
            "idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column(
            "user_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "capital_id", sa.Integer,
            sa.ForeignKey("capital_entries.id", ondelete="SET NULL"), nullable=True,
        ),
        _timestamp(),
    )
    op.create_index("ix_activities_idea_kind", "activities", ["idea_id", "kind"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "activity_id", sa.Integer,
            sa.ForeignKey("activities.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("body", sa.Text, nullable=False, server_default=""),
        sa.Column("is_endorser", sa.Boolean, server_default=sa.false()),
        sa.Column("is_opposer", sa.Boolean, server_default=sa.false()),
    )

    # --- ads ---
    op.create_table(
        "ads",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("cost", sa.Float, server_default="0"),
        sa.Column("spent", sa.Float, server_default="0"),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
    )

    # --- rankings ---
    op.create_table(
        "rankings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("endorsements_count", sa.Integer, server_default="0"),
        _timestamp(),
    )
    op.create_index("ix_rankings_idea_time", "rankings", ["idea_id", "created_at"])

    # --- changes ---
    op.create_table(
        "changes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "user_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), server_default="draft"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp(),
        _timestamp("updated_at"),
    )

    # --- tags ---
    op.create_table(
        "tags",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column(
            "top_idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="SET NULL"), nullable=True,
        ),
    )

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column(
            "idea_id", sa.Integer,
            sa.ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "sender_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column(
            "recipient_id", sa.Integer,
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        _timestamp(),
    )

    # --- cyclic foreign keys ---
    op.create_foreign_key(
        "fk_ideas_change_id", "ideas", "changes",
        ["change_id"], ["id"], ondelete="SET NULL",
    )
    op.create_foreign_key(
        "fk_users_top_endorsement_id", "users", "endorsements",
        ["top_endorsement_id"], ["id"], ondelete="SET NULL",
    )

    # --- defaults ---
    op.execute("INSERT INTO sub_instances (id, name) VALUES (1, 'Default')")


def downgrade() -> None:
    """Drop every table."""
    op.drop_constraint("fk_users_top_endorsement_id", "users", type_="foreignkey")
    op.drop_constraint("fk_ideas_change_id", "ideas", type_="foreignkey")
    for table in (
        "notifications", "tags", "changes", "rankings", "ads", "comments",
        "activities", "capital_entries", "points", "endorsements", "ideas",
        "categories", "sub_instances", "users",
    ):
        op.drop_table(table)
