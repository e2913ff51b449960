"""
plebiscite.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- users              — Community members (capital balance, top endorsement)
- sub_instances      — Sub-communities an endorsement can be attributed to
- categories         — Idea categories
- ideas              — The aggregate root: lifecycle, official status, counters
- endorsements       — One vote per (idea, user); +1 endorse / -1 oppose
- points             — Pro/con arguments, optionally comparing another idea
- activities         — Audit/feed journal typed by :class:`ActivityKind`
- comments           — Discussion on an activity, tagged endorser/opposer
- ads                — Paid promotion of an idea
- rankings           — Point-in-time position snapshots (pure cache)
- changes            — Proposed modifications to an idea, with expiry
- tags               — Issues; only the "top idea" pointer matters here
- notifications      — Per-idea notices (flags) handed to moderation
- capital_entries    — Capital ledger credits (ad refunds)
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from plebiscite.constants import (
    NO_CATEGORY_NAME,
    OFFICIAL_STATUS_NAMES,
    OFFICIAL_VALUE_NAMES,
    UNPROCESSED_VALUE_NAME,
)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Plebiscite ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class IdeaStatus(enum.StrEnum):
    """Publication lifecycle states (see :mod:`plebiscite.engine.lifecycle`)."""
    DRAFT = "draft"
    PASSIVE = "passive"
    PUBLISHED = "published"
    INACTIVE = "inactive"
    BURIED = "buried"
    DELETED = "deleted"
    ABUSIVE = "abusive"


class OfficialStatus(enum.IntEnum):
    """Administrative outcome codes stored in ``ideas.official_status``."""
    FAILED = -2
    IN_PROGRESS = -1  # both "compromised" and "in the works"
    UNKNOWN = 0
    PUBLISHED_IN_WORKS = 1
    SUCCESSFUL = 2


class UserStatus(enum.StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REMOVED = "removed"


class EndorsementStatus(enum.StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    REPLACED = "replaced"


class PointStatus(enum.StrEnum):
    PUBLISHED = "published"
    DRAFT = "draft"
    DELETED = "deleted"


class ActivityStatus(enum.StrEnum):
    ACTIVE = "active"
    DELETED = "deleted"


class AdStatus(enum.StrEnum):
    ACTIVE = "active"
    FINISHED = "finished"


class ChangeStatus(enum.StrEnum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    DECLINED = "declined"
    DELETED = "deleted"


class ActivityKind(enum.StrEnum):
    """Every kind of activity row an idea can accumulate."""
    # Idea announcements
    IDEA_DEBUT = "idea_debut"
    IDEA_NEW = "idea_new"
    IDEA_RENAMED = "idea_renamed"
    IDEA_FLAG = "idea_flag"
    IDEA_FLAG_INAPPROPRIATE = "idea_flag_inappropriate"
    IDEA_RISING = "idea_rising"
    IDEA_STATUS_UPDATE = "idea_status_update"

    # Official status
    OFFICIAL_STATUS_COMPROMISED = "official_status_compromised"
    OFFICIAL_STATUS_FAILED = "official_status_failed"
    OFFICIAL_STATUS_IN_THE_WORKS = "official_status_in_the_works"
    OFFICIAL_STATUS_SUCCESSFUL = "official_status_successful"
    OFFICIAL_STATUS_REACTIVATED = "official_status_reactivated"

    # Issue digests
    ISSUE_IDEA_TOP = "issue_idea_top"
    ISSUE_IDEA_CONTROVERSIAL = "issue_idea_controversial"
    ISSUE_IDEA_OFFICIAL = "issue_idea_official"
    ISSUE_IDEA_RISING = "issue_idea_rising"

    # Endorsement ledger (polarity-typed)
    ENDORSEMENT_NEW = "endorsement_new"
    ENDORSEMENT_DELETE = "endorsement_delete"
    ENDORSEMENT_REPLACED = "endorsement_replaced"
    ENDORSEMENT_REPLACED_IMPLICIT = "endorsement_replaced_implicit"
    ENDORSEMENT_FLIPPED = "endorsement_flipped"
    ENDORSEMENT_FLIPPED_IMPLICIT = "endorsement_flipped_implicit"
    OPPOSITION_NEW = "opposition_new"
    OPPOSITION_DELETE = "opposition_delete"
    OPPOSITION_REPLACED = "opposition_replaced"
    OPPOSITION_REPLACED_IMPLICIT = "opposition_replaced_implicit"
    OPPOSITION_FLIPPED = "opposition_flipped"
    OPPOSITION_FLIPPED_IMPLICIT = "opposition_flipped_implicit"

    # Acquisitions and capital
    IDEA_ACQUISITION = "idea_acquisition"
    IDEA_ACQUISITION_PROPOSAL = "idea_acquisition_proposal"
    CAPITAL_ACQUISITION = "capital_acquisition"
    CAPITAL_AD_REFUNDED = "capital_ad_refunded"

    # Discussion
    POINT_NEW = "point_new"
    DISCUSSION_NEW = "discussion_new"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    login: Mapped[str] = mapped_column(String(60), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(20), default=UserStatus.ACTIVE.value)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    capital_count: Mapped[int] = mapped_column(Integer, default=0)
    top_endorsement_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey(
            "endorsements.id", ondelete="SET NULL",
            use_alter=True, name="fk_users_top_endorsement_id",
        ),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} login={self.login!r} capital={self.capital_count}>"


# ---------------------------------------------------------------------------
# SubInstance / Category
# ---------------------------------------------------------------------------
class SubInstance(Base):
    """A sub-community.  Id 1 is the default and is never recorded on votes."""
    __tablename__ = "sub_instances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<SubInstance id={self.id} name={self.name!r}>"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Idea — the aggregate root
# ---------------------------------------------------------------------------
class Idea(Base):
    """An idea members can endorse or oppose.

    ``position*``, ``score``, ``trending_score`` and ``controversial_score``
    are maintained by the external ranking job.  The endorsement counters
    are owned by :mod:`plebiscite.services.vote_service` and always equal a
    live count of active-or-inactive endorsements.
    """
    __tablename__ = "ideas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sub_instance_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("sub_instances.id", ondelete="SET NULL"), nullable=True
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=IdeaStatus.PUBLISHED.value
    )
    official_status: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=OfficialStatus.UNKNOWN.value
    )
    official_value: Mapped[int] = mapped_column(SmallInteger, default=0)

    # Ranking inputs (externally maintained)
    position: Mapped[int] = mapped_column(Integer, default=0)
    position_24hr: Mapped[int] = mapped_column(Integer, default=0)
    position_7days: Mapped[int] = mapped_column(Integer, default=0)
    position_30days: Mapped[int] = mapped_column(Integer, default=0)
    position_24hr_change: Mapped[int] = mapped_column(Integer, default=0)
    position_7days_change: Mapped[int] = mapped_column(Integer, default=0)
    position_30days_change: Mapped[int] = mapped_column(Integer, default=0)
    position_endorsed_24hr: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position_endorsed_7days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    position_endorsed_30days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    trending_score: Mapped[float] = mapped_column(Float, default=0.0)
    controversial_score: Mapped[float] = mapped_column(Float, default=0.0)
    is_controversial: Mapped[bool] = mapped_column(Boolean, default=False)

    # Denormalized counters (vote ledger)
    endorsements_count: Mapped[int] = mapped_column(Integer, default=0)
    up_endorsements_count: Mapped[int] = mapped_column(Integer, default=0)
    down_endorsements_count: Mapped[int] = mapped_column(Integer, default=0)
    flags_count: Mapped[int] = mapped_column(Integer, default=0)

    cached_issue_list: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Provenance
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Pending change, if any
    change_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey(
            "changes.id", ondelete="SET NULL",
            use_alter=True, name="fk_ideas_change_id",
        ),
        nullable=True,
    )

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped[User] = relationship()
    category: Mapped[Category | None] = relationship(lazy="selectin")
    endorsements: Mapped[list[Endorsement]] = relationship(
        back_populates="idea", cascade="all, delete-orphan"
    )
    points_with_deleted: Mapped[list[Point]] = relationship(
        back_populates="idea",
        foreign_keys="Point.idea_id",
        cascade="all, delete-orphan",
    )
    incoming_points: Mapped[list[Point]] = relationship(
        back_populates="other_idea", foreign_keys="Point.other_idea_id"
    )
    activities: Mapped[list[Activity]] = relationship(
        back_populates="idea", cascade="all, delete-orphan"
    )
    rankings: Mapped[list[Ranking]] = relationship(cascade="all, delete-orphan")
    ads: Mapped[list[Ad]] = relationship(
        back_populates="idea", cascade="all, delete-orphan"
    )
    notifications: Mapped[list[Notification]] = relationship(
        cascade="all, delete-orphan"
    )
    changes_with_deleted: Mapped[list[Change]] = relationship(
        back_populates="idea",
        foreign_keys="Change.idea_id",
        cascade="all, delete-orphan",
    )
    change: Mapped[Change | None] = relationship(
        foreign_keys=[change_id], post_update=True, lazy="selectin"
    )

    __table_args__ = (
        Index("ix_ideas_status", "status"),
        Index("ix_ideas_user_id", "user_id"),
        Index("ix_ideas_position", "position"),
    )

    # -------------------------------------------------------------------
    # Publication-state predicates
    # -------------------------------------------------------------------
    def is_published(self) -> bool:
        return self.status in (IdeaStatus.PUBLISHED, IdeaStatus.INACTIVE)

    def is_buried(self) -> bool:
        return self.status == IdeaStatus.BURIED

    def is_rising(self) -> bool:
        return (self.position_7days_change or 0) > 0

    def is_falling(self) -> bool:
        return (self.position_7days_change or 0) < 0

    def is_replaced(self) -> bool:
        """A change exists and the idea has been taken out of circulation."""
        return self.change_id is not None and self.status == IdeaStatus.INACTIVE

    def has_tags(self) -> bool:
        return bool(self.cached_issue_list)

    # -------------------------------------------------------------------
    # Official-status predicates
    # -------------------------------------------------------------------
    def is_finished(self) -> bool:
        return self.official_status > 1 or self.official_status < 0

    def is_failed(self) -> bool:
        return self.official_status == OfficialStatus.FAILED

    def is_successful(self) -> bool:
        return self.official_status == OfficialStatus.SUCCESSFUL

    def is_compromised(self) -> bool:
        return self.official_status == OfficialStatus.IN_PROGRESS

    def is_in_the_works(self) -> bool:
        return self.official_status == OfficialStatus.PUBLISHED_IN_WORKS

    def is_official_endorsed(self) -> bool:
        return self.official_value == 1

    def is_official_opposed(self) -> bool:
        return self.official_value == -1

    @property
    def official_status_name(self) -> str | None:
        return OFFICIAL_STATUS_NAMES.get(self.official_status)

    @property
    def value_name(self) -> str:
        return OFFICIAL_VALUE_NAMES.get(self.official_status, UNPROCESSED_VALUE_NAME)

    @property
    def category_name(self) -> str:
        return self.category.name if self.category else NO_CATEGORY_NAME

    def to_param(self) -> str:
        slug = "-".join("".join(c if c.isalnum() else " " for c in self.name.lower()).split())
        return f"{self.id}-{slug}"

    def __repr__(self) -> str:
        return f"<Idea id={self.id} name={self.name!r} status={self.status}>"


# ---------------------------------------------------------------------------
# Endorsement — the vote ledger
# ---------------------------------------------------------------------------
class Endorsement(Base):
    """One row per (idea, user).  ``value`` is +1 (endorse) or -1 (oppose).

    ``inactive`` and ``replaced`` rows are soft history kept for audit;
    ``position`` is the user's own priority ordering of their endorsements.
    """
    __tablename__ = "endorsements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EndorsementStatus.ACTIVE.value
    )
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sub_instance_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("sub_instances.id", ondelete="SET NULL"), nullable=True
    )
    referral_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    idea: Mapped[Idea] = relationship(back_populates="endorsements")
    user: Mapped[User] = relationship(foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("idea_id", "user_id", name="uq_endorsements_idea_user"),
        CheckConstraint("value IN (1, -1)", name="ck_endorsements_value"),
        Index("ix_endorsements_user_status", "user_id", "status"),
    )

    def is_up(self) -> bool:
        return self.value > 0

    def is_down(self) -> bool:
        return self.value < 0

    def is_replaced(self) -> bool:
        return self.status == EndorsementStatus.REPLACED

    def __repr__(self) -> str:
        return (
            f"<Endorsement id={self.id} idea={self.idea_id} user={self.user_id} "
            f"value={self.value} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Point — pro/con arguments
# ---------------------------------------------------------------------------
class Point(Base):
    __tablename__ = "points"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    other_idea_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, default=None)
    value: Mapped[int] = mapped_column(SmallInteger, default=0)  # >0 pro, <0 con
    status: Mapped[str] = mapped_column(String(20), default=PointStatus.PUBLISHED.value)
    helpful_count: Mapped[int] = mapped_column(Integer, default=0)
    unhelpful_count: Mapped[int] = mapped_column(Integer, default=0)
    endorser_helpful_count: Mapped[int] = mapped_column(Integer, default=0)
    endorser_unhelpful_count: Mapped[int] = mapped_column(Integer, default=0)
    opposer_helpful_count: Mapped[int] = mapped_column(Integer, default=0)
    opposer_unhelpful_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    idea: Mapped[Idea] = relationship(
        back_populates="points_with_deleted", foreign_keys=[idea_id]
    )
    other_idea: Mapped[Idea | None] = relationship(
        back_populates="incoming_points", foreign_keys=[other_idea_id]
    )

    __table_args__ = (
        Index("ix_points_idea_id", "idea_id"),
        Index("ix_points_other_idea_id", "other_idea_id"),
    )

    def __repr__(self) -> str:
        return f"<Point id={self.id} idea={self.idea_id} value={self.value}>"


# ---------------------------------------------------------------------------
# Activity / Comment — audit and feed journal
# ---------------------------------------------------------------------------
class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ActivityStatus.ACTIVE.value
    )
    idea_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=True
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    capital_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("capital_entries.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    idea: Mapped[Idea | None] = relationship(back_populates="activities")
    comments: Mapped[list[Comment]] = relationship(
        back_populates="activity", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_activities_idea_kind", "idea_id", "kind"),
    )

    def __repr__(self) -> str:
        return f"<Activity id={self.id} kind={self.kind} idea={self.idea_id}>"


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    activity_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_endorser: Mapped[bool] = mapped_column(Boolean, default=False)
    is_opposer: Mapped[bool] = mapped_column(Boolean, default=False)

    activity: Mapped[Activity] = relationship(back_populates="comments")

    def __repr__(self) -> str:
        return f"<Comment id={self.id} activity={self.activity_id}>"


# ---------------------------------------------------------------------------
# Ad — paid promotion
# ---------------------------------------------------------------------------
class Ad(Base):
    __tablename__ = "ads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    cost: Mapped[float] = mapped_column(Float, default=0.0)
    spent: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(20), default=AdStatus.ACTIVE.value)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    idea: Mapped[Idea] = relationship(back_populates="ads")
    user: Mapped[User] = relationship()

    def __repr__(self) -> str:
        return f"<Ad id={self.id} idea={self.idea_id} status={self.status}>"


# ---------------------------------------------------------------------------
# Ranking — position snapshots (cache, safe to discard)
# ---------------------------------------------------------------------------
class Ranking(Base):
    __tablename__ = "rankings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    endorsements_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_rankings_idea_time", "idea_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Ranking idea={self.idea_id} position={self.position}>"


# ---------------------------------------------------------------------------
# Change — proposed modification with expiry
# ---------------------------------------------------------------------------
class Change(Base):
    __tablename__ = "changes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    idea_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str | None] = mapped_column(Text, default=None)
    status: Mapped[str] = mapped_column(String(20), default=ChangeStatus.DRAFT.value)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    idea: Mapped[Idea] = relationship(
        back_populates="changes_with_deleted", foreign_keys=[idea_id]
    )

    def __repr__(self) -> str:
        return f"<Change id={self.id} idea={self.idea_id} status={self.status}>"


# ---------------------------------------------------------------------------
# Tag — issues (only the top-idea pointer is managed here)
# ---------------------------------------------------------------------------
class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    top_idea_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Tag id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Notification — per-idea notices handed to moderation
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    idea_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    recipient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Notification id={self.id} kind={self.kind} idea={self.idea_id}>"


# ---------------------------------------------------------------------------
# CapitalEntry — capital ledger credits
# ---------------------------------------------------------------------------
class CapitalEntry(Base):
    __tablename__ = "capital_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    recipient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<CapitalEntry id={self.id} kind={self.kind} amount={self.amount}>"
