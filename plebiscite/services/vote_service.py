"""
plebiscite.services.vote_service — Vote Ledger
===============================================

One :class:`Endorsement` per (idea, user), enforced by the
``uq_endorsements_idea_user`` constraint rather than by check-then-act.
Casting a vote either creates the row, flips its value, reactivates a
replaced row, or does nothing when the stance is already recorded.

The idea's ``endorsements_count`` / ``up_*`` / ``down_*`` columns are
rewritten from a fresh count query inside the same transaction as every
ledger write, so they always equal a live count of active-or-inactive
endorsements.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from plebiscite.config import DEFAULT_CONFIG, PlebisciteConfig
from plebiscite.database.models import (
    Activity,
    Endorsement,
    EndorsementStatus,
    Idea,
    User,
)
from plebiscite.engine.activities import polarity_kind
from plebiscite.engine.metrics import is_controversial
from plebiscite.errors import IntegrityViolationError, NotFoundError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

# Statuses that count towards the idea's counters
COUNTED_STATUSES: tuple[str, ...] = (
    EndorsementStatus.ACTIVE.value,
    EndorsementStatus.INACTIVE.value,
)


class VoteDirection(enum.StrEnum):
    UP = "up"
    DOWN = "down"

    @property
    def value_int(self) -> int:
        return 1 if self is VoteDirection.UP else -1


@dataclass(frozen=True, slots=True)
class VoteProvenance:
    """Where a vote came from, when the caller knows."""

    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True, slots=True)
class EndorsementCounts:
    total: int
    up: int
    down: int


@dataclass(frozen=True, slots=True)
class EndorserSnapshot:
    """Endorser ids of one idea, computed once per operation and passed down."""

    up_ids: tuple[int, ...]
    down_ids: tuple[int, ...]

    @property
    def all_ids(self) -> tuple[int, ...]:
        return tuple(sorted(set(self.up_ids) | set(self.down_ids)))


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------
def count_endorsements(session: Session, idea_id: int) -> EndorsementCounts:
    """Live count of active-or-inactive endorsements by value."""
    rows = session.execute(
        select(Endorsement.value, func.count())
        .where(
            Endorsement.idea_id == idea_id,
            Endorsement.status.in_(COUNTED_STATUSES),
        )
        .group_by(Endorsement.value)
    ).all()
    by_value = {value: count for value, count in rows}
    up = by_value.get(1, 0)
    down = by_value.get(-1, 0)
    return EndorsementCounts(total=up + down, up=up, down=down)


def recount_endorsements(session: Session, idea_id: int) -> EndorsementCounts:
    """Rewrite the idea's counters from :func:`count_endorsements`."""
    counts = count_endorsements(session, idea_id)
    session.execute(
        update(Idea)
        .where(Idea.id == idea_id)
        .values(
            endorsements_count=counts.total,
            up_endorsements_count=counts.up,
            down_endorsements_count=counts.down,
            is_controversial=is_controversial(counts.up, counts.down),
        )
    )
    return counts


def endorser_snapshot(session: Session, idea_id: int) -> EndorserSnapshot:
    rows = session.execute(
        select(Endorsement.user_id, Endorsement.value)
        .where(
            Endorsement.idea_id == idea_id,
            Endorsement.status.in_(COUNTED_STATUSES),
        )
        .order_by(Endorsement.user_id)
    ).all()
    return EndorserSnapshot(
        up_ids=tuple(user_id for user_id, value in rows if value > 0),
        down_ids=tuple(user_id for user_id, value in rows if value < 0),
    )


def max_endorsement_position(session: Session) -> int | None:
    """Deepest position any member has given an active endorsement."""
    return session.scalar(
        select(func.max(Endorsement.position)).where(
            Endorsement.status == EndorsementStatus.ACTIVE.value
        )
    )


# ---------------------------------------------------------------------------
# Ledger writes (session-level)
# ---------------------------------------------------------------------------
def find_endorsement(session: Session, idea_id: int, user_id: int) -> Endorsement | None:
    return session.scalar(
        select(Endorsement).where(
            Endorsement.idea_id == idea_id, Endorsement.user_id == user_id
        )
    )


def _record(session: Session, idea: Idea, user_id: int, kind: str) -> None:
    session.add(Activity(kind=str(kind), idea_id=idea.id, user_id=user_id))


def apply_vote(
    session: Session,
    idea: Idea,
    user_id: int,
    value: int,
    *,
    provenance: VoteProvenance | None = None,
    sub_instance_id: int | None = None,
    referral_id: int | None = None,
    default_sub_instance_id: int = 1,
) -> Endorsement:
    """Create, flip, or reactivate the user's endorsement of *idea*.

    An insert that loses a uniqueness race is rolled back to its savepoint
    and treated as "vote already exists": the row is re-read once and the
    flip logic applies.
    """
    if sub_instance_id == default_sub_instance_id:
        sub_instance_id = None

    endorsement = find_endorsement(session, idea.id, user_id)
    if endorsement is None:
        created = Endorsement(
            idea_id=idea.id,
            user_id=user_id,
            value=value,
            status=EndorsementStatus.ACTIVE.value,
            sub_instance_id=sub_instance_id,
            referral_id=referral_id,
            ip_address=provenance.ip_address if provenance else None,
            user_agent=provenance.user_agent if provenance else None,
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(created)
        except IntegrityError:
            logger.warning(
                "Concurrent vote on idea %s by user %s; re-reading", idea.id, user_id
            )
            endorsement = find_endorsement(session, idea.id, user_id)
            if endorsement is None:
                raise IntegrityViolationError(
                    f"Vote on idea {idea.id} by user {user_id} could not be recorded"
                ) from None
        else:
            _record(session, idea, user_id, polarity_kind(value, "new"))
            logger.debug("New endorsement %s (value=%d)", created.id, value)
            return created

    if endorsement.value != value:
        endorsement.value = value
        _record(session, idea, user_id, polarity_kind(value, "flipped"))
        logger.debug("Flipped endorsement %s to %d", endorsement.id, value)
    if endorsement.is_replaced():
        endorsement.status = EndorsementStatus.ACTIVE.value
    return endorsement


def rerank_user_endorsements(session: Session, user_id: int) -> None:
    """Renumber the user's active endorsements 1..n by position and point
    their top endorsement at the first one."""
    user = session.get(User, user_id)
    ranked = session.scalars(
        select(Endorsement)
        .where(
            Endorsement.user_id == user_id,
            Endorsement.status == EndorsementStatus.ACTIVE.value,
        )
        .order_by(
            Endorsement.position.is_(None),
            Endorsement.position,
            Endorsement.id,
        )
    ).all()
    for row, endorsement in enumerate(ranked, start=1):
        if endorsement.position != row:
            endorsement.position = row
        if row == 1 and user is not None and user.top_endorsement_id != endorsement.id:
            user.top_endorsement_id = endorsement.id


# ---------------------------------------------------------------------------
# Public API (one transaction each)
# ---------------------------------------------------------------------------
def cast_vote(
    engine: Engine,
    idea_id: int,
    user_id: int | None,
    direction: VoteDirection | str,
    *,
    provenance: VoteProvenance | None = None,
    sub_instance_id: int | None = None,
    referral_id: int | None = None,
    config: PlebisciteConfig = DEFAULT_CONFIG,
) -> Endorsement | None:
    """Record *user_id*'s up or down vote on *idea_id*.

    Returns the resulting (detached) endorsement, or ``None`` when there is
    no such user — anonymous callers get "no vote" rather than an error.

    Raises
    ------
    NotFoundError
        If the idea doesn't exist.
    """
    if user_id is None:
        return None
    value = VoteDirection(direction).value_int

    with Session(engine, expire_on_commit=False) as session:
        if session.get(User, user_id) is None:
            return None
        idea = session.get(Idea, idea_id)
        if idea is None:
            raise NotFoundError("Idea", idea_id)

        endorsement = apply_vote(
            session,
            idea,
            user_id,
            value,
            provenance=provenance,
            sub_instance_id=sub_instance_id,
            referral_id=referral_id,
            default_sub_instance_id=config.default_sub_instance_id,
        )
        recount_endorsements(session, idea_id)
        session.commit()
        session.refresh(endorsement)
        session.expunge(endorsement)
        return endorsement


def endorse(engine: Engine, idea_id: int, user_id: int | None, **kwargs) -> Endorsement | None:
    return cast_vote(engine, idea_id, user_id, VoteDirection.UP, **kwargs)


def oppose(engine: Engine, idea_id: int, user_id: int | None, **kwargs) -> Endorsement | None:
    return cast_vote(engine, idea_id, user_id, VoteDirection.DOWN, **kwargs)


def withdraw_vote(engine: Engine, idea_id: int, user_id: int) -> bool:
    """Destroy the user's endorsement of the idea.  Returns ``False`` if
    there was none."""
    with Session(engine) as session:
        idea = session.get(Idea, idea_id)
        if idea is None:
            raise NotFoundError("Idea", idea_id)
        endorsement = find_endorsement(session, idea_id, user_id)
        if endorsement is None:
            return False
        _record(session, idea, user_id, polarity_kind(endorsement.value, "delete"))
        session.delete(endorsement)
        session.flush()
        recount_endorsements(session, idea_id)
        session.commit()
        logger.debug("Withdrew vote of user %s on idea %s", user_id, idea_id)
        return True


def get_counts(engine: Engine, idea_id: int) -> EndorsementCounts:
    """Live counts for *idea_id* (read-only)."""
    with Session(engine) as session:
        return count_endorsements(session, idea_id)
