"""
plebiscite.services.official_status_service — Official Outcome Axis
====================================================================

Administrative overrides that classify what became of an idea,
independent of the publication state machine.  Every call:

1. records a typed activity,
2. stamps ``status_changed_at``,
3. sets ``official_status``, and
4. except for :func:`reactivate`, forces ``status`` to ``inactive``.

Writes bypass idea validation but not database constraints.

``official_status = -1`` is shared by :func:`mark_in_the_works` and
:func:`mark_compromised`; both read back as "In Progress".
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from plebiscite.constants import Clock, utcnow
from plebiscite.database.models import (
    Activity,
    ActivityKind,
    Ad,
    AdStatus,
    CapitalEntry,
    Endorsement,
    EndorsementStatus,
    Idea,
    IdeaStatus,
    OfficialStatus,
    User,
)
from plebiscite.errors import ValidationError
from plebiscite.services.idea_service import get_idea
from plebiscite.services.vote_service import COUNTED_STATUSES, rerank_user_endorsements

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

CAPITAL_AD_REFUNDED = "ad_refunded"


# ---------------------------------------------------------------------------
# Ad refunds
# ---------------------------------------------------------------------------
def compute_refund(cost: float, spent: float) -> int:
    """Unspent ad budget as whole capital.

    Any positive remainder below 1 rounds up to 1; everything else is the
    truncated absolute difference.
    """
    refund = (cost or 0) - (spent or 0)
    if 0 < refund < 1:
        refund = 1
    return int(math.fabs(refund))


def deactivate_ads_and_refund(
    session: Session, idea: Idea, now: datetime
) -> list[CapitalEntry]:
    """Finish every active ad of *idea* and credit the advertisers."""
    entries: list[CapitalEntry] = []
    ads = session.scalars(
        select(Ad).where(Ad.idea_id == idea.id, Ad.status == AdStatus.ACTIVE.value)
    ).all()
    for ad in ads:
        ad.status = AdStatus.FINISHED.value
        ad.finished_at = now
        refund = compute_refund(ad.cost, ad.spent)

        user = session.get(User, ad.user_id)
        user.capital_count = (user.capital_count or 0) + refund
        entry = CapitalEntry(kind=CAPITAL_AD_REFUNDED, recipient_id=user.id, amount=refund)
        session.add(entry)
        session.flush()
        session.add(Activity(
            kind=ActivityKind.CAPITAL_AD_REFUNDED.value,
            idea_id=idea.id,
            user_id=user.id,
            capital_id=entry.id,
        ))
        entries.append(entry)
        logger.info("Refunded %d capital to user %s for ad %s", refund, user.id, ad.id)
    return entries


# ---------------------------------------------------------------------------
# Shared transition
# ---------------------------------------------------------------------------
def _set_official_status(
    session: Session,
    idea: Idea,
    *,
    code: OfficialStatus,
    kind: ActivityKind,
    status: IdeaStatus | None,
    now: datetime,
) -> None:
    session.add(Activity(kind=kind.value, idea_id=idea.id, user_id=idea.user_id))
    idea.status_changed_at = now
    idea.official_status = code.value
    if status is not None:
        idea.status = status.value
    logger.info("Idea %s official status → %s", idea.id, code.name)


def _official_update(
    engine: Engine,
    idea_id: int,
    *,
    code: OfficialStatus,
    kind: ActivityKind,
    status: IdeaStatus | None = IdeaStatus.INACTIVE,
    refund_ads: bool = False,
    clock: Clock = utcnow,
) -> Idea:
    now = clock()
    with Session(engine, expire_on_commit=False) as session:
        idea = get_idea(session, idea_id)
        _set_official_status(session, idea, code=code, kind=kind, status=status, now=now)
        if refund_ads:
            deactivate_ads_and_refund(session, idea, now)
        session.commit()
        session.refresh(idea)
        session.expunge(idea)
        return idea


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def reactivate(engine: Engine, idea_id: int, *, clock: Clock = utcnow) -> Idea:
    """Return the idea to circulation and revive its endorsements.

    Every active-or-inactive endorsement becomes active again, and each
    endorser's own endorsements are re-ranked 1..n with their top
    endorsement pointer refreshed.
    """
    now = clock()
    with Session(engine, expire_on_commit=False) as session:
        idea = get_idea(session, idea_id)
        _set_official_status(
            session, idea,
            code=OfficialStatus.UNKNOWN,
            kind=ActivityKind.OFFICIAL_STATUS_REACTIVATED,
            status=IdeaStatus.PUBLISHED,
            now=now,
        )
        idea.change_id = None

        endorsements = session.scalars(
            select(Endorsement)
            .where(
                Endorsement.idea_id == idea.id,
                Endorsement.status.in_(COUNTED_STATUSES),
            )
            .order_by(Endorsement.id)
        ).all()
        for endorsement in endorsements:
            endorsement.status = EndorsementStatus.ACTIVE.value
            session.flush()
            rerank_user_endorsements(session, endorsement.user_id)

        session.commit()
        session.refresh(idea)
        session.expunge(idea)
        return idea


def mark_failed(engine: Engine, idea_id: int, *, clock: Clock = utcnow) -> Idea:
    return _official_update(
        engine, idea_id,
        code=OfficialStatus.FAILED,
        kind=ActivityKind.OFFICIAL_STATUS_FAILED,
        clock=clock,
    )


def mark_successful(engine: Engine, idea_id: int, *, clock: Clock = utcnow) -> Idea:
    return _official_update(
        engine, idea_id,
        code=OfficialStatus.SUCCESSFUL,
        kind=ActivityKind.OFFICIAL_STATUS_SUCCESSFUL,
        clock=clock,
    )


def mark_in_the_works(engine: Engine, idea_id: int, *, clock: Clock = utcnow) -> Idea:
    """Official status -1 plus refund of every active ad."""
    return _official_update(
        engine, idea_id,
        code=OfficialStatus.IN_PROGRESS,
        kind=ActivityKind.OFFICIAL_STATUS_IN_THE_WORKS,
        refund_ads=True,
        clock=clock,
    )


def mark_compromised(engine: Engine, idea_id: int, *, clock: Clock = utcnow) -> Idea:
    return _official_update(
        engine, idea_id,
        code=OfficialStatus.IN_PROGRESS,
        kind=ActivityKind.OFFICIAL_STATUS_COMPROMISED,
        clock=clock,
    )


def mark_published_in_works(engine: Engine, idea_id: int, *, clock: Clock = utcnow) -> Idea:
    """Official status 1; the publication status is left alone."""
    return _official_update(
        engine, idea_id,
        code=OfficialStatus.PUBLISHED_IN_WORKS,
        kind=ActivityKind.OFFICIAL_STATUS_IN_THE_WORKS,
        status=None,
        clock=clock,
    )


def change_status(engine: Engine, idea_id: int, code: int, *, clock: Clock = utcnow) -> Idea:
    """Dispatch an official status code to the matching call."""
    handlers = {
        OfficialStatus.UNKNOWN: reactivate,
        OfficialStatus.SUCCESSFUL: mark_successful,
        OfficialStatus.FAILED: mark_failed,
        OfficialStatus.IN_PROGRESS: mark_in_the_works,
    }
    handler = handlers.get(code)
    if handler is None:
        raise ValidationError({"official_status": f"unsupported code {code}"})
    return handler(engine, idea_id, clock=clock)
