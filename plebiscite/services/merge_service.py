"""
plebiscite.services.merge_service — Merge Engine
=================================================

Folds one idea (the *source*) into another (the *target*) inside a single
transaction.  Votes, activities, ads, points and incoming point
references move to the target; rankings, tag pointers and, unless
``preserve`` is set, pending changes of the source are discarded.  The
source itself is destroyed last unless ``preserve`` is set.

With ``flip=True`` every moved vote, polarity-typed activity, comment
flag and point is inverted, so an idea *against* X can be folded into
an idea *for* X.

Any failure after the target is loaded rolls the whole transaction back
and surfaces as :class:`~plebiscite.errors.MergeFailedError` naming the
step that broke.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, selectinload

from plebiscite.database.models import (
    Activity,
    Ad,
    Change,
    Endorsement,
    Idea,
    Point,
    Ranking,
    Tag,
)
from plebiscite.engine.activities import (
    ACQUISITION_KINDS,
    NON_TRANSFERABLE_KINDS,
    invert_kind,
)
from plebiscite.errors import MergeFailedError, NotFoundError, ValidationError
from plebiscite.services.vote_service import recount_endorsements

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_NON_TRANSFERABLE = [kind.value for kind in NON_TRANSFERABLE_KINDS]
_ACQUISITION = {kind.value for kind in ACQUISITION_KINDS}


# ---------------------------------------------------------------------------
# Steps (session-level, no commit)
# ---------------------------------------------------------------------------
def _move_endorsements(session: Session, source: Idea, target: Idea, flip: bool) -> int:
    """Reassign source votes whose users have not voted on the target."""
    voted_on_target = session.scalars(
        select(Endorsement.user_id).where(Endorsement.idea_id == target.id)
    ).all()
    values: dict = {"idea_id": target.id}
    if flip:
        values["value"] = -Endorsement.value
    result = session.execute(
        update(Endorsement)
        .where(
            Endorsement.idea_id == source.id,
            Endorsement.user_id.not_in(voted_on_target),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _move_activities(
    session: Session, source: Idea, target: Idea, *, preserve: bool, flip: bool
) -> None:
    for activity in session.scalars(
        select(Activity).where(
            Activity.idea_id == source.id, Activity.kind.in_(_NON_TRANSFERABLE)
        )
    ).all():
        session.delete(activity)
    session.flush()

    remaining = session.scalars(
        select(Activity)
        .where(Activity.idea_id == source.id)
        .options(selectinload(Activity.comments))
    ).all()
    for activity in remaining:
        if flip:
            activity.kind = invert_kind(activity.kind)
            for comment in activity.comments:
                comment.is_endorser, comment.is_opposer = comment.is_opposer, comment.is_endorser
        if preserve and activity.kind in _ACQUISITION:
            continue
        activity.idea_id = target.id


def _move_points(session: Session, source: Idea, target: Idea, flip: bool) -> None:
    values: dict = {"idea_id": target.id}
    if flip:
        values.update(
            value=-Point.value,
            endorser_helpful_count=Point.opposer_helpful_count,
            opposer_helpful_count=Point.endorser_helpful_count,
            endorser_unhelpful_count=Point.opposer_unhelpful_count,
            opposer_unhelpful_count=Point.endorser_unhelpful_count,
        )
    session.execute(
        update(Point)
        .where(Point.idea_id == source.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def _repoint_incoming_points(session: Session, source: Idea, target: Idea, flip: bool) -> None:
    incoming = update(Point).where(Point.other_idea_id == source.id).execution_options(
        synchronize_session=False
    )
    if flip:
        session.execute(incoming.values(other_idea_id=None))
        return
    session.execute(incoming.where(Point.idea_id == target.id).values(other_idea_id=None))
    session.execute(incoming.values(other_idea_id=target.id))


def _drop_changes(session: Session, source: Idea) -> None:
    change_ids = select(Change.id).where(Change.idea_id == source.id)
    session.execute(
        update(Idea)
        .where(Idea.change_id.in_(change_ids))
        .values(change_id=None)
        .execution_options(synchronize_session=False)
    )
    session.execute(
        delete(Change)
        .where(Change.idea_id == source.id)
        .execution_options(synchronize_session=False)
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def merge_into(
    engine: Engine,
    source_id: int,
    target_id: int,
    *,
    preserve: bool = False,
    flip: bool = False,
) -> Idea:
    """Fold idea *source_id* into idea *target_id* and return the target.

    Parameters
    ----------
    preserve:
        Keep the source idea, its acquisition activities and its changes.
    flip:
        Invert the polarity of everything that moves.

    Raises
    ------
    NotFoundError
        If either idea doesn't exist.  Nothing is written.
    ValidationError
        If *source_id* and *target_id* are the same idea.
    MergeFailedError
        If any later step fails.  The transaction is rolled back.
    """
    if source_id == target_id:
        raise ValidationError({"target": "can't be the idea being merged"})

    with Session(engine, expire_on_commit=False) as session:
        target = session.get(Idea, target_id)
        if target is None:
            raise NotFoundError("Idea", target_id)
        source = session.get(Idea, source_id)
        if source is None:
            raise NotFoundError("Idea", source_id)

        step = "endorsements"
        try:
            moved = _move_endorsements(session, source, target, flip)

            step = "counters"
            session.flush()
            counts = recount_endorsements(session, target.id)
            recount_endorsements(session, source.id)

            step = "activities"
            _move_activities(session, source, target, preserve=preserve, flip=flip)

            step = "ads"
            session.execute(
                update(Ad)
                .where(Ad.idea_id == source.id)
                .values(idea_id=target.id)
                .execution_options(synchronize_session=False)
            )

            step = "points"
            _move_points(session, source, target, flip)

            step = "incoming_points"
            _repoint_incoming_points(session, source, target, flip)

            if not preserve:
                step = "changes"
                _drop_changes(session, source)

            step = "tags"
            session.execute(
                update(Tag)
                .where(Tag.top_idea_id == source.id)
                .values(top_idea_id=None)
                .execution_options(synchronize_session=False)
            )

            step = "rankings"
            session.execute(
                delete(Ranking)
                .where(Ranking.idea_id == source.id)
                .execution_options(synchronize_session=False)
            )

            step = "source"
            session.flush()
            session.expire_all()
            source = session.get(Idea, source_id)
            if not preserve:
                session.delete(source)

            step = "commit"
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.exception("Merge of idea %s into %s failed at %s", source_id, target_id, step)
            raise MergeFailedError(step, exc) from exc

        session.refresh(target)
        session.expunge(target)
        logger.info(
            "Merged idea %s into %s (%d votes moved, total %d, flip=%s, preserve=%s)",
            source_id, target_id, moved, counts.total, flip, preserve,
        )
        return target


def flip_into(
    engine: Engine, source_id: int, target_id: int, *, preserve: bool = False
) -> Idea:
    """:func:`merge_into` with polarity inverted."""
    return merge_into(engine, source_id, target_id, preserve=preserve, flip=True)
