"""
plebiscite.services.idea_service — Idea Aggregate Operations
=============================================================

Creation, validation, renaming, flagging, and lifecycle events.

Lifecycle events go through :class:`~plebiscite.engine.lifecycle.IdeaStateMachine`
built by :func:`build_state_machine`, which registers the entry actions
that touch the database:

* ``published`` — stamp ``published_at``, emit an ``idea_new`` activity.
* ``deleted``   — terminate the idea's activities, destroy its
  endorsements, stamp ``deleted_at``.
* ``draft`` / ``published`` entered from ``deleted`` — clear ``deleted_at``.
* ``abusive``   — hand the idea's notifications to the owner's moderation
  handler, reset ``flags_count``.
* ``buried``    — nothing yet.

Entry actions persist without :func:`validate_idea` ("bypass validation");
database constraints still apply.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from plebiscite.constants import (
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    IMPORT_IP_ADDRESS,
    IMPORT_USER_AGENT,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    Clock,
    utcnow,
)
from plebiscite.database.models import (
    Activity,
    ActivityKind,
    ActivityStatus,
    Endorsement,
    Idea,
    IdeaStatus,
    Notification,
    User,
    UserStatus,
)
from plebiscite.engine.lifecycle import IdeaStateMachine, LifecycleEvent, TransitionContext
from plebiscite.errors import NotFoundError, ValidationError
from plebiscite.services.notifications import LoggingNotifier, Notifier
from plebiscite.services.vote_service import recount_endorsements

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

IDEA_FLAGGED = "idea_flagged"


def get_idea(session: Session, idea_id: int) -> Idea:
    idea = session.get(Idea, idea_id)
    if idea is None:
        raise NotFoundError("Idea", idea_id)
    return idea


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _check_length(errors: dict[str, str], field: str, value: str | None, low: int, high: int) -> None:
    length = len(value or "")
    if length < low:
        errors[field] = f"please enter more than {low} characters"
    elif length > high:
        errors[field] = f"has a maximum of {high} characters"


def validate_idea(session: Session, idea: Idea) -> None:
    """Raise :class:`ValidationError` listing every failing field."""
    errors: dict[str, str] = {}
    _check_length(errors, "name", idea.name, NAME_MIN_LENGTH, NAME_MAX_LENGTH)
    _check_length(
        errors, "description", idea.description,
        DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH,
    )
    if idea.category_id is None:
        errors["category"] = "can't be blank"

    if idea.status == IdeaStatus.PUBLISHED and "name" not in errors:
        stmt = select(func.count()).select_from(Idea).where(
            Idea.name == idea.name,
            Idea.status == IdeaStatus.PUBLISHED.value,
        )
        if idea.id is not None:
            stmt = stmt.where(Idea.id != idea.id)
        with session.no_autoflush:
            taken = session.scalar(stmt)
        if taken:
            errors["name"] = "has already been taken"

    if errors:
        raise ValidationError(errors)


# ---------------------------------------------------------------------------
# State machine wiring
# ---------------------------------------------------------------------------
def build_state_machine(session: Session, notifier: Notifier | None = None) -> IdeaStateMachine:
    """An :class:`IdeaStateMachine` whose entry actions write through *session*."""
    notifier = notifier or LoggingNotifier()
    machine = IdeaStateMachine()

    def clear_deleted_at(ctx: TransitionContext) -> None:
        if ctx.from_state == IdeaStatus.DELETED:
            ctx.idea.deleted_at = None

    def on_published(ctx: TransitionContext) -> None:
        idea = ctx.idea
        idea.published_at = ctx.now
        session.add(Activity(
            kind=ActivityKind.IDEA_NEW.value, idea_id=idea.id, user_id=idea.user_id,
        ))
        session.flush()

    def on_deleted(ctx: TransitionContext) -> None:
        idea = ctx.idea
        session.execute(
            update(Activity)
            .where(Activity.idea_id == idea.id)
            .values(status=ActivityStatus.DELETED.value)
        )
        for endorsement in session.scalars(
            select(Endorsement).where(Endorsement.idea_id == idea.id)
        ).all():
            session.delete(endorsement)
        idea.deleted_at = ctx.now
        session.flush()
        recount_endorsements(session, idea.id)

    def on_abusive(ctx: TransitionContext) -> None:
        idea = ctx.idea
        notifications = session.scalars(
            select(Notification).where(Notification.idea_id == idea.id)
        ).all()
        notifier.do_abusive(idea.user, notifications)
        idea.flags_count = 0
        session.flush()

    def on_buried(ctx: TransitionContext) -> None:
        logger.info("Idea %s delisted", ctx.idea.id)

    machine.on_entry(IdeaStatus.DRAFT, clear_deleted_at)
    machine.on_entry(IdeaStatus.PUBLISHED, clear_deleted_at)
    machine.on_entry(IdeaStatus.PUBLISHED, on_published)
    machine.on_entry(IdeaStatus.DELETED, on_deleted)
    machine.on_entry(IdeaStatus.ABUSIVE, on_abusive)
    machine.on_entry(IdeaStatus.BURIED, on_buried)
    return machine


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def create_idea(
    engine: Engine,
    *,
    name: str,
    description: str,
    category_id: int | None,
    user_id: int,
    status: IdeaStatus = IdeaStatus.PUBLISHED,
    sub_instance_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    notifier: Notifier | None = None,
    clock: Clock = utcnow,
) -> Idea:
    """Validate and insert a new idea.

    Provenance falls back to ``127.0.0.1`` / ``Import`` when the idea did
    not come from a request.  Ideas created ``published`` run the
    published entry actions.
    """
    now = clock()
    with Session(engine, expire_on_commit=False) as session:
        if session.get(User, user_id) is None:
            raise NotFoundError("User", user_id)
        idea = Idea(
            name=name,
            description=description,
            category_id=category_id,
            user_id=user_id,
            sub_instance_id=sub_instance_id,
            status=IdeaStatus(status).value,
            ip_address=ip_address or IMPORT_IP_ADDRESS,
            user_agent=user_agent or IMPORT_USER_AGENT,
            created_at=now,
        )
        validate_idea(session, idea)
        session.add(idea)
        session.flush()

        if idea.status == IdeaStatus.PUBLISHED:
            build_state_machine(session, notifier).enter(idea, now)

        session.commit()
        session.refresh(idea)
        session.expunge(idea)
        logger.info("Created idea %s (%s)", idea.id, idea.status)
        return idea


def rename_idea(
    engine: Engine, idea_id: int, name: str, *, actor_id: int | None = None
) -> Idea:
    with Session(engine, expire_on_commit=False) as session:
        idea = get_idea(session, idea_id)
        idea.name = name
        validate_idea(session, idea)
        session.add(Activity(
            kind=ActivityKind.IDEA_RENAMED.value,
            idea_id=idea.id,
            user_id=actor_id or idea.user_id,
        ))
        session.commit()
        session.refresh(idea)
        session.expunge(idea)
        return idea


def flag_idea(
    engine: Engine,
    idea_id: int,
    flagger_id: int,
    *,
    notifier: Notifier | None = None,
) -> Idea:
    """Count a flag and notify every active admin."""
    notifier = notifier or LoggingNotifier()
    with Session(engine, expire_on_commit=False) as session:
        idea = get_idea(session, idea_id)
        flagger = session.get(User, flagger_id)
        if flagger is None:
            raise NotFoundError("User", flagger_id)

        idea.flags_count = (idea.flags_count or 0) + 1
        session.add(Activity(
            kind=ActivityKind.IDEA_FLAG.value, idea_id=idea.id, user_id=flagger.id,
        ))
        admins = session.scalars(
            select(User).where(User.is_admin.is_(True), User.status == UserStatus.ACTIVE.value)
        ).all()
        for admin in admins:
            session.add(Notification(
                kind=IDEA_FLAGGED,
                idea_id=idea.id,
                sender_id=flagger.id,
                recipient_id=admin.id,
            ))
            notifier.send(IDEA_FLAGGED, flagger, admin)
        session.commit()
        session.refresh(idea)
        session.expunge(idea)
        return idea


def fire_event(
    engine: Engine,
    idea_id: int,
    event: LifecycleEvent | str,
    *,
    notifier: Notifier | None = None,
    clock: Clock = utcnow,
) -> Idea:
    """Apply a lifecycle *event* to the idea and persist the outcome.

    Raises
    ------
    IllegalTransitionError
        If *event* is not valid from the idea's current state.  Nothing
        is written.
    NotFoundError
        If the idea doesn't exist.
    """
    event = LifecycleEvent(event)
    with Session(engine, expire_on_commit=False) as session:
        idea = get_idea(session, idea_id)
        build_state_machine(session, notifier).fire(idea, event, clock())
        session.commit()
        session.refresh(idea)
        session.expunge(idea)
        return idea


def publish_idea(engine: Engine, idea_id: int, **kwargs) -> Idea:
    return fire_event(engine, idea_id, LifecycleEvent.PUBLISH, **kwargs)


def delete_idea(engine: Engine, idea_id: int, **kwargs) -> Idea:
    return fire_event(engine, idea_id, LifecycleEvent.DELETE, **kwargs)


def undelete_idea(engine: Engine, idea_id: int, **kwargs) -> Idea:
    return fire_event(engine, idea_id, LifecycleEvent.UNDELETE, **kwargs)


def bury_idea(engine: Engine, idea_id: int, **kwargs) -> Idea:
    return fire_event(engine, idea_id, LifecycleEvent.BURY, **kwargs)


def deactivate_idea(engine: Engine, idea_id: int, **kwargs) -> Idea:
    return fire_event(engine, idea_id, LifecycleEvent.DEACTIVATE, **kwargs)


def mark_abusive(engine: Engine, idea_id: int, **kwargs) -> Idea:
    return fire_event(engine, idea_id, LifecycleEvent.ABUSIVE, **kwargs)

