"""
plebiscite.engine.lifecycle — Idea Publication State Machine
=============================================================

An explicit finite-state machine over :class:`IdeaStatus`:

* a transition table ``state → (event, target, guard)…`` where the first
  transition whose event matches and whose guard passes wins, and
* an ordered list of typed entry actions per state, run once after the
  new state becomes current.

The machine itself never touches the database.  Services register the
entry actions that persist, emit activities, or notify (see
:func:`plebiscite.services.idea_service.build_state_machine`).
"""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from plebiscite.database.models import Idea, IdeaStatus
from plebiscite.errors import IllegalTransitionError

logger = logging.getLogger(__name__)

__all__ = [
    "LifecycleEvent",
    "Transition",
    "TransitionContext",
    "TRANSITIONS",
    "IdeaStateMachine",
]


class LifecycleEvent(enum.StrEnum):
    PUBLISH = "publish"
    DELETE = "delete"
    UNDELETE = "undelete"
    BURY = "bury"
    DEACTIVATE = "deactivate"
    ABUSIVE = "abusive"


Guard = Callable[[Idea], bool]


def _was_published(idea: Idea) -> bool:
    return idea.published_at is not None


@dataclass(frozen=True, slots=True)
class Transition:
    event: LifecycleEvent
    target: IdeaStatus
    guard: Guard | None = None

    def allows(self, idea: Idea) -> bool:
        return self.guard is None or self.guard(idea)


# ---------------------------------------------------------------------------
# Transition table — order matters only where an event appears twice
# ---------------------------------------------------------------------------
TRANSITIONS: dict[IdeaStatus, tuple[Transition, ...]] = {
    IdeaStatus.PUBLISHED: (
        Transition(LifecycleEvent.DELETE, IdeaStatus.DELETED),
        Transition(LifecycleEvent.BURY, IdeaStatus.BURIED),
        Transition(LifecycleEvent.DEACTIVATE, IdeaStatus.INACTIVE),
        Transition(LifecycleEvent.ABUSIVE, IdeaStatus.ABUSIVE),
    ),
    IdeaStatus.PASSIVE: (
        Transition(LifecycleEvent.PUBLISH, IdeaStatus.PUBLISHED),
        Transition(LifecycleEvent.DELETE, IdeaStatus.DELETED),
        Transition(LifecycleEvent.BURY, IdeaStatus.BURIED),
    ),
    IdeaStatus.DRAFT: (
        Transition(LifecycleEvent.PUBLISH, IdeaStatus.PUBLISHED),
        Transition(LifecycleEvent.DELETE, IdeaStatus.DELETED),
        Transition(LifecycleEvent.BURY, IdeaStatus.BURIED),
        Transition(LifecycleEvent.DEACTIVATE, IdeaStatus.INACTIVE),
    ),
    IdeaStatus.DELETED: (
        Transition(LifecycleEvent.BURY, IdeaStatus.BURIED),
        Transition(LifecycleEvent.UNDELETE, IdeaStatus.PUBLISHED, guard=_was_published),
        Transition(LifecycleEvent.UNDELETE, IdeaStatus.DRAFT),
    ),
    IdeaStatus.INACTIVE: (
        Transition(LifecycleEvent.DELETE, IdeaStatus.DELETED),
    ),
    IdeaStatus.BURIED: (
        Transition(LifecycleEvent.DEACTIVATE, IdeaStatus.INACTIVE),
    ),
    IdeaStatus.ABUSIVE: (),
}


@dataclass(frozen=True, slots=True)
class TransitionContext:
    """Handed to every entry action.  ``event`` is ``None`` on creation."""

    idea: Idea
    event: LifecycleEvent | None
    from_state: IdeaStatus | None
    to_state: IdeaStatus
    now: datetime


EntryAction = Callable[[TransitionContext], None]


class IdeaStateMachine:
    """Transition executor for an idea's ``status`` column.

    Usage::

        machine = IdeaStateMachine()
        machine.on_entry(IdeaStatus.DELETED, destroy_endorsements)
        machine.fire(idea, LifecycleEvent.DELETE, now)
    """

    def __init__(
        self,
        transitions: dict[IdeaStatus, tuple[Transition, ...]] | None = None,
    ) -> None:
        self._transitions = transitions if transitions is not None else TRANSITIONS
        self._entry_actions: dict[IdeaStatus, list[EntryAction]] = defaultdict(list)

    def on_entry(self, state: IdeaStatus, action: EntryAction) -> EntryAction:
        """Append *action* to the ordered entry actions of *state*."""
        self._entry_actions[state].append(action)
        return action

    def entry_actions(self, state: IdeaStatus) -> list[EntryAction]:
        return list(self._entry_actions.get(state, ()))

    def allowed_events(self, idea: Idea) -> list[LifecycleEvent]:
        """Events that would succeed from the idea's current state."""
        state = IdeaStatus(idea.status)
        events: list[LifecycleEvent] = []
        for transition in self._transitions.get(state, ()):
            if transition.event not in events and transition.allows(idea):
                events.append(transition.event)
        return events

    def can_fire(self, idea: Idea, event: LifecycleEvent) -> bool:
        return event in self.allowed_events(idea)

    def resolve(self, idea: Idea, event: LifecycleEvent) -> Transition:
        """Return the first matching transition or raise."""
        state = IdeaStatus(idea.status)
        for transition in self._transitions.get(state, ()):
            if transition.event == event and transition.allows(idea):
                return transition
        raise IllegalTransitionError(state, event)

    def fire(
        self, idea: Idea, event: LifecycleEvent, now: datetime
    ) -> TransitionContext:
        """Move *idea* along *event* and run the target's entry actions.

        Raises :class:`IllegalTransitionError` with the state unchanged when
        *event* is not valid from the current state.
        """
        transition = self.resolve(idea, event)
        from_state = IdeaStatus(idea.status)
        idea.status = transition.target.value
        ctx = TransitionContext(
            idea=idea,
            event=event,
            from_state=from_state,
            to_state=transition.target,
            now=now,
        )
        logger.info(
            "Idea %s: %s --%s--> %s", idea.id, from_state, event, transition.target
        )
        self._run_entry_actions(ctx)
        return ctx

    def enter(self, idea: Idea, now: datetime) -> TransitionContext:
        """Run the entry actions of the idea's initial state (on creation)."""
        ctx = TransitionContext(
            idea=idea,
            event=None,
            from_state=None,
            to_state=IdeaStatus(idea.status),
            now=now,
        )
        self._run_entry_actions(ctx)
        return ctx

    def _run_entry_actions(self, ctx: TransitionContext) -> None:
        for action in self._entry_actions.get(ctx.to_state, ()):
            action(ctx)
