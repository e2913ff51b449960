"""
plebiscite.engine.metrics — Derived Idea Metrics
=================================================

Pure functions over an :class:`Idea` row and externally supplied ranking
inputs: the controversy predicate, windowed change percentages, the
human-readable movement summary, and the time-dependent predicates
(``is_new``, ``is_top``, ``has_change``).
"""

from __future__ import annotations

import enum
import math
from datetime import datetime, timedelta

from plebiscite.constants import (
    CONTROVERSY_LOWER_RATIO,
    CONTROVERSY_UPPER_RATIO,
    MOVEMENT_DELISTED,
    MOVEMENT_INACTIVE,
    MOVEMENT_NEW,
    NO_CHANGE,
    as_utc,
)
from plebiscite.database.models import Change, Idea, IdeaStatus

__all__ = [
    "Window",
    "is_controversial",
    "change_percent",
    "movement_text",
    "is_new",
    "is_top",
    "is_change_expired",
    "has_change",
]


class Window(enum.StrEnum):
    """Ranking windows; values match the ``position_<window>`` columns."""
    DAY = "24hr"
    WEEK = "7days"
    MONTH = "30days"


def _delta(idea: Idea, window: Window) -> int:
    return getattr(idea, f"position_{window.value}_change") or 0


# ---------------------------------------------------------------------------
# Controversy
# ---------------------------------------------------------------------------
def is_controversial(up_count: int, down_count: int) -> bool:
    """Both sides present and up/down strictly inside (0.5, 2.0)."""
    if up_count <= 0 or down_count <= 0:
        return False
    ratio = up_count / down_count
    return CONTROVERSY_LOWER_RATIO < ratio < CONTROVERSY_UPPER_RATIO


# ---------------------------------------------------------------------------
# Movement
# ---------------------------------------------------------------------------
def change_percent(idea: Idea, window: Window) -> float:
    """``delta / (position + delta)``; NaN when the denominator is zero."""
    delta = _delta(idea, window)
    denominator = (idea.position or 0) + delta
    if denominator == 0:
        return math.nan
    return float(delta) / float(denominator)


def _signed(delta: int) -> str:
    if delta > 0:
        return f"+{delta}"
    if delta < 0:
        return f"-{abs(delta)}"
    return NO_CHANGE


def movement_text(idea: Idea, now: datetime) -> str:
    """One-sentence summary of the 24hr / 7-day / 30-day position deltas.

    Buried, inactive and day-old ideas get a single word instead.
    """
    if idea.status == IdeaStatus.BURIED:
        return MOVEMENT_DELISTED
    if idea.status == IdeaStatus.INACTIVE:
        return MOVEMENT_INACTIVE
    if idea.created_at is not None and as_utc(idea.created_at) > as_utc(now) - timedelta(days=1):
        return MOVEMENT_NEW

    day, week, month = (_delta(idea, w) for w in Window)
    if day == 0 and week == 0 and month == 0:
        return NO_CHANGE
    return (
        f"{_signed(day)} today, "
        f"{_signed(week)} this week, "
        f"and {_signed(month)} this month"
    )


# ---------------------------------------------------------------------------
# Time-dependent predicates
# ---------------------------------------------------------------------------
def is_new(idea: Idea, now: datetime, days: int = 7) -> bool:
    """Created within *days*, or not yet ranked over the last week."""
    if idea.created_at is None:
        return True
    recent = as_utc(idea.created_at) > as_utc(now) - timedelta(days=days)
    return recent or (idea.position_7days or 0) == 0


def is_top(idea: Idea, max_position: int | None) -> bool:
    """Ranked, and better than the deepest position any member tracks.

    *max_position* comes from
    :func:`plebiscite.services.vote_service.max_endorsement_position`.
    """
    if not idea.position or max_position is None:
        return False
    return idea.position < max_position


def is_change_expired(change: Change, now: datetime) -> bool:
    return change.expires_at is not None and as_utc(change.expires_at) <= as_utc(now)


def has_change(idea: Idea, now: datetime) -> bool:
    """A pending, unexpired change exists and the idea is still in play."""
    if idea.change_id is None or idea.status == IdeaStatus.INACTIVE:
        return False
    return idea.change is not None and not is_change_expired(idea.change, now)
