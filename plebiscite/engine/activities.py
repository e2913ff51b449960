"""
plebiscite.engine.activities — Activity Kind Tables
====================================================

Static lookups the merge engine needs about :class:`ActivityKind`:

* ``INVERTED_KIND`` — the opposite-polarity counterpart of every
  endorsement/opposition kind, used when one idea is flipped into another.
* ``NON_TRANSFERABLE_KINDS`` — kinds that describe the source idea itself
  and are dropped rather than moved on merge.
* ``ACQUISITION_KINDS`` — kinds that stay with a preserved source idea.
"""

from __future__ import annotations

from plebiscite.database.models import ActivityKind

__all__ = [
    "INVERTED_KIND",
    "NON_TRANSFERABLE_KINDS",
    "ACQUISITION_KINDS",
    "invert_kind",
    "polarity_kind",
]

_POLARITY_PAIRS: tuple[tuple[ActivityKind, ActivityKind], ...] = (
    (ActivityKind.ENDORSEMENT_NEW, ActivityKind.OPPOSITION_NEW),
    (ActivityKind.ENDORSEMENT_DELETE, ActivityKind.OPPOSITION_DELETE),
    (ActivityKind.ENDORSEMENT_REPLACED, ActivityKind.OPPOSITION_REPLACED),
    (ActivityKind.ENDORSEMENT_REPLACED_IMPLICIT, ActivityKind.OPPOSITION_REPLACED_IMPLICIT),
    (ActivityKind.ENDORSEMENT_FLIPPED, ActivityKind.OPPOSITION_FLIPPED),
    (ActivityKind.ENDORSEMENT_FLIPPED_IMPLICIT, ActivityKind.OPPOSITION_FLIPPED_IMPLICIT),
)

INVERTED_KIND: dict[ActivityKind, ActivityKind] = {
    **{up: down for up, down in _POLARITY_PAIRS},
    **{down: up for up, down in _POLARITY_PAIRS},
}

NON_TRANSFERABLE_KINDS: frozenset[ActivityKind] = frozenset({
    ActivityKind.IDEA_DEBUT,
    ActivityKind.IDEA_NEW,
    ActivityKind.IDEA_RENAMED,
    ActivityKind.IDEA_FLAG,
    ActivityKind.IDEA_FLAG_INAPPROPRIATE,
    ActivityKind.OFFICIAL_STATUS_COMPROMISED,
    ActivityKind.OFFICIAL_STATUS_FAILED,
    ActivityKind.OFFICIAL_STATUS_IN_THE_WORKS,
    ActivityKind.OFFICIAL_STATUS_SUCCESSFUL,
    ActivityKind.OFFICIAL_STATUS_REACTIVATED,
    ActivityKind.IDEA_RISING,
    ActivityKind.ISSUE_IDEA_TOP,
    ActivityKind.ISSUE_IDEA_CONTROVERSIAL,
    ActivityKind.ISSUE_IDEA_OFFICIAL,
    ActivityKind.ISSUE_IDEA_RISING,
})

ACQUISITION_KINDS: frozenset[ActivityKind] = frozenset({
    ActivityKind.IDEA_ACQUISITION,
    ActivityKind.IDEA_ACQUISITION_PROPOSAL,
    ActivityKind.CAPITAL_ACQUISITION,
})


def invert_kind(kind: str) -> str:
    """Opposite-polarity kind, or *kind* unchanged when it has no polarity."""
    try:
        return INVERTED_KIND[ActivityKind(kind)].value
    except (KeyError, ValueError):
        return kind


# (created, flipped) kinds for a vote landing on each side
_LEDGER_KINDS: dict[int, tuple[ActivityKind, ActivityKind, ActivityKind]] = {
    1: (
        ActivityKind.ENDORSEMENT_NEW,
        ActivityKind.ENDORSEMENT_FLIPPED,
        ActivityKind.ENDORSEMENT_DELETE,
    ),
    -1: (
        ActivityKind.OPPOSITION_NEW,
        ActivityKind.OPPOSITION_FLIPPED,
        ActivityKind.OPPOSITION_DELETE,
    ),
}


def polarity_kind(value: int, action: str) -> ActivityKind:
    """Ledger activity kind for a vote of *value* (+1/-1).

    *action* is one of ``"new"``, ``"flipped"`` or ``"delete"``.
    """
    new, flipped, delete = _LEDGER_KINDS[1 if value > 0 else -1]
    return {"new": new, "flipped": flipped, "delete": delete}[action]
