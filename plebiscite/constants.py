"""
plebiscite.constants — Shared Constants & Helpers
==================================================

Single source of truth for validation bounds, official-status labels,
presentation phrases and the clock.  Import from here instead of
duplicating in services and presentation code.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

# ---------------------------------------------------------------------------
# Clock — every service takes one so tests can pin "now"
# ---------------------------------------------------------------------------
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Timezone-aware current UTC time (the default :data:`Clock`)."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Idea validation bounds
# ---------------------------------------------------------------------------
NAME_MIN_LENGTH = 5
NAME_MAX_LENGTH = 60
DESCRIPTION_MIN_LENGTH = 5
DESCRIPTION_MAX_LENGTH = 300

# ---------------------------------------------------------------------------
# Official status labels (keyed by the stored integer code)
# ---------------------------------------------------------------------------
# -1 is shared by "compromised" and "in the works"; both read "In Progress".
OFFICIAL_STATUS_NAMES: dict[int, str] = {
    -2: "Failed",
    -1: "In Progress",
    0: "Unknown",
    1: "Published",
    2: "Successful",
}

OFFICIAL_VALUE_NAMES: dict[int, str] = {
    -2: "Idea failed",
    -1: "Idea succesful with compromises",
    1: "Idea in the works",
    2: "Idea succesful",
}
UNPROCESSED_VALUE_NAME = "Idea has not been processed"

# ---------------------------------------------------------------------------
# Vote ledger
# ---------------------------------------------------------------------------
CONTROVERSY_LOWER_RATIO = 0.5
CONTROVERSY_UPPER_RATIO = 2.0

# ---------------------------------------------------------------------------
# Movement text
# ---------------------------------------------------------------------------
NO_CHANGE = "no change"
MOVEMENT_DELISTED = "delisted"
MOVEMENT_INACTIVE = "inactive"
MOVEMENT_NEW = "new"

NO_CATEGORY_NAME = "No category"

# Provenance recorded for ideas created outside a request (imports, scripts)
IMPORT_IP_ADDRESS = "127.0.0.1"
IMPORT_USER_AGENT = "Import"
