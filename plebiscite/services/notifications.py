"""
plebiscite.services.notifications — Notification Dispatch Port
===============================================================

Delivery (email, push, in-app) lives outside the domain core.  Services
talk to a :class:`Notifier`; the default :class:`LoggingNotifier` only
writes to the log so the core runs without a delivery backend.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from plebiscite.database.models import Notification, User

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, kind: str, sender: User | None, recipient: User) -> None:
        """Deliver a notification of *kind* from *sender* to *recipient*."""

    def do_abusive(self, user: User, notifications: Sequence[Notification]) -> None:
        """Run the moderation action against *user* for an abusive idea."""


class LoggingNotifier:
    """Notifier that records dispatches in the log and nothing else."""

    def send(self, kind: str, sender: User | None, recipient: User) -> None:
        logger.info(
            "Notification %s: %s → %s",
            kind,
            sender.login if sender else "system",
            recipient.login,
        )

    def do_abusive(self, user: User, notifications: Sequence[Notification]) -> None:
        logger.warning(
            "Moderation: %s flagged abusive (%d notifications)",
            user.login,
            len(notifications),
        )
