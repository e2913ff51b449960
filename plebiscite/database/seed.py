"""
plebiscite.database.seed — Default Data Seeder
===============================================

The default sub-instance (id 1, never recorded on endorsements) and a
baseline category so ideas can be created on a fresh database.

Idempotent — only inserts rows that don't already exist.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select

from plebiscite.database.engine import get_session
from plebiscite.database.models import Category, SubInstance

logger = logging.getLogger(__name__)

DEFAULT_SUB_INSTANCE_NAME = "Default"

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "General",
    "Environment",
    "Transport",
    "Education",
    "Welfare",
)


def seed_defaults(engine: Engine) -> int:
    """Insert the default sub-instance and categories that are missing.

    Returns the number of rows inserted.
    """
    inserted = 0
    with get_session(engine) as session:
        if session.get(SubInstance, 1) is None:
            session.add(SubInstance(id=1, name=DEFAULT_SUB_INSTANCE_NAME))
            inserted += 1

        existing = set(session.scalars(select(Category.name)).all())
        for name in DEFAULT_CATEGORIES:
            if name not in existing:
                session.add(Category(name=name))
                inserted += 1

    if inserted:
        logger.info("Seeded %d default rows.", inserted)
    return inserted
