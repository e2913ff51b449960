"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from plebiscite.database.models import (
    Base,
    Category,
    Endorsement,
    Idea,
    IdeaStatus,
    SubInstance,
    User,
    UserStatus,
)

FIXED_NOW = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Plebiscite tables.

    Uses StaticPool so every session sees the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add(SubInstance(id=1, name="Default"))
        session.commit()
    return engine


@pytest.fixture
def engine(db_engine):
    return db_engine


@pytest.fixture
def clock():
    """A clock pinned to :data:`FIXED_NOW`."""
    return lambda: FIXED_NOW


@pytest.fixture
def notifier():
    """A mock notifier recording ``send`` and ``do_abusive`` calls."""
    return MagicMock()


# ---------------------------------------------------------------------------
# Factories (importable: ``from conftest import make_user``)
# ---------------------------------------------------------------------------
def make_user(
    engine: Engine, login: str, *, is_admin: bool = False, status: str = UserStatus.ACTIVE.value
) -> int:
    """Insert a user and return its ID."""
    with Session(engine) as session:
        user = User(login=login, is_admin=is_admin, status=status, capital_count=0)
        session.add(user)
        session.commit()
        return user.id


def make_category(engine: Engine, name: str = "General") -> int:
    with Session(engine) as session:
        category = Category(name=name)
        session.add(category)
        session.commit()
        return category.id


def make_idea(
    engine: Engine,
    owner_id: int,
    name: str = "Free buses",
    *,
    status: IdeaStatus = IdeaStatus.PUBLISHED,
    published_at: datetime | None = None,
    created_at: datetime | None = None,
    **fields,
) -> int:
    """Insert an idea directly (no validation, no entry actions)."""
    with Session(engine) as session:
        idea = Idea(
            name=name,
            description="An idea worth voting on",
            user_id=owner_id,
            status=status.value,
            published_at=published_at,
            created_at=created_at or FIXED_NOW - timedelta(days=30),
            **fields,
        )
        session.add(idea)
        session.commit()
        return idea.id


def make_vote(
    engine: Engine,
    idea_id: int,
    user_id: int,
    value: int = 1,
    *,
    status: str = "active",
    position: int | None = None,
) -> int:
    """Insert an endorsement row directly (counters are not touched)."""
    with Session(engine) as session:
        endorsement = Endorsement(
            idea_id=idea_id,
            user_id=user_id,
            value=value,
            status=status,
            position=position,
        )
        session.add(endorsement)
        session.commit()
        return endorsement.id


def make_users(engine: Engine, prefix: str, count: int) -> list[int]:
    return [make_user(engine, f"{prefix}{n}") for n in range(count)]
