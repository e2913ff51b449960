"""
tests/test_bootstrap.py — Engine, Seed and Entry Point Tests
=============================================================
"""

from __future__ import annotations

import logging

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from plebiscite import __main__ as entry
from plebiscite.database.engine import create_db_engine, get_session, init_db
from plebiscite.database.models import Category, SubInstance
from plebiscite.database.seed import DEFAULT_CATEGORIES, seed_defaults


class TestCreateEngine:
    def test_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            create_db_engine()

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        engine = create_db_engine()
        assert engine.url.drivername == "sqlite"


class TestSeed:
    def test_seed_is_idempotent(self, engine):
        first = seed_defaults(engine)
        second = seed_defaults(engine)

        assert first == len(DEFAULT_CATEGORIES)  # sub-instance 1 already exists
        assert second == 0
        with Session(engine) as session:
            names = set(session.scalars(select(Category.name)))
            assert names == set(DEFAULT_CATEGORIES)
            assert session.get(SubInstance, 1).name == "Default"

    def test_get_session_rolls_back(self, engine):
        with pytest.raises(RuntimeError):
            with get_session(engine) as session:
                session.add(Category(name="Doomed"))
                session.flush()
                raise RuntimeError("abort")
        with Session(engine) as session:
            assert session.scalar(select(Category).where(Category.name == "Doomed")) is None


class TestMain:
    def test_bootstraps_database(self, tmp_path, monkeypatch, caplog):
        (tmp_path / "config.yaml").write_text("community_name: Town\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'plebiscite.db'}")

        with caplog.at_level(logging.INFO, logger="plebiscite"):
            entry.main()

        assert "Community: Town" in caplog.text
        assert "0 published idea(s)" in caplog.text

    def test_exits_without_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit):
            entry.main()

    def test_init_db_creates_tables(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'fresh.db'}")
        init_db(engine)
        with Session(engine) as session:
            assert session.get(SubInstance, 1) is not None
