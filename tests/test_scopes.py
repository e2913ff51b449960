"""
tests/test_scopes.py — Idea Query Scope Tests
==============================================

Runs the composable scopes against a small seeded catalogue, including
the ``suppress_empty_ideas`` switch that decides what "published" means.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import FIXED_NOW, make_idea, make_user
from plebiscite.config import PlebisciteConfig, load_config
from plebiscite.database.models import Idea, IdeaStatus
from plebiscite.engine.metrics import Window
from plebiscite.engine.scopes import IdeaScopes


@pytest.fixture
def catalogue(engine):
    owner = make_user(engine, "owner")
    other = make_user(engine, "other")
    return {
        "popular": make_idea(
            engine, owner, "Popular idea", position=1, endorsements_count=9, score=90.0,
            trending_score=4.0, position_24hr_change=2, position_endorsed_24hr=1,
            cached_issue_list="transport", published_at=FIXED_NOW,
        ),
        "empty": make_idea(engine, other, "Empty idea", position=0, endorsements_count=0),
        "falling": make_idea(
            engine, owner, "Falling idea", position=30, endorsements_count=3, score=10.0,
            trending_score=-2.0, position_24hr_change=-4, is_controversial=True,
            controversial_score=1.5,
        ),
        "draft": make_idea(engine, owner, "Draft idea", status=IdeaStatus.DRAFT),
        "abusive": make_idea(engine, owner, "Abusive idea", status=IdeaStatus.ABUSIVE, flags_count=3),
        "deleted": make_idea(engine, owner, "Deleted idea", status=IdeaStatus.DELETED,
                             official_status=-2),
    }


def _ids(engine, stmt) -> list[int]:
    with Session(engine) as session:
        return [idea.id for idea in session.scalars(stmt)]


class TestPublished:
    def test_includes_empty_ideas_by_default(self, engine, catalogue):
        ids = set(_ids(engine, IdeaScopes().published()))
        assert ids == {catalogue["popular"], catalogue["empty"], catalogue["falling"]}

    def test_suppress_empty_ideas(self, engine, catalogue):
        cfg = PlebisciteConfig(community_name="Test", suppress_empty_ideas=True)
        ids = set(_ids(engine, IdeaScopes.from_config(cfg).published()))
        assert ids == {catalogue["popular"], catalogue["falling"]}

    def test_unpublished_excludes_abusive(self, engine, catalogue):
        ids = set(_ids(engine, IdeaScopes().unpublished()))
        assert ids == {catalogue["draft"], catalogue["deleted"]}

    def test_not_deleted_flagged_finished(self, engine, catalogue):
        scopes = IdeaScopes()
        assert catalogue["deleted"] not in _ids(engine, scopes.not_deleted())
        assert _ids(engine, scopes.flagged()) == [catalogue["abusive"]]
        assert _ids(engine, scopes.finished()) == [catalogue["deleted"]]


class TestRanking:
    def test_top_rank_orders_by_score(self, engine, catalogue):
        scopes = IdeaScopes()
        ids = _ids(engine, scopes.top_rank(scopes.published()))
        assert ids[:2] == [catalogue["popular"], catalogue["falling"]]

    def test_not_top_rank_uses_cutoff(self, engine, catalogue):
        assert _ids(engine, IdeaScopes().not_top_rank()) == [catalogue["falling"]]
        assert _ids(engine, IdeaScopes(top_rank_cutoff=50).not_top_rank()) == []

    def test_rising_falling_controversial(self, engine, catalogue):
        scopes = IdeaScopes()
        assert _ids(engine, scopes.rising()) == [catalogue["popular"]]
        assert _ids(engine, scopes.falling()) == [catalogue["falling"]]
        assert _ids(engine, scopes.controversial()) == [catalogue["falling"]]

    def test_window_movement(self, engine, catalogue):
        scopes = IdeaScopes()
        assert _ids(engine, scopes.rising_24hr()) == [catalogue["popular"]]
        assert _ids(engine, scopes.falling_24hr()) == [catalogue["falling"]]
        assert catalogue["empty"] in _ids(engine, scopes.flat_24hr())
        assert _ids(engine, scopes.movement(Window.DAY, 1, scopes.published())) == [
            catalogue["popular"]
        ]

    def test_top_in_window_skips_unranked(self, engine, catalogue):
        assert _ids(engine, IdeaScopes().top_24hr()) == [catalogue["popular"]]
        assert _ids(engine, IdeaScopes().top_7days()) == []


class TestComposition:
    def test_chained_scopes_with_limit(self, engine, catalogue):
        scopes = IdeaScopes()
        stmt = scopes.item_limit(scopes.alphabetical(scopes.published()), 2)
        assert _ids(engine, stmt) == [catalogue["empty"], catalogue["falling"]]

    def test_by_user(self, engine, catalogue):
        with Session(engine) as session:
            other = session.get(Idea, catalogue["empty"]).user_id
        assert _ids(engine, IdeaScopes().by_user(other)) == [catalogue["empty"]]

    def test_tagged_and_untagged(self, engine, catalogue):
        scopes = IdeaScopes()
        assert _ids(engine, scopes.tagged()) == [catalogue["popular"]]
        assert catalogue["popular"] not in _ids(engine, scopes.untagged())

    def test_refines_a_custom_statement(self, engine, catalogue):
        base = select(Idea).where(Idea.name.like("%idea"))
        assert len(_ids(engine, IdeaScopes().by_random(IdeaScopes().published(base)))) == 3

    def test_newest_and_status_change_ordering_execute(self, engine, catalogue):
        scopes = IdeaScopes()
        assert len(_ids(engine, scopes.newest())) == len(catalogue)
        assert len(_ids(engine, scopes.by_most_recent_status_change())) == len(catalogue)


class TestNewIdeaWindow:
    def _ten_days_old(self) -> Idea:
        return Idea(
            name="Bike lanes",
            status=IdeaStatus.PUBLISHED.value,
            created_at=FIXED_NOW - timedelta(days=10),
            position_7days=4,
        )

    def test_default_window(self):
        assert not IdeaScopes().is_new(self._ten_days_old(), FIXED_NOW)

    def test_loaded_config_widens_window(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("community_name: Town\nnew_idea_days: 14\n", encoding="utf-8")
        scopes = IdeaScopes.from_config(load_config(path))
        assert scopes.new_idea_days == 14
        assert scopes.is_new(self._ten_days_old(), FIXED_NOW)
