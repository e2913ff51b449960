"""
tests/test_vote_service.py — Vote Ledger Integration Tests
===========================================================

Covers cast_vote idempotency, flipping, reactivation of replaced votes,
the uniqueness-race retry, counter/live-count equality and re-ranking.

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import make_idea, make_user, make_users, make_vote
from plebiscite.config import PlebisciteConfig
from plebiscite.database.models import Activity, ActivityKind, Endorsement, Idea, User
from plebiscite.errors import NotFoundError
from plebiscite.services import vote_service
from plebiscite.services.vote_service import VoteDirection, VoteProvenance


def _endorsements(engine, idea_id: int) -> list[Endorsement]:
    with Session(engine) as session:
        return list(session.scalars(
            select(Endorsement).where(Endorsement.idea_id == idea_id)
        ).all())


def _assert_counters_match_ledger(engine, idea_id: int) -> None:
    live = vote_service.get_counts(engine, idea_id)
    with Session(engine) as session:
        idea = session.get(Idea, idea_id)
        assert idea.endorsements_count == live.total
        assert idea.up_endorsements_count == live.up
        assert idea.down_endorsements_count == live.down
        assert idea.up_endorsements_count + idea.down_endorsements_count == idea.endorsements_count


@pytest.fixture
def owner(engine):
    return make_user(engine, "owner")


@pytest.fixture
def idea_id(engine, owner):
    return make_idea(engine, owner)


class TestCastVote:
    def test_first_vote_creates_active_endorsement(self, engine, idea_id):
        voter = make_user(engine, "alice")
        endorsement = vote_service.endorse(
            engine, idea_id, voter,
            provenance=VoteProvenance(ip_address="10.0.0.1", user_agent="pytest"),
        )

        assert endorsement.value == 1
        assert endorsement.status == "active"
        assert endorsement.ip_address == "10.0.0.1"
        assert endorsement.user_agent == "pytest"
        _assert_counters_match_ledger(engine, idea_id)

    def test_up_twice_is_idempotent(self, engine, idea_id):
        voter = make_user(engine, "alice")
        vote_service.endorse(engine, idea_id, voter)
        before = [(e.id, e.value, e.status) for e in _endorsements(engine, idea_id)]

        vote_service.endorse(engine, idea_id, voter)
        after = [(e.id, e.value, e.status) for e in _endorsements(engine, idea_id)]

        assert before == after
        assert vote_service.get_counts(engine, idea_id).up == 1

    def test_up_then_down_leaves_single_opposing_row(self, engine, idea_id):
        voter = make_user(engine, "alice")
        vote_service.endorse(engine, idea_id, voter)
        vote_service.oppose(engine, idea_id, voter)

        rows = _endorsements(engine, idea_id)
        assert len(rows) == 1
        assert rows[0].value == -1
        assert rows[0].status == "active"
        counts = vote_service.get_counts(engine, idea_id)
        assert (counts.total, counts.up, counts.down) == (1, 0, 1)
        _assert_counters_match_ledger(engine, idea_id)

    def test_flip_records_flipped_activity(self, engine, idea_id):
        voter = make_user(engine, "alice")
        vote_service.endorse(engine, idea_id, voter)
        vote_service.oppose(engine, idea_id, voter)

        with Session(engine) as session:
            kinds = session.scalars(
                select(Activity.kind).where(Activity.idea_id == idea_id).order_by(Activity.id)
            ).all()
        assert kinds == [ActivityKind.ENDORSEMENT_NEW, ActivityKind.OPPOSITION_FLIPPED]

    def test_replaced_vote_is_reactivated(self, engine, idea_id):
        voter = make_user(engine, "alice")
        make_vote(engine, idea_id, voter, 1, status="replaced")

        endorsement = vote_service.endorse(engine, idea_id, voter)

        assert endorsement.status == "active"
        assert endorsement.value == 1
        assert len(_endorsements(engine, idea_id)) == 1

    def test_replaced_vote_reactivates_and_flips(self, engine, idea_id):
        voter = make_user(engine, "alice")
        make_vote(engine, idea_id, voter, 1, status="replaced")

        endorsement = vote_service.oppose(engine, idea_id, voter)

        assert endorsement.status == "active"
        assert endorsement.value == -1

    def test_default_sub_instance_is_not_recorded(self, engine, idea_id):
        voter = make_user(engine, "alice")
        endorsement = vote_service.endorse(engine, idea_id, voter, sub_instance_id=1)
        assert endorsement.sub_instance_id is None

    def test_default_sub_instance_follows_config(self, engine, idea_id):
        voter = make_user(engine, "alice")
        cfg = PlebisciteConfig(community_name="Test", default_sub_instance_id=7)
        endorsement = vote_service.endorse(
            engine, idea_id, voter, sub_instance_id=1, config=cfg,
        )
        assert endorsement.sub_instance_id == 1

    def test_referral_is_recorded(self, engine, idea_id):
        voter, referrer = make_user(engine, "alice"), make_user(engine, "bob")
        endorsement = vote_service.endorse(engine, idea_id, voter, referral_id=referrer)
        assert endorsement.referral_id == referrer

    def test_missing_user_returns_none(self, engine, idea_id):
        assert vote_service.endorse(engine, idea_id, None) is None
        assert vote_service.endorse(engine, idea_id, 9999) is None
        assert _endorsements(engine, idea_id) == []

    def test_missing_idea_raises(self, engine):
        voter = make_user(engine, "alice")
        with pytest.raises(NotFoundError):
            vote_service.endorse(engine, 9999, voter)

    def test_direction_accepts_strings(self, engine, idea_id):
        voter = make_user(engine, "alice")
        endorsement = vote_service.cast_vote(engine, idea_id, voter, "down")
        assert endorsement.value == VoteDirection.DOWN.value_int == -1

    def test_rejects_unknown_direction(self, engine, idea_id):
        voter = make_user(engine, "alice")
        with pytest.raises(ValueError):
            vote_service.cast_vote(engine, idea_id, voter, "sideways")


class TestConcurrentInsert:
    def test_lost_insert_race_falls_through_to_flip(self, engine, idea_id, monkeypatch, caplog):
        """A stale "no vote yet" read must not produce a second row."""
        voter = make_user(engine, "alice")
        vote_service.endorse(engine, idea_id, voter)

        real_find = vote_service.find_endorsement
        calls = []

        def stale_then_real(session, i_id, u_id):
            calls.append((i_id, u_id))
            if len(calls) == 1:
                return None
            return real_find(session, i_id, u_id)

        monkeypatch.setattr(vote_service, "find_endorsement", stale_then_real)

        endorsement = vote_service.oppose(engine, idea_id, voter)

        assert len(calls) == 2
        assert endorsement.value == -1
        rows = _endorsements(engine, idea_id)
        assert len(rows) == 1
        assert rows[0].value == -1
        assert "Concurrent vote" in caplog.text
        _assert_counters_match_ledger(engine, idea_id)


class TestCounters:
    def test_counts_include_inactive_but_not_replaced(self, engine, idea_id):
        a, b, c = make_users(engine, "voter", 3)
        make_vote(engine, idea_id, a, 1, status="active")
        make_vote(engine, idea_id, b, -1, status="inactive")
        make_vote(engine, idea_id, c, 1, status="replaced")

        counts = vote_service.get_counts(engine, idea_id)
        assert (counts.total, counts.up, counts.down) == (2, 1, 1)

    def test_counters_follow_every_write(self, engine, idea_id):
        voters = make_users(engine, "voter", 5)
        for n, voter in enumerate(voters):
            if n % 2:
                vote_service.oppose(engine, idea_id, voter)
            else:
                vote_service.endorse(engine, idea_id, voter)
            _assert_counters_match_ledger(engine, idea_id)

        vote_service.withdraw_vote(engine, idea_id, voters[0])
        _assert_counters_match_ledger(engine, idea_id)

    def test_controversy_flag_tracks_ratio(self, engine, idea_id):
        voters = make_users(engine, "voter", 5)
        for voter in voters[:3]:
            vote_service.endorse(engine, idea_id, voter)
        for voter in voters[3:]:
            vote_service.oppose(engine, idea_id, voter)

        with Session(engine) as session:
            assert session.get(Idea, idea_id).is_controversial is True

    def test_endorser_snapshot(self, engine, idea_id):
        a, b, c = make_users(engine, "voter", 3)
        make_vote(engine, idea_id, a, 1)
        make_vote(engine, idea_id, b, -1)
        make_vote(engine, idea_id, c, 1, status="replaced")

        with Session(engine) as session:
            snapshot = vote_service.endorser_snapshot(session, idea_id)
        assert snapshot.up_ids == (a,)
        assert snapshot.down_ids == (b,)
        assert snapshot.all_ids == tuple(sorted((a, b)))


class TestWithdrawVote:
    def test_withdraw_removes_row_and_records_activity(self, engine, idea_id):
        voter = make_user(engine, "alice")
        vote_service.oppose(engine, idea_id, voter)

        assert vote_service.withdraw_vote(engine, idea_id, voter) is True
        assert _endorsements(engine, idea_id) == []
        with Session(engine) as session:
            kinds = session.scalars(
                select(Activity.kind).where(Activity.idea_id == idea_id).order_by(Activity.id)
            ).all()
        assert kinds[-1] == ActivityKind.OPPOSITION_DELETE

    def test_withdraw_without_vote(self, engine, idea_id):
        voter = make_user(engine, "alice")
        assert vote_service.withdraw_vote(engine, idea_id, voter) is False


class TestRerank:
    def test_positions_renumbered_and_top_pointer_set(self, engine, owner):
        voter = make_user(engine, "alice")
        ideas = [make_idea(engine, owner, f"Idea number {n}") for n in range(3)]
        e_late = make_vote(engine, ideas[0], voter, position=9)
        e_none = make_vote(engine, ideas[1], voter, position=None)
        e_early = make_vote(engine, ideas[2], voter, position=4)

        with Session(engine) as session:
            vote_service.rerank_user_endorsements(session, voter)
            session.commit()

        with Session(engine) as session:
            positions = {
                e.id: e.position
                for e in session.scalars(
                    select(Endorsement).where(Endorsement.user_id == voter)
                )
            }
            assert positions == {e_early: 1, e_late: 2, e_none: 3}
            assert session.get(User, voter).top_endorsement_id == e_early

    def test_max_endorsement_position(self, engine, owner):
        voter = make_user(engine, "alice")
        first = make_idea(engine, owner, "First idea")
        second = make_idea(engine, owner, "Second idea")
        make_vote(engine, first, voter, position=3)
        make_vote(engine, second, voter, position=8, status="inactive")

        with Session(engine) as session:
            assert vote_service.max_endorsement_position(session) == 3
            assert session.scalar(select(func.count()).select_from(Endorsement)) == 2
