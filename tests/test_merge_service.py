"""
tests/test_merge_service.py — Merge Engine Integration Tests
=============================================================

Covers vote migration with overlapping voters, counter re-derivation,
activity filtering and inversion, point/ad/tag/ranking handling,
``preserve`` and ``flip`` modes, and rollback on failure.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import make_idea, make_user, make_users, make_vote
from plebiscite.database.models import (
    Activity,
    ActivityKind,
    Ad,
    Change,
    Comment,
    Endorsement,
    Idea,
    Point,
    Ranking,
    Tag,
)
from plebiscite.errors import MergeFailedError, NotFoundError, ValidationError
from plebiscite.services import merge_service, vote_service
from plebiscite.services.merge_service import flip_into, merge_into


@pytest.fixture
def owner(engine):
    return make_user(engine, "owner")


@pytest.fixture
def ideas(engine, owner):
    """(source, target) idea IDs."""
    return make_idea(engine, owner, "Source idea"), make_idea(engine, owner, "Target idea")


def _votes(engine, idea_id: int) -> dict[int, int]:
    """user_id → value for every endorsement on the idea."""
    with Session(engine) as session:
        return dict(session.execute(
            select(Endorsement.user_id, Endorsement.value).where(Endorsement.idea_id == idea_id)
        ).all())


def _exists(engine, idea_id: int) -> bool:
    with Session(engine) as session:
        return session.get(Idea, idea_id) is not None


def _cast(engine, idea_id: int, users: list[int], direction: str) -> None:
    for user in users:
        vote_service.cast_vote(engine, idea_id, user, direction)


class TestEndorsements:
    def test_two_plus_three_votes(self, engine, ideas):
        source, target = ideas
        _cast(engine, source, make_users(engine, "a", 2), "up")
        _cast(engine, target, make_users(engine, "b", 3), "up")

        merged = merge_into(engine, source, target)

        assert merged.id == target
        assert merged.endorsements_count == 5
        assert merged.up_endorsements_count + merged.down_endorsements_count == 5
        assert len(_votes(engine, target)) == 5
        assert not _exists(engine, source)

    def test_overlapping_voter_keeps_target_vote(self, engine, ideas):
        source, target = ideas
        shared, only_source = make_user(engine, "shared"), make_user(engine, "solo")
        vote_service.oppose(engine, source, shared)
        vote_service.endorse(engine, source, only_source)
        vote_service.endorse(engine, target, shared)

        merged = merge_into(engine, source, target)

        assert _votes(engine, target) == {shared: 1, only_source: 1}
        assert merged.endorsements_count == 2
        live = vote_service.get_counts(engine, target)
        assert (merged.up_endorsements_count, merged.down_endorsements_count) == (live.up, live.down)

    def test_preserve_keeps_source_and_leftover_votes(self, engine, ideas):
        source, target = ideas
        shared, only_source = make_user(engine, "shared"), make_user(engine, "solo")
        vote_service.endorse(engine, source, shared)
        vote_service.endorse(engine, source, only_source)
        vote_service.endorse(engine, target, shared)

        merge_into(engine, source, target, preserve=True)

        assert _exists(engine, source)
        assert _votes(engine, source) == {shared: 1}
        with Session(engine) as session:
            assert session.get(Idea, source).endorsements_count == 1

    def test_flip_inverts_moved_votes(self, engine, ideas):
        source, target = ideas
        ups = make_users(engine, "up", 2)
        down = make_user(engine, "down")
        _cast(engine, source, ups, "up")
        vote_service.oppose(engine, source, down)

        merged = flip_into(engine, source, target)

        assert _votes(engine, target) == {ups[0]: -1, ups[1]: -1, down: 1}
        assert (merged.up_endorsements_count, merged.down_endorsements_count) == (1, 2)

    def test_flip_twice_restores_polarity(self, engine, owner, ideas):
        """Flipping A into B, then B into C, equals merging A into C."""
        source, middle = ideas
        final = make_idea(engine, owner, "Final idea")
        plain = make_idea(engine, owner, "Plain copy")
        plain_target = make_idea(engine, owner, "Plain target")

        ups, downs = make_users(engine, "up", 3), make_users(engine, "down", 1)
        for idea_id in (source, plain):
            _cast(engine, idea_id, ups, "up")
            _cast(engine, idea_id, downs, "down")

        flip_into(engine, source, middle)
        twice = flip_into(engine, middle, final)
        once = merge_into(engine, plain, plain_target)

        assert (twice.up_endorsements_count, twice.down_endorsements_count) == (3, 1)
        assert (once.up_endorsements_count, once.down_endorsements_count) == (3, 1)
        assert _votes(engine, final) == _votes(engine, plain_target)


class TestActivities:
    def _activity(self, engine, idea_id, kind, **comment_flags) -> int:
        with Session(engine) as session:
            activity = Activity(kind=kind.value, idea_id=idea_id)
            if comment_flags:
                activity.comments.append(Comment(body="agreed", **comment_flags))
            session.add(activity)
            session.commit()
            return activity.id

    def test_non_transferable_kinds_are_destroyed(self, engine, ideas):
        source, target = ideas
        debut = self._activity(engine, source, ActivityKind.IDEA_DEBUT)
        official = self._activity(engine, source, ActivityKind.OFFICIAL_STATUS_FAILED)
        vote = self._activity(engine, source, ActivityKind.ENDORSEMENT_NEW)

        merge_into(engine, source, target, preserve=True)

        with Session(engine) as session:
            assert session.get(Activity, debut) is None
            assert session.get(Activity, official) is None
            assert session.get(Activity, vote).idea_id == target

    def test_flip_inverts_kind_and_comment_flags(self, engine, ideas):
        source, target = ideas
        activity_id = self._activity(
            engine, source, ActivityKind.ENDORSEMENT_FLIPPED_IMPLICIT,
            is_endorser=True, is_opposer=False,
        )
        neutral = self._activity(engine, source, ActivityKind.POINT_NEW)

        flip_into(engine, source, target)

        with Session(engine) as session:
            activity = session.get(Activity, activity_id)
            assert activity.kind == ActivityKind.OPPOSITION_FLIPPED_IMPLICIT
            assert activity.idea_id == target
            (comment,) = activity.comments
            assert (comment.is_endorser, comment.is_opposer) == (False, True)
            assert session.get(Activity, neutral).kind == ActivityKind.POINT_NEW

    def test_preserve_keeps_acquisitions_on_source(self, engine, ideas):
        source, target = ideas
        acquisition = self._activity(engine, source, ActivityKind.IDEA_ACQUISITION)
        discussion = self._activity(engine, source, ActivityKind.DISCUSSION_NEW)

        merge_into(engine, source, target, preserve=True)

        with Session(engine) as session:
            assert session.get(Activity, acquisition).idea_id == source
            assert session.get(Activity, discussion).idea_id == target

    def test_acquisitions_move_without_preserve(self, engine, ideas):
        source, target = ideas
        acquisition = self._activity(engine, source, ActivityKind.CAPITAL_ACQUISITION)

        merge_into(engine, source, target)

        with Session(engine) as session:
            assert session.get(Activity, acquisition).idea_id == target


class TestDependents:
    def test_points_move_and_flip(self, engine, owner, ideas):
        source, target = ideas
        with Session(engine) as session:
            point = Point(
                idea_id=source, user_id=owner, name="Cheaper", value=1, status="deleted",
                endorser_helpful_count=4, endorser_unhelpful_count=1,
                opposer_helpful_count=2, opposer_unhelpful_count=3,
            )
            session.add(point)
            session.commit()
            point_id = point.id

        flip_into(engine, source, target)

        with Session(engine) as session:
            point = session.get(Point, point_id)
            assert point.idea_id == target
            assert point.value == -1
            assert (point.endorser_helpful_count, point.opposer_helpful_count) == (2, 4)
            assert (point.endorser_unhelpful_count, point.opposer_unhelpful_count) == (3, 1)

    def test_incoming_points(self, engine, owner, ideas):
        source, target = ideas
        third = make_idea(engine, owner, "Third idea")
        with Session(engine) as session:
            from_third = Point(idea_id=third, other_idea_id=source, name="vs source", value=1)
            from_target = Point(idea_id=target, other_idea_id=source, name="vs source", value=1)
            session.add_all([from_third, from_target])
            session.commit()
            ids = from_third.id, from_target.id

        merge_into(engine, source, target)

        with Session(engine) as session:
            assert session.get(Point, ids[0]).other_idea_id == target
            assert session.get(Point, ids[1]).other_idea_id is None

    def test_incoming_points_cleared_on_flip(self, engine, owner, ideas):
        source, target = ideas
        third = make_idea(engine, owner, "Third idea")
        with Session(engine) as session:
            point = Point(idea_id=third, other_idea_id=source, name="vs source", value=1)
            session.add(point)
            session.commit()
            point_id = point.id

        flip_into(engine, source, target)

        with Session(engine) as session:
            assert session.get(Point, point_id).other_idea_id is None

    def test_ads_tags_rankings_and_changes(self, engine, owner, ideas):
        source, target = ideas
        with Session(engine) as session:
            ad = Ad(idea_id=source, user_id=owner, cost=5.0)
            tag = Tag(name="transport", top_idea_id=source)
            ranking = Ranking(idea_id=source, position=3)
            change = Change(idea_id=source, user_id=owner, status="deleted")
            session.add_all([ad, tag, ranking, change])
            session.flush()
            session.get(Idea, source).change_id = change.id
            session.commit()
            ad_id, tag_id, change_id = ad.id, tag.id, change.id

        merge_into(engine, source, target)

        with Session(engine) as session:
            assert session.get(Ad, ad_id).idea_id == target
            assert session.get(Tag, tag_id).top_idea_id is None
            assert session.scalars(select(Ranking)).all() == []
            assert session.get(Change, change_id) is None

    def test_preserve_keeps_changes(self, engine, owner, ideas):
        source, target = ideas
        with Session(engine) as session:
            change = Change(idea_id=source, user_id=owner)
            session.add(change)
            session.commit()
            change_id = change.id

        merge_into(engine, source, target, preserve=True)

        with Session(engine) as session:
            assert session.get(Change, change_id).idea_id == source


class TestFailures:
    def test_missing_target(self, engine, ideas):
        source, _ = ideas
        with pytest.raises(NotFoundError):
            merge_into(engine, source, 9999)

    def test_missing_source(self, engine, ideas):
        _, target = ideas
        with pytest.raises(NotFoundError):
            merge_into(engine, 9999, target)

    def test_merge_into_itself(self, engine, ideas):
        source, _ = ideas
        with pytest.raises(ValidationError):
            merge_into(engine, source, source)

    def test_failure_rolls_back_everything(self, engine, ideas, monkeypatch):
        source, target = ideas
        _cast(engine, source, make_users(engine, "a", 2), "up")
        _cast(engine, target, make_users(engine, "b", 1), "up")

        def boom(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(merge_service, "_move_points", boom)

        with pytest.raises(MergeFailedError) as exc_info:
            merge_into(engine, source, target)

        assert exc_info.value.step == "points"
        assert exc_info.value.to_dict()["step"] == "points"
        assert len(_votes(engine, source)) == 2
        assert len(_votes(engine, target)) == 1
        with Session(engine) as session:
            assert session.get(Idea, target).endorsements_count == 1
            assert session.get(Idea, source).endorsements_count == 2
