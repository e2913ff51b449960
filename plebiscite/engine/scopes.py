"""
plebiscite.engine.scopes — Idea Query Predicates
=================================================

Named, composable ``SELECT`` builders over :class:`Idea`.  Each method
takes an optional statement to refine, so scopes chain::

    scopes = IdeaScopes.from_config(cfg)
    stmt = scopes.rising(scopes.published())
    ideas = session.scalars(scopes.item_limit(stmt, 10)).all()

Whether an idea with no votes counts as "published" is decided by the
``suppress_empty_ideas`` flag given at construction time.  The same
instance carries ``new_idea_days`` for the row-level :meth:`IdeaScopes.is_new`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Select, func, or_, select

from plebiscite.database.models import Idea, IdeaStatus, OfficialStatus
from plebiscite.engine.metrics import Window, is_new

if TYPE_CHECKING:
    from datetime import datetime

    from plebiscite.config import PlebisciteConfig

__all__ = ["IdeaScopes"]


class IdeaScopes:
    def __init__(
        self,
        *,
        suppress_empty_ideas: bool = False,
        top_rank_cutoff: int = 25,
        new_idea_days: int = 7,
    ) -> None:
        self.suppress_empty_ideas = suppress_empty_ideas
        self.top_rank_cutoff = top_rank_cutoff
        self.new_idea_days = new_idea_days

    @classmethod
    def from_config(cls, cfg: PlebisciteConfig) -> IdeaScopes:
        return cls(
            suppress_empty_ideas=cfg.suppress_empty_ideas,
            top_rank_cutoff=cfg.top_rank_cutoff,
            new_idea_days=cfg.new_idea_days,
        )

    def is_new(self, idea: Idea, now: datetime) -> bool:
        """:func:`~plebiscite.engine.metrics.is_new` with the configured window."""
        return is_new(idea, now, days=self.new_idea_days)

    @staticmethod
    def _base(stmt: Select | None) -> Select:
        return stmt if stmt is not None else select(Idea)

    # -------------------------------------------------------------------
    # Publication state
    # -------------------------------------------------------------------
    def published(self, stmt: Select | None = None) -> Select:
        stmt = self._base(stmt).where(Idea.status == IdeaStatus.PUBLISHED.value)
        if self.suppress_empty_ideas:
            stmt = stmt.where(Idea.position > 0, Idea.endorsements_count > 0)
        return stmt

    def unpublished(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(
            Idea.status.not_in([IdeaStatus.PUBLISHED.value, IdeaStatus.ABUSIVE.value])
        )

    def not_deleted(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(Idea.status != IdeaStatus.DELETED.value)

    def flagged(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(Idea.flags_count > 0)

    def finished(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(
            Idea.official_status.in_([
                OfficialStatus.FAILED.value,
                OfficialStatus.IN_PROGRESS.value,
                OfficialStatus.SUCCESSFUL.value,
            ])
        )

    def by_user(self, user_id: int, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(Idea.user_id == user_id)

    def tagged(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(
            Idea.cached_issue_list.is_not(None), Idea.cached_issue_list != ""
        )

    def untagged(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(
            or_(Idea.cached_issue_list.is_(None), Idea.cached_issue_list == "")
        ).order_by(Idea.endorsements_count.desc(), Idea.created_at.desc())

    # -------------------------------------------------------------------
    # Ranking
    # -------------------------------------------------------------------
    def top_rank(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).order_by(Idea.score.desc(), Idea.position.asc())

    def not_top_rank(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(Idea.position > self.top_rank_cutoff)

    def top_in_window(self, window: Window, stmt: Select | None = None) -> Select:
        column = getattr(Idea, f"position_endorsed_{window.value}")
        return self._base(stmt).where(column.is_not(None)).order_by(column.asc())

    def top_24hr(self, stmt: Select | None = None) -> Select:
        return self.top_in_window(Window.DAY, stmt)

    def top_7days(self, stmt: Select | None = None) -> Select:
        return self.top_in_window(Window.WEEK, stmt)

    def top_30days(self, stmt: Select | None = None) -> Select:
        return self.top_in_window(Window.MONTH, stmt)

    def rising(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(Idea.trending_score > 0).order_by(
            Idea.trending_score.desc()
        )

    def falling(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(Idea.trending_score < 0).order_by(
            Idea.trending_score.asc()
        )

    def controversial(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).where(Idea.is_controversial.is_(True)).order_by(
            Idea.controversial_score.desc()
        )

    def movement(self, window: Window, direction: int, stmt: Select | None = None) -> Select:
        """Ideas whose *window* change is positive, zero or negative
        (``direction`` 1, 0, -1)."""
        column = getattr(Idea, f"position_{window.value}_change")
        if direction > 0:
            condition = column > 0
        elif direction < 0:
            condition = column < 0
        else:
            condition = column == 0
        return self._base(stmt).where(condition)

    def rising_24hr(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.DAY, 1, stmt)

    def flat_24hr(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.DAY, 0, stmt)

    def falling_24hr(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.DAY, -1, stmt)

    def rising_7days(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.WEEK, 1, stmt)

    def flat_7days(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.WEEK, 0, stmt)

    def falling_7days(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.WEEK, -1, stmt)

    def rising_30days(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.MONTH, 1, stmt)

    def flat_30days(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.MONTH, 0, stmt)

    def falling_30days(self, stmt: Select | None = None) -> Select:
        return self.movement(Window.MONTH, -1, stmt)

    # -------------------------------------------------------------------
    # Ordering / paging
    # -------------------------------------------------------------------
    def alphabetical(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).order_by(Idea.name.asc())

    def newest(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).order_by(Idea.published_at.desc(), Idea.created_at.desc())

    def by_most_recent_status_change(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).order_by(Idea.status_changed_at.desc())

    def by_random(self, stmt: Select | None = None) -> Select:
        return self._base(stmt).order_by(func.random())

    @staticmethod
    def item_limit(stmt: Select, limit: int) -> Select:
        return stmt.limit(limit)
