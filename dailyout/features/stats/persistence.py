from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import case, insert, select, update
from sqlalchemy.exc import IntegrityError

from dailyout.core.database import Database, user_stats
from dailyout.models.stats import UserStats


def _row_to_stats(row) -> UserStats:
    return UserStats(
        user_id=row.user_id,
        current_streak=int(row.current_streak or 0),
        longest_streak=int(row.longest_streak or 0),
        comfort_score=int(row.comfort_score or 0),
        badges=list(row.badges or []),
    )


class StatsStore:
    """user_stats rows: one per user, created lazily with zeros."""

    def __init__(self, db: Database):
        self.db = db

    def find(self, user_id: str) -> Optional[UserStats]:
        with self.db.session() as session:
            row = session.execute(select(user_stats).where(user_stats.c.user_id == user_id)).first()
        return _row_to_stats(row) if row else None

    def get_or_create(self, user_id: str) -> UserStats:
        existing = self.find(user_id)
        if existing is not None:
            return existing

        try:
            with self.db.session() as session:
                session.execute(
                    insert(user_stats).values(
                        user_id=user_id,
                        current_streak=0,
                        longest_streak=0,
                        comfort_score=0,
                        badges=[],
                    )
                )
        except IntegrityError:
            # Lost the race to a concurrent create; anything else (e.g. unknown user) propagates
            stats = self.find(user_id)
            if stats is None:
                raise
            return stats

        return UserStats(user_id=user_id)

    # Writers below touch only the columns their recompute step owns.

    def set_comfort_score(self, user_id: str, score: int) -> None:
        with self.db.session() as session:
            session.execute(
                update(user_stats).where(user_stats.c.user_id == user_id).values(comfort_score=score)
            )

    def record_streak(self, user_id: str, current: int) -> None:
        """Store the current streak; longest_streak only ever moves up."""
        with self.db.session() as session:
            session.execute(
                update(user_stats)
                .where(user_stats.c.user_id == user_id)
                .values(
                    current_streak=current,
                    longest_streak=case(
                        (user_stats.c.longest_streak < current, current),
                        else_=user_stats.c.longest_streak,
                    ),
                )
            )

    def add_badges(self, user_id: str, badges: List[str]) -> Tuple[List[str], List[str]]:
        """
        Append badges not stored yet. Returns (added, all_badges).

        The row is re-read under FOR UPDATE in the same transaction, so a badge
        written by a concurrent recompute is kept and not reported twice.
        """
        with self.db.session() as session:
            row = session.execute(
                select(user_stats.c.badges).where(user_stats.c.user_id == user_id).with_for_update()
            ).first()
            stored = list(row.badges or []) if row else []
            added = [b for b in badges if b not in stored]
            if added:
                session.execute(
                    update(user_stats)
                    .where(user_stats.c.user_id == user_id)
                    .values(badges=stored + added)
                )
        return added, stored + added
