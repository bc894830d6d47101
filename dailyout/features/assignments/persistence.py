"""
Persistence for daily assignments.

Thin SQLAlchemy Core layer over the daily_assignments table. The
(user_id, assigned_date) unique constraint is the only thing that serializes
concurrent creation; callers handle IntegrityError from `insert`.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Set

from sqlalchemy import and_, func, insert, select, update

from dailyout.core.clock import as_utc
from dailyout.core.database import Database, challenges, daily_assignments
from dailyout.models.assignment import DailyAssignment, state_from_columns
from dailyout.models.challenge import Challenge

_da = daily_assignments

_OPEN = and_(_da.c.completed_at.is_(None), _da.c.skipped_at.is_(None))


def _optional_utc(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


def _row_to_assignment(row, challenge: Optional[Challenge] = None) -> DailyAssignment:
    return DailyAssignment(
        id=row.id,
        user_id=row.user_id,
        challenge_id=row.challenge_id,
        assigned_date=row.assigned_date,
        state=state_from_columns(_optional_utc(row.completed_at), _optional_utc(row.skipped_at), row.note),
        challenge=challenge,
    )


class AssignmentStore:
    def __init__(self, db: Database):
        self.db = db

    def find_one(self, user_id: str, day: date) -> Optional[DailyAssignment]:
        with self.db.session() as session:
            row = session.execute(
                select(_da).where(_da.c.user_id == user_id, _da.c.assigned_date == day)
            ).first()
        return _row_to_assignment(row) if row else None

    def insert(self, *, assignment_id: str, user_id: str, challenge_id: str, day: date) -> None:
        """Insert a pending assignment. Raises IntegrityError if (user, day) already exists."""
        with self.db.session() as session:
            session.execute(
                insert(_da).values(
                    id=assignment_id,
                    user_id=user_id,
                    challenge_id=challenge_id,
                    assigned_date=day,
                )
            )

    def categories_between(self, user_id: str, start: date, end: date) -> Set[str]:
        """Categories of the challenges assigned on days in [start, end]."""
        stmt = (
            select(challenges.c.category)
            .select_from(_da.join(challenges, challenges.c.id == _da.c.challenge_id))
            .where(_da.c.user_id == user_id, _da.c.assigned_date.between(start, end))
            .distinct()
        )
        with self.db.session() as session:
            return {row.category for row in session.execute(stmt).all()}

    def count_completed_between(self, user_id: str, start: date, end: date) -> int:
        stmt = select(func.count()).select_from(_da).where(
            _da.c.user_id == user_id,
            _da.c.completed_at.is_not(None),
            _da.c.assigned_date.between(start, end),
        )
        with self.db.session() as session:
            return int(session.execute(stmt).scalar_one())

    def count_completed(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(_da).where(
            _da.c.user_id == user_id, _da.c.completed_at.is_not(None)
        )
        with self.db.session() as session:
            return int(session.execute(stmt).scalar_one())

    def recent_completed_days(self, user_id: str, limit: int = 100) -> List[date]:
        return self._recent_days(user_id, _da.c.completed_at, limit)

    def recent_skipped_days(self, user_id: str, limit: int = 100) -> List[date]:
        return self._recent_days(user_id, _da.c.skipped_at, limit)

    def _recent_days(self, user_id: str, column, limit: int) -> List[date]:
        stmt = (
            select(_da.c.assigned_date)
            .where(_da.c.user_id == user_id, column.is_not(None))
            .order_by(_da.c.assigned_date.desc())
            .limit(limit)
        )
        with self.db.session() as session:
            return [row.assigned_date for row in session.execute(stmt).all()]

    def recent_completion_times(self, user_id: str, limit: int = 100) -> List[datetime]:
        """completed_at of the most recent completions, newest first."""
        stmt = (
            select(_da.c.completed_at)
            .where(_da.c.user_id == user_id, _da.c.completed_at.is_not(None))
            .order_by(_da.c.completed_at.desc())
            .limit(limit)
        )
        with self.db.session() as session:
            return [as_utc(row.completed_at) for row in session.execute(stmt).all()]

    def mark_completed(self, user_id: str, day: date, *, at: datetime, note: Optional[str]) -> bool:
        """Conditional transition Pending -> Completed. False if the row is missing or not pending."""
        return self._transition(user_id, day, completed_at=at, note=note)

    def mark_skipped(self, user_id: str, day: date, *, at: datetime) -> bool:
        """Conditional transition Pending -> Skipped. False if the row is missing or not pending."""
        return self._transition(user_id, day, skipped_at=at)

    def _transition(self, user_id: str, day: date, **values) -> bool:
        stmt = (
            update(_da)
            .where(_da.c.user_id == user_id, _da.c.assigned_date == day, _OPEN)
            .values(**values)
        )
        with self.db.session() as session:
            result = session.execute(stmt)
            return result.rowcount == 1

    def set_note(self, assignment_id: str, note: Optional[str]) -> None:
        with self.db.session() as session:
            session.execute(update(_da).where(_da.c.id == assignment_id).values(note=note))

    def history(self, user_id: str, since: date) -> List[DailyAssignment]:
        """Assignments on or after `since` with their challenges, newest first."""
        stmt = (
            select(
                _da,
                challenges.c.slug,
                challenges.c.category,
                challenges.c.difficulty,
                challenges.c.text,
                challenges.c.is_active,
            )
            .select_from(_da.join(challenges, challenges.c.id == _da.c.challenge_id))
            .where(_da.c.user_id == user_id, _da.c.assigned_date >= since)
            .order_by(_da.c.assigned_date.desc())
        )
        with self.db.session() as session:
            rows = session.execute(stmt).all()
        return [
            _row_to_assignment(
                row,
                Challenge(
                    id=row.challenge_id,
                    slug=row.slug,
                    category=row.category,
                    difficulty=int(row.difficulty),
                    text=row.text,
                    is_active=bool(row.is_active),
                ),
            )
            for row in rows
        ]

    def user_ids_assigned_on(self, day: date) -> Set[str]:
        with self.db.session() as session:
            rows = session.execute(select(_da.c.user_id).where(_da.c.assigned_date == day)).all()
        return {row.user_id for row in rows}
