from __future__ import annotations

import re
import uuid
from datetime import date
from typing import List, Optional, Union

from sqlalchemy import delete, insert, select, update

from dailyout.core.clock import Clock, as_utc
from dailyout.core.database import Database, journal_entries
from dailyout.core.errors import NotFoundError, ValidationError
from dailyout.models.feed import JournalEntry

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

LIST_LIMIT = 100


def parse_day(value: Union[str, date], field: str = "entry_date") -> date:
    """Strict YYYY-MM-DD parsing for path and body date values."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError(f"{field} must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} is not a valid calendar date")


def _row_to_entry(row) -> JournalEntry:
    return JournalEntry(
        id=row.id,
        user_id=row.user_id,
        entry_date=row.entry_date,
        content=row.content,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


class JournalService:
    """Free-form, user-owned journal entries (manual entries only)."""

    def __init__(self, db: Database, *, clock: Clock, max_length: int = 5000):
        self.db = db
        self.clock = clock
        self.max_length = max_length

    def _clean_content(self, content) -> str:
        if not isinstance(content, str):
            raise ValidationError("content must be a string")
        if not content.strip():
            raise ValidationError("content cannot be empty")
        if len(content) > self.max_length:
            raise ValidationError(f"content must be {self.max_length} characters or less")
        return content.strip()

    def list_entries(self, user_id: str, limit: int = LIST_LIMIT) -> List[JournalEntry]:
        with self.db.session() as session:
            rows = session.execute(
                select(journal_entries)
                .where(journal_entries.c.user_id == user_id)
                .order_by(journal_entries.c.entry_date.desc(), journal_entries.c.created_at.desc())
                .limit(limit)
            ).all()
        return [_row_to_entry(row) for row in rows]

    def entries_since(self, user_id: str, since: date) -> List[JournalEntry]:
        with self.db.session() as session:
            rows = session.execute(
                select(journal_entries)
                .where(journal_entries.c.user_id == user_id, journal_entries.c.entry_date >= since)
                .order_by(journal_entries.c.entry_date.desc())
            ).all()
        return [_row_to_entry(row) for row in rows]

    def create_entry(self, user_id: str, entry_date: Union[str, date], content) -> JournalEntry:
        day = parse_day(entry_date)
        text = self._clean_content(content)
        now = self.clock.now()
        entry = JournalEntry(
            id=str(uuid.uuid4()),
            user_id=user_id,
            entry_date=day,
            content=text,
            created_at=now,
            updated_at=now,
        )
        with self.db.session() as session:
            session.execute(
                insert(journal_entries).values(
                    id=entry.id,
                    user_id=user_id,
                    entry_date=day,
                    content=text,
                    created_at=now,
                    updated_at=now,
                )
            )
        return entry

    def _get_owned(self, user_id: str, entry_id: str) -> JournalEntry:
        with self.db.session() as session:
            row = session.execute(
                select(journal_entries).where(
                    journal_entries.c.id == entry_id, journal_entries.c.user_id == user_id
                )
            ).first()
        if not row:
            raise NotFoundError("Journal entry not found")
        return _row_to_entry(row)

    def update_entry(self, user_id: str, entry_id: str, content: Optional[str] = None) -> JournalEntry:
        """Partial update; content=None leaves the entry unchanged."""
        text = self._clean_content(content) if content is not None else None
        entry = self._get_owned(user_id, entry_id)
        if text is None:
            return entry

        now = self.clock.now()
        with self.db.session() as session:
            session.execute(
                update(journal_entries)
                .where(journal_entries.c.id == entry_id)
                .values(content=text, updated_at=now)
            )
        entry.content = text
        entry.updated_at = now
        return entry

    def delete_entry(self, user_id: str, entry_id: str) -> None:
        self._get_owned(user_id, entry_id)
        with self.db.session() as session:
            session.execute(delete(journal_entries).where(journal_entries.c.id == entry_id))
