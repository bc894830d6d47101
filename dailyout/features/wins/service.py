from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import timedelta
from typing import Callable, List, Optional

from sqlalchemy import DateTime, String, func, insert, literal, select, update

from dailyout.core.clock import Clock, as_utc
from dailyout.core.database import Database, win_events, wins
from dailyout.core.errors import NotFoundError, RateLimitError, ValidationError
from dailyout.models.feed import Win
from dailyout.realtime.hub import WIN_LIKE, WIN_NEW, EventEmitter

logger = logging.getLogger("dailyout.wins")

RATE_WINDOW = timedelta(minutes=1)
RECENT_LIMIT = 50

WIN_POSTED = "WIN_POSTED"
LIKE = "LIKE"


def hash_user_id(user_id: Optional[str]) -> str:
    """Rate-limit key: sha256 of the user id. The raw id is never written to win_events."""
    if not user_id:
        return "anonymous"
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def _row_to_win(row) -> Win:
    return Win(
        id=row.id,
        text=row.text,
        likes=int(row.likes or 0),
        created_at=as_utc(row.created_at),
        user_id=row.user_id,
    )


class WinsService:
    """Public "I did it" feed with per-user rate limits on posts and likes."""

    def __init__(
        self,
        db: Database,
        *,
        clock: Clock,
        emitter: EventEmitter,
        max_length: int = 280,
        posts_per_minute: int = 1,
        likes_per_minute: int = 10,
        text_filter: Optional[Callable[[str], str]] = None,
    ):
        self.db = db
        self.clock = clock
        self.emitter = emitter
        self.max_length = max_length
        self.limits = {WIN_POSTED: posts_per_minute, LIKE: likes_per_minute}
        self.text_filter = text_filter or (lambda text: text)

    def recent(self, limit: int = RECENT_LIMIT) -> List[Win]:
        with self.db.session() as session:
            rows = session.execute(
                select(wins).order_by(wins.c.created_at.desc(), wins.c.id).limit(limit)
            ).all()
        return [_row_to_win(row) for row in rows]

    def _record_event(self, session, user_hash: str, event_type: str, now) -> None:
        """
        Insert the rate-limit event only while the user is under the limit.

        Count and insert are one INSERT ... SELECT inside the caller's
        transaction. SQLite runs it under the database write lock; on PostgreSQL
        (READ COMMITTED) two statements racing in the same instant can still
        both pass. Raises RateLimitError when nothing was inserted, which rolls
        back the caller's session.
        """
        recent = (
            select(func.count())
            .select_from(win_events)
            .where(
                win_events.c.user_hash == user_hash,
                win_events.c.type == event_type,
                win_events.c.created_at >= now - RATE_WINDOW,
            )
            .scalar_subquery()
        )
        source = select(
            literal(user_hash, String),
            literal(event_type, String),
            literal(now, DateTime(timezone=True)),
        ).where(recent < self.limits[event_type])
        result = session.execute(
            insert(win_events).from_select(["user_hash", "type", "created_at"], source)
        )
        if result.rowcount != 1:
            logger.info("wins.rate_limited", extra={"event_type": event_type})
            raise RateLimitError("Rate limit exceeded. Please wait a minute.")

    def create_win(self, user_id: Optional[str], text) -> Win:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Text is required")
        if len(text) > self.max_length:
            raise ValidationError(f"Text must be {self.max_length} characters or less")

        now = self.clock.now()
        win = Win(
            id=str(uuid.uuid4()),
            text=self.text_filter(text.strip()),
            likes=0,
            created_at=now,
            user_id=user_id,
        )
        with self.db.session() as session:
            self._record_event(session, hash_user_id(user_id), WIN_POSTED, now)
            session.execute(
                insert(wins).values(
                    id=win.id, user_id=user_id, text=win.text, likes=0, created_at=now
                )
            )

        self.emitter.emit(WIN_NEW, win.to_dict())
        return win

    def like_win(self, win_id: str, user_id: Optional[str]) -> None:
        with self.db.session() as session:
            found = session.execute(select(wins.c.id).where(wins.c.id == win_id)).first()
        if not found:
            raise NotFoundError("Win not found")

        now = self.clock.now()
        with self.db.session() as session:
            self._record_event(session, hash_user_id(user_id), LIKE, now)
            session.execute(update(wins).where(wins.c.id == win_id).values(likes=wins.c.likes + 1))

        self.emitter.emit(WIN_LIKE, {"id": win_id})
