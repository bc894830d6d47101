from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass
class Win:
    """Public, anonymized "I did it" post."""

    id: str
    text: str
    likes: int
    created_at: datetime
    user_id: Optional[str] = None

    def to_dict(self) -> dict:
        # no user_id: the feed is anonymous
        return {
            "id": self.id,
            "text": self.text,
            "likes": self.likes,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class JournalEntry:
    id: str
    user_id: str
    entry_date: date
    content: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entry_date": self.entry_date.isoformat(),
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
