from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Optional, Union

from dailyout.models.challenge import Challenge

AssignmentStatus = Literal["pending", "completed", "skipped"]


@dataclass(frozen=True)
class Pending:
    status: AssignmentStatus = field(default="pending", init=False)


@dataclass(frozen=True)
class Completed:
    at: datetime
    note: Optional[str] = None
    status: AssignmentStatus = field(default="completed", init=False)


@dataclass(frozen=True)
class Skipped:
    at: datetime
    status: AssignmentStatus = field(default="skipped", init=False)


AssignmentState = Union[Pending, Completed, Skipped]


def state_from_columns(
    completed_at: Optional[datetime],
    skipped_at: Optional[datetime],
    note: Optional[str],
) -> AssignmentState:
    """Fold the two nullable timestamp columns into a single state value."""
    if completed_at is not None:
        return Completed(at=completed_at, note=note)
    if skipped_at is not None:
        return Skipped(at=skipped_at)
    return Pending()


@dataclass
class DailyAssignment:
    """One user's challenge for one calendar day."""

    id: str
    user_id: str
    challenge_id: str
    assigned_date: date
    state: AssignmentState = field(default_factory=Pending)
    challenge: Optional[Challenge] = None

    @property
    def status(self) -> AssignmentStatus:
        return self.state.status

    @property
    def completed_at(self) -> Optional[datetime]:
        return self.state.at if isinstance(self.state, Completed) else None

    @property
    def skipped_at(self) -> Optional[datetime]:
        return self.state.at if isinstance(self.state, Skipped) else None

    @property
    def note(self) -> Optional[str]:
        return self.state.note if isinstance(self.state, Completed) else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "assigned_date": self.assigned_date.isoformat(),
            "status": self.status,
            "challenge": self.challenge.to_dict() if self.challenge else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "skipped_at": self.skipped_at.isoformat() if self.skipped_at else None,
            "note": self.note,
        }
