from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from dailyout.core.clock import Clock
from dailyout.core.errors import (
    AlreadyCompletedError,
    AlreadySkippedError,
    NoActiveChallengeError,
    NoteEditWindowExpiredError,
    ValidationError,
)
from dailyout.core.metrics import transitions_total
from dailyout.features.assignments.persistence import AssignmentStore
from dailyout.features.stats.service import StatsService
from dailyout.models.assignment import Completed, DailyAssignment, Skipped
from dailyout.models.stats import UserStats
from dailyout.realtime.hub import PROGRESS_UPDATE, EventEmitter

logger = logging.getLogger("dailyout.completion")


class CompletionService:
    """
    Pending -> Completed / Pending -> Skipped transitions and note edits.

    Transitions are single conditional UPDATEs, so two concurrent submits for
    the same day cannot both succeed. The loser gets the precise conflict error.
    """

    def __init__(
        self,
        *,
        store: AssignmentStore,
        stats: StatsService,
        clock: Clock,
        emitter: EventEmitter,
        note_max_length: int = 2000,
        note_edit_window_hours: int = 24,
    ):
        self.store = store
        self.stats = stats
        self.clock = clock
        self.emitter = emitter
        self.note_max_length = note_max_length
        self.note_edit_window = timedelta(hours=note_edit_window_hours)

    def complete(self, user_id: str, day: Optional[date] = None, note: Optional[str] = None) -> Tuple[UserStats, List[str]]:
        """Mark the day's assignment completed. Returns (stats, new_badges)."""
        target = day or self.clock.today()
        clean_note = self._validate_note(note) if note is not None else None

        if not self.store.mark_completed(user_id, target, at=self.clock.now(), note=clean_note):
            self._raise_conflict(user_id, target)

        transitions_total.inc(labels={"kind": "completed"})
        logger.info("assignment.completed", extra={"user_id": user_id, "assigned_date": target.isoformat()})
        return self._after_transition(user_id)

    def skip(self, user_id: str, day: Optional[date] = None) -> Tuple[UserStats, List[str]]:
        """Mark the day's assignment skipped. Returns (stats, new_badges)."""
        target = day or self.clock.today()

        if not self.store.mark_skipped(user_id, target, at=self.clock.now()):
            self._raise_conflict(user_id, target)

        transitions_total.inc(labels={"kind": "skipped"})
        logger.info("assignment.skipped", extra={"user_id": user_id, "assigned_date": target.isoformat()})
        return self._after_transition(user_id)

    def update_note(self, user_id: str, day: date, note: Optional[str]) -> DailyAssignment:
        """Edit the note of a completed assignment, within the edit window."""
        assignment = self.store.find_one(user_id, day)
        if assignment is None:
            raise NoActiveChallengeError()

        state = assignment.state
        if not isinstance(state, Completed) or self.clock.now() - state.at >= self.note_edit_window:
            raise NoteEditWindowExpiredError()

        clean_note = None
        if note is not None and note.strip():
            clean_note = self._validate_note(note)

        self.store.set_note(assignment.id, clean_note)
        assignment.state = Completed(at=state.at, note=clean_note)
        logger.info("assignment.note_updated", extra={"user_id": user_id, "assigned_date": day.isoformat()})
        return assignment

    def _validate_note(self, note) -> str:
        if not isinstance(note, str):
            raise ValidationError("Note must be a string")
        trimmed = note.strip()
        if not trimmed:
            raise ValidationError("Note cannot be empty")
        if len(trimmed) > self.note_max_length:
            raise ValidationError(f"Note must be {self.note_max_length} characters or less")
        return trimmed

    def _raise_conflict(self, user_id: str, day: date) -> None:
        current = self.store.find_one(user_id, day)
        if current is None:
            raise NoActiveChallengeError()
        if isinstance(current.state, Completed):
            raise AlreadyCompletedError()
        if isinstance(current.state, Skipped):
            raise AlreadySkippedError()
        # Conditional update matched nothing yet the row is pending: it changed under us
        raise RuntimeError(f"Assignment {current.id} transition failed while pending")

    def _after_transition(self, user_id: str) -> Tuple[UserStats, List[str]]:
        snapshot, new_badges = self.stats.update_all_stats(user_id)
        self.emitter.emit(
            PROGRESS_UPDATE,
            {"current_streak": snapshot.current_streak, "comfort_score": snapshot.comfort_score},
            user_id=user_id,
        )
        return snapshot, new_badges
