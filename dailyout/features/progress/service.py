from __future__ import annotations

from datetime import timedelta
from typing import Dict, List

from dailyout.core.clock import Clock
from dailyout.features.assignments.persistence import AssignmentStore
from dailyout.features.journal.service import JournalService
from dailyout.features.stats.service import StatsService


class ProgressService:
    """Stats snapshot plus a merged, newest-first history of challenges and journal entries."""

    def __init__(
        self,
        *,
        stats: StatsService,
        assignments: AssignmentStore,
        journal: JournalService,
        clock: Clock,
        history_days: int = 365,
    ):
        self.stats = stats
        self.assignments = assignments
        self.journal = journal
        self.clock = clock
        self.history_days = history_days

    def view(self, user_id: str) -> Dict:
        # Recompute so the streak reflects days missed since the last completion
        snapshot, new_badges = self.stats.update_all_stats(user_id)

        since = self.clock.today() - timedelta(days=self.history_days)
        history: List[Dict] = []
        for assignment in self.assignments.history(user_id, since):
            challenge = assignment.challenge
            history.append({
                "date": assignment.assigned_date.isoformat(),
                "type": "challenge",
                "status": assignment.status,
                "completed": assignment.completed_at is not None,
                "completed_at": assignment.completed_at.isoformat() if assignment.completed_at else None,
                "skipped_at": assignment.skipped_at.isoformat() if assignment.skipped_at else None,
                "challenge": {
                    "text": challenge.text,
                    "category": challenge.category,
                    "difficulty": challenge.difficulty,
                } if challenge else None,
                "note": assignment.note,
            })

        for entry in self.journal.entries_since(user_id, since):
            history.append({
                "date": entry.entry_date.isoformat(),
                "type": "journal",
                "status": "completed",
                "completed": True,
                "completed_at": entry.created_at.isoformat(),
                "skipped_at": None,
                "challenge": None,
                "note": None,
                "journal_entry": {
                    "id": entry.id,
                    "content": entry.content,
                    "created_at": entry.created_at.isoformat(),
                    "updated_at": entry.updated_at.isoformat(),
                },
            })

        # ISO dates sort chronologically; the sort is stable so challenges stay ahead of same-day journal entries
        history.sort(key=lambda item: item["date"], reverse=True)

        stats = snapshot.to_dict()
        stats["new_badges"] = new_badges
        return {"stats": stats, "history": history}
