from __future__ import annotations

import logging
from typing import List, Tuple

from dailyout.core.clock import Clock
from dailyout.features.assignments.persistence import AssignmentStore
from dailyout.features.stats.persistence import StatsStore
from dailyout.features.stats.scoring import ComfortScoreEngine, StreakCalculator, evaluate_badges
from dailyout.models.stats import ComfortBreakdown, UserStats

logger = logging.getLogger("dailyout.stats")

# Bound on rows scanned per recompute
SCAN_LIMIT = 100


class StatsService:
    """
    Recomputes a user's stats snapshot from the daily_assignments history.

    The snapshot is a cache: every method rebuilds its part from source rows
    and overwrites the stored value, so running any of them twice is harmless.
    """

    def __init__(self, *, stats: StatsStore, assignments: AssignmentStore, clock: Clock):
        self.stats = stats
        self.assignments = assignments
        self.clock = clock

    def get_or_create_stats(self, user_id: str) -> UserStats:
        return self.stats.get_or_create(user_id)

    def comfort_breakdown(self, user_id: str) -> ComfortBreakdown:
        total = self.assignments.count_completed(user_id)
        recent = self.assignments.recent_completion_times(user_id, limit=SCAN_LIMIT)
        return ComfortScoreEngine.compute(total, recent, self.clock.now())

    def recompute_comfort_score(self, user_id: str) -> UserStats:
        self.stats.get_or_create(user_id)
        breakdown = self.comfort_breakdown(user_id)
        self.stats.set_comfort_score(user_id, breakdown.score)
        logger.debug(
            "stats.comfort_recomputed",
            extra={
                "user_id": user_id,
                "total_completed": breakdown.total_completed,
                "recent_count": breakdown.recent_count,
                "decay_factor": breakdown.decay_factor,
                "score": breakdown.score,
            },
        )
        return self.stats.get_or_create(user_id)

    def recompute_streak(self, user_id: str) -> UserStats:
        self.stats.get_or_create(user_id)
        current = StreakCalculator.current_streak(
            self.assignments.recent_completed_days(user_id, limit=SCAN_LIMIT),
            self.assignments.recent_skipped_days(user_id, limit=SCAN_LIMIT),
            self.clock.today(),
        )
        self.stats.record_streak(user_id, current)
        return self.stats.get_or_create(user_id)

    def check_and_award_badges(self, user_id: str) -> Tuple[List[str], List[str]]:
        """Returns (new_badges, all_badges)."""
        snapshot = self.stats.get_or_create(user_id)
        result = evaluate_badges(
            total_completed=self.assignments.count_completed(user_id),
            current_streak=snapshot.current_streak,
            longest_streak=snapshot.longest_streak,
            earned=snapshot.badges,
        )
        if not result.new_badges:
            return [], result.all_badges

        added, all_badges = self.stats.add_badges(user_id, result.new_badges)
        if added:
            logger.info("stats.badges_awarded", extra={"user_id": user_id, "badges": ",".join(added)})
        return added, all_badges

    def update_all_stats(self, user_id: str) -> Tuple[UserStats, List[str]]:
        """Comfort score, then streak, then badges (badges read both)."""
        self.recompute_comfort_score(user_id)
        self.recompute_streak(user_id)
        new_badges, _ = self.check_and_award_badges(user_id)
        return self.stats.get_or_create(user_id), new_badges
