"""
Stats scoring

Pure, deterministic computation of the comfort score, the current streak and
badge awards from plain history values. No database access, no clock reads:
callers pass `now` / `today` in.

Comfort score:
- Base score grows piecewise with total completions (steep early, flat late).
- Recent activity (completions in the last 7 days) lifts it by up to 20%.
- More than 7 days of inactivity decays it by 2% per day, at most 30%.
- Final score is rounded and clamped to 0..100.

Streak:
- Walks backwards day by day from today (or yesterday when today is not done).
- Completed days count, skipped days pass through, anything else stops the walk.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from dailyout.core.clock import as_utc
from dailyout.models.stats import BadgeResult, ComfortBreakdown


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Floor of the elapsed time in days (negative if `earlier` is in the future)."""
    return (as_utc(later) - as_utc(earlier)) // timedelta(days=1)


class ComfortScoreEngine:
    """Pure comfort-score computation."""

    MAX_SCORE = 100
    RECENT_WINDOW_DAYS = 7
    MAX_RECENT_BOOST = 0.2
    DECAY_GRACE_DAYS = 7
    DECAY_PER_DAY = 0.02
    MIN_DECAY_FACTOR = 0.7

    # (max age in days, weight); anything older gets OLD_WEIGHT
    RECENCY_WEIGHTS: Tuple[Tuple[int, float], ...] = ((7, 1.0), (30, 0.7), (90, 0.4))
    OLD_WEIGHT = 0.1

    @staticmethod
    def base_score(total_completed: int) -> float:
        t = total_completed
        if t <= 10:
            return min(20.0, t * 2.0)
        if t <= 30:
            return min(50.0, 20 + (t - 10) * 1.5)
        if t <= 60:
            return min(80.0, 50.0 + (t - 30))
        return min(100.0, 80 + (t - 60) * 0.5)

    @classmethod
    def recency_weight(cls, days_ago: int) -> float:
        for max_age, weight in cls.RECENCY_WEIGHTS:
            if days_ago <= max_age:
                return weight
        return cls.OLD_WEIGHT

    @classmethod
    def decay_factor(cls, days_since_last: int) -> float:
        if days_since_last <= cls.DECAY_GRACE_DAYS:
            return 1.0
        return max(cls.MIN_DECAY_FACTOR, 1.0 - (days_since_last - cls.DECAY_GRACE_DAYS) * cls.DECAY_PER_DAY)

    @classmethod
    def compute(
        cls,
        total_completed: int,
        recent_completions: Sequence[datetime],
        now: datetime,
    ) -> ComfortBreakdown:
        """
        Args:
            total_completed: every completion the user has ever made
            recent_completions: completed_at of the most recent completions, newest first
            now: reference instant
        """
        if total_completed <= 0 or not recent_completions:
            return ComfortBreakdown(
                total_completed=max(total_completed, 0),
                base_score=0.0,
                recent_count=0,
                recency_weight=0.0,
                recent_activity_factor=1.0,
                decay_factor=1.0,
                score=0,
            )

        base = cls.base_score(total_completed)

        recency_weight = 0.0
        recent_count = 0
        for completed_at in recent_completions:
            days_ago = whole_days_between(completed_at, now)
            recency_weight += cls.recency_weight(days_ago)
            if days_ago <= cls.RECENT_WINDOW_DAYS:
                recent_count += 1

        activity_factor = min(1.0 + cls.MAX_RECENT_BOOST, 1.0 + (recent_count / total_completed) * cls.MAX_RECENT_BOOST)
        weighted = base * activity_factor

        latest = max(as_utc(c) for c in recent_completions)
        decay = cls.decay_factor(whole_days_between(latest, now))
        clamped = max(0.0, min(float(cls.MAX_SCORE), weighted * decay))
        # half-up, not banker's rounding
        score = int(math.floor(clamped + 0.5))

        return ComfortBreakdown(
            total_completed=total_completed,
            base_score=base,
            recent_count=recent_count,
            recency_weight=recency_weight,
            recent_activity_factor=activity_factor,
            decay_factor=decay,
            score=score,
        )


class StreakCalculator:
    """Gap-tolerant consecutive-day streak over assigned dates."""

    MAX_WALK_DAYS = 100

    @classmethod
    def current_streak(
        cls,
        completed_days: Iterable[date],
        skipped_days: Iterable[date],
        today: date,
    ) -> int:
        completed: Set[date] = set(completed_days)
        if not completed:
            return 0

        skipped: Set[date] = set(skipped_days)
        latest = max(completed)
        if (today - latest).days > 1:
            return 0

        cursor = today if today in completed else today - timedelta(days=1)
        streak = 0
        for _ in range(cls.MAX_WALK_DAYS):
            if cursor in completed:
                streak += 1
            elif cursor not in skipped:
                break
            cursor -= timedelta(days=1)
        return streak


# (badge id, metric, threshold); metric is one of total / current / longest
BADGE_RULES: Tuple[Tuple[str, str, int], ...] = (
    ("first_completion", "total", 1),
    ("first_week", "total", 7),
    ("ten_completions", "total", 10),
    ("thirty_completions", "total", 30),
    ("fifty_completions", "total", 50),
    ("hundred_completions", "total", 100),
    ("seven_day_streak", "current", 7),
    ("thirty_day_streak", "current", 30),
    ("longest_streak_10", "longest", 10),
    ("longest_streak_30", "longest", 30),
)


def evaluate_badges(
    *,
    total_completed: int,
    current_streak: int,
    longest_streak: int,
    earned: Optional[Iterable[str]] = None,
) -> BadgeResult:
    """Append newly satisfied badges to the earned list. Earned badges never re-fire."""
    metrics = {"total": total_completed, "current": current_streak, "longest": longest_streak}
    all_badges: List[str] = []
    for badge in earned or ():
        if badge not in all_badges:
            all_badges.append(badge)

    new_badges: List[str] = []
    for badge_id, metric, threshold in BADGE_RULES:
        if metrics[metric] >= threshold and badge_id not in all_badges:
            all_badges.append(badge_id)
            new_badges.append(badge_id)

    return BadgeResult(new_badges=new_badges, all_badges=all_badges)
