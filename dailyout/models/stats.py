from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class UserStats:
    """
    Derived per-user snapshot. Always rebuilt from daily_assignments history,
    never incrementally patched.
    """

    user_id: str
    current_streak: int = 0
    longest_streak: int = 0
    comfort_score: int = 0
    badges: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "comfort_score": self.comfort_score,
            "badges": list(self.badges),
        }


@dataclass(frozen=True)
class ComfortBreakdown:
    """Intermediate values of one comfort-score computation (for logs and tests)."""

    total_completed: int
    base_score: float
    recent_count: int
    recency_weight: float
    recent_activity_factor: float
    decay_factor: float
    score: int


@dataclass(frozen=True)
class BadgeResult:
    new_badges: List[str]
    all_badges: List[str]
