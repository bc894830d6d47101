from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple, get_args

ChallengeCategory = Literal["awareness", "private", "visual", "interaction", "share", "reflect"]

CATEGORIES: Tuple[str, ...] = get_args(ChallengeCategory)
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


@dataclass(frozen=True)
class Challenge:
    """Catalog template. Immutable from the engine's point of view."""

    id: str
    slug: str
    category: ChallengeCategory
    difficulty: int
    text: str
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "category": self.category,
            "difficulty": self.difficulty,
            "text": self.text,
        }
