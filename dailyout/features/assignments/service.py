from __future__ import annotations

import logging
import random
import uuid
from datetime import date, timedelta
from typing import List, Optional, Sequence, Set, Tuple

from sqlalchemy.exc import IntegrityError

from dailyout.core.clock import Clock
from dailyout.core.errors import NoChallengesAvailableError
from dailyout.core.metrics import assignment_races_total, assignments_created_total
from dailyout.features.assignments.persistence import AssignmentStore
from dailyout.features.catalog.service import ChallengeCatalog
from dailyout.features.stats.service import StatsService
from dailyout.models.assignment import DailyAssignment
from dailyout.models.challenge import Challenge

logger = logging.getLogger("dailyout.assignments")

CATCH_UP_WINDOW_DAYS = 3
CATEGORY_COOLDOWN_DAYS = 3


def difficulty_band(score: int) -> Tuple[int, int]:
    """Map an (adjusted) comfort score to an inclusive difficulty range."""
    if score <= 20:
        return (1, 2)
    if score <= 50:
        return (2, 3)
    if score <= 80:
        return (3, 4)
    return (4, 5)


def catch_up_score(comfort_score: int, recent_completions: int) -> int:
    """Ease difficulty off after missed days: 0 recent completions -> -20, 1 -> -10."""
    if recent_completions == 0:
        return max(0, comfort_score - 20)
    if recent_completions == 1:
        return max(0, comfort_score - 10)
    return comfort_score


class AssignmentService:
    """
    Adaptive daily challenge assignment.

    Exactly one assignment exists per (user, day). Creation is idempotent and
    safe under concurrent calls: the database unique constraint decides the
    winner and losers re-read the winning row.
    """

    def __init__(
        self,
        *,
        store: AssignmentStore,
        catalog: ChallengeCatalog,
        stats: StatsService,
        clock: Clock,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.stats = stats
        self.clock = clock
        self.rng = rng or random.Random()

    def get_assignment(self, user_id: str, day: Optional[date] = None) -> Optional[DailyAssignment]:
        """Read-only lookup with the challenge resolved."""
        target = day or self.clock.today()
        assignment = self.store.find_one(user_id, target)
        if assignment is None:
            return None
        return self._with_challenge(assignment)

    def get_or_create_assignment(self, user_id: str, day: Optional[date] = None) -> DailyAssignment:
        target = day or self.clock.today()

        existing = self.store.find_one(user_id, target)
        if existing is not None:
            return self._with_challenge(existing)

        challenge = self.pick_challenge(user_id, target)
        assignment_id = str(uuid.uuid4())
        try:
            self.store.insert(
                assignment_id=assignment_id,
                user_id=user_id,
                challenge_id=challenge.id,
                day=target,
            )
        except IntegrityError:
            winner = self.store.find_one(user_id, target)
            if winner is None:
                # Not a (user, day) collision, e.g. an unknown user id
                raise
            assignment_races_total.inc()
            logger.info(
                "assignment.race_recovered",
                extra={"user_id": user_id, "assigned_date": target.isoformat()},
            )
            return self._with_challenge(winner)

        assignments_created_total.inc()
        logger.info(
            "assignment.created",
            extra={
                "user_id": user_id,
                "assigned_date": target.isoformat(),
                "challenge_slug": challenge.slug,
                "difficulty": challenge.difficulty,
            },
        )
        created = self.store.find_one(user_id, target)
        return self._with_challenge(created, challenge)

    def pick_challenge(self, user_id: str, day: date) -> Challenge:
        """Choose (without persisting) the challenge `user_id` would get on `day`."""
        snapshot = self.stats.get_or_create_stats(user_id)

        recent = self.store.count_completed_between(
            user_id, day - timedelta(days=CATCH_UP_WINDOW_DAYS), day - timedelta(days=1)
        )
        adjusted = catch_up_score(snapshot.comfort_score, recent)
        low, high = difficulty_band(adjusted)
        preferred = 1 if adjusted == 0 else None

        excluded = self.store.categories_between(
            user_id, day - timedelta(days=CATEGORY_COOLDOWN_DAYS), day - timedelta(days=1)
        )

        candidates = self._eligible(preferred, (low, high), excluded)
        if not candidates:
            raise NoChallengesAvailableError()
        return self.rng.choice(candidates)

    def _eligible(self, preferred: Optional[int], band: Tuple[int, int], excluded: Set[str]) -> List[Challenge]:
        band_levels = list(range(band[0], band[1] + 1))
        attempts: List[Tuple[Optional[Sequence[int]], Set[str]]] = []
        if preferred is not None:
            attempts.append(([preferred], excluded))
        attempts.append((band_levels, excluded))
        if preferred is not None:
            attempts.append(([preferred], set()))
        attempts.append((band_levels, set()))
        attempts.append((None, set()))

        for difficulties, exclude in attempts:
            found = self.catalog.find_candidates(difficulties=difficulties, exclude_categories=exclude)
            if found:
                return found
        return []

    def history(self, user_id: str, since: date) -> List[DailyAssignment]:
        return self.store.history(user_id, since)

    def _with_challenge(self, assignment: DailyAssignment, challenge: Optional[Challenge] = None) -> DailyAssignment:
        assignment.challenge = challenge or self.catalog.get(assignment.challenge_id)
        return assignment
