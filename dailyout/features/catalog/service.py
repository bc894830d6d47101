from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from dailyout.core.database import Database, challenges
from dailyout.core.errors import ValidationError
from dailyout.features.catalog.seed_data import CHALLENGE_CATALOG
from dailyout.models.challenge import CATEGORIES, MAX_DIFFICULTY, MIN_DIFFICULTY, Challenge

logger = logging.getLogger("dailyout.catalog")

# Seeded challenge ids are derived from the slug so re-seeding any database
# yields the same ids.
_CHALLENGE_NAMESPACE = uuid.UUID("6f1c1e0a-4b7e-5d2a-9c3f-1a2b3c4d5e6f")


def challenge_id_for_slug(slug: str) -> str:
    return str(uuid.uuid5(_CHALLENGE_NAMESPACE, slug))


def _row_to_challenge(row) -> Challenge:
    return Challenge(
        id=row.id,
        slug=row.slug,
        category=row.category,
        difficulty=int(row.difficulty),
        text=row.text,
        is_active=bool(row.is_active),
    )


class ChallengeCatalog:
    """Read access to the shared challenge templates, plus idempotent seeding."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, challenge_id: str) -> Optional[Challenge]:
        with self.db.session() as session:
            row = session.execute(select(challenges).where(challenges.c.id == challenge_id)).first()
        return _row_to_challenge(row) if row else None

    def list_challenges(self, *, active: Optional[bool] = True, category: Optional[str] = None) -> List[Challenge]:
        """Catalog listing ordered by difficulty (then slug)."""
        if category is not None and category not in CATEGORIES:
            raise ValidationError(f"Unknown category: {category}")

        stmt = select(challenges)
        if active is not None:
            stmt = stmt.where(challenges.c.is_active == active)
        if category is not None:
            stmt = stmt.where(challenges.c.category == category)
        stmt = stmt.order_by(challenges.c.difficulty, challenges.c.slug)

        with self.db.session() as session:
            rows = session.execute(stmt).all()
        return [_row_to_challenge(row) for row in rows]

    def find_candidates(
        self,
        *,
        difficulties: Optional[Sequence[int]] = None,
        exclude_categories: Optional[Iterable[str]] = None,
    ) -> List[Challenge]:
        """
        Active challenges matching the given difficulties, minus excluded categories.

        difficulties=None means any difficulty. Results are ordered by slug so a
        seeded RNG picks reproducibly.
        """
        stmt = select(challenges).where(challenges.c.is_active.is_(True))
        if difficulties is not None:
            stmt = stmt.where(challenges.c.difficulty.in_(list(difficulties)))
        excluded = sorted(set(exclude_categories or ()))
        if excluded:
            stmt = stmt.where(challenges.c.category.not_in(excluded))
        stmt = stmt.order_by(challenges.c.slug)

        with self.db.session() as session:
            rows = session.execute(stmt).all()
        return [_row_to_challenge(row) for row in rows]

    def count_active(self) -> int:
        with self.db.session() as session:
            return int(
                session.execute(
                    select(func.count()).select_from(challenges).where(challenges.c.is_active.is_(True))
                ).scalar_one()
            )

    def seed(self, entries: Sequence[Tuple[str, str, int, str]] = CHALLENGE_CATALOG) -> Tuple[int, int]:
        """
        Insert catalog entries that are not present yet (matched by slug).

        Returns (inserted, existing).
        """
        inserted = 0
        existing = 0
        for slug, category, difficulty, text in entries:
            if category not in CATEGORIES:
                raise ValidationError(f"Challenge {slug}: unknown category {category}")
            if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
                raise ValidationError(f"Challenge {slug}: difficulty must be {MIN_DIFFICULTY}-{MAX_DIFFICULTY}")

            try:
                with self.db.session() as session:
                    found = session.execute(
                        select(challenges.c.id).where(challenges.c.slug == slug)
                    ).first()
                    if found:
                        existing += 1
                        continue
                    session.execute(
                        insert(challenges).values(
                            id=challenge_id_for_slug(slug),
                            slug=slug,
                            category=category,
                            difficulty=difficulty,
                            text=text,
                            is_active=True,
                        )
                    )
                    inserted += 1
            except IntegrityError:
                # Seeded concurrently by another process
                existing += 1

        logger.info("catalog.seeded", extra={"inserted": inserted, "existing": existing})
        return inserted, existing
