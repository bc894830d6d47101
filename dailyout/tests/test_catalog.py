import uuid

import pytest
from sqlalchemy import update

from dailyout.core.database import challenges
from dailyout.core.errors import ValidationError
from dailyout.features.catalog.seed_data import CHALLENGE_CATALOG
from dailyout.features.catalog.service import challenge_id_for_slug


def test_seed_is_idempotent(services):
    # the fixture already seeded once
    inserted, existing = services.catalog.seed()
    assert inserted == 0
    assert existing == len(CHALLENGE_CATALOG)
    assert services.catalog.count_active() == len(CHALLENGE_CATALOG)


def test_seeded_ids_are_derived_from_slug(services):
    challenge = services.catalog.list_challenges(category="share")[0]
    assert challenge.id == challenge_id_for_slug(challenge.slug)
    assert uuid.UUID(challenge.id).version == 5


def test_list_is_ordered_by_difficulty(services):
    listed = services.catalog.list_challenges()
    difficulties = [c.difficulty for c in listed]
    assert difficulties == sorted(difficulties)
    assert len(listed) == len(CHALLENGE_CATALOG)


def test_category_filter(services):
    listed = services.catalog.list_challenges(category="share")
    assert len(listed) == 5
    assert {c.category for c in listed} == {"share"}


def test_unknown_category_rejected(services):
    with pytest.raises(ValidationError):
        services.catalog.list_challenges(category="extreme")


def test_inactive_challenges_hidden_by_default(services):
    with services.db.session() as session:
        session.execute(
            update(challenges).where(challenges.c.slug == "rate-your-day").values(is_active=False)
        )

    active_slugs = {c.slug for c in services.catalog.list_challenges()}
    all_slugs = {c.slug for c in services.catalog.list_challenges(active=None)}
    inactive = services.catalog.list_challenges(active=False)

    assert "rate-your-day" not in active_slugs
    assert "rate-your-day" in all_slugs
    assert [c.slug for c in inactive] == ["rate-your-day"]


def test_find_candidates_filters_difficulty_and_categories(services):
    found = services.catalog.find_candidates(difficulties=[1], exclude_categories={"awareness", "private"})
    assert [c.slug for c in found] == ["rate-your-day", "wear-bright-color"]


def test_find_candidates_without_filters_returns_every_active(services):
    found = services.catalog.find_candidates()
    slugs = [c.slug for c in found]
    assert slugs == sorted(slugs)
    assert len(found) == len(CHALLENGE_CATALOG)


def test_seed_rejects_invalid_entries(services):
    with pytest.raises(ValidationError):
        services.catalog.seed([("too-hard", "share", 6, "Impossible")])
    with pytest.raises(ValidationError):
        services.catalog.seed([("wrong-kind", "extreme", 2, "Nope")])

