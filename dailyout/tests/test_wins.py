import hashlib
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import select

from dailyout.core.database import win_events
from dailyout.core.errors import NotFoundError, RateLimitError, ValidationError
from dailyout.features.wins.service import WinsService, hash_user_id
from dailyout.realtime.hub import WIN_LIKE, WIN_NEW


def test_hash_user_id():
    assert hash_user_id("abc") == hashlib.sha256(b"abc").hexdigest()
    assert hash_user_id(None) == "anonymous"


def test_posting_emits_anonymous_payload(services, user_id, emitter):
    win = services.wins.create_win(user_id, "  Asked my boss for a raise  ")

    assert win.text == "Asked my boss for a raise"
    assert emitter.topics() == [WIN_NEW]
    payload = emitter.events[0].payload
    assert payload == win.to_dict()
    assert "user_id" not in payload
    assert emitter.events[0].user_id is None


def test_rate_events_store_only_hashes(services, user_id):
    services.wins.create_win(user_id, "Sang in the shower")

    with services.db.session() as session:
        hashes = [row.user_hash for row in session.execute(select(win_events)).all()]
    assert hashes == [hash_user_id(user_id)]


@pytest.mark.parametrize("text", [None, "", "   ", 42])
def test_text_is_required(services, user_id, text):
    with pytest.raises(ValidationError) as exc_info:
        services.wins.create_win(user_id, text)
    assert exc_info.value.message == "Text is required"


def test_text_length_limit(services, user_id):
    with pytest.raises(ValidationError):
        services.wins.create_win(user_id, "x" * 281)
    services.wins.create_win(user_id, "x" * 280)


def test_one_post_per_minute(services, user_id, clock, make_user):
    services.wins.create_win(user_id, "first")

    with pytest.raises(RateLimitError) as exc_info:
        services.wins.create_win(user_id, "second")
    assert exc_info.value.status_code == 429

    # other users are unaffected
    services.wins.create_win(make_user(), "someone else")

    clock.advance(seconds=61)
    services.wins.create_win(user_id, "second, later")


def test_likes_are_rate_limited(services, user_id, make_user, emitter):
    win = services.wins.create_win(make_user(), "Talked to a stranger")

    for _ in range(10):
        services.wins.like_win(win.id, user_id)
    with pytest.raises(RateLimitError):
        services.wins.like_win(win.id, user_id)

    assert services.wins.recent()[0].likes == 10
    assert emitter.topics().count(WIN_LIKE) == 10
    assert emitter.events[-1].payload == {"id": win.id}


def test_like_unknown_win(services, user_id):
    with pytest.raises(NotFoundError) as exc_info:
        services.wins.like_win("does-not-exist", user_id)
    assert exc_info.value.message == "Win not found"


def test_recent_is_newest_first(services, make_user, clock):
    first = services.wins.create_win(make_user(), "older")
    clock.advance(seconds=5)
    second = services.wins.create_win(make_user(), "newer")

    assert [w.id for w in services.wins.recent()] == [second.id, first.id]
    assert len(services.wins.recent(limit=1)) == 1


def test_text_filter_hook(services, user_id, clock, emitter):
    wins = WinsService(
        services.db,
        clock=clock,
        emitter=emitter,
        text_filter=lambda text: text.replace("darn", "****"),
    )

    win = wins.create_win(user_id, "darn, that was scary")
    assert win.text == "****, that was scary"


def test_rejected_post_leaves_no_trace(services, user_id):
    services.wins.create_win(user_id, "first")
    with pytest.raises(RateLimitError):
        services.wins.create_win(user_id, "second")

    assert [w.text for w in services.wins.recent()] == ["first"]
    with services.db.session() as session:
        assert len(session.execute(select(win_events)).all()) == 1


def test_concurrent_posts_respect_limit(services, user_id):
    def attempt(i):
        try:
            services.wins.create_win(user_id, f"win {i}")
            return "ok"
        except RateLimitError:
            return "limited"

    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(attempt, range(6)))

    assert outcomes.count("ok") == 1
    assert len(services.wins.recent()) == 1
