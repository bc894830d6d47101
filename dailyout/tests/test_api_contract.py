import uuid
from datetime import date, timedelta

from sqlalchemy import update

from dailyout.core.database import challenges


def test_requests_without_identity_are_unauthorized(client):
    response = client.get("/api/today")

    assert response.status_code == 401
    body = response.json()
    assert body["error"]["code"] == "unauthorized"
    assert body["detail"] == "Missing or invalid authentication"


def test_malformed_anon_id(client):
    response = client.get("/api/today", headers={"X-Anon-Id": "not-a-uuid"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Invalid UUID format"


def test_today_assigns_once(client, anon_headers):
    first = client.get("/api/today", headers=anon_headers)
    second = client.get("/api/today", headers=anon_headers)

    assert first.status_code == 200
    body = first.json()
    assert body["assigned_date"] == "2024-03-04"
    assert body["status"] == "pending"
    assert body["challenge"]["difficulty"] == 1
    assert set(body["challenge"]) == {"id", "slug", "category", "difficulty", "text"}
    assert second.json() == body


def test_complete_flow(client, anon_headers):
    client.get("/api/today", headers=anon_headers)

    response = client.post("/api/complete", json={"note": "did it"}, headers=anon_headers)

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "current_streak": 1,
        "longest_streak": 1,
        "comfort_score": 2,
        "new_badges": ["first_completion"],
    }
    today = client.get("/api/today", headers=anon_headers).json()
    assert today["status"] == "completed"
    assert today["note"] == "did it"

    again = client.post("/api/complete", headers=anon_headers)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "already_completed"

    skipped = client.post("/api/skip", headers=anon_headers)
    assert skipped.status_code == 409
    assert skipped.json()["error"]["code"] == "already_completed"


def test_complete_without_assignment(client, anon_headers):
    response = client.post("/api/complete", headers=anon_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "no_active_challenge"


def test_skip_flow(client, anon_headers):
    client.get("/api/today", headers=anon_headers)

    response = client.post("/api/skip", headers=anon_headers)
    assert response.status_code == 200
    assert response.json()["current_streak"] == 0

    conflict = client.post("/api/complete", headers=anon_headers)
    assert conflict.status_code == 409
    assert conflict.json()["error"]["code"] == "already_skipped"


def test_invalid_notes_are_rejected(client, anon_headers):
    client.get("/api/today", headers=anon_headers)

    wrong_type = client.post("/api/complete", json={"note": 5}, headers=anon_headers)
    blank = client.post("/api/complete", json={"note": "   "}, headers=anon_headers)

    assert wrong_type.status_code == 400
    assert wrong_type.json()["error"]["code"] == "validation_error"
    assert blank.status_code == 400
    assert blank.json()["error"]["message"] == "Note cannot be empty"
    assert client.get("/api/today", headers=anon_headers).json()["status"] == "pending"


def test_progress_and_note_editing(client, anon_headers, services, record_day):
    user_id = anon_headers["X-Anon-Id"]
    client.get("/api/today", headers=anon_headers)
    record_day(user_id, date(2024, 3, 3), note="yesterday")
    client.post("/api/complete", json={"note": "today"}, headers=anon_headers)
    client.post(
        "/api/journal",
        json={"entry_date": "2024-03-04", "content": "Long day"},
        headers=anon_headers,
    )

    progress = client.get("/api/progress", headers=anon_headers)

    assert progress.status_code == 200
    body = progress.json()
    assert body["stats"]["current_streak"] == 2
    assert body["stats"]["badges"] == ["first_completion"]
    assert body["stats"]["new_badges"] == []
    history = body["history"]
    assert [(item["date"], item["type"]) for item in history] == [
        ("2024-03-04", "challenge"),
        ("2024-03-04", "journal"),
        ("2024-03-03", "challenge"),
    ]
    assert history[0]["completed"] is True
    assert history[0]["note"] == "today"
    assert history[1]["journal_entry"]["content"] == "Long day"

    edited = client.patch("/api/progress/2024-03-04/note", json={"note": "today, edited"}, headers=anon_headers)
    assert edited.status_code == 200
    assert edited.json() == {"ok": True, "note": "today, edited"}

    cleared = client.patch("/api/progress/2024-03-04/note", json={"note": None}, headers=anon_headers)
    assert cleared.json() == {"ok": True, "note": None}

    # completed at noon on the 3rd, now is noon on the 4th
    expired = client.patch("/api/progress/2024-03-03/note", json={"note": "late"}, headers=anon_headers)
    assert expired.status_code == 400
    assert expired.json()["error"]["code"] == "note_edit_window_expired"

    bad_date = client.patch("/api/progress/2024-13-01/note", json={"note": "x"}, headers=anon_headers)
    assert bad_date.status_code == 400


def test_challenge_catalog(client):
    response = client.get("/api/challenges")

    assert response.status_code == 200
    listed = response.json()
    assert len(listed) == 31
    assert set(listed[0]) == {"slug", "category", "difficulty", "text"}
    assert [c["difficulty"] for c in listed] == sorted(c["difficulty"] for c in listed)

    shared = client.get("/api/challenges", params={"category": "share"}).json()
    assert {c["category"] for c in shared} == {"share"}

    assert client.get("/api/challenges", params={"category": "bogus"}).status_code == 400


def test_wins_flow(client, anon_headers):
    created = client.post("/api/wins", json={"text": "Asked a stranger for directions"}, headers=anon_headers)
    assert created.status_code == 200
    win_id = created.json()["id"]

    limited = client.post("/api/wins", json={"text": "again"}, headers=anon_headers)
    assert limited.status_code == 429

    liked = client.post(f"/api/wins/{win_id}/like", headers=anon_headers)
    assert liked.json() == {"ok": True}

    feed = client.get("/api/wins").json()
    assert feed[0]["id"] == win_id
    assert feed[0]["likes"] == 1
    assert "user_id" not in feed[0]

    missing = client.post(f"/api/wins/{uuid.uuid4()}/like", headers=anon_headers)
    assert missing.status_code == 404

    empty = client.post("/api/wins", json={}, headers={"X-Anon-Id": str(uuid.uuid4())})
    assert empty.status_code == 400


def test_journal_flow(client, anon_headers):
    created = client.post(
        "/api/journal", json={"entry_date": "2024-03-04", "content": "First entry"}, headers=anon_headers
    )
    assert created.status_code == 201
    entry_id = created.json()["id"]

    updated = client.patch(f"/api/journal/{entry_id}", json={"content": "Edited"}, headers=anon_headers)
    assert updated.json()["content"] == "Edited"

    other = {"X-Anon-Id": str(uuid.uuid4())}
    assert client.get("/api/journal", headers=other).json() == []
    assert client.delete(f"/api/journal/{entry_id}", headers=other).status_code == 404

    assert client.delete(f"/api/journal/{entry_id}", headers=anon_headers).json() == {"ok": True}
    assert client.get("/api/journal", headers=anon_headers).json() == []

    invalid = client.post(
        "/api/journal", json={"entry_date": "2024-02-30", "content": "x"}, headers=anon_headers
    )
    assert invalid.status_code == 400


def test_register_links_anonymous_identity(client, anon_headers):
    anon = anon_headers["X-Anon-Id"]
    client.get("/api/today", headers=anon_headers)

    registered = client.post(
        "/api/auth/register", json={"email": "me@example.com", "password": "longenough"}, headers=anon_headers
    )
    assert registered.status_code == 200
    body = registered.json()
    assert body["user"] == {"id": anon, "email": "me@example.com"}

    bearer = {"Authorization": f"Bearer {body['token']}"}
    me = client.get("/api/auth/me", headers=bearer)
    assert me.json() == {"id": anon, "email": "me@example.com", "hasPassword": True}
    assert client.get("/api/today", headers=bearer).json()["assigned_date"] == "2024-03-04"

    again = client.post(
        "/api/auth/register", json={"email": "other@example.com", "password": "longenough"}, headers=anon_headers
    )
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "already_registered"


def test_login_and_missing_credentials(client):
    client.post("/api/auth/register", json={"email": "fresh@example.com", "password": "longenough"})

    ok = client.post("/api/auth/login", json={"email": "fresh@example.com", "password": "longenough"})
    assert ok.status_code == 200
    assert ok.json()["user"]["email"] == "fresh@example.com"

    wrong = client.post("/api/auth/login", json={"email": "fresh@example.com", "password": "nope-nope"})
    assert wrong.status_code == 401

    missing = client.post("/api/auth/login", json={"email": "fresh@example.com"})
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Email and password are required"


def test_health_endpoints(client):
    health = client.get("/health").json()
    assert health["status"] == "ok"
    assert health["day"] == "2024-03-04"
    assert health["day_policy"] == "UTC"

    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/readyz").status_code == 200


def test_readiness_fails_with_empty_catalog(client, services, anon_headers):
    with services.db.session() as session:
        session.execute(update(challenges).values(is_active=False))

    assert client.get("/readyz").status_code == 503
    today = client.get("/api/today", headers=anon_headers)
    assert today.status_code == 503
    assert today.json()["error"]["code"] == "no_challenges_available"


def test_metrics_endpoint(client, anon_headers):
    client.get("/api/today", headers=anon_headers)
    client.post("/api/complete", headers=anon_headers)

    text = client.get("/metrics").text

    assert "assignments_created_total 1.0" in text
    assert 'transitions_total{kind="completed"} 1.0' in text
    assert 'http_requests_total{method="GET",path="/api/today",status="200"} 1.0' in text


def test_metrics_path_labels_are_normalized(client, anon_headers):
    client.patch("/api/progress/2024-03-04/note", json={"note": "x"}, headers=anon_headers)

    text = client.get("/metrics").text
    assert 'path="/api/progress/:date/note"' in text


def test_history_window(client, anon_headers, record_day):
    user_id = anon_headers["X-Anon-Id"]
    client.get("/api/today", headers=anon_headers)
    record_day(user_id, date(2024, 3, 4) - timedelta(days=400))

    history = client.get("/api/progress", headers=anon_headers).json()["history"]
    assert [item["date"] for item in history] == ["2024-03-04"]
