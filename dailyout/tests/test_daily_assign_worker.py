from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from dailyout.workers import daily_assign, seed_challenges
from dailyout.workers.daily_assign import assign_daily_challenges

DAY = date(2024, 3, 4)


def test_assigns_everyone_missing_today(services, make_user):
    users = [make_user() for _ in range(3)]
    services.assignments.get_or_create_assignment(users[0])

    report = assign_daily_challenges(services)

    assert report == {"date": "2024-03-04", "users": 3, "assigned": 2, "existing": 1, "failed": 0}
    for uid in users:
        assert services.assignments.get_assignment(uid, DAY) is not None


def test_rerun_is_a_no_op(services, make_user):
    make_user()
    make_user()
    assign_daily_challenges(services)

    report = assign_daily_challenges(services)
    assert (report["assigned"], report["existing"]) == (0, 2)


def test_explicit_day(services, make_user):
    uid = make_user()
    report = assign_daily_challenges(services, day=date(2024, 3, 10))

    assert report["date"] == "2024-03-10"
    assert services.assignments.get_assignment(uid, date(2024, 3, 10)) is not None
    assert services.assignments.get_assignment(uid, DAY) is None


def test_user_failure_does_not_stop_the_run(services, make_user, monkeypatch):
    broken = make_user()
    healthy = make_user()
    real = services.assignments.get_or_create_assignment

    def flaky(user_id, day=None):
        if user_id == broken:
            raise RuntimeError("boom")
        return real(user_id, day)

    monkeypatch.setattr(services.assignments, "get_or_create_assignment", flaky)

    report = assign_daily_challenges(services)

    assert report["failed"] == 1
    assert report["assigned"] == 1
    assert services.assignments.get_assignment(healthy, DAY) is not None


def test_database_failure_aborts(services, make_user, monkeypatch):
    make_user()

    def unreachable(user_id, day=None):
        raise OperationalError("SELECT 1", {}, Exception("database is gone"))

    monkeypatch.setattr(services.assignments, "get_or_create_assignment", unreachable)

    with pytest.raises(OperationalError):
        assign_daily_challenges(services)


def _point_settings_at(monkeypatch, url):
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("DAY_TIMEZONE", "UTC")
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)


def test_main_seeds_and_assigns(tmp_path, monkeypatch, capsys):
    _point_settings_at(monkeypatch, f"sqlite:///{tmp_path / 'worker.db'}")

    assert seed_challenges.main([]) == 0
    assert "'inserted': 31" in capsys.readouterr().out

    assert daily_assign.main(["--date", "2024-03-04"]) == 0
    assert "'date': '2024-03-04'" in capsys.readouterr().out


def test_main_returns_non_zero_when_database_unreachable(tmp_path, monkeypatch):
    _point_settings_at(monkeypatch, f"sqlite:///{tmp_path / 'missing-dir' / 'worker.db'}")

    assert daily_assign.main([]) == 1
