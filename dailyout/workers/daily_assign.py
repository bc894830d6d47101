"""
Daily batch assignment: make sure every user has today's challenge.

Per-user failures are logged and counted; the run continues. Only an
infrastructure failure (database unreachable) aborts with a non-zero exit.

    python -m dailyout.workers.daily_assign [--date YYYY-MM-DD]
"""
from __future__ import annotations

import argparse
import logging
from datetime import date
from typing import Dict, Optional

from sqlalchemy.exc import OperationalError

from dailyout.core.config import Settings, validate_config
from dailyout.core.container import Services, build_services
from dailyout.core.logging import configure_logging

logger = logging.getLogger("dailyout.workers.daily_assign")


def assign_daily_challenges(services: Services, *, day: Optional[date] = None) -> Dict:
    target = day or services.clock.today()
    report = {
        "date": target.isoformat(),
        "users": 0,
        "assigned": 0,
        "existing": 0,
        "failed": 0,
    }

    already_assigned = services.assignment_store.user_ids_assigned_on(target)
    for user_id in services.users.list_user_ids():
        report["users"] += 1
        if user_id in already_assigned:
            report["existing"] += 1
            continue
        try:
            services.assignments.get_or_create_assignment(user_id, target)
            report["assigned"] += 1
        except OperationalError:
            raise
        except Exception as e:
            report["failed"] += 1
            logger.error(
                "daily_assign.user_failed",
                exc_info=True,
                extra={"user_id": user_id, "error_message": str(e)},
            )

    logger.info("daily_assign.complete", extra=dict(report))
    return report


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Assign today's challenge to every user.")
    parser.add_argument("--date", dest="day", type=date.fromisoformat, default=None, help="Assignment day (YYYY-MM-DD); defaults to today.")
    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(settings.ENV)
    validate_config(settings)

    services = build_services(settings)
    try:
        services.db.create_all()
        report = assign_daily_challenges(services, day=args.day)
    except OperationalError as e:
        logger.error("daily_assign.failed", extra={"error_message": str(e)})
        return 1
    finally:
        services.db.dispose()

    print(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
