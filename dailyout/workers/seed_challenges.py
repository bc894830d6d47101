"""
Load the built-in challenge catalog. Idempotent: existing slugs are left alone.

    python -m dailyout.workers.seed_challenges
"""
from __future__ import annotations

import argparse
import logging
from typing import Dict

from dailyout.core.config import Settings
from dailyout.core.database import Database
from dailyout.core.logging import configure_logging
from dailyout.features.catalog.service import ChallengeCatalog

logger = logging.getLogger("dailyout.workers.seed_challenges")


def seed_catalog(db: Database) -> Dict:
    db.create_all()
    inserted, existing = ChallengeCatalog(db).seed()
    return {"inserted": inserted, "existing": existing}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed the challenge catalog.")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL.")
    args = parser.parse_args(argv)

    settings = Settings()
    configure_logging(settings.ENV)

    db = Database(args.database_url or settings.effective_database_url)
    try:
        report = seed_catalog(db)
    finally:
        db.dispose()

    print(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
