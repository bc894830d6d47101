"""Explicit wiring of every service. Built once by create_app (or by tests)."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from dailyout.core.clock import Clock
from dailyout.core.config import Settings
from dailyout.core.database import Database
from dailyout.features.assignments.persistence import AssignmentStore
from dailyout.features.assignments.service import AssignmentService
from dailyout.features.catalog.service import ChallengeCatalog
from dailyout.features.completion.service import CompletionService
from dailyout.features.journal.service import JournalService
from dailyout.features.progress.service import ProgressService
from dailyout.features.stats.persistence import StatsStore
from dailyout.features.stats.service import StatsService
from dailyout.features.users.service import UserService
from dailyout.features.wins.service import WinsService
from dailyout.realtime.hub import EventEmitter, ProgressHub


@dataclass
class Services:
    settings: Settings
    db: Database
    clock: Clock
    rng: random.Random
    emitter: EventEmitter
    hub: Optional[ProgressHub]
    catalog: ChallengeCatalog
    assignment_store: AssignmentStore
    stats: StatsService
    assignments: AssignmentService
    completion: CompletionService
    users: UserService
    wins: WinsService
    journal: JournalService
    progress: ProgressService


def build_services(
    settings: Settings,
    *,
    database: Optional[Database] = None,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
    emitter: Optional[EventEmitter] = None,
    bcrypt_rounds: int = 10,
) -> Services:
    """
    Construct the service graph. Anything not passed in is built from settings;
    when no emitter is given, a ProgressHub is created and used as the emitter.
    """
    db = database or Database(settings.effective_database_url)
    clock = clock or Clock(settings.DAY_TIMEZONE)
    rng = rng or random.Random(settings.ASSIGNMENT_RANDOM_SEED)
    hub = None
    if emitter is None:
        hub = ProgressHub()
        emitter = hub
    elif isinstance(emitter, ProgressHub):
        hub = emitter

    catalog = ChallengeCatalog(db)
    assignment_store = AssignmentStore(db)
    stats = StatsService(stats=StatsStore(db), assignments=assignment_store, clock=clock)
    assignments = AssignmentService(
        store=assignment_store, catalog=catalog, stats=stats, clock=clock, rng=rng
    )
    completion = CompletionService(
        store=assignment_store,
        stats=stats,
        clock=clock,
        emitter=emitter,
        note_max_length=settings.NOTE_MAX_LENGTH,
        note_edit_window_hours=settings.NOTE_EDIT_WINDOW_HOURS,
    )
    users = UserService(
        db,
        clock=clock,
        jwt_secret=settings.JWT_SECRET,
        jwt_expires_days=settings.JWT_EXPIRES_DAYS,
        bcrypt_rounds=bcrypt_rounds,
    )
    wins = WinsService(
        db,
        clock=clock,
        emitter=emitter,
        max_length=settings.WIN_MAX_LENGTH,
        posts_per_minute=settings.WIN_POSTS_PER_MINUTE,
        likes_per_minute=settings.WIN_LIKES_PER_MINUTE,
    )
    journal = JournalService(db, clock=clock, max_length=settings.JOURNAL_MAX_LENGTH)
    progress = ProgressService(
        stats=stats,
        assignments=assignment_store,
        journal=journal,
        clock=clock,
        history_days=settings.HISTORY_DAYS,
    )

    return Services(
        settings=settings,
        db=db,
        clock=clock,
        rng=rng,
        emitter=emitter,
        hub=hub,
        catalog=catalog,
        assignment_store=assignment_store,
        stats=stats,
        assignments=assignments,
        completion=completion,
        users=users,
        wins=wins,
        journal=journal,
        progress=progress,
    )
