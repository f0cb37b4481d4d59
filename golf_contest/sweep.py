#!/usr/bin/env python3
"""
Scheduled registration sweep for the Golf Contest Engine.
Refreshes competition status, cancels unfilled head-to-heads, and locks or
voids entries once registration has closed.

Run manually: python -m golf_contest.sweep
Schedule with cron: */5 * * * * cd ~/golf_contest && ./venv/bin/python -m golf_contest.sweep

Every step is idempotent, so overlapping or repeated runs are harmless.
"""

import sys
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import Config, get_config
from .database import Database, ConcurrencyConflict
from .lifecycle import TransitionResult
from .models import Entry, EntryStatus, ResultsSnapshot
from . import lifecycle, timing

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Counts of what one sweep run changed."""
    competitions: int = 0
    status_changes: int = 0
    locked: int = 0
    voided: int = 0
    cancelled: int = 0
    scored: int = 0
    failed: int = 0


def apply_with_retry(db: Database, entry_id: str,
                     transition: Callable[[Entry], TransitionResult],
                     retries: int = 3) -> Optional[TransitionResult]:
    """
    Apply a transition to the latest stored entry and save it.

    A conflicting concurrent write means re-fetching and trying again.
    Returns None if every attempt conflicted.
    """
    for attempt in range(1, retries + 1):
        entry = db.get_entry(entry_id)
        if entry is None:
            logger.warning(f"Entry {entry_id} disappeared during sweep")
            return None
        result = transition(entry)
        if not result.changed:
            return result
        try:
            saved = db.save_entry(result.entry)
            return TransitionResult(entry=saved, changed=True, warnings=result.warnings)
        except ConcurrencyConflict as e:
            logger.warning(f"{e} (attempt {attempt}/{retries})")
    logger.error(f"Gave up on entry {entry_id} after {retries} conflicting writes")
    return None


def _tally(report: SweepReport, result: Optional[TransitionResult]):
    if result is None or result.error is not None:
        report.failed += 1
        return
    if not result.changed:
        return
    if result.new_status == EntryStatus.LOCKED:
        report.locked += 1
    elif result.new_status == EntryStatus.VOID:
        report.voided += 1
    elif result.new_status == EntryStatus.SCORED:
        report.scored += 1


def run_sweep(db: Database, now: Optional[datetime] = None,
              config: Optional[Config] = None) -> SweepReport:
    """Run one registration sweep over every active competition."""
    now = now or datetime.now()
    config = config or get_config()
    retries = config.max_conflict_retries
    report = SweepReport()

    for competition in db.get_active_competitions():
        report.competitions += 1
        refreshed = timing.refresh_status(competition, now)
        if refreshed.computed_status != competition.computed_status:
            db.update_computed_status(competition.competition_id, refreshed.computed_status)
            report.status_changes += 1

        # Pick up any override set since the list was read
        current = db.get_competition(competition.competition_id)
        if current is None or current.is_cancelled:
            continue

        entries = db.get_entries(current.competition_id)
        after_cancel, _ = lifecycle.cancel_unfilled_head_to_head(current, entries, now)
        if after_cancel.is_cancelled:
            db.set_manual_override(current.competition_id, after_cancel.manual_override)
            report.cancelled += 1
            for entry in entries:
                _tally(report, apply_with_retry(db, entry.entry_id, lifecycle.void, retries))
            continue

        if not timing.registration_has_closed(current, now):
            continue
        for entry in entries:
            result = apply_with_retry(
                db, entry.entry_id,
                lambda e: lifecycle.lock(e, current, now),
                retries,
            )
            _tally(report, result)

    logger.info(
        f"Sweep: {report.competitions} competitions, {report.status_changes} status changes, "
        f"{report.locked} locked, {report.voided} voided, {report.cancelled} cancelled"
    )
    return report


def run_scoring(db: Database, competition_id: str, snapshot: ResultsSnapshot,
                config: Optional[Config] = None) -> SweepReport:
    """Score (or rescore) every locked entry of a competition from a results snapshot."""
    config = config or get_config()
    report = SweepReport(competitions=1)
    competition = db.get_competition(competition_id)
    if competition is None:
        raise ValueError(f"Unknown competition {competition_id}")

    entries = db.get_entries(competition_id, [EntryStatus.LOCKED, EntryStatus.SCORED])
    for entry in entries:
        result = apply_with_retry(
            db, entry.entry_id,
            lambda e: lifecycle.score(e, competition, snapshot, config.captain_multiplier),
            config.max_conflict_retries,
        )
        if result is not None and result.error is not None:
            logger.warning(f"Entry {entry.entry_id} not scored: {result.error.message}")
        _tally(report, result)

    logger.info(
        f"Scored {report.scored} entries in {competition_id} "
        f"(results version {snapshot.version}, {report.failed} failed)"
    )
    return report


def cancel(db: Database, competition_id: str, config: Optional[Config] = None) -> SweepReport:
    """Cancel a competition and void its entries."""
    config = config or get_config()
    report = SweepReport(competitions=1)
    competition = db.get_competition(competition_id)
    if competition is None:
        raise ValueError(f"Unknown competition {competition_id}")

    cancelled, _ = lifecycle.cancel_competition(competition, [])
    db.set_manual_override(competition_id, cancelled.manual_override)
    report.cancelled += 1
    for entry in db.get_entries(competition_id):
        _tally(report, apply_with_retry(db, entry.entry_id, lifecycle.void, config.max_conflict_retries))
    return report


def main() -> int:
    """Entry point for cron."""
    config = get_config()
    config.ensure_dirs()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.log_path),
            logging.StreamHandler()
        ]
    )
    logger.info("=" * 50)
    logger.info(f"Starting registration sweep at {datetime.now()}")

    try:
        report = run_sweep(Database(config.db_path), config=config)
    except Exception as e:
        logger.error(f"Sweep failed: {e}")
        return 1
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
