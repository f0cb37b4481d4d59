"""
Tests for sweep.py - Scheduled registration sweep.
"""

import os
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from golf_contest.config import Config
from golf_contest.database import ConcurrencyConflict, Database
from golf_contest.models import CompetitionStatus, EntryStatus
from golf_contest import lifecycle, sweep


@pytest.fixture
def db(temp_db_path):
    return Database(db_path=temp_db_path)


@pytest.fixture
def config(clean_env):
    return Config()


def _store_entry(db, competition_id, user_id, status, picks=()):
    draft = db.create_draft(competition_id, user_id)
    if status == EntryStatus.DRAFT and not picks:
        return draft
    return db.save_entry(replace(draft, status=status, picks=tuple(picks)))


@pytest.fixture
def populated(db, competition, h2h_competition, full_picks):
    """A classic competition with a submitted entry and a draft, and a half-empty head-to-head."""
    db.save_competition(competition)
    db.save_competition(h2h_competition)
    entries = {
        "submitted": _store_entry(db, "full-course", "alice", EntryStatus.SUBMITTED, full_picks),
        "draft": _store_entry(db, "full-course", "bob", EntryStatus.DRAFT, full_picks[:2]),
        "lonely": _store_entry(db, "one-2-one-1", "carol", EntryStatus.SUBMITTED, full_picks),
    }
    return db, entries


class TestRunSweep:
    """Tests for run_sweep."""

    def test_nothing_happens_while_open(self, populated, config, before_close):
        db, entries = populated
        report = sweep.run_sweep(db, now=before_close, config=config)
        assert report.competitions == 2
        assert report.locked == 0 and report.voided == 0 and report.cancelled == 0
        assert db.get_entry(entries["submitted"].entry_id).status == EntryStatus.SUBMITTED

    def test_sweep_after_close(self, populated, config, after_close):
        """Test locking, voiding drafts and cancelling the unfilled head-to-head."""
        db, entries = populated
        report = sweep.run_sweep(db, now=after_close, config=config)

        assert report.status_changes == 2
        assert report.locked == 1
        assert report.voided == 2
        assert report.cancelled == 1
        assert report.failed == 0

        assert db.get_entry(entries["submitted"].entry_id).status == EntryStatus.LOCKED
        assert db.get_entry(entries["draft"].entry_id).status == EntryStatus.VOID
        assert db.get_entry(entries["lonely"].entry_id).status == EntryStatus.VOID
        assert db.get_competition("one-2-one-1").is_cancelled
        closed = db.get_competition("full-course")
        assert closed.computed_status == CompetitionStatus.REGISTRATION_CLOSED

    def test_cancellation_during_sweep_survives(self, populated, config, after_close):
        """Test that a cancel landing after the sweep read its competitions is kept."""
        db, entries = populated
        stale = db.get_active_competitions()
        sweep.cancel(db, "full-course", config=config)

        with patch.object(db, "get_active_competitions", return_value=stale):
            report = sweep.run_sweep(db, now=after_close, config=config)

        after = db.get_competition("full-course")
        assert after.is_cancelled
        assert after.computed_status == CompetitionStatus.REGISTRATION_CLOSED
        assert db.get_entry(entries["submitted"].entry_id).status == EntryStatus.VOID
        assert report.locked == 0
        assert report.cancelled == 1

    def test_sweep_is_idempotent(self, populated, config, after_close):
        db, _ = populated
        sweep.run_sweep(db, now=after_close, config=config)
        again = sweep.run_sweep(db, now=after_close, config=config)
        assert again.competitions == 1
        assert again.status_changes == 0
        assert again.locked == 0 and again.voided == 0 and again.cancelled == 0


class TestRunScoring:
    """Tests for run_scoring."""

    def test_scores_locked_entries(self, populated, config, after_close, final_results):
        db, entries = populated
        sweep.run_sweep(db, now=after_close, config=config)
        report = sweep.run_scoring(db, "full-course", final_results, config=config)
        assert report.scored == 1
        scored = db.get_entry(entries["submitted"].entry_id)
        assert scored.status == EntryStatus.SCORED
        assert scored.total_score == -3
        assert scored.results_version == 4

    def test_stale_snapshot_changes_nothing(self, populated, config, after_close, final_results):
        db, entries = populated
        sweep.run_sweep(db, now=after_close, config=config)
        sweep.run_scoring(db, "full-course", final_results, config=config)
        report = sweep.run_scoring(db, "full-course", replace(final_results, version=3), config=config)
        assert report.scored == 0
        assert db.get_entry(entries["submitted"].entry_id).results_version == 4

    def test_partial_results_are_reported_as_failures(self, populated, config, after_close, final_results):
        db, _ = populated
        sweep.run_sweep(db, now=after_close, config=config)
        report = sweep.run_scoring(db, "full-course", replace(final_results, rounds_completed=2), config=config)
        assert report.scored == 0
        assert report.failed == 1

    def test_unknown_competition(self, db, config, final_results):
        with pytest.raises(ValueError):
            sweep.run_scoring(db, "nope", final_results, config=config)


class TestCancel:
    """Tests for cancel."""

    def test_cancel_voids_everything(self, populated, config):
        db, entries = populated
        report = sweep.cancel(db, "full-course", config=config)
        assert report.cancelled == 1
        assert report.voided == 2
        assert db.get_competition("full-course").is_cancelled
        assert db.get_active_competitions()[0].competition_id == "one-2-one-1"


class TestApplyWithRetry:
    """Tests for optimistic-concurrency retries."""

    def test_retries_after_conflict(self, make_entry, competition, after_close):
        entry = make_entry(status=EntryStatus.SUBMITTED)
        db = MagicMock()
        db.get_entry.return_value = entry
        db.save_entry.side_effect = [ConcurrencyConflict("busy"), replace(entry, status=EntryStatus.LOCKED)]

        result = sweep.apply_with_retry(db, "e1", lambda e: lifecycle.lock(e, competition, after_close))
        assert result.changed
        assert result.new_status == EntryStatus.LOCKED
        assert db.get_entry.call_count == 2

    def test_gives_up(self, make_entry, competition, after_close):
        entry = make_entry(status=EntryStatus.SUBMITTED)
        db = MagicMock()
        db.get_entry.return_value = entry
        db.save_entry.side_effect = ConcurrencyConflict("busy")

        result = sweep.apply_with_retry(db, "e1", lambda e: lifecycle.lock(e, competition, after_close), retries=2)
        assert result is None
        assert db.save_entry.call_count == 2

    def test_unchanged_entry_not_saved(self, make_entry, competition, after_close):
        db = MagicMock()
        db.get_entry.return_value = make_entry(status=EntryStatus.LOCKED)
        result = sweep.apply_with_retry(db, "e1", lambda e: lifecycle.lock(e, competition, after_close))
        assert not result.changed
        db.save_entry.assert_not_called()

    def test_missing_entry(self):
        db = MagicMock()
        db.get_entry.return_value = None
        assert sweep.apply_with_retry(db, "gone", lifecycle.void) is None


class TestMain:
    """Tests for the cron entry point."""

    def test_main_runs_against_configured_store(self, temp_dir, clean_env):
        with patch.dict(os.environ, {"GOLF_CONTEST_DATA_DIR": str(temp_dir)}):
            with patch("golf_contest.sweep.logging.basicConfig"):
                assert sweep.main() == 0
        assert (temp_dir / "contest.db").exists()

    def test_main_reports_failure(self, temp_dir, clean_env):
        with patch.dict(os.environ, {"GOLF_CONTEST_DATA_DIR": str(temp_dir)}):
            with patch("golf_contest.sweep.logging.basicConfig"):
                with patch("golf_contest.sweep.run_sweep", side_effect=RuntimeError("boom")):
                    assert sweep.main() == 1
