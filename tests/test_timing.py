"""
Tests for timing.py - Registration windows and competition status.
"""

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from golf_contest.errors import ChronologyError
from golf_contest.models import CompetitionStatus, Tournament
from golf_contest import timing


class TestRegistrationTimes:
    """Tests for registration open/close offsets."""

    def test_registration_close_is_15_minutes_before_tee_time(self):
        """Test the default close buffer."""
        assert timing.registration_close(datetime(2025, 4, 10, 8, 0)) == datetime(2025, 4, 10, 7, 45)

    def test_registration_open_is_5_days_before_round_1(self):
        """Test the default open offset."""
        assert timing.registration_open(datetime(2025, 4, 10, 8, 0)) == datetime(2025, 4, 5, 8, 0)

    def test_offsets_are_configurable(self):
        """Test custom offsets."""
        tee = datetime(2025, 4, 10, 8, 0)
        assert timing.registration_close(tee, timedelta(hours=1)) == datetime(2025, 4, 10, 7, 0)
        assert timing.registration_open(tee, timedelta(days=1)) == datetime(2025, 4, 9, 8, 0)

    def test_negative_buffer_rejected(self):
        """Test that a close time after the tee time is a programming error."""
        with pytest.raises(ValueError):
            timing.registration_close(datetime(2025, 4, 10, 8, 0), timedelta(minutes=-5))


class TestValidateChronology:
    """Tests for validate_chronology."""

    def test_ordered_rounds_pass(self, masters_tournament):
        """Test a well-ordered tournament."""
        result = timing.validate_chronology(masters_tournament.round_starts, masters_tournament.end_date)
        assert result.ok

    def test_out_of_order_rounds_fail(self, masters_tournament):
        """Test that round 3 before round 2 is rejected."""
        rounds = list(masters_tournament.round_starts)
        rounds[1], rounds[2] = rounds[2], rounds[1]
        result = timing.validate_chronology(rounds, masters_tournament.end_date)
        assert not result.ok
        assert isinstance(result.error, ChronologyError)
        assert result.error.earlier == "Round 2"
        assert result.error.later == "Round 3"

    def test_equal_times_fail(self, masters_tournament):
        """Test that rounds must be strictly increasing."""
        rounds = list(masters_tournament.round_starts)
        rounds[3] = rounds[2]
        assert not timing.validate_chronology(rounds, masters_tournament.end_date).ok

    def test_end_date_before_final_round_fails(self, masters_tournament):
        """Test that the end date must follow round 4."""
        result = timing.validate_chronology(masters_tournament.round_starts, datetime(2025, 4, 13, 7, 0))
        assert isinstance(result.error, ChronologyError)
        assert result.error.later == "End date"

    def test_missing_rounds_are_skipped(self):
        """Test that legacy tournaments without round times validate."""
        assert timing.validate_chronology([None, None, None, None], datetime(2025, 4, 13)).ok


class TestCompetitionWindow:
    """Tests for competition_window."""

    def test_timing_monotonicity(self, masters_tournament):
        """Test open < close < round1 < ... < end for the Masters schedule."""
        window = timing.competition_window(masters_tournament).value
        assert window.registration_closes_at == datetime(2025, 4, 10, 7, 45)
        assert window.registration_opens_at == datetime(2025, 4, 5, 8, 0)
        ordered = [window.registration_opens_at, window.registration_closes_at,
                   *masters_tournament.round_starts, masters_tournament.end_date]
        assert ordered == sorted(ordered)
        assert len(set(ordered)) == len(ordered)

    def test_late_entry_closes_before_its_own_round(self, masters_tournament):
        """Test a weekend competition that accepts entries until round 3."""
        window = timing.competition_window(masters_tournament, round_start=3, late_entry=True).value
        assert window.registration_closes_at == datetime(2025, 4, 12, 7, 45)
        assert window.start_at == datetime(2025, 4, 12, 8, 0)
        assert window.registration_opens_at == datetime(2025, 4, 5, 8, 0)

    def test_without_late_entry_close_is_fixed_to_round_1(self, masters_tournament):
        """Test that round_start alone does not move the close time."""
        window = timing.competition_window(masters_tournament, round_start=3).value
        assert window.registration_closes_at == datetime(2025, 4, 10, 7, 45)

    def test_legacy_start_end_fallback(self):
        """Test tournaments with only start/end dates."""
        tournament = Tournament(
            tournament_id="legacy",
            start_date=datetime(2025, 5, 1, 7, 0),
            end_date=datetime(2025, 5, 4, 19, 0),
        )
        window = timing.competition_window(tournament).value
        assert window.registration_closes_at == datetime(2025, 5, 1, 6, 45)
        assert window.start_at == datetime(2025, 5, 1, 7, 0)
        assert window.end_at == datetime(2025, 5, 4, 19, 0)

    def test_legacy_reversed_dates_fail(self):
        """Test that a legacy window with end before start is rejected."""
        tournament = Tournament(
            tournament_id="legacy",
            start_date=datetime(2025, 5, 4),
            end_date=datetime(2025, 5, 1),
        )
        assert isinstance(timing.competition_window(tournament).error, ChronologyError)

    def test_no_end_date_leaves_end_open(self, masters_tournament, competition):
        """Test that round 4's tee time is not taken as the end of play."""
        no_end = replace(masters_tournament, end_date=None)
        window = timing.competition_window(no_end).value
        assert window.end_at is None
        during_round_4 = datetime(2025, 4, 13, 9, 0)
        updated = timing.apply_window(competition, window, during_round_4)
        assert updated.effective_status == CompetitionStatus.LIVE

    def test_chronology_error_propagates(self, masters_tournament):
        """Test that a bad tournament yields no window."""
        broken = replace(masters_tournament, round_2_start=datetime(2025, 4, 9))
        result = timing.competition_window(broken)
        assert not result.ok
        assert result.value is None

    def test_invalid_round_start(self, masters_tournament):
        """Test that round_start outside 1-4 is a programming error."""
        with pytest.raises(ValueError):
            timing.competition_window(masters_tournament, round_start=5)


class TestDeriveStatus:
    """Tests for derive_status and friends."""

    @pytest.mark.parametrize("now,expected", [
        (datetime(2025, 4, 1), CompetitionStatus.UPCOMING),
        (datetime(2025, 4, 5, 8, 0), CompetitionStatus.REGISTRATION_OPEN),
        (datetime(2025, 4, 10, 7, 44), CompetitionStatus.REGISTRATION_OPEN),
        (datetime(2025, 4, 10, 7, 45), CompetitionStatus.REGISTRATION_CLOSED),
        (datetime(2025, 4, 10, 8, 0), CompetitionStatus.LIVE),
        (datetime(2025, 4, 13, 20, 0), CompetitionStatus.COMPLETED),
    ])
    def test_status_follows_timestamps(self, competition, now, expected):
        """Test each status boundary."""
        assert timing.derive_status(now, competition) == expected

    def test_manual_override_wins(self, competition):
        """Test that an override is returned whatever the time."""
        overridden = timing.set_override(competition, CompetitionStatus.CANCELLED)
        assert timing.derive_status(datetime(2025, 4, 8), overridden) == CompetitionStatus.CANCELLED

    def test_refresh_never_clears_override(self, competition):
        """Test that recomputing status leaves the override in place."""
        overridden = timing.set_override(competition, CompetitionStatus.REGISTRATION_CLOSED)
        refreshed = timing.refresh_status(overridden, datetime(2025, 4, 14))
        assert refreshed.computed_status == CompetitionStatus.COMPLETED
        assert refreshed.manual_override == CompetitionStatus.REGISTRATION_CLOSED
        assert refreshed.effective_status == CompetitionStatus.REGISTRATION_CLOSED

    def test_apply_window_keeps_override(self, competition, masters_tournament):
        """Test that a recalculated window does not revert an operator's status."""
        overridden = timing.set_override(competition, CompetitionStatus.LIVE)
        window = timing.competition_window(masters_tournament, round_start=2, late_entry=True).value
        updated = timing.apply_window(overridden, window, datetime(2025, 4, 10, 12, 0))
        assert updated.registration_closes_at == datetime(2025, 4, 11, 7, 45)
        assert updated.computed_status == CompetitionStatus.REGISTRATION_OPEN
        assert updated.effective_status == CompetitionStatus.LIVE

    def test_refresh_returns_same_object_when_unchanged(self, competition):
        """Test that refresh is a no-op when nothing changed."""
        assert timing.refresh_status(competition, datetime(2025, 4, 8)) is competition

    def test_clearing_override(self, competition):
        """Test that None removes an override."""
        overridden = timing.set_override(competition, CompetitionStatus.LIVE)
        assert timing.set_override(overridden, None).effective_status == competition.computed_status


class TestRegistrationGates:
    """Tests for is_registration_open and registration_has_closed."""

    def test_open_inside_window(self, competition, before_close):
        assert timing.is_registration_open(competition, before_close)

    def test_closed_after_close(self, competition, after_close):
        assert not timing.is_registration_open(competition, after_close)
        assert timing.registration_has_closed(competition, after_close)

    def test_not_open_before_window(self, competition):
        assert not timing.is_registration_open(competition, datetime(2025, 4, 1))

    def test_override_cannot_reopen_after_close(self, competition, after_close):
        """Test that the close timestamp always stops submissions."""
        overridden = timing.set_override(competition, CompetitionStatus.REGISTRATION_OPEN)
        assert not timing.is_registration_open(overridden, after_close)

    def test_override_can_close_early(self, competition, before_close):
        overridden = timing.set_override(competition, CompetitionStatus.REGISTRATION_CLOSED)
        assert not timing.is_registration_open(overridden, before_close)

    def test_cancelled_is_never_open(self, competition, before_close):
        overridden = timing.set_override(competition, CompetitionStatus.CANCELLED)
        assert not timing.is_registration_open(overridden, before_close)

    def test_unscheduled_competition_is_not_open(self, competition, before_close):
        """Test that the gate agrees with compute_status when no window is set."""
        unscheduled = replace(competition, registration_opens_at=None, registration_closes_at=None,
                              start_at=None, end_at=None)
        assert timing.compute_status(before_close, unscheduled) == CompetitionStatus.UPCOMING
        assert not timing.is_registration_open(unscheduled, before_close)

    def test_close_only_window_is_open(self, competition, before_close):
        close_only = replace(competition, registration_opens_at=None)
        assert timing.compute_status(before_close, close_only) == CompetitionStatus.REGISTRATION_OPEN
        assert timing.is_registration_open(close_only, before_close)
