"""
Tests for settlement.py - Head-to-head settlement.
"""

from dataclasses import replace

import pytest

from golf_contest.errors import CompetitionVoided, MissingGolferResult, NotReadyToSettle
from golf_contest.models import CompetitionStatus, EntryStatus, Pick, ScoreDirection
from golf_contest import settlement, timing

SCORES = {"g1": -2, "g2": -1, "g3": 0, "g4": 3, "g5": 3, "g6": -4, "g7": 0}


@pytest.fixture
def pair(make_entry, golfers):
    """Entry a totals -3, entry b totals 0."""
    b_picks = [
        Pick(g.golfer_id, i, g.salary, is_captain=(i == 1))
        for i, g in enumerate(golfers[1:7], 1)
    ]
    a = make_entry("a", competition_id="one-2-one-1", status=EntryStatus.SCORED)
    b = make_entry("b", competition_id="one-2-one-1", status=EntryStatus.SCORED, picks=b_picks)
    return a, b


class TestSettle:
    """Tests for settle."""

    def test_lower_total_wins(self, pair, h2h_competition):
        a, b = pair
        result = settlement.settle(a, b, h2h_competition, SCORES)
        assert result.ok
        assert result.value.winner_entry_id == "a"
        assert result.value.loser_entry_id == "b"
        assert result.value.margin == 3
        assert not result.value.tie

    def test_symmetry(self, pair, h2h_competition):
        """Test that swapping the entries gives the same winner and margin."""
        a, b = pair
        forward = settlement.settle(a, b, h2h_competition, SCORES).value
        backward = settlement.settle(b, a, h2h_competition, SCORES).value
        assert forward == backward

    def test_higher_wins(self, pair, h2h_competition):
        a, b = pair
        points = replace(h2h_competition, score_direction=ScoreDirection.HIGHER_WINS)
        result = settlement.settle(a, b, points, SCORES).value
        assert result.winner_entry_id == "b"
        assert result.margin == 3

    def test_tie(self, pair, h2h_competition):
        a, b = pair
        level = dict(SCORES, g1=-0.5)
        # a: -1 -1 0 3 3 -4 = 0
        result = settlement.settle(a, b, h2h_competition, level).value
        assert result.tie
        assert result.winner_entry_id is None and result.loser_entry_id is None
        assert result.margin == 0

    def test_totals_recomputed_from_scores(self, pair, h2h_competition):
        """Test that a stale stored total does not decide the result."""
        a, b = pair
        a = replace(a, total_score=100)
        assert settlement.settle(a, b, h2h_competition, SCORES).value.winner_entry_id == "a"

    def test_unscored_entry(self, pair, h2h_competition):
        a, b = pair
        locked = replace(b, status=EntryStatus.LOCKED)
        result = settlement.settle(a, locked, h2h_competition, SCORES)
        assert result.error == NotReadyToSettle(entry_id="b", status="locked")

    def test_cancelled_competition(self, pair, h2h_competition):
        a, b = pair
        cancelled = timing.set_override(h2h_competition, CompetitionStatus.CANCELLED)
        assert isinstance(settlement.settle(a, b, cancelled, SCORES).error, CompetitionVoided)

    def test_void_entry(self, pair, h2h_competition):
        a, b = pair
        result = settlement.settle(a, replace(b, status=EntryStatus.VOID), h2h_competition, SCORES)
        assert isinstance(result.error, CompetitionVoided)

    def test_missing_score(self, pair, h2h_competition):
        a, b = pair
        scores = {k: v for k, v in SCORES.items() if k != "g7"}
        assert settlement.settle(a, b, h2h_competition, scores).error == MissingGolferResult(golfer_id="g7")

    def test_classic_competition_raises(self, pair, competition):
        a, b = pair
        with pytest.raises(ValueError):
            settlement.settle(a, b, competition, SCORES)

    def test_same_entry_raises(self, pair, h2h_competition):
        a, _ = pair
        with pytest.raises(ValueError):
            settlement.settle(a, a, h2h_competition, SCORES)


class TestSettleFromResults:
    """Tests for settle_from_results."""

    def test_full_tournament(self, pair, h2h_competition, final_results):
        a, b = pair
        result = settlement.settle_from_results(a, b, h2h_competition, final_results).value
        assert result.winner_entry_id == "a"
        assert result.margin == 3

    def test_weekend_only_uses_its_own_rounds(self, pair, h2h_competition, final_results):
        """Test that rounds 1-2 do not count towards a weekend head-to-head."""
        a, b = pair
        weekend = replace(h2h_competition, round_start=3)
        # a: 2 -1 0 1 1 -2 = 1, b: -2 0 1 1 -2 0 = -2
        result = settlement.settle_from_results(a, b, weekend, final_results).value
        assert result.winner_entry_id == "b"
        assert result.margin == 3

    def test_missing_round(self, pair, h2h_competition, final_results):
        a, b = pair
        results = tuple(r for r in final_results.results
                        if not (r.golfer_id == "g7" and r.round_number == 2))
        result = settlement.settle_from_results(a, b, h2h_competition, replace(final_results, results=results))
        assert result.error == MissingGolferResult(golfer_id="g7", round_number=2)
