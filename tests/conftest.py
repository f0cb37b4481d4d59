"""
Shared pytest fixtures for Golf Contest Engine tests.
"""

import os
import sys
import tempfile
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from golf_contest.models import (
    Competition, CompetitionFormat, CompetitionStatus, Entry, EntryStatus,
    Golfer, Pick, RoundResult, ResultsSnapshot, Tournament,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db_path(temp_dir):
    """Create a temporary database path."""
    return temp_dir / "test_contest.db"


@pytest.fixture
def clean_env():
    """Environment with no contest overrides set."""
    keys = [
        "GOLF_CONTEST_BUDGET_CAP", "GOLF_CONTEST_CAPTAIN_MULTIPLIER",
        "GOLF_CONTEST_REG_OPEN_DAYS", "GOLF_CONTEST_REG_CLOSE_MINUTES",
        "GOLF_CONTEST_FIRST_PLACE_SHARE", "GOLF_CONTEST_DATA_DIR",
    ]
    with patch.dict(os.environ, {}, clear=False):
        for key in keys:
            os.environ.pop(key, None)
        yield


@pytest.fixture
def masters_tournament():
    """Four-round tournament, 10-13 April 2025."""
    return Tournament(
        tournament_id="masters-2025",
        name="The Masters",
        round_1_start=datetime(2025, 4, 10, 8, 0),
        round_2_start=datetime(2025, 4, 11, 8, 0),
        round_3_start=datetime(2025, 4, 12, 8, 0),
        round_4_start=datetime(2025, 4, 13, 8, 0),
        end_date=datetime(2025, 4, 13, 20, 0),
    )


@pytest.fixture
def competition():
    """Classic competition on the Masters with a £10 entry and 10% admin fee."""
    return Competition(
        competition_id="full-course",
        tournament_id="masters-2025",
        name="Full Course",
        entry_fee=1000,
        entrants_cap=100,
        admin_fee_percent=10,
        registration_opens_at=datetime(2025, 4, 5, 8, 0),
        registration_closes_at=datetime(2025, 4, 10, 7, 45),
        start_at=datetime(2025, 4, 10, 8, 0),
        end_at=datetime(2025, 4, 13, 20, 0),
        computed_status=CompetitionStatus.REGISTRATION_OPEN,
    )


@pytest.fixture
def h2h_competition(competition):
    """ONE 2 ONE head-to-head on the same tournament."""
    return replace(
        competition,
        competition_id="one-2-one-1",
        name="ONE 2 ONE",
        entrants_cap=2,
        format=CompetitionFormat.HEAD_TO_HEAD,
    )


@pytest.fixture
def before_close():
    return datetime(2025, 4, 8, 12, 0)


@pytest.fixture
def after_close():
    return datetime(2025, 4, 10, 7, 50)


@pytest.fixture
def golfers():
    """Eight golfers; the first six cost exactly the default 50,000 cap."""
    return [
        Golfer("g1", "Scottie Scheffler", world_ranking=1, salary=12_000),
        Golfer("g2", "Rory McIlroy", world_ranking=2, salary=10_000),
        Golfer("g3", "Xander Schauffele", world_ranking=3, salary=9_000),
        Golfer("g4", "Ludvig Aberg", world_ranking=5, salary=8_000),
        Golfer("g5", "Tommy Fleetwood", world_ranking=10, salary=6_000),
        Golfer("g6", "Shane Lowry", world_ranking=20, salary=5_000),
        Golfer("g7", "Min Woo Lee", world_ranking=30, salary=7_000),
        Golfer("g8", "Jon Rahm", world_ranking=None, salary=None),
    ]


@pytest.fixture
def full_picks(golfers):
    """A valid six-golfer roster with g1 as captain."""
    return tuple(
        Pick(
            golfer_id=g.golfer_id,
            slot_position=i,
            salary_at_selection=g.salary,
            is_captain=(i == 1),
            golfer_name=g.name,
        )
        for i, g in enumerate(golfers[:6], 1)
    )


@pytest.fixture
def make_entry(full_picks):
    """Factory for entries in a given competition and status."""
    def _make(entry_id="e1", competition_id="full-course", status=EntryStatus.DRAFT,
              picks=None, **kwargs):
        return Entry(
            entry_id=entry_id,
            competition_id=competition_id,
            user_id=kwargs.pop("user_id", f"user-{entry_id}"),
            status=status,
            picks=full_picks if picks is None else tuple(picks),
            **kwargs,
        )
    return _make


@pytest.fixture
def final_results():
    """Four complete rounds for g1-g7 (scores relative to par)."""
    per_round = {
        "g1": [-2, -1, 0, 1],
        "g2": [0, 0, -1, 0],
        "g3": [1, -1, 0, 0],
        "g4": [1, 1, 0, 1],
        "g5": [2, 0, 1, 0],
        "g6": [-1, -1, -1, -1],
        "g7": [0, 0, 0, 0],
    }
    results = tuple(
        RoundResult(golfer_id, round_number, score)
        for golfer_id, scores in per_round.items()
        for round_number, score in enumerate(scores, 1)
    )
    return ResultsSnapshot(version=4, rounds_completed=4, results=results)
