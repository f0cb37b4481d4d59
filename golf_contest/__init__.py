"""
Golf Contest Engine
Rules for salary-cap fantasy golf contests: rosters, scoring, settlement
and prize pools.
"""

__version__ = "1.0.0"

from .models import (
    Golfer, Pick, Entry, Tournament, Competition, CompetitionWindow,
    RoundResult, ResultsSnapshot, ValidRoster, RosterUpdate, ScoreBreakdown,
    SettlementResult, PrizeBreakdown, LeaderboardRow, Payout,
    CompetitionStatus, EntryStatus, CompetitionFormat, ScoreDirection,
)
from .errors import ContestError, ErrorCategory, Result
from .config import Config, get_config
from .database import Database, DatabaseError
from .lifecycle import TransitionResult

__all__ = [
    # Models
    "Golfer", "Pick", "Entry", "Tournament", "Competition", "CompetitionWindow",
    "RoundResult", "ResultsSnapshot", "ValidRoster", "RosterUpdate", "ScoreBreakdown",
    "SettlementResult", "PrizeBreakdown", "LeaderboardRow", "Payout",
    "CompetitionStatus", "EntryStatus", "CompetitionFormat", "ScoreDirection",
    # Errors
    "ContestError", "ErrorCategory", "Result",
    # Config
    "Config", "get_config",
    # Store
    "Database", "DatabaseError",
    # Lifecycle
    "TransitionResult",
]
