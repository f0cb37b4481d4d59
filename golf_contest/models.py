"""
Data models for the Golf Contest Engine.

Records are frozen: every transition returns a new instance instead of
mutating the one it was given.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Tuple
from enum import Enum

from .config import FIRST_ROUND, FINAL_ROUND


class CompetitionStatus(Enum):
    """Competition status, computed from timestamps or set by an operator."""
    DRAFT = "draft"
    UPCOMING = "upcoming"
    REGISTRATION_OPEN = "registration_open"
    REGISTRATION_CLOSED = "registration_closed"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EntryStatus(Enum):
    """Entry lifecycle status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    LOCKED = "locked"
    SCORED = "scored"
    VOID = "void"


class CompetitionFormat(Enum):
    """How entries in a competition are compared."""
    CLASSIC = "classic"  # Open leaderboard
    HEAD_TO_HEAD = "head_to_head"  # ONE 2 ONE: exactly two entries


class ScoreDirection(Enum):
    """Which aggregate wins."""
    LOWER_WINS = "lower_wins"  # Strokes relative to par
    HIGHER_WINS = "higher_wins"  # Accumulated points


@dataclass(frozen=True)
class Golfer:
    """A golfer available for selection in a contest."""
    golfer_id: str
    name: str = ""
    world_ranking: Optional[int] = None
    salary: Optional[int] = None


@dataclass(frozen=True)
class Pick:
    """One golfer slot within an entry."""
    golfer_id: str
    slot_position: int
    salary_at_selection: int
    is_captain: bool = False
    golfer_name: str = ""


@dataclass(frozen=True)
class Entry:
    """A player's roster for one competition."""
    entry_id: str
    competition_id: str
    user_id: str
    status: EntryStatus = EntryStatus.DRAFT
    picks: Tuple[Pick, ...] = ()
    captain_golfer_id: Optional[str] = None
    total_salary: int = 0
    total_score: Optional[float] = None
    results_version: Optional[int] = None
    submitted_at: Optional[datetime] = None
    entry_name: str = ""
    revision: int = 0

    @property
    def captain(self) -> Optional[Pick]:
        """The pick flagged as captain, if exactly one is."""
        captains = [p for p in self.picks if p.is_captain]
        return captains[0] if len(captains) == 1 else None

    @property
    def golfer_ids(self) -> List[str]:
        return [p.golfer_id for p in self.picks]

    @property
    def is_editable(self) -> bool:
        return self.status == EntryStatus.DRAFT


@dataclass(frozen=True)
class Tournament:
    """A golf tournament with per-round tee times."""
    tournament_id: str
    name: str = ""
    round_1_start: Optional[datetime] = None
    round_2_start: Optional[datetime] = None
    round_3_start: Optional[datetime] = None
    round_4_start: Optional[datetime] = None
    # Legacy single-window format
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @property
    def round_starts(self) -> Tuple[Optional[datetime], ...]:
        return (self.round_1_start, self.round_2_start, self.round_3_start, self.round_4_start)

    def round_start(self, round_number: int) -> Optional[datetime]:
        """Tee time of the given round (1-4)."""
        if not FIRST_ROUND <= round_number <= FINAL_ROUND:
            raise ValueError(f"Round number must be {FIRST_ROUND}-{FINAL_ROUND}, got {round_number}")
        return self.round_starts[round_number - 1]


@dataclass(frozen=True)
class Competition:
    """A contest run on one tournament."""
    competition_id: str
    tournament_id: str
    name: str = ""
    entry_fee: int = 0  # pennies
    entrants_cap: int = 0  # 0 = unlimited
    admin_fee_percent: float = 0
    guaranteed_prize_pool: Optional[int] = None
    first_place_prize: Optional[int] = None
    registration_opens_at: Optional[datetime] = None
    registration_closes_at: Optional[datetime] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    computed_status: CompetitionStatus = CompetitionStatus.UPCOMING
    manual_override: Optional[CompetitionStatus] = None
    format: CompetitionFormat = CompetitionFormat.CLASSIC
    score_direction: ScoreDirection = ScoreDirection.LOWER_WINS
    round_start: int = FIRST_ROUND
    round_end: int = FINAL_ROUND

    @property
    def effective_status(self) -> CompetitionStatus:
        """Operator override wins over the computed status."""
        return self.manual_override or self.computed_status

    @property
    def is_cancelled(self) -> bool:
        return self.effective_status == CompetitionStatus.CANCELLED

    @property
    def is_head_to_head(self) -> bool:
        return self.format == CompetitionFormat.HEAD_TO_HEAD

    @property
    def covered_rounds(self) -> range:
        return range(self.round_start, self.round_end + 1)


@dataclass(frozen=True)
class CompetitionWindow:
    """Registration and play window derived from tee times."""
    registration_opens_at: Optional[datetime]
    registration_closes_at: Optional[datetime]
    start_at: Optional[datetime]
    end_at: Optional[datetime]


@dataclass(frozen=True)
class RoundResult:
    """A golfer's score for one round."""
    golfer_id: str
    round_number: int
    score: float


@dataclass(frozen=True)
class ResultsSnapshot:
    """Round results as delivered by the results feed at one point in time."""
    version: int
    rounds_completed: int
    results: Tuple[RoundResult, ...] = ()

    def covers(self, competition: Competition) -> bool:
        """Whether every round the competition covers is complete."""
        return self.rounds_completed >= competition.round_end


@dataclass(frozen=True)
class ValidRoster:
    """A roster that passed every structural check."""
    picks: Tuple[Pick, ...]
    captain_golfer_id: str
    total_salary: int
    budget_cap: int

    @property
    def remaining(self) -> int:
        return self.budget_cap - self.total_salary


@dataclass(frozen=True)
class RosterUpdate:
    """Result of an in-progress roster edit; warnings never block."""
    picks: Tuple[Pick, ...]
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoreBreakdown:
    """An entry's fantasy total and each pick's contribution."""
    total: float
    contributions: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class SettlementResult:
    """Head-to-head outcome."""
    winner_entry_id: Optional[str]
    loser_entry_id: Optional[str]
    tie: bool
    margin: float


@dataclass(frozen=True)
class PrizeBreakdown:
    """Prize pool figures, all in pennies."""
    gross: int
    admin_fee: int
    net_pool: int
    first_place: int


@dataclass(frozen=True)
class LeaderboardRow:
    """An entry's place on a competition leaderboard."""
    entry_id: str
    total_score: float
    rank: int
    position: str  # "1", "T2", ...
    tied: bool = False


@dataclass(frozen=True)
class Payout:
    """Prize money awarded to one entry."""
    entry_id: str
    position: str
    amount: int  # pennies
