"""
Domain error kinds for the Golf Contest Engine.

Errors are returned as values inside a Result, never raised. Only a caller
breaking the engine's own preconditions (a missing id, negative money, the
wrong competition format) gets an exception, and that is always ValueError.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Generic, Optional, TypeVar


class ErrorCategory(Enum):
    """Broad kinds of domain error, used to decide how a caller reacts."""
    ROSTER = "roster"  # re-prompt the user
    TIMING = "timing"  # reject the mutation
    LIFECYCLE = "lifecycle"  # action no longer available
    DATA = "data"  # fail the request


@dataclass(frozen=True)
class ContestError:
    """Base class for every domain error."""
    category: ClassVar[ErrorCategory]

    @property
    def kind(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return self.kind

    def __str__(self) -> str:
        return self.message


# ============================================================================
# Roster errors
# ============================================================================

@dataclass(frozen=True)
class IncompleteRoster(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.ROSTER
    count: int
    required: int = 6

    @property
    def message(self) -> str:
        return f"Must select exactly {self.required} golfers (currently have {self.count})"


@dataclass(frozen=True)
class DuplicateGolfer(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.ROSTER
    golfer_id: str

    @property
    def message(self) -> str:
        return f"Golfer {self.golfer_id} is selected more than once"


@dataclass(frozen=True)
class InvalidSlot(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.ROSTER
    slot_position: int

    @property
    def message(self) -> str:
        return f"Slot {self.slot_position} is duplicated or out of range"


@dataclass(frozen=True)
class CaptainRequired(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.ROSTER

    @property
    def message(self) -> str:
        return "Choose a captain"


@dataclass(frozen=True)
class MultipleCaptains(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.ROSTER
    count: int

    @property
    def message(self) -> str:
        return f"Only one captain allowed ({self.count} selected)"


@dataclass(frozen=True)
class BudgetExceeded(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.ROSTER
    used: int
    cap: int

    @property
    def message(self) -> str:
        return f"Team salary ({self.used:,}) exceeds cap ({self.cap:,}) by {self.used - self.cap:,}"


# ============================================================================
# Timing errors
# ============================================================================

@dataclass(frozen=True)
class RegistrationClosed(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.TIMING
    closed_at: Optional[datetime] = None

    @property
    def message(self) -> str:
        if self.closed_at:
            return f"Registration closed at {self.closed_at.isoformat()}"
        return "Registration is closed"


@dataclass(frozen=True)
class RegistrationStillOpen(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.TIMING
    closes_at: Optional[datetime] = None

    @property
    def message(self) -> str:
        if self.closes_at:
            return f"Registration is open until {self.closes_at.isoformat()}"
        return "Registration is still open"


@dataclass(frozen=True)
class ChronologyError(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.TIMING
    earlier: str
    later: str

    @property
    def message(self) -> str:
        return f"{self.earlier} must be before {self.later}"


# ============================================================================
# Lifecycle errors
# ============================================================================

@dataclass(frozen=True)
class EntryLocked(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.LIFECYCLE
    entry_id: str
    status: str

    @property
    def message(self) -> str:
        return f"Entry {self.entry_id} can no longer be changed (status: {self.status})"


@dataclass(frozen=True)
class NotReadyToSettle(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.LIFECYCLE
    entry_id: str
    status: str

    @property
    def message(self) -> str:
        return f"Entry {self.entry_id} is not scored yet (status: {self.status})"


@dataclass(frozen=True)
class CompetitionVoided(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.LIFECYCLE
    competition_id: str

    @property
    def message(self) -> str:
        return f"Competition {self.competition_id} has been cancelled"


@dataclass(frozen=True)
class CompetitionFull(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.LIFECYCLE
    competition_id: str
    entrants_cap: int

    @property
    def message(self) -> str:
        return f"Competition {self.competition_id} is full ({self.entrants_cap} entrants)"


@dataclass(frozen=True)
class InvalidTransition(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.LIFECYCLE
    entry_id: str
    from_status: str
    to_status: str

    @property
    def message(self) -> str:
        return f"Entry {self.entry_id} cannot move from {self.from_status} to {self.to_status}"


@dataclass(frozen=True)
class ResultsIncomplete(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.LIFECYCLE
    rounds_completed: int
    rounds_required: int

    @property
    def message(self) -> str:
        return f"Results cover {self.rounds_completed} of {self.rounds_required} rounds"


# ============================================================================
# Data-consistency errors
# ============================================================================

@dataclass(frozen=True)
class MissingGolferResult(ContestError):
    category: ClassVar[ErrorCategory] = ErrorCategory.DATA
    golfer_id: str
    round_number: Optional[int] = None

    @property
    def message(self) -> str:
        if self.round_number is not None:
            return f"No round {self.round_number} result for golfer {self.golfer_id}"
        return f"No score for golfer {self.golfer_id}"


T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a ContestError."""
    value: Optional[T] = None
    error: Optional[ContestError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ContestError) -> "Result":
        return cls(error=error)
