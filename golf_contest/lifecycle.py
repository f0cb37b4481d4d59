"""
Entry lifecycle: draft -> submitted -> locked -> scored, plus void.

Every transition takes the current records and returns a TransitionResult
holding the new entry. Applying a transition that has already happened is a
no-op, so the registration sweep and retried requests are always safe.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from .config import DEFAULT_BUDGET_CAP, CAPTAIN_MULTIPLIER, HEAD_TO_HEAD_ENTRANTS
from .errors import (
    ContestError, CompetitionFull, CompetitionVoided, EntryLocked,
    InvalidTransition, RegistrationClosed, RegistrationStillOpen, ResultsIncomplete,
)
from .models import (
    Competition, CompetitionStatus, Entry, EntryStatus, Golfer, ResultsSnapshot,
)
from . import roster, scoring, timing

logger = logging.getLogger(__name__)

# Statuses that count towards a competition's entrants
COMMITTED_STATUSES = (EntryStatus.SUBMITTED, EntryStatus.LOCKED, EntryStatus.SCORED)


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a lifecycle transition."""
    entry: Entry
    changed: bool = False
    error: Optional[ContestError] = None
    warnings: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def new_status(self) -> EntryStatus:
        return self.entry.status

    @property
    def total_salary(self) -> Optional[int]:
        if self.entry.status in COMMITTED_STATUSES:
            return self.entry.total_salary
        return None


def _unchanged(entry: Entry) -> TransitionResult:
    return TransitionResult(entry=entry)


def _failed(entry: Entry, error: ContestError) -> TransitionResult:
    logger.debug(f"Entry {entry.entry_id}: {error.kind} - {error.message}")
    return TransitionResult(entry=entry, error=error)


def _moved(entry: Entry, new_entry: Entry, warnings: Tuple[str, ...] = ()) -> TransitionResult:
    if entry.status != new_entry.status:
        logger.info(f"Entry {entry.entry_id}: {entry.status.value} -> {new_entry.status.value}")
    return TransitionResult(entry=new_entry, changed=True, warnings=warnings)


def _check_belongs(entry: Entry, competition: Competition):
    if entry is None or competition is None:
        raise ValueError("Entry and competition are required")
    if not entry.entry_id:
        raise ValueError("Entry has no entry_id")
    if entry.competition_id != competition.competition_id:
        raise ValueError(
            f"Entry {entry.entry_id} belongs to competition {entry.competition_id}, "
            f"not {competition.competition_id}"
        )


def _edit_error(entry: Entry, competition: Competition, now: datetime) -> Optional[ContestError]:
    if competition.is_cancelled:
        return CompetitionVoided(competition_id=competition.competition_id)
    if entry.status != EntryStatus.DRAFT:
        return EntryLocked(entry_id=entry.entry_id, status=entry.status.value)
    if not timing.is_registration_open(competition, now):
        return RegistrationClosed(closed_at=competition.registration_closes_at)
    return None


# ============================================================================
# Draft editing
# ============================================================================

def add_pick(entry: Entry, competition: Competition, golfer: Golfer, now: datetime,
             slot: Optional[int] = None, is_captain: bool = False,
             budget_cap: int = DEFAULT_BUDGET_CAP) -> TransitionResult:
    """Add a golfer to a draft entry."""
    _check_belongs(entry, competition)
    error = _edit_error(entry, competition, now)
    if error:
        return _failed(entry, error)
    update = roster.add_pick(entry.picks, golfer, slot=slot, is_captain=is_captain, budget_cap=budget_cap)
    return _draft_updated(entry, update)


def remove_pick(entry: Entry, competition: Competition, golfer_id: str, now: datetime,
                budget_cap: int = DEFAULT_BUDGET_CAP) -> TransitionResult:
    """Remove a golfer from a draft entry."""
    _check_belongs(entry, competition)
    error = _edit_error(entry, competition, now)
    if error:
        return _failed(entry, error)
    update = roster.remove_pick(entry.picks, golfer_id, budget_cap=budget_cap)
    return _draft_updated(entry, update)


def set_captain(entry: Entry, competition: Competition, golfer_id: str,
                now: datetime) -> TransitionResult:
    """Choose the captain of a draft entry."""
    _check_belongs(entry, competition)
    error = _edit_error(entry, competition, now)
    if error:
        return _failed(entry, error)
    update = roster.set_captain(entry.picks, golfer_id)
    return _draft_updated(entry, update)


def _draft_updated(entry: Entry, update) -> TransitionResult:
    if update.picks == entry.picks:
        return TransitionResult(entry=entry, warnings=update.warnings)
    captain = next((p.golfer_id for p in update.picks if p.is_captain), None)
    new_entry = replace(
        entry,
        picks=update.picks,
        captain_golfer_id=captain,
        total_salary=roster.total_salary(update.picks),
    )
    return _moved(entry, new_entry, update.warnings)


# ============================================================================
# Transitions
# ============================================================================

def submit(entry: Entry, competition: Competition, now: datetime,
           budget_cap: int = DEFAULT_BUDGET_CAP, entrants_count: int = 0) -> TransitionResult:
    """
    draft -> submitted.

    `entrants_count` is the number of entries already committed to the
    competition, not counting this one.
    """
    _check_belongs(entry, competition)
    if competition.is_cancelled:
        return _failed(entry, CompetitionVoided(competition_id=competition.competition_id))
    if entry.status == EntryStatus.SUBMITTED:
        return _unchanged(entry)
    if entry.status != EntryStatus.DRAFT:
        return _failed(entry, EntryLocked(entry_id=entry.entry_id, status=entry.status.value))
    if not timing.is_registration_open(competition, now):
        return _failed(entry, RegistrationClosed(closed_at=competition.registration_closes_at))
    if competition.entrants_cap > 0 and entrants_count >= competition.entrants_cap:
        return _failed(entry, CompetitionFull(
            competition_id=competition.competition_id,
            entrants_cap=competition.entrants_cap,
        ))

    checked = roster.validate(entry.picks, budget_cap)
    if not checked.ok:
        return _failed(entry, checked.error)

    valid = checked.value
    return _moved(entry, replace(
        entry,
        status=EntryStatus.SUBMITTED,
        picks=valid.picks,
        captain_golfer_id=valid.captain_golfer_id,
        total_salary=valid.total_salary,
        submitted_at=now,
    ))


def lock(entry: Entry, competition: Competition, now: datetime) -> TransitionResult:
    """
    submitted -> locked, or draft -> void, once registration has closed.
    """
    _check_belongs(entry, competition)
    if entry.status in (EntryStatus.LOCKED, EntryStatus.SCORED, EntryStatus.VOID):
        return _unchanged(entry)
    if competition.is_cancelled:
        return void(entry)
    if not timing.registration_has_closed(competition, now):
        return _failed(entry, RegistrationStillOpen(closes_at=competition.registration_closes_at))

    if entry.status == EntryStatus.DRAFT:
        return void(entry)
    return _moved(entry, replace(entry, status=EntryStatus.LOCKED))


def score(entry: Entry, competition: Competition, snapshot: ResultsSnapshot,
          captain_multiplier: int = CAPTAIN_MULTIPLIER) -> TransitionResult:
    """
    locked -> scored.

    A scored entry is rescored only by a strictly newer results version, so a
    late-arriving stale snapshot never overwrites a correction.
    """
    _check_belongs(entry, competition)
    if snapshot is None:
        raise ValueError("Results snapshot is required")
    if competition.is_cancelled or entry.status == EntryStatus.VOID:
        return _failed(entry, CompetitionVoided(competition_id=competition.competition_id))
    if entry.status not in (EntryStatus.LOCKED, EntryStatus.SCORED):
        return _failed(entry, InvalidTransition(
            entry_id=entry.entry_id,
            from_status=entry.status.value,
            to_status=EntryStatus.SCORED.value,
        ))
    if (entry.status == EntryStatus.SCORED and entry.results_version is not None
            and snapshot.version <= entry.results_version):
        return _unchanged(entry)

    if not (competition.effective_status == CompetitionStatus.COMPLETED
            or snapshot.covers(competition)):
        return _failed(entry, ResultsIncomplete(
            rounds_completed=snapshot.rounds_completed,
            rounds_required=competition.round_end,
        ))

    computed = scoring.score_entry(entry, competition, snapshot, captain_multiplier)
    if not computed.ok:
        return _failed(entry, computed.error)

    return _moved(entry, replace(
        entry,
        status=EntryStatus.SCORED,
        total_score=computed.value.total,
        results_version=snapshot.version,
    ))


def void(entry: Entry) -> TransitionResult:
    """Any state -> void. Refunds are handled elsewhere."""
    if entry.status == EntryStatus.VOID:
        return _unchanged(entry)
    return _moved(entry, replace(entry, status=EntryStatus.VOID))


# ============================================================================
# Competition-wide transitions
# ============================================================================

def close_registration(entries: Sequence[Entry], competition: Competition,
                       now: datetime) -> List[TransitionResult]:
    """Lock submitted entries and void drafts once registration has closed."""
    return [lock(entry, competition, now) for entry in entries]


def cancel_competition(competition: Competition,
                       entries: Sequence[Entry]) -> Tuple[Competition, List[TransitionResult]]:
    """Cancel a competition and void all of its entries."""
    cancelled = timing.set_override(competition, CompetitionStatus.CANCELLED)
    if not competition.is_cancelled:
        logger.info(f"Competition {competition.competition_id} cancelled")
    return cancelled, [void(entry) for entry in entries]


def cancel_unfilled_head_to_head(competition: Competition, entries: Sequence[Entry],
                                 now: datetime) -> Tuple[Competition, List[TransitionResult]]:
    """
    Cancel a head-to-head competition that closed with fewer than two entries.

    Anything else comes back unchanged with no transitions.
    """
    if not competition.is_head_to_head or competition.is_cancelled:
        return competition, []
    if not timing.registration_has_closed(competition, now):
        return competition, []
    committed = [e for e in entries if e.status in COMMITTED_STATUSES]
    if len(committed) >= HEAD_TO_HEAD_ENTRANTS:
        return competition, []
    logger.info(
        f"Head-to-head {competition.competition_id} unfilled "
        f"({len(committed)} player{'s' if len(committed) != 1 else ''})"
    )
    return cancel_competition(competition, entries)


def count_committed(entries: Sequence[Entry]) -> int:
    """Entries that count towards the entrants cap and the prize pool."""
    return sum(1 for e in entries if e.status in COMMITTED_STATUSES)
