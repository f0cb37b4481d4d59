"""
Registration windows and competition status derived from tournament tee times.

Everything here is a pure function of its arguments; `now` is always passed in.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional, Sequence

from .config import (
    REGISTRATION_OPEN_OFFSET, REGISTRATION_CLOSE_BUFFER, FIRST_ROUND, FINAL_ROUND
)
from .errors import ChronologyError, Result
from .models import Competition, CompetitionStatus, CompetitionWindow, Tournament

logger = logging.getLogger(__name__)


def registration_open(round1_tee_time: datetime,
                      offset: timedelta = REGISTRATION_OPEN_OFFSET) -> datetime:
    """Registration opens a fixed offset before the first tee time."""
    if offset < timedelta(0):
        raise ValueError("Registration open offset cannot be negative")
    return round1_tee_time - offset


def registration_close(tee_time: datetime,
                       buffer: timedelta = REGISTRATION_CLOSE_BUFFER) -> datetime:
    """Registration closes a buffer before the tee time of the entry round."""
    if buffer < timedelta(0):
        raise ValueError("Registration close buffer cannot be negative")
    return tee_time - buffer


def validate_chronology(rounds: Sequence[Optional[datetime]],
                        end_date: Optional[datetime]) -> Result[None]:
    """
    Check round tee times are strictly increasing and end before end_date.

    Missing (None) round times are skipped, so a legacy single-window
    tournament only needs its remaining timestamps in order.
    """
    labelled = [(f"Round {i}", t) for i, t in enumerate(rounds, FIRST_ROUND) if t is not None]
    if end_date is not None:
        labelled.append(("End date", end_date))

    for (earlier_label, earlier), (later_label, later) in zip(labelled, labelled[1:]):
        if not earlier < later:
            return Result.failure(ChronologyError(earlier=earlier_label, later=later_label))
    return Result.success(None)


def competition_window(tournament: Tournament,
                       round_start: int = FIRST_ROUND,
                       late_entry: bool = False,
                       open_offset: timedelta = REGISTRATION_OPEN_OFFSET,
                       close_buffer: timedelta = REGISTRATION_CLOSE_BUFFER) -> Result[CompetitionWindow]:
    """
    Compute a competition's registration and play window.

    Late-entry formats (e.g. a weekend-only competition) close registration
    before the tee time of their own starting round; everything else closes
    before Round 1. Without round tee times the tournament's start/end dates
    are used.
    """
    if not FIRST_ROUND <= round_start <= FINAL_ROUND:
        raise ValueError(f"round_start must be {FIRST_ROUND}-{FINAL_ROUND}, got {round_start}")

    checked = validate_chronology(tournament.round_starts, tournament.end_date)
    if not checked.ok:
        return Result.failure(checked.error)

    round1 = tournament.round_1_start
    entry_round = round_start if late_entry else FIRST_ROUND
    tee_time = tournament.round_start(entry_round)

    if tee_time is None or round1 is None:
        # Legacy single-window format
        start = tournament.start_date
        end = tournament.end_date
        if start is not None and end is not None and not start < end:
            return Result.failure(ChronologyError(earlier="Start date", later="End date"))
        if start is None:
            logger.warning(f"Tournament {tournament.tournament_id} has no tee times or start date")
            return Result.success(CompetitionWindow(None, None, None, end))
        return Result.success(CompetitionWindow(
            registration_opens_at=registration_open(start, open_offset),
            registration_closes_at=registration_close(start, close_buffer),
            start_at=start,
            end_at=end,
        ))

    return Result.success(CompetitionWindow(
        registration_opens_at=registration_open(round1, open_offset),
        registration_closes_at=registration_close(tee_time, close_buffer),
        start_at=tee_time,
        end_at=tournament.end_date,
    ))


def compute_status(now: datetime, competition: Competition) -> CompetitionStatus:
    """Status implied by the competition's timestamps alone."""
    opens = competition.registration_opens_at
    closes = competition.registration_closes_at
    start = competition.start_at
    end = competition.end_at

    if end is not None and now >= end:
        return CompetitionStatus.COMPLETED
    if start is not None and now >= start:
        return CompetitionStatus.LIVE
    if closes is not None and now >= closes:
        return CompetitionStatus.REGISTRATION_CLOSED
    if opens is None or now >= opens:
        if closes is None and opens is None:
            return CompetitionStatus.UPCOMING
        return CompetitionStatus.REGISTRATION_OPEN
    return CompetitionStatus.UPCOMING


def derive_status(now: datetime, competition: Competition) -> CompetitionStatus:
    """Effective status at `now`; an operator override always wins."""
    if competition.manual_override is not None:
        return competition.manual_override
    return compute_status(now, competition)


def refresh_status(competition: Competition, now: datetime) -> Competition:
    """Recompute computed_status. The manual override is never touched."""
    computed = compute_status(now, competition)
    if computed == competition.computed_status:
        return competition
    logger.debug(
        f"Competition {competition.competition_id}: "
        f"{competition.computed_status.value} -> {computed.value}"
    )
    return replace(competition, computed_status=computed)


def apply_window(competition: Competition, window: CompetitionWindow,
                 now: datetime) -> Competition:
    """Store a recalculated window on a competition and refresh its status."""
    updated = replace(
        competition,
        registration_opens_at=window.registration_opens_at,
        registration_closes_at=window.registration_closes_at,
        start_at=window.start_at,
        end_at=window.end_at,
    )
    return refresh_status(updated, now)


def set_override(competition: Competition,
                 status: Optional[CompetitionStatus]) -> Competition:
    """Set or clear (None) the operator's status override."""
    return replace(competition, manual_override=status)


def is_registration_open(competition: Competition, now: datetime) -> bool:
    """Whether entries may still be submitted or edited."""
    if competition.is_cancelled:
        return False
    closes = competition.registration_closes_at
    if closes is not None and now >= closes:
        return False
    if competition.manual_override is not None:
        return competition.manual_override == CompetitionStatus.REGISTRATION_OPEN
    opens = competition.registration_opens_at
    if opens is None and closes is None:
        # No window scheduled yet: upcoming
        return False
    return opens is None or now >= opens


def registration_has_closed(competition: Competition, now: datetime) -> bool:
    """Whether the registration-close moment has passed."""
    closes = competition.registration_closes_at
    if closes is not None:
        return now >= closes
    return compute_status(now, competition) in (
        CompetitionStatus.REGISTRATION_CLOSED,
        CompetitionStatus.LIVE,
        CompetitionStatus.COMPLETED,
    )
