"""
Head-to-head settlement between two scored entries.
"""

import logging
from typing import Mapping

from .config import CAPTAIN_MULTIPLIER
from .errors import CompetitionVoided, NotReadyToSettle, Result
from .models import Competition, Entry, EntryStatus, ResultsSnapshot, SettlementResult
from .scoring import compute_total, compare_scores, golfer_totals

logger = logging.getLogger(__name__)


def settle(entry_a: Entry, entry_b: Entry, competition: Competition,
           golfer_scores: Mapping[str, float],
           captain_multiplier: int = CAPTAIN_MULTIPLIER) -> Result[SettlementResult]:
    """
    Decide a head-to-head competition.

    Both totals are recomputed from `golfer_scores` and compared in the
    competition's score direction. The scores must already cover only the
    competition's rounds; `settle_from_results` derives them from a results
    snapshot the same way the leaderboard does. The result depends only on
    the inputs, and swapping the entries gives the same winner and margin.
    """
    if not competition.is_head_to_head:
        raise ValueError(f"Competition {competition.competition_id} is not head-to-head")
    for entry in (entry_a, entry_b):
        if entry.competition_id != competition.competition_id:
            raise ValueError(f"Entry {entry.entry_id} is not in competition {competition.competition_id}")
    if entry_a.entry_id == entry_b.entry_id:
        raise ValueError("Cannot settle an entry against itself")

    if competition.is_cancelled or EntryStatus.VOID in (entry_a.status, entry_b.status):
        return Result.failure(CompetitionVoided(competition_id=competition.competition_id))
    for entry in (entry_a, entry_b):
        if entry.status != EntryStatus.SCORED:
            return Result.failure(NotReadyToSettle(entry_id=entry.entry_id, status=entry.status.value))

    score_a = compute_total(entry_a.picks, golfer_scores, captain_multiplier)
    if not score_a.ok:
        return Result.failure(score_a.error)
    score_b = compute_total(entry_b.picks, golfer_scores, captain_multiplier)
    if not score_b.ok:
        return Result.failure(score_b.error)

    total_a = score_a.value.total
    total_b = score_b.value.total
    margin = abs(total_a - total_b)
    outcome = compare_scores(total_a, total_b, competition.score_direction)

    if outcome == 0:
        logger.info(f"Head-to-head {competition.competition_id}: tie at {total_a}")
        return Result.success(SettlementResult(
            winner_entry_id=None, loser_entry_id=None, tie=True, margin=margin,
        ))

    winner, loser = (entry_a, entry_b) if outcome < 0 else (entry_b, entry_a)
    logger.info(
        f"Head-to-head {competition.competition_id}: {winner.entry_id} beats "
        f"{loser.entry_id} by {margin}"
    )
    return Result.success(SettlementResult(
        winner_entry_id=winner.entry_id,
        loser_entry_id=loser.entry_id,
        tie=False,
        margin=margin,
    ))


def settle_from_results(entry_a: Entry, entry_b: Entry, competition: Competition,
                        snapshot: ResultsSnapshot,
                        captain_multiplier: int = CAPTAIN_MULTIPLIER) -> Result[SettlementResult]:
    """Settle on golfer totals over the competition's own rounds of `snapshot`."""
    golfer_ids = list(dict.fromkeys(entry_a.golfer_ids + entry_b.golfer_ids))
    totals = golfer_totals(
        snapshot, golfer_ids,
        from_round=competition.round_start, to_round=competition.round_end,
    )
    if not totals.ok:
        return Result.failure(totals.error)
    return settle(entry_a, entry_b, competition, totals.value, captain_multiplier)
