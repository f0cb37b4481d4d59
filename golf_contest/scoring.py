"""
Fantasy scoring: entry totals from golfer round results, and leaderboards.

Scoring is a projection of its inputs. Nothing is accumulated between calls,
so a total can be recomputed after every results update, or concurrently,
and always comes out the same for the same snapshot.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .config import CAPTAIN_MULTIPLIER
from .errors import MissingGolferResult, Result
from .models import (
    Competition, Entry, LeaderboardRow, Pick, ResultsSnapshot,
    ScoreBreakdown, ScoreDirection,
)

logger = logging.getLogger(__name__)


def compute_total(picks: Sequence[Pick], golfer_scores: Mapping[str, float],
                  captain_multiplier: int = CAPTAIN_MULTIPLIER) -> Result[ScoreBreakdown]:
    """
    Sum each pick's golfer score, counting the captain `captain_multiplier` times.

    Whatever number the results feed supplies for a golfer (including a
    withdrawal sentinel) is used as-is. A golfer with no score at all fails
    the computation.
    """
    contributions: Dict[str, float] = {}
    for pick in picks:
        if pick.golfer_id not in golfer_scores:
            logger.warning(f"No score supplied for golfer {pick.golfer_id}")
            return Result.failure(MissingGolferResult(golfer_id=pick.golfer_id))
        multiplier = captain_multiplier if pick.is_captain else 1
        contributions[pick.golfer_id] = golfer_scores[pick.golfer_id] * multiplier

    return Result.success(ScoreBreakdown(
        total=sum(contributions.values()),
        contributions=contributions,
    ))


def golfer_totals(snapshot: ResultsSnapshot, golfer_ids: Iterable[str],
                  from_round: int = 1, to_round: int = 4) -> Result[Dict[str, float]]:
    """
    Per-golfer sum of round scores over the covered rounds completed so far.

    Every golfer needs a result for every completed round in range.
    """
    by_golfer: Dict[str, Dict[int, float]] = defaultdict(dict)
    for result in snapshot.results:
        rounds = by_golfer[result.golfer_id]
        if result.round_number in rounds:
            raise ValueError(
                f"Duplicate round {result.round_number} result for golfer {result.golfer_id}"
            )
        rounds[result.round_number] = result.score

    last_round = min(to_round, snapshot.rounds_completed)
    totals: Dict[str, float] = {}
    for golfer_id in golfer_ids:
        rounds = by_golfer.get(golfer_id, {})
        total = 0
        for round_number in range(from_round, last_round + 1):
            if round_number not in rounds:
                logger.warning(f"Missing round {round_number} result for golfer {golfer_id}")
                return Result.failure(MissingGolferResult(golfer_id=golfer_id, round_number=round_number))
            total += rounds[round_number]
        totals[golfer_id] = total
    return Result.success(totals)


def score_entry(entry: Entry, competition: Competition, snapshot: ResultsSnapshot,
                captain_multiplier: int = CAPTAIN_MULTIPLIER) -> Result[ScoreBreakdown]:
    """Current (possibly partial) score of an entry for a results snapshot."""
    totals = golfer_totals(
        snapshot, entry.golfer_ids,
        from_round=competition.round_start, to_round=competition.round_end,
    )
    if not totals.ok:
        return Result.failure(totals.error)
    return compute_total(entry.picks, totals.value, captain_multiplier)


def compare_scores(a: float, b: float,
                   direction: ScoreDirection = ScoreDirection.LOWER_WINS) -> int:
    """Negative if `a` beats `b`, positive if `b` beats `a`, zero on a tie."""
    if a == b:
        return 0
    a_better = a < b if direction == ScoreDirection.LOWER_WINS else a > b
    return -1 if a_better else 1


def rank_entries(entries: Sequence[Entry],
                 direction: ScoreDirection = ScoreDirection.LOWER_WINS,
                 scores: Optional[Mapping[str, float]] = None) -> List[LeaderboardRow]:
    """
    Build a leaderboard with golf-style positions: 1, T2, T2, 4.

    Scores come from `scores` when given (live projections), else from each
    entry's stored total. Entries without a score are left off.
    """
    rows = []
    for entry in entries:
        score = scores.get(entry.entry_id) if scores is not None else entry.total_score
        if score is None:
            continue
        rows.append({"entry_id": entry.entry_id, "score": score})
    if not rows:
        return []

    ascending = direction == ScoreDirection.LOWER_WINS
    df = pd.DataFrame(rows)
    df = df.sort_values(["score", "entry_id"], ascending=[ascending, True], kind="mergesort")
    df["rank"] = df["score"].rank(method="min", ascending=ascending).astype(int)
    df["group_size"] = df.groupby("score")["score"].transform("size")

    leaderboard = []
    for row in df.itertuples(index=False):
        tied = bool(row.group_size > 1)
        leaderboard.append(LeaderboardRow(
            entry_id=row.entry_id,
            total_score=float(row.score),
            rank=int(row.rank),
            position=f"T{row.rank}" if tied else str(row.rank),
            tied=tied,
        ))
    return leaderboard
