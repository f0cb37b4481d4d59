"""
Prize pool arithmetic. All amounts are integer pennies.

Rounding policy: every percentage of an amount is rounded half-up to the
nearest penny (Decimal ROUND_HALF_UP), so 0.5p always rounds away from zero.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from itertools import groupby
from typing import Dict, List, Mapping, Optional, Sequence, Union

from .config import DEFAULT_FIRST_PLACE_SHARE, PAYOUT_DISTRIBUTION
from .models import Competition, LeaderboardRow, Payout, PrizeBreakdown

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]


@dataclass(frozen=True)
class PrizeOverrides:
    """Operator-set amounts that replace the computed ones."""
    guaranteed_prize_pool: Optional[int] = None
    first_place_prize: Optional[int] = None


def round_half_up(amount: Number) -> int:
    """Round to a whole penny, halves away from zero."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent: Number) -> int:
    return round_half_up(Decimal(amount) * Decimal(str(percent)) / Decimal(100))


def compute(entry_fee: int, entrants_count: int, admin_fee_percent: Number,
            overrides: Optional[PrizeOverrides] = None,
            first_place_share: Number = DEFAULT_FIRST_PLACE_SHARE) -> PrizeBreakdown:
    """
    Gross pool, admin fee, net pool and first-place prize.

    A guaranteed prize pool replaces the computed net pool whatever the
    entries bring in; covering any shortfall is not this function's concern.
    """
    if entry_fee is None or entrants_count is None or admin_fee_percent is None:
        raise ValueError("entry_fee, entrants_count and admin_fee_percent are required")
    if entry_fee < 0:
        raise ValueError(f"Entry fee cannot be negative: {entry_fee}")
    if entrants_count < 0:
        raise ValueError(f"Entrants count cannot be negative: {entrants_count}")
    if not 0 <= admin_fee_percent <= 100:
        raise ValueError(f"Admin fee percent must be 0-100, got {admin_fee_percent}")
    if not 0 <= first_place_share <= 1:
        raise ValueError(f"First place share must be 0-1, got {first_place_share}")
    overrides = overrides or PrizeOverrides()

    gross = entry_fee * entrants_count
    admin_fee = percent_of(gross, admin_fee_percent)
    net_pool = gross - admin_fee
    if overrides.guaranteed_prize_pool is not None:
        net_pool = overrides.guaranteed_prize_pool

    if overrides.first_place_prize is not None:
        first_place = overrides.first_place_prize
    else:
        first_place = round_half_up(Decimal(net_pool) * Decimal(str(first_place_share)))

    return PrizeBreakdown(gross=gross, admin_fee=admin_fee, net_pool=net_pool, first_place=first_place)


def compute_for_competition(competition: Competition, entrants_count: int,
                            first_place_share: Number = DEFAULT_FIRST_PLACE_SHARE) -> PrizeBreakdown:
    """Prize breakdown from a competition's own financial settings."""
    if competition.entrants_cap > 0 and entrants_count > competition.entrants_cap:
        raise ValueError(
            f"{entrants_count} entrants exceeds the cap of {competition.entrants_cap}"
        )
    if competition.is_head_to_head:
        # Winner takes the whole net pool
        first_place_share = 1
    return compute(
        competition.entry_fee,
        entrants_count,
        competition.admin_fee_percent,
        PrizeOverrides(
            guaranteed_prize_pool=competition.guaranteed_prize_pool,
            first_place_prize=competition.first_place_prize,
        ),
        first_place_share,
    )


def max_prize_pool(competition: Competition,
                   first_place_share: Number = DEFAULT_FIRST_PLACE_SHARE) -> Optional[PrizeBreakdown]:
    """Breakdown if the competition fills up; None when entries are unlimited."""
    if competition.entrants_cap <= 0:
        return None
    return compute_for_competition(competition, competition.entrants_cap, first_place_share)


def placement_payouts(breakdown: PrizeBreakdown, entrants_count: int,
                      distribution: Mapping[int, float] = PAYOUT_DISTRIBUTION) -> Dict[int, int]:
    """
    Prize per finishing position.

    Position 1 gets the breakdown's first-place prize; the others take their
    share of the net pool from whatever first place leaves. Only positions
    someone can finish in are paid, and the total never exceeds the net pool,
    so a winner-takes-all breakdown pays position 1 alone.
    """
    payouts: Dict[int, int] = {}
    if entrants_count <= 0 or breakdown.net_pool <= 0:
        return payouts
    if breakdown.first_place > breakdown.net_pool:
        logger.warning(
            f"First place prize {breakdown.first_place} exceeds the net pool "
            f"{breakdown.net_pool}; paying the net pool"
        )
    payouts[1] = min(breakdown.first_place, breakdown.net_pool)
    remaining = breakdown.net_pool - payouts[1]
    for position in sorted(distribution):
        if position == 1 or position > entrants_count or remaining <= 0:
            continue
        share = round_half_up(Decimal(breakdown.net_pool) * Decimal(str(distribution[position])))
        payouts[position] = min(share, remaining)
        remaining -= payouts[position]
    return payouts


def distribute(leaderboard: Sequence[LeaderboardRow],
               payouts: Mapping[int, int]) -> List[Payout]:
    """
    Award payouts to leaderboard entries.

    Entries tied on a position share the prizes of every position they
    occupy. Odd pennies go one each to the tied entries in leaderboard order,
    so nothing is lost to rounding.
    """
    awarded: List[Payout] = []
    for rank, group in groupby(leaderboard, key=lambda row: row.rank):
        rows = list(group)
        positions = range(rank, rank + len(rows))
        pot = sum(payouts.get(p, 0) for p in positions)
        if pot <= 0:
            continue
        share, odd_pennies = divmod(pot, len(rows))
        for i, row in enumerate(rows):
            amount = share + (1 if i < odd_pennies else 0)
            if amount:
                awarded.append(Payout(entry_id=row.entry_id, position=row.position, amount=amount))
    total = sum(p.amount for p in awarded)
    logger.debug(f"Distributed {total} pennies across {len(awarded)} entries")
    return awarded
