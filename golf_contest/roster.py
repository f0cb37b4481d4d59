"""
Roster building and validation for salary-cap lineups.

`validate` is the hard gate used at submission. The edit helpers
(`add_pick`, `remove_pick`, `set_captain`) never fail: they hand back the new
roster plus warnings so a form can show live feedback.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import (
    ROSTER_SIZE, DEFAULT_BUDGET_CAP, SALARY_TIERS, CURRENCY_SYMBOL,
    BUDGET_DANGER_REMAINING, BUDGET_WARNING_REMAINING, BUDGET_MIN_REMAINING,
    BUDGET_UNDERSPEND_RATIO,
)
from .errors import (
    Result, IncompleteRoster, DuplicateGolfer, InvalidSlot,
    CaptainRequired, MultipleCaptains, BudgetExceeded,
)
from .models import Golfer, Pick, RosterUpdate, ValidRoster

logger = logging.getLogger(__name__)

VALID_SLOTS = range(1, ROSTER_SIZE + 1)


def validate(picks: Sequence[Pick], budget_cap: int = DEFAULT_BUDGET_CAP) -> Result[ValidRoster]:
    """
    Validate a complete roster.

    Checks run in a fixed order and stop at the first failure:
    size, distinct golfers, slots, captain, budget.
    """
    if budget_cap is None:
        raise ValueError("budget_cap is required")
    for pick in picks:
        if pick.golfer_id is None:
            raise ValueError("Pick without golfer_id")

    if len(picks) != ROSTER_SIZE:
        return Result.failure(IncompleteRoster(count=len(picks), required=ROSTER_SIZE))

    seen_golfers = set()
    for pick in picks:
        if pick.golfer_id in seen_golfers:
            return Result.failure(DuplicateGolfer(golfer_id=pick.golfer_id))
        seen_golfers.add(pick.golfer_id)

    seen_slots = set()
    for pick in picks:
        if pick.slot_position not in VALID_SLOTS or pick.slot_position in seen_slots:
            return Result.failure(InvalidSlot(slot_position=pick.slot_position))
        seen_slots.add(pick.slot_position)

    captains = [p for p in picks if p.is_captain]
    if not captains:
        return Result.failure(CaptainRequired())
    if len(captains) > 1:
        return Result.failure(MultipleCaptains(count=len(captains)))

    used = total_salary(picks)
    if used > budget_cap:
        return Result.failure(BudgetExceeded(used=used, cap=budget_cap))

    ordered = tuple(sorted(picks, key=lambda p: p.slot_position))
    return Result.success(ValidRoster(
        picks=ordered,
        captain_golfer_id=captains[0].golfer_id,
        total_salary=used,
        budget_cap=budget_cap,
    ))


def add_pick(picks: Sequence[Pick], golfer: Golfer, slot: Optional[int] = None,
             is_captain: bool = False,
             budget_cap: int = DEFAULT_BUDGET_CAP) -> RosterUpdate:
    """
    Add a golfer to an in-progress roster.

    The golfer's current salary is copied onto the pick. With no slot the
    first free one is used; an occupied slot is replaced.
    """
    current = tuple(picks)

    if golfer.salary is None:
        return RosterUpdate(current, (f"No salary available for {_label(golfer)}",))
    if any(p.golfer_id == golfer.golfer_id for p in current):
        return RosterUpdate(current, (f"{_label(golfer)} is already in your team",))

    warnings: List[str] = []
    if slot is None:
        slot = next((s for s in VALID_SLOTS if s not in _slots(current)), None)
        if slot is None:
            return RosterUpdate(current, (f"Team is full ({ROSTER_SIZE} golfers)",))
    elif slot not in VALID_SLOTS:
        return RosterUpdate(current, (f"Slot {slot} is not between 1 and {ROSTER_SIZE}",))

    kept = []
    for p in current:
        if p.slot_position == slot:
            warnings.append(f"Replaced {p.golfer_name or p.golfer_id} in slot {slot}")
        else:
            kept.append(p)

    if is_captain:
        kept = [replace(p, is_captain=False) if p.is_captain else p for p in kept]

    new_pick = Pick(
        golfer_id=golfer.golfer_id,
        slot_position=slot,
        salary_at_selection=golfer.salary,
        is_captain=is_captain,
        golfer_name=golfer.name,
    )
    updated = tuple(sorted(kept + [new_pick], key=lambda p: p.slot_position))
    warnings.extend(budget_warnings(total_salary(updated), budget_cap, len(updated)))
    return RosterUpdate(updated, tuple(warnings))


def remove_pick(picks: Sequence[Pick], golfer_id: str,
                budget_cap: int = DEFAULT_BUDGET_CAP) -> RosterUpdate:
    """Remove a golfer from an in-progress roster."""
    current = tuple(picks)
    remaining = tuple(p for p in current if p.golfer_id != golfer_id)
    if len(remaining) == len(current):
        return RosterUpdate(current, (f"Golfer {golfer_id} is not in your team",))

    warnings = []
    if any(p.is_captain for p in current) and not any(p.is_captain for p in remaining):
        warnings.append("Captain removed - choose a new captain")
    warnings.extend(budget_warnings(total_salary(remaining), budget_cap, len(remaining)))
    return RosterUpdate(remaining, tuple(warnings))


def set_captain(picks: Sequence[Pick], golfer_id: str) -> RosterUpdate:
    """Make one golfer the captain, clearing the flag on everyone else."""
    current = tuple(picks)
    if not any(p.golfer_id == golfer_id for p in current):
        return RosterUpdate(current, (f"Golfer {golfer_id} is not in your team",))
    updated = tuple(replace(p, is_captain=(p.golfer_id == golfer_id)) for p in current)
    return RosterUpdate(updated)


# ============================================================================
# Salary helpers
# ============================================================================

def total_salary(picks: Iterable[Pick]) -> int:
    return sum(p.salary_at_selection for p in picks)


def remaining_budget(picks: Iterable[Pick], budget_cap: int = DEFAULT_BUDGET_CAP) -> int:
    return budget_cap - total_salary(picks)


def can_afford(current_salary: int, golfer_salary: int,
               budget_cap: int = DEFAULT_BUDGET_CAP) -> bool:
    """Whether adding a golfer keeps the team within the cap."""
    return current_salary + golfer_salary <= budget_cap


def budget_percentage(used_salary: int, budget_cap: int = DEFAULT_BUDGET_CAP) -> float:
    """Share of the cap spent, 0-100."""
    if budget_cap <= 0:
        return 100.0
    return min(100.0, used_salary / budget_cap * 100)


def budget_status(remaining: int, budget_cap: int = DEFAULT_BUDGET_CAP) -> str:
    """'healthy', 'warning' or 'danger' depending on how much budget is left."""
    fraction_left = remaining / budget_cap if budget_cap > 0 else 0
    if fraction_left < BUDGET_DANGER_REMAINING:
        return "danger"
    if fraction_left < BUDGET_WARNING_REMAINING:
        return "warning"
    return "healthy"


def salary_tier(salary: int, budget_cap: int = DEFAULT_BUDGET_CAP) -> str:
    """Tier name for a golfer's salary relative to the cap."""
    for tier, threshold in sorted(SALARY_TIERS.items(), key=lambda item: -item[1]):
        if salary >= budget_cap * threshold:
            return tier
    return "value"


def format_salary(salary: int) -> str:
    """Format a salary for display, e.g. '£12,500'."""
    sign = "-" if salary < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(salary):,}"


def budget_warnings(used: int, budget_cap: int = DEFAULT_BUDGET_CAP,
                    pick_count: int = ROSTER_SIZE) -> Tuple[str, ...]:
    """Non-blocking budget feedback for a roster in progress."""
    remaining = budget_cap - used
    if remaining < 0:
        return (f"Team salary ({format_salary(used)}) exceeds cap "
                f"({format_salary(budget_cap)}) by {format_salary(-remaining)}",)
    warnings = []
    if remaining < BUDGET_MIN_REMAINING:
        warnings.append(f"Only {format_salary(remaining)} remaining - very tight budget")
    if pick_count == ROSTER_SIZE and used < budget_cap * BUDGET_UNDERSPEND_RATIO:
        warnings.append(f"{format_salary(remaining)} unused - consider upgrading players")
    return tuple(warnings)


def _slots(picks: Iterable[Pick]) -> set:
    return {p.slot_position for p in picks}


def _label(golfer: Golfer) -> str:
    return golfer.name or golfer.golfer_id
