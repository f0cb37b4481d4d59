"""
Command-line interface for the Golf Contest Engine.
Built with Click and Rich for operator-friendly terminal output.
"""

import json
import sys
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from . import __version__
from .config import get_config
from .database import Database
from .errors import ContestError
from .models import (
    Competition, CompetitionFormat, Entry, EntryStatus, Pick, ScoreDirection, Tournament,
)
from . import prizes, roster, scoring, settlement, sweep, timing

console = Console()


def _money(pennies: int) -> str:
    sign = "-" if pennies < 0 else ""
    return f"{sign}£{abs(pennies) / 100:,.2f}"


def _when(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


def _show_error(error: ContestError):
    console.print(Panel(
        f"[bold]{error.kind}[/]\n{error.message}",
        title=f"{error.category.value.title()} error",
        border_style="red",
    ))


def _pick_from_dict(data: dict) -> Pick:
    return Pick(
        golfer_id=str(data["golfer_id"]),
        slot_position=int(data["slot_position"]),
        salary_at_selection=int(data["salary_at_selection"]),
        is_captain=bool(data.get("is_captain", False)),
        golfer_name=data.get("golfer_name", ""),
    )


def _entry_from_dict(data: dict, competition_id: str) -> Entry:
    return Entry(
        entry_id=str(data["entry_id"]),
        competition_id=competition_id,
        user_id=str(data.get("user_id", "")),
        status=EntryStatus(data.get("status", EntryStatus.SCORED.value)),
        picks=tuple(_pick_from_dict(p) for p in data.get("picks", [])),
        total_score=data.get("total_score"),
    )


def _load_json(path: Path) -> dict:
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}")


@click.group()
@click.version_option(version=__version__, prog_name="Golf Contest Engine")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Golf Contest Engine - fantasy golf contest rules for operators."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(message)s")


@cli.command("prize-pool")
@click.option("--entry-fee", required=True, type=int, help="Entry fee in pennies")
@click.option("--entrants", required=True, type=int, help="Number of entrants")
@click.option("--admin-fee", default=0.0, type=float, help="Admin fee percent (0-100)")
@click.option("--guaranteed", default=None, type=int, help="Guaranteed prize pool in pennies")
@click.option("--first-place", default=None, type=int, help="First place prize in pennies")
@click.option("--payouts", is_flag=True, help="Show the payout per finishing position")
def prize_pool(entry_fee: int, entrants: int, admin_fee: float, guaranteed: Optional[int],
               first_place: Optional[int], payouts: bool):
    """Calculate a competition's prize pool."""
    config = get_config()
    try:
        breakdown = prizes.compute(
            entry_fee, entrants, admin_fee,
            prizes.PrizeOverrides(guaranteed_prize_pool=guaranteed, first_place_prize=first_place),
            config.first_place_share,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    table = Table(title="Prize Pool", box=box.ROUNDED)
    table.add_column("Item", style="cyan")
    table.add_column("Amount", justify="right", style="green")
    table.add_row("Gross", _money(breakdown.gross))
    table.add_row(f"Admin fee ({admin_fee:g}%)", _money(breakdown.admin_fee))
    table.add_row("Net pool" + (" (guaranteed)" if guaranteed is not None else ""), _money(breakdown.net_pool))
    table.add_row("First place", _money(breakdown.first_place))
    console.print(table)

    if payouts:
        places = prizes.placement_payouts(breakdown, entrants)
        payout_table = Table(title="Payouts", box=box.ROUNDED)
        payout_table.add_column("Position", justify="center")
        payout_table.add_column("Prize", justify="right", style="green")
        for position, amount in places.items():
            payout_table.add_row(str(position), _money(amount))
        console.print(payout_table)


@cli.command()
@click.option("--round1", required=True, type=click.DateTime(), help="Round 1 tee time")
@click.option("--round2", default=None, type=click.DateTime(), help="Round 2 tee time")
@click.option("--round3", default=None, type=click.DateTime(), help="Round 3 tee time")
@click.option("--round4", default=None, type=click.DateTime(), help="Round 4 tee time")
@click.option("--end", "end_date", default=None, type=click.DateTime(), help="Tournament end")
@click.option("--round-start", default=1, type=click.IntRange(1, 4), help="First round the competition covers")
@click.option("--late-entry", is_flag=True, help="Close registration before --round-start instead of Round 1")
def schedule(round1: datetime, round2: Optional[datetime], round3: Optional[datetime],
             round4: Optional[datetime], end_date: Optional[datetime], round_start: int, late_entry: bool):
    """Show the registration window derived from tee times."""
    config = get_config()
    tournament = Tournament(
        tournament_id="cli",
        round_1_start=round1,
        round_2_start=round2,
        round_3_start=round3,
        round_4_start=round4,
        end_date=end_date,
    )
    result = timing.competition_window(
        tournament, round_start=round_start, late_entry=late_entry,
        open_offset=config.registration_open_offset,
        close_buffer=config.registration_close_buffer,
    )
    if not result.ok:
        _show_error(result.error)
        sys.exit(1)

    window = result.value
    table = Table(title="Competition Window", box=box.ROUNDED)
    table.add_column("Milestone", style="cyan")
    table.add_column("Time", justify="right")
    table.add_row("Registration opens", _when(window.registration_opens_at))
    table.add_row("Registration closes", _when(window.registration_closes_at))
    table.add_row("Starts", _when(window.start_at))
    table.add_row("Ends", _when(window.end_at))
    console.print(table)


@cli.command("validate-roster")
@click.argument("roster_file", type=click.Path(exists=True, path_type=Path))
@click.option("--budget-cap", default=None, type=int, help="Override the configured budget cap")
def validate_roster(roster_file: Path, budget_cap: Optional[int]):
    """Validate a roster JSON file ({"picks": [...]})."""
    config = get_config()
    cap = budget_cap if budget_cap is not None else config.budget_cap
    data = _load_json(roster_file)
    picks = [_pick_from_dict(p) for p in data.get("picks", [])]

    result = roster.validate(picks, cap)
    if not result.ok:
        _show_error(result.error)
        sys.exit(1)

    valid = result.value
    table = Table(title="Valid Roster", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Slot", justify="center", width=4)
    table.add_column("Golfer", width=24)
    table.add_column("Salary", justify="right")
    table.add_column("Tier", justify="center")
    for pick in valid.picks:
        name = pick.golfer_name or pick.golfer_id
        if pick.is_captain:
            name = f"[bold yellow]{name} (C)[/]"
        table.add_row(
            str(pick.slot_position), name,
            roster.format_salary(pick.salary_at_selection),
            roster.salary_tier(pick.salary_at_selection, cap),
        )
    console.print(table)

    status = roster.budget_status(valid.remaining, cap)
    colour = {"healthy": "green", "warning": "yellow", "danger": "red"}[status]
    console.print(
        f"Total: {roster.format_salary(valid.total_salary)} of {roster.format_salary(cap)} "
        f"([{colour}]{roster.format_salary(valid.remaining)} left[/])"
    )
    for warning in roster.budget_warnings(valid.total_salary, cap):
        console.print(f"[yellow]{warning}[/]")


@cli.command()
@click.argument("settle_file", type=click.Path(exists=True, path_type=Path))
@click.option("--higher-wins", is_flag=True, help="Points format: the higher total wins")
def settle(settle_file: Path, higher_wins: bool):
    """Settle a head-to-head from a JSON file ({"entries": [a, b], "scores": {...}})."""
    config = get_config()
    data = _load_json(settle_file)
    competition = Competition(
        competition_id=str(data.get("competition_id", "one-2-one")),
        tournament_id=str(data.get("tournament_id", "")),
        format=CompetitionFormat.HEAD_TO_HEAD,
        score_direction=ScoreDirection.HIGHER_WINS if higher_wins else ScoreDirection.LOWER_WINS,
    )
    entries = [_entry_from_dict(e, competition.competition_id) for e in data.get("entries", [])]
    if len(entries) != 2:
        raise click.BadParameter("A head-to-head needs exactly two entries")
    scores = {str(k): v for k, v in data.get("scores", {}).items()}

    result = settlement.settle(entries[0], entries[1], competition, scores, config.captain_multiplier)
    if not result.ok:
        _show_error(result.error)
        sys.exit(1)

    outcome = result.value
    if outcome.tie:
        console.print(Panel(f"[bold]Tie[/] (margin {outcome.margin:g})", border_style="yellow"))
    else:
        console.print(Panel(
            f"[bold green]{outcome.winner_entry_id}[/] beats {outcome.loser_entry_id} "
            f"by {outcome.margin:g}",
            title="Result",
            border_style="green",
        ))


@cli.command()
@click.argument("competition_id")
@click.option("--db", "db_path", default=None, type=click.Path(path_type=Path), help="Database file")
def leaderboard(competition_id: str, db_path: Optional[Path]):
    """Show a competition's leaderboard and prize money."""
    config = get_config()
    db = Database(db_path)
    competition = db.get_competition(competition_id)
    if competition is None:
        console.print(f"[red]Unknown competition {competition_id}[/]")
        sys.exit(1)

    entries = db.get_entries(competition_id)
    rows = scoring.rank_entries(
        [e for e in entries if e.status == EntryStatus.SCORED], competition.score_direction
    )
    if not rows:
        console.print("[yellow]No scored entries yet.[/]")
        return

    breakdown = prizes.compute_for_competition(
        competition, sum(1 for e in entries if e.status in (EntryStatus.LOCKED, EntryStatus.SCORED)),
        config.first_place_share,
    )
    awarded = {p.entry_id: p.amount for p in prizes.distribute(
        rows, prizes.placement_payouts(breakdown, len(rows))
    )}
    names = {e.entry_id: e.entry_name or e.entry_id for e in entries}

    table = Table(title=competition.name or competition_id, box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Pos", justify="center", width=5)
    table.add_column("Entry", width=25)
    table.add_column("Score", justify="right")
    table.add_column("Prize", justify="right", style="green")
    for row in rows:
        prize = awarded.get(row.entry_id)
        table.add_row(row.position, names[row.entry_id], f"{row.total_score:g}",
                      _money(prize) if prize else "-")
    console.print(table)
    console.print(f"Net pool: [green]{_money(breakdown.net_pool)}[/]")


@cli.command("sweep")
@click.option("--db", "db_path", default=None, type=click.Path(path_type=Path), help="Database file")
def run_sweep(db_path: Optional[Path]):
    """Lock or void entries whose registration has closed."""
    report = sweep.run_sweep(Database(db_path))
    table = Table(title="Registration Sweep", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Competitions checked", str(report.competitions))
    table.add_row("Status changes", str(report.status_changes))
    table.add_row("Entries locked", str(report.locked))
    table.add_row("Entries voided", str(report.voided))
    table.add_row("Competitions cancelled", str(report.cancelled))
    table.add_row("Failed", str(report.failed))
    console.print(table)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
