"""
Configuration management for the Golf Contest Engine.
Contest rules that operators may tune live here, not in the engine code.
"""

import os
from pathlib import Path
from datetime import timedelta
from typing import Dict, List
from dataclasses import dataclass, field

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


# Roster rules
ROSTER_SIZE = 6
DEFAULT_BUDGET_CAP = 50_000
CAPTAIN_MULTIPLIER = 2

# Registration window offsets
REGISTRATION_OPEN_OFFSET = timedelta(days=5)
REGISTRATION_CLOSE_BUFFER = timedelta(minutes=15)

# Tournament rounds
FIRST_ROUND = 1
FINAL_ROUND = 4

# Prize pool
DEFAULT_FIRST_PLACE_SHARE = 0.25
HEAD_TO_HEAD_ENTRANTS = 2


@dataclass
class Config:
    """Application configuration."""
    # Contest rules
    budget_cap: int = DEFAULT_BUDGET_CAP
    captain_multiplier: int = CAPTAIN_MULTIPLIER
    registration_open_days: int = 5
    registration_close_minutes: int = 15
    first_place_share: float = DEFAULT_FIRST_PLACE_SHARE

    # Paths
    data_dir: Path = Path.home() / ".golf_contest"
    db_path: Path = Path.home() / ".golf_contest" / "contest.db"
    log_path: Path = Path.home() / ".golf_contest" / "sweep.log"

    # Sweep settings
    max_conflict_retries: int = 3

    # Problems found while reading the environment
    _env_errors: List[str] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        """Load overrides from environment."""
        self.budget_cap = self._env_int("GOLF_CONTEST_BUDGET_CAP", self.budget_cap)
        self.captain_multiplier = self._env_int(
            "GOLF_CONTEST_CAPTAIN_MULTIPLIER", self.captain_multiplier
        )
        self.registration_open_days = self._env_int(
            "GOLF_CONTEST_REG_OPEN_DAYS", self.registration_open_days
        )
        self.registration_close_minutes = self._env_int(
            "GOLF_CONTEST_REG_CLOSE_MINUTES", self.registration_close_minutes
        )
        share = os.getenv("GOLF_CONTEST_FIRST_PLACE_SHARE", "")
        if share:
            try:
                self.first_place_share = float(share)
            except ValueError:
                self._env_errors.append(f"GOLF_CONTEST_FIRST_PLACE_SHARE is not a number: {share!r}")

        data_dir = os.getenv("GOLF_CONTEST_DATA_DIR", "")
        if data_dir:
            self.data_dir = Path(data_dir)
            self.db_path = self.data_dir / "contest.db"
            self.log_path = self.data_dir / "sweep.log"

    def _env_int(self, name: str, default: int) -> int:
        raw = os.getenv(name, "")
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            self._env_errors.append(f"{name} is not an integer: {raw!r}")
            return default

    @property
    def registration_open_offset(self) -> timedelta:
        return timedelta(days=self.registration_open_days)

    @property
    def registration_close_buffer(self) -> timedelta:
        return timedelta(minutes=self.registration_close_minutes)

    def validate_config(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors = list(self._env_errors)
        if self.budget_cap <= 0:
            errors.append("Budget cap must be positive")
        if self.captain_multiplier < 1:
            errors.append("Captain multiplier must be at least 1")
        if self.registration_open_days < 0:
            errors.append("Registration open offset cannot be negative")
        if self.registration_close_minutes < 0:
            errors.append("Registration close buffer cannot be negative")
        if not 0 <= self.first_place_share <= 1:
            errors.append("First place share must be between 0 and 1")
        return errors

    def ensure_dirs(self):
        """Create the data directory used by the store and the sweep log."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise RuntimeError(f"Permission denied creating {self.data_dir}: {e}") from e
        except OSError as e:
            raise RuntimeError(f"Could not create {self.data_dir}: {e}") from e


def get_config() -> Config:
    """Get application configuration."""
    return Config()


# ============================================================================
# PAYOUTS
# Share of the net pool per finishing position. Placement payouts pay
# position 1 the competition's first-place prize instead.
# ============================================================================

PAYOUT_DISTRIBUTION: Dict[int, float] = {
    1: 0.25, 2: 0.15, 3: 0.10, 4: 0.08, 5: 0.07,
    6: 0.06, 7: 0.05, 8: 0.05, 9: 0.05, 10: 0.04,
    11: 0.04, 12: 0.03, 13: 0.03,
}


# Salary tiers as the lowest fraction of the budget cap a golfer costs
SALARY_TIERS: Dict[str, float] = {
    "premium": 0.23,
    "mid": 0.15,
    "value": 0.0,
}

CURRENCY_SYMBOL = "£"

# Budget status thresholds (fraction of the cap still unspent)
BUDGET_DANGER_REMAINING = 0.05
BUDGET_WARNING_REMAINING = 0.15
# Minimum salary units left before the "tight budget" warning
BUDGET_MIN_REMAINING = 100
# Below this fraction of the cap spent, suggest upgrades
BUDGET_UNDERSPEND_RATIO = 0.9
