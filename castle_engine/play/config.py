"""
Difficulty configuration for the computer player.

Every difficulty tier runs the same search; tiers only differ in the
parameters below (depth, time budget, book use and injected randomness).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

MIN_MOVE_TIME_MS = 50
CLOCK_FRACTION = 20  # Never spend more than 1/20 of the remaining clock
LOW_CLOCK_MS = 10_000
MEDIUM_CLOCK_MS = 30_000


class Difficulty(Enum):
    """Difficulty tiers offered to players."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class DifficultyProfile:
    """Search and personality parameters for one difficulty tier."""

    max_depth: int
    """Deepest iterative deepening iteration"""

    time_ms: int
    """Wall-clock budget per move before clock adjustments"""

    use_book: bool = True
    """Consult the opening book before searching"""

    random_move_chance: float = 0.0
    """Probability of skipping search and playing a random legal move"""

    alternative_chance: float = 0.0
    """Probability of swapping the best move for a near-equal one"""

    alternative_tolerance: int = 40
    """Centipawn window for near-equal alternatives"""

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")

        if self.time_ms <= 0:
            raise ValueError(f"time_ms must be positive, got {self.time_ms}")

        for name in ("random_move_chance", "alternative_chance"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

        if self.alternative_tolerance < 0:
            raise ValueError(
                f"alternative_tolerance must be non-negative, got {self.alternative_tolerance}"
            )


PROFILES: Dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(
        max_depth=2,
        time_ms=300,
        use_book=False,
        random_move_chance=0.25,
    ),
    Difficulty.MEDIUM: DifficultyProfile(
        max_depth=3,
        time_ms=1000,
        alternative_chance=0.10,
    ),
    Difficulty.HARD: DifficultyProfile(
        max_depth=5,
        time_ms=3000,
    ),
}


def get_profile(difficulty: Union[Difficulty, str]) -> DifficultyProfile:
    """
    Resolve a difficulty tier (enum or its name) to its profile.

    Raises:
        ValueError: If the name is not a known tier
    """
    return PROFILES[Difficulty(difficulty)]


def allocate_time_ms(profile: DifficultyProfile, remaining_ms: Optional[int] = None) -> Tuple[int, int]:
    """
    Compute the time budget and depth limit for one move.

    Budgets shrink as the clock runs down so the engine never forfeits on
    time: at most 1/CLOCK_FRACTION of the remaining time is spent, and the
    depth is capped at 2 under 10 seconds and at 3 under 30 seconds.

    Args:
        profile: Difficulty profile
        remaining_ms: Time left on the engine's clock (None = untimed)

    Returns:
        Tuple of (time_ms, max_depth)
    """
    time_ms = profile.time_ms
    max_depth = profile.max_depth

    if remaining_ms is not None:
        time_ms = max(MIN_MOVE_TIME_MS, min(time_ms, remaining_ms // CLOCK_FRACTION))
        if remaining_ms < LOW_CLOCK_MS:
            max_depth = min(max_depth, 2)
        elif remaining_ms < MEDIUM_CLOCK_MS:
            max_depth = min(max_depth, 3)

    return time_ms, max_depth
