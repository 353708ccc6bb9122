"""
Trailing-window periods used for quota evaluation.

Longer periods weigh more: the 6-month window dominates the priority score
(1000 against a combined 63 for every shorter period), so long-term quota
exhaustion always outranks short-term fluctuation.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Period:
    """A named trailing window with its scoring weight."""
    key: str
    days: int
    weight: int


SIX_MONTHS = "6M"

PERIODS: Tuple[Period, ...] = (
    Period("1D", 1, 1),
    Period("3D", 3, 2),
    Period("7D", 7, 4),
    Period("15D", 15, 8),
    Period("30D", 30, 16),
    Period("90D", 90, 32),
    Period(SIX_MONTHS, 180, 1000),
)

PERIODS_BY_KEY: Dict[str, Period] = {p.key: p for p in PERIODS}
PERIOD_WEIGHTS: Dict[str, int] = {p.key: p.weight for p in PERIODS}
PERIOD_DAYS: Dict[str, int] = {p.key: p.days for p in PERIODS}

# Longest window; bounds how far back the quota calculator has to read
MAX_PERIOD_DAYS = max(p.days for p in PERIODS)


def get_period(key: str) -> Period:
    """Look up a period by key (1D, 3D, 7D, 15D, 30D, 90D, 6M)."""
    try:
        return PERIODS_BY_KEY[key]
    except KeyError:
        raise KeyError(f"Unknown period: {key}") from None
