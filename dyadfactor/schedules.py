"""Per-row learning-rate annealing schedules."""
from __future__ import annotations

import math
from typing import Callable, Dict

from .errors import ConfigurationError

Schedule = Callable[[float, int], float]


def inverse(mu0: float, update_count: int) -> float:
    """``mu0 / n``: the rate halves by the second touch of a row."""

    return mu0 / max(int(update_count), 1)


def inverse_sqrt(mu0: float, update_count: int) -> float:
    """``mu0 / sqrt(n)``: slower annealing for rows that see many updates."""

    return mu0 / math.sqrt(max(int(update_count), 1))


_SCHEDULES: Dict[str, Schedule] = {
    "inverse": inverse,
    "inverse_sqrt": inverse_sqrt,
}


def get_schedule(name: str) -> Schedule:
    try:
        return _SCHEDULES[name]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown learning rate schedule '{name}'") from exc


def available_schedules() -> tuple[str, ...]:
    return tuple(_SCHEDULES.keys())
