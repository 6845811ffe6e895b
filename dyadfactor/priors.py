"""Regularization priors applied lazily to the row touched by a training step."""
from __future__ import annotations

from typing import Dict, Protocol

import numpy as np

from .errors import ConfigurationError


class Prior(Protocol):
    """Protocol implemented by regularization priors."""

    name: str

    def regularize(self, row: np.ndarray, strength: float) -> None:
        """Shrink ``row`` in place; ``strength`` is ``lambda * learning_rate``."""


class _L1Prior:
    name = "l1"

    def regularize(self, row: np.ndarray, strength: float) -> None:
        if strength <= 0.0:
            return
        old = row.copy()
        shrunk = old - strength * np.sign(old)
        # a shrink that crosses zero lands exactly on zero
        shrunk[shrunk * old < 0.0] = 0.0
        row[:] = shrunk


class _L2Prior:
    name = "l2"

    def regularize(self, row: np.ndarray, strength: float) -> None:
        if strength <= 0.0:
            return
        row *= max(0.0, 1.0 - strength)


_PRIORS: Dict[str, Prior] = {prior.name: prior for prior in (_L1Prior(), _L2Prior())}


def get_prior(name: str) -> Prior:
    """Return the prior registered under ``name``."""

    try:
        return _PRIORS[name]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown prior '{name}'") from exc


def available_priors() -> tuple[str, ...]:
    """Return the names of all registered priors."""

    return tuple(_PRIORS.keys())
