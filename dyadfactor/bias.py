"""Policies that move bias mass between the two sides of a dyadic model.

Both sides carry a bias column, which leaves the pair with one redundant
degree of freedom. A transfer policy chases the intercept into the left side
so the two biases do not drift against each other.
"""
from __future__ import annotations

import math
from typing import Dict, Protocol

from .entity_model import EntityFactorModel
from .errors import ConfigurationError, DegenerateBiasError


class BiasTransfer(Protocol):
    """Protocol implemented by bias transfer policies.

    ``neutral`` is the value a right-side bias is reset to after a transfer;
    new right rows start there too.
    """

    name: str
    neutral: float | None

    def before_training(
        self, left: EntityFactorModel, right: EntityFactorModel, left_id: int, right_id: int
    ) -> None:
        """Hook run before the left and right gradient steps."""

    def after_training(
        self, left: EntityFactorModel, right: EntityFactorModel, left_id: int, right_id: int
    ) -> None:
        """Hook run after both gradient steps have completed."""


class _AdditiveTransfer:
    """``left += right`` after training, then reset the right bias to 0."""

    name = "additive"
    neutral = 0.0

    def before_training(self, left, right, left_id, right_id) -> None:
        return None

    def after_training(self, left, right, left_id, right_id) -> None:
        left_bias = left.get_bias(left_id)
        right_bias = right.get_bias(right_id)
        combined = left_bias + right_bias
        if not math.isfinite(combined):
            raise DegenerateBiasError(
                f"Bias transfer {left_bias} + {right_bias} is not finite (left={left_id})"
            )
        left.set_bias(left_id, combined)
        right.set_bias(right_id, self.neutral)


class _MultiplicativeTransfer:
    """``left *= right`` before training, then reset the right bias to 1."""

    name = "multiplicative"
    neutral = 1.0

    def before_training(self, left, right, left_id, right_id) -> None:
        left_bias = left.get_bias(left_id)
        right_bias = right.get_bias(right_id)
        combined = left_bias * right_bias
        if not math.isfinite(combined):
            raise DegenerateBiasError(
                f"Bias transfer {left_bias} * {right_bias} is not finite (left={left_id})"
            )
        left.set_bias(left_id, combined)
        right.set_bias(right_id, self.neutral)

    def after_training(self, left, right, left_id, right_id) -> None:
        return None


class _NoTransfer:
    name = "none"
    neutral = None

    def before_training(self, left, right, left_id, right_id) -> None:
        return None

    def after_training(self, left, right, left_id, right_id) -> None:
        return None


_POLICIES: Dict[str, BiasTransfer] = {
    policy.name: policy
    for policy in (_AdditiveTransfer(), _MultiplicativeTransfer(), _NoTransfer())
}


def get_bias_transfer(name: str) -> BiasTransfer:
    """Return the bias transfer policy registered under ``name``."""

    try:
        return _POLICIES[name]
    except KeyError as exc:
        raise ConfigurationError(f"Unknown bias transfer policy '{name}'") from exc


def available_bias_transfers() -> tuple[str, ...]:
    """Return the names of all registered bias transfer policies."""

    return tuple(_POLICIES.keys())
