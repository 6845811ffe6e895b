"""Per-entity factor rows trained by an online logistic learner."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

import numpy as np
from numpy.random import Generator, default_rng

from .config import LearnerConfig
from .errors import ConfigurationError, DegenerateBiasError, DimensionMismatchError
from .learner import OnlineLogisticLearner, check_label
from .row_store import GrowableRowStore, check_index
from .schedules import get_schedule

BIAS_COLUMN = 0


@dataclass(frozen=True)
class Uninitialized:
    """Row has never been randomized (it may still exist as zeros in storage)."""


@dataclass(frozen=True)
class Initialized:
    """Row has been randomized and trained ``count`` times since."""

    count: int


RowState = Union[Uninitialized, Initialized]


@dataclass(frozen=True)
class RowSnapshot:
    """Copy of one row and its state, used to undo a failed training call."""

    entity_id: int
    weights: np.ndarray
    state: RowState


class EntityFactorModel:
    """Factor vector, bias and update counter for every entity ID of one side.

    Each row has ``num_factors + 1`` columns; column 0 doubles as the entity's
    bias term and takes part in the dot product like any other factor. New
    rows are filled with Gaussian noise; when ``initial_bias`` is set the bias
    column starts at that value instead. A fresh ``learner_cls`` is bound to
    the row on every training call; subclasses may override
    :meth:`~dyadfactor.learner.OnlineLogisticLearner.per_term_learning_rate`.
    """

    def __init__(
        self,
        num_factors: int,
        config: LearnerConfig | None = None,
        rng: Generator | None = None,
        block_size: int = 64,
        dtype: np.dtype = np.float64,
        initial_bias: float | None = None,
        learner_cls: type[OnlineLogisticLearner] = OnlineLogisticLearner,
    ) -> None:
        if int(num_factors) <= 0:
            raise ConfigurationError("num_factors must be positive")
        self.num_factors = int(num_factors)
        self.width = self.num_factors + 1
        self.config = config or LearnerConfig()
        self.rng = rng if rng is not None else default_rng()
        self.initial_bias = initial_bias
        self.learner_cls = learner_cls
        self._weights = GrowableRowStore(self.width, block_size=block_size, dtype=dtype)
        # column 0 flags initialized rows, column 1 counts their updates
        self._state = GrowableRowStore(2, block_size=block_size, dtype=np.int64)

    @property
    def store(self) -> GrowableRowStore:
        return self._weights

    @property
    def num_rows(self) -> int:
        return self._weights.num_rows

    def _extend(self, entity_id: object) -> int:
        entity_id = check_index(entity_id, what="Entity ID")
        row = self._weights.get_row(entity_id)
        state = self._state.get_row(entity_id)
        if not state[0]:
            row[:] = self.rng.normal(scale=self.config.init_scale, size=self.width)
            if self.initial_bias is not None:
                row[BIAS_COLUMN] = self.initial_bias
            state[:] = (1, 0)
        return entity_id

    def extend(self, entity_id: int) -> None:
        """Make ``entity_id`` addressable and randomize it on first touch."""

        self._extend(entity_id)

    def row_state(self, entity_id: int) -> RowState:
        entity_id = check_index(entity_id, what="Entity ID")
        if entity_id >= self._state.num_rows:
            return Uninitialized()
        flag, count = self._state.get_row(entity_id)
        return Initialized(int(count)) if flag else Uninitialized()

    def update_count(self, entity_id: int) -> int:
        state = self.row_state(entity_id)
        return state.count if isinstance(state, Initialized) else 0

    def current_learning_rate(self, entity_id: int) -> float:
        """Rate used by the latest step on ``entity_id`` (``mu0`` before any)."""

        schedule = get_schedule(self.config.schedule)
        return schedule(self.config.mu0, self.update_count(entity_id))

    def initialized_ids(self) -> np.ndarray:
        return np.flatnonzero(self._state.to_array()[:, 0]).astype(np.int64)

    def weights(self, entity_id: int) -> np.ndarray:
        """Live view of the row for ``entity_id``."""

        entity_id = self._extend(entity_id)
        return self._weights.get_row(entity_id)

    def train(self, entity_id: int, actual: int, features: np.ndarray) -> float:
        """Run one learner step on the row of ``entity_id``.

        Returns the prediction made before the update.
        """

        check_index(entity_id, what="Entity ID")
        label = check_label(actual, OnlineLogisticLearner.num_categories)
        arr = np.asarray(features, dtype=np.float64)
        if arr.shape != (self.width,):
            raise DimensionMismatchError(
                f"Feature vector of shape {arr.shape} does not match row width {self.width}"
            )
        entity_id = self._extend(entity_id)
        state = self._state.get_row(entity_id)
        previous = int(state[1])
        state[1] = previous + 1
        learner = self.learner_cls(self.width, self.config)
        learner.bind(self._weights.get_row(entity_id), previous + 1)
        try:
            return learner.train(label, arr)
        except Exception:
            state[1] = previous
            raise

    def get_bias(self, entity_id: int) -> float:
        entity_id = self._extend(entity_id)
        return self._weights.get_quick(entity_id, BIAS_COLUMN)

    def set_bias(self, entity_id: int, value: float) -> None:
        value = float(value)
        if not math.isfinite(value):
            raise DegenerateBiasError(f"Refusing to set bias of entity {entity_id} to {value}")
        entity_id = self._extend(entity_id)
        self._weights.set_quick(entity_id, BIAS_COLUMN, value)

    def adjust_bias(self, entity_id: int, delta: float) -> None:
        current = self.get_bias(entity_id)
        updated = current + float(delta)
        if not math.isfinite(updated):
            raise DegenerateBiasError(
                f"Bias of entity {entity_id} would become {updated} ({current} + {delta})"
            )
        self.set_bias(entity_id, updated)

    def scale_bias(self, entity_id: int, factor: float) -> None:
        current = self.get_bias(entity_id)
        updated = current * float(factor)
        if not math.isfinite(updated):
            raise DegenerateBiasError(
                f"Bias of entity {entity_id} would become {updated} ({current} * {factor})"
            )
        self.set_bias(entity_id, updated)

    def configure(self, config: LearnerConfig) -> "EntityFactorModel":
        self.config = config
        return self

    def learning_rate(self, mu0: float) -> "EntityFactorModel":
        return self.configure(self.config.with_learning_rate(mu0))

    def lambda_(self, value: float) -> "EntityFactorModel":
        return self.configure(self.config.with_lambda(value))

    def get_lambda(self) -> float:
        return self.config.lambda_

    def snapshot(self, entity_id: int) -> RowSnapshot:
        entity_id = check_index(entity_id, what="Entity ID")
        return RowSnapshot(
            entity_id=entity_id,
            weights=self._weights.get_row(entity_id).copy(),
            state=self.row_state(entity_id),
        )

    def restore(self, snapshot: RowSnapshot) -> None:
        entity_id = snapshot.entity_id
        self._weights.assign_row(entity_id, snapshot.weights)
        state = self._state.get_row(entity_id)
        if isinstance(snapshot.state, Initialized):
            state[:] = (1, snapshot.state.count)
        else:
            state[:] = (0, 0)
