"""Dyadic (left x right) latent-factor logistic model."""
from __future__ import annotations

import logging
from contextlib import nullcontext
from enum import Enum
from typing import ContextManager, Sequence, Tuple

import numpy as np
from numpy.random import Generator, default_rng

from .bias import BiasTransfer, get_bias_transfer
from .config import LearnerConfig
from .entity_model import EntityFactorModel
from .errors import DimensionMismatchError
from .learner import OnlineLogisticLearner, check_label, sigmoid, sigmoid_array
from .locks import RowLockTable
from .row_store import check_index

logger = logging.getLogger(__name__)


class TrainingPhase(Enum):
    IDLE = "idle"
    TRAIN_LEFT = "train_left"
    TRAIN_RIGHT = "train_right"
    TRANSFER_BIAS = "transfer_bias"


class DyadicCoordinator:
    """Couples a left and a right :class:`EntityFactorModel`.

    ``P(y = 1 | left, right) = sigmoid(left_row . right_row)``. Each training
    call updates the left row against the current right row, then the right
    row against the *updated* left row, then moves bias mass according to the
    configured transfer policy. Calls are all-or-nothing: if any stage fails
    both rows and both update counters are restored before the error
    propagates.
    """

    def __init__(
        self,
        num_factors: int,
        config: LearnerConfig | None = None,
        *,
        bias_transfer: str = "additive",
        rng: Generator | None = None,
        block_size: int = 64,
        locks: RowLockTable | None = None,
        learner_cls: type[OnlineLogisticLearner] = OnlineLogisticLearner,
    ) -> None:
        config = config or LearnerConfig()
        rng = rng if rng is not None else default_rng()
        policy = get_bias_transfer(bias_transfer)
        left = EntityFactorModel(
            num_factors, config, rng=rng, block_size=block_size, learner_cls=learner_cls
        )
        right = EntityFactorModel(
            num_factors,
            config,
            rng=rng,
            block_size=block_size,
            initial_bias=policy.neutral,
            learner_cls=learner_cls,
        )
        self._attach(left, right, policy, locks)

    @classmethod
    def from_models(
        cls,
        left: EntityFactorModel,
        right: EntityFactorModel,
        *,
        bias_transfer: str = "additive",
        locks: RowLockTable | None = None,
    ) -> "DyadicCoordinator":
        """Wrap two existing models; their rows must have the same width."""

        if left.width != right.width:
            raise DimensionMismatchError(
                f"Left rows have width {left.width} but right rows have width {right.width}"
            )
        if left is right:
            raise ValueError("Left and right models must be distinct objects")
        policy = get_bias_transfer(bias_transfer)
        if right.initial_bias is None:
            right.initial_bias = policy.neutral
        coordinator = cls.__new__(cls)
        coordinator._attach(left, right, policy, locks)
        return coordinator

    def _attach(
        self,
        left: EntityFactorModel,
        right: EntityFactorModel,
        bias_transfer: BiasTransfer,
        locks: RowLockTable | None,
    ) -> None:
        self.left = left
        self.right = right
        self.bias_transfer = bias_transfer
        self.locks = locks
        self.phase = TrainingPhase.IDLE

    @property
    def num_factors(self) -> int:
        return self.left.num_factors

    @property
    def config(self) -> LearnerConfig:
        return self.left.config

    def _hold(self, *entries: Tuple[str, int]) -> ContextManager[None]:
        if self.locks is None:
            return nullcontext()
        return self.locks.hold(*entries)

    def _side(self, side: str) -> EntityFactorModel:
        if side == "left":
            return self.left
        if side == "right":
            return self.right
        raise ValueError(f"Unknown side '{side}'; expected 'left' or 'right'")

    def train(self, left_id: int, right_id: int, actual: int) -> float:
        """Run one online update for the pair and return the prior prediction."""

        left_id = check_index(left_id, what="Left entity ID")
        right_id = check_index(right_id, what="Right entity ID")
        label = check_label(actual)
        with self._hold(("left", left_id), ("right", right_id)):
            return self._train_pair(left_id, right_id, label)

    def _train_pair(self, left_id: int, right_id: int, label: int) -> float:
        # snapshot before extending: a rollback returns fresh rows to Uninitialized
        left_snapshot = self.left.snapshot(left_id)
        right_snapshot = self.right.snapshot(right_id)
        try:
            self.left.extend(left_id)
            self.right.extend(right_id)
            self.phase = TrainingPhase.TRANSFER_BIAS
            self.bias_transfer.before_training(self.left, self.right, left_id, right_id)
            self.phase = TrainingPhase.TRAIN_LEFT
            prediction = self.left.train(left_id, label, self.right.weights(right_id))
            self.phase = TrainingPhase.TRAIN_RIGHT
            self.right.train(right_id, label, self.left.weights(left_id))
            self.phase = TrainingPhase.TRANSFER_BIAS
            self.bias_transfer.after_training(self.left, self.right, left_id, right_id)
        except Exception as exc:
            failed_phase = self.phase
            self.left.restore(left_snapshot)
            self.right.restore(right_snapshot)
            logger.warning(
                "Rolled back update for pair (%d, %d) during %s: %s",
                left_id,
                right_id,
                failed_phase.value,
                exc,
            )
            raise
        finally:
            self.phase = TrainingPhase.IDLE
        return prediction

    def classify_scalar(self, left_id: int, right_id: int) -> float:
        """Probability that ``(left_id, right_id)`` has label 1."""

        left_id = check_index(left_id, what="Left entity ID")
        right_id = check_index(right_id, what="Right entity ID")
        with self._hold(("left", left_id), ("right", right_id)):
            left_row = self.left.weights(left_id)
            right_row = self.right.weights(right_id)
            return sigmoid(float(left_row @ right_row))

    def classify(self, left_ids: Sequence[int], right_ids: Sequence[int]) -> np.ndarray:
        """Vectorized :meth:`classify_scalar` over aligned ID sequences."""

        left_ids = [check_index(idx, what="Left entity ID") for idx in left_ids]
        right_ids = [check_index(idx, what="Right entity ID") for idx in right_ids]
        if len(left_ids) != len(right_ids):
            raise DimensionMismatchError(
                f"Got {len(left_ids)} left IDs but {len(right_ids)} right IDs"
            )
        entries = [("left", idx) for idx in left_ids] + [("right", idx) for idx in right_ids]
        with self._hold(*entries):
            left_rows = self._take_rows(self.left, left_ids)
            right_rows = self._take_rows(self.right, right_ids)
        return sigmoid_array(np.einsum("ij,ij->i", left_rows, right_rows))

    def rows(self, side: str, ids: Sequence[int]) -> np.ndarray:
        """Dense copy of the ``side`` rows for ``ids``, read under the row locks."""

        model = self._side(side)
        ids = [check_index(idx, what="Entity ID") for idx in ids]
        with self._hold(*[(side, idx) for idx in ids]):
            return self._take_rows(model, ids)

    @staticmethod
    def _take_rows(model: EntityFactorModel, ids: Sequence[int]) -> np.ndarray:
        for idx in ids:
            model.extend(idx)
        return model.store.take_rows(ids)

    def configure(self, config: LearnerConfig) -> "DyadicCoordinator":
        self.left.configure(config)
        self.right.configure(config)
        return self

    def learning_rate(self, mu0: float) -> "DyadicCoordinator":
        return self.configure(self.config.with_learning_rate(mu0))

    def lambda_(self, value: float) -> "DyadicCoordinator":
        return self.configure(self.config.with_lambda(value))

    def get_lambda(self) -> float:
        return self.left.get_lambda()
