"""Online logistic regression step against a single bound weight row."""
from __future__ import annotations

import math

import numpy as np

from .config import LearnerConfig
from .errors import DegenerateValueError, DimensionMismatchError, InvalidLabelError
from .priors import get_prior
from .schedules import get_schedule


def sigmoid(value: float) -> float:
    """Numerically stable logistic link."""

    if value >= 0.0:
        return 1.0 / (1.0 + math.exp(-value))
    z = math.exp(value)
    return z / (1.0 + z)


def check_label(actual: object, num_categories: int = 2) -> int:
    if isinstance(actual, (bool, np.bool_)) or not isinstance(actual, (int, np.integer)):
        raise InvalidLabelError(f"Label must be an integer, got {actual!r}")
    label = int(actual)
    if not 0 <= label < num_categories:
        raise InvalidLabelError(f"Label {label} not in [0, {num_categories})")
    return label


class OnlineLogisticLearner:
    """Binary logistic regression trained one example at a time.

    The learner owns no weights of its own. :meth:`bind` points it at a row
    view (usually one row of a :class:`~dyadfactor.row_store.GrowableRowStore`)
    together with that row's update counter; :meth:`train` then performs the
    gradient step and the regularization pass in place on that row.
    """

    num_categories = 2

    def __init__(self, num_features: int, config: LearnerConfig | None = None) -> None:
        self.num_features = int(num_features)
        self.beta: np.ndarray = np.zeros(self.num_features, dtype=np.float64)
        self.update_count = 0
        self.configure(config or LearnerConfig())

    def configure(self, config: LearnerConfig) -> None:
        self.config = config
        self._prior = get_prior(config.prior)
        self._schedule = get_schedule(config.schedule)

    def bind(self, row: np.ndarray, update_count: int) -> None:
        if row.shape != (self.num_features,):
            raise DimensionMismatchError(
                f"Row of shape {row.shape} does not match {self.num_features} features"
            )
        self.beta = row
        self.update_count = int(update_count)

    def current_learning_rate(self) -> float:
        return self._schedule(self.config.mu0, self.update_count)

    def per_term_learning_rate(self, j: int) -> float:
        return 1.0

    def _per_term_rates(self) -> np.ndarray:
        return np.array(
            [self.per_term_learning_rate(j) for j in range(self.num_features)],
            dtype=np.float64,
        )

    def _check_features(self, features: np.ndarray) -> np.ndarray:
        arr = np.asarray(features, dtype=np.float64)
        if arr.shape != (self.num_features,):
            raise DimensionMismatchError(
                f"Feature vector of shape {arr.shape} does not match {self.num_features} features"
            )
        return arr

    def classify_scalar(self, features: np.ndarray) -> float:
        arr = self._check_features(features)
        return sigmoid(float(self.beta @ arr))

    def train(self, actual: int, features: np.ndarray) -> float:
        """Apply one gradient step and regularize the bound row.

        Returns the prediction made before the update. The bound row is left
        untouched when validation fails or the step would produce a
        non-finite weight.
        """

        label = check_label(actual, self.num_categories)
        arr = self._check_features(features)
        prediction = sigmoid(float(self.beta @ arr))
        rate = self.current_learning_rate()
        step = rate * self._per_term_rates() * (label - prediction) * arr
        updated = self.beta + step
        if not np.all(np.isfinite(updated)):
            raise DegenerateValueError("Gradient step produced a non-finite weight")
        self.beta[:] = updated
        self.regularize()
        return prediction

    def regularize(self) -> None:
        self._prior.regularize(self.beta, self.config.lambda_ * self.current_learning_rate())


def sigmoid_array(values: np.ndarray) -> np.ndarray:
    """Vectorized logistic link, stable for large magnitudes."""

    return 0.5 * (1.0 + np.tanh(0.5 * np.asarray(values, dtype=np.float64)))
