"""Synthetic dyadic data and evaluation against the Bayes reference."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from numpy.random import Generator, default_rng

from .coordinator import DyadicCoordinator
from .learner import sigmoid_array


@dataclass(frozen=True)
class DyadicEvent:
    """One observed ``(left, right, label)`` triple.

    ``probability`` carries the generating probability when the event comes
    from :func:`make_synthetic_events` and is ``None`` for real data.
    """

    left: int
    right: int
    label: int
    probability: Optional[float] = None


@dataclass
class RunningStats:
    """Streaming mean and sample variance of per-event scores (Welford)."""

    count: int = 0
    mean: float = 0.0
    sum_sq_dev: float = 0.0

    def push(self, value: float) -> None:
        self.count += 1
        shift = value - self.mean
        self.mean += shift / self.count
        self.sum_sq_dev += shift * (value - self.mean)

    def extend(self, values: Iterable[float]) -> None:
        for value in values:
            self.push(float(value))

    @property
    def variance(self) -> float:
        return self.sum_sq_dev / (self.count - 1) if self.count > 1 else 0.0

    def std(self) -> float:
        return math.sqrt(self.variance)


@dataclass(frozen=True)
class EvaluationMetrics:
    """Mean error and log-likelihood of a model on a set of events.

    The ``bayes_*`` fields score the generating probabilities themselves and
    are ``None`` when the events carry no probability.
    """

    samples: int
    error: float
    log_likelihood: float
    bayes_error: Optional[float] = None
    bayes_log_likelihood: Optional[float] = None


def make_synthetic_events(
    n_left: int,
    n_right: int,
    num_factors: int,
    rng: Generator | None = None,
    spread: float = 3.0,
) -> List[DyadicEvent]:
    """Draw one labelled event for every ``(left, right)`` pair.

    Left and right factors are uniform in ``[-spread, spread]``; column 0 of
    the right factors is pinned to 1 so the left side carries an intercept.
    """

    if n_left <= 0 or n_right <= 0 or num_factors <= 0:
        raise ValueError("n_left, n_right and num_factors must be positive")
    if rng is None:
        rng = default_rng()
    alpha = rng.uniform(-spread, spread, size=(n_left, num_factors))
    beta = rng.uniform(-spread, spread, size=(n_right, num_factors))
    beta[:, 0] = 1.0
    probs = sigmoid_array(alpha @ beta.T)
    labels = (rng.random(size=probs.shape) < probs).astype(np.int64)
    events: List[DyadicEvent] = []
    for left in range(n_left):
        for right in range(n_right):
            events.append(
                DyadicEvent(
                    left=left,
                    right=right,
                    label=int(labels[left, right]),
                    probability=float(probs[left, right]),
                )
            )
    return events


def split_events(
    events: Sequence[DyadicEvent],
    retention: float,
    rng: Generator | None = None,
) -> Tuple[List[DyadicEvent], List[DyadicEvent]]:
    """Shuffle ``events`` and keep a ``retention`` fraction for training."""

    if not 0.0 < retention < 1.0:
        raise ValueError("retention must be in (0, 1)")
    if rng is None:
        rng = default_rng()
    order = rng.permutation(len(events))
    shuffled = [events[int(idx)] for idx in order]
    cut = int(math.floor(len(shuffled) * retention))
    return shuffled[:cut], shuffled[cut:]


def log_likelihood(label: int, probability: float, eps: float = 1e-12) -> float:
    p = min(max(float(probability), eps), 1.0 - eps)
    return label * math.log(p) + (1 - label) * math.log(1.0 - p)


def evaluate(
    coordinator: DyadicCoordinator,
    events: Sequence[DyadicEvent],
    eps: float = 1e-12,
) -> EvaluationMetrics:
    """Score ``coordinator`` on ``events`` without training it."""

    if len(events) == 0:
        raise ValueError("No events supplied for evaluation")
    phat = coordinator.classify(
        [event.left for event in events], [event.right for event in events]
    )
    error = RunningStats()
    actual_ll = RunningStats()
    bayes_error = RunningStats()
    bayes_ll = RunningStats()
    for event, p in zip(events, phat):
        error.push(abs(event.label - float(p)))
        actual_ll.push(log_likelihood(event.label, float(p), eps))
        if event.probability is not None:
            bayes_error.push(min(event.probability, 1.0 - event.probability))
            bayes_ll.push(log_likelihood(event.label, event.probability, eps))
    has_reference = bayes_error.count == len(events)
    return EvaluationMetrics(
        samples=len(events),
        error=error.mean,
        log_likelihood=actual_ll.mean,
        bayes_error=bayes_error.mean if has_reference else None,
        bayes_log_likelihood=bayes_ll.mean if has_reference else None,
    )
