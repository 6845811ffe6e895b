"""Epoch-level training loop for :class:`DyadicCoordinator`."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from numpy.random import Generator, default_rng

from .coordinator import DyadicCoordinator
from .evaluation import DyadicEvent, EvaluationMetrics, RunningStats, evaluate, log_likelihood


@dataclass(frozen=True)
class EpochMetrics:
    """Aggregated metrics for one training pass.

    ``loss`` and ``error`` are computed from the predictions each pair received
    just before its update, i.e. progressive validation.
    """

    epoch: int
    loss: float
    loss_std: float
    error: float
    samples: int
    elapsed: float


@dataclass
class MetricLog:
    """Per-epoch history collected by :meth:`DyadicTrainer.fit`."""

    epochs: List[int] = field(default_factory=list)
    train_losses: List[float] = field(default_factory=list)
    evaluations: List[Optional[EvaluationMetrics]] = field(default_factory=list)

    def append(self, epoch: int, loss: float, evaluation: EvaluationMetrics | None) -> None:
        self.epochs.append(epoch)
        self.train_losses.append(loss)
        self.evaluations.append(evaluation)


class DyadicTrainer:
    """Streams events through a coordinator epoch by epoch."""

    def __init__(
        self,
        coordinator: DyadicCoordinator,
        *,
        rng: Generator | None = None,
        log_interval_seconds: float = 10.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.coordinator = coordinator
        if log_interval_seconds <= 0:
            raise ValueError("log_interval_seconds must be positive")
        self._log_interval_seconds = float(log_interval_seconds)
        self._logger = logger or logging.getLogger("train_dyadic")
        self._rng = rng if rng is not None else default_rng()
        self.metric_log = MetricLog()
        self._epochs = 0
        self._steps = 0

    @property
    def steps(self) -> int:
        return self._steps

    def train_epoch(self, events: Sequence[DyadicEvent], shuffle: bool = True) -> EpochMetrics:
        if len(events) == 0:
            raise ValueError("No events supplied for training")
        order = self._rng.permutation(len(events)) if shuffle else range(len(events))
        loss = RunningStats()
        error = RunningStats()
        start_time = time.perf_counter()
        next_log_time = start_time + self._log_interval_seconds
        for position, idx in enumerate(order, start=1):
            event = events[int(idx)]
            prediction = self.coordinator.train(event.left, event.right, event.label)
            loss.push(-log_likelihood(event.label, prediction))
            error.push(abs(event.label - prediction))
            self._steps += 1
            now = time.perf_counter()
            if now >= next_log_time:
                self._log_progress(position, len(events), loss, error, start_time)
                next_log_time = now + self._log_interval_seconds
        self._epochs += 1
        metrics = EpochMetrics(
            epoch=self._epochs,
            loss=loss.mean,
            loss_std=loss.std(),
            error=error.mean,
            samples=loss.count,
            elapsed=time.perf_counter() - start_time,
        )
        self._logger.info(
            "Epoch %d | samples=%d loss=%.4f±%.4f error=%.4f time=%.2fs",
            metrics.epoch,
            metrics.samples,
            metrics.loss,
            metrics.loss_std,
            metrics.error,
            metrics.elapsed,
        )
        return metrics

    def evaluate(self, events: Sequence[DyadicEvent]) -> EvaluationMetrics:
        metrics = evaluate(self.coordinator, events)
        if metrics.bayes_error is not None:
            self._logger.info(
                "Evaluation | samples=%d error=%.4f (bayes %.4f) ll=%.4f (bayes %.4f)",
                metrics.samples,
                metrics.error,
                metrics.bayes_error,
                metrics.log_likelihood,
                metrics.bayes_log_likelihood,
            )
        else:
            self._logger.info(
                "Evaluation | samples=%d error=%.4f ll=%.4f",
                metrics.samples,
                metrics.error,
                metrics.log_likelihood,
            )
        return metrics

    def fit(
        self,
        train_events: Sequence[DyadicEvent],
        test_events: Sequence[DyadicEvent] | None = None,
        epochs: int = 1,
    ) -> MetricLog:
        if epochs <= 0:
            raise ValueError("epochs must be positive")
        for _ in range(epochs):
            epoch_metrics = self.train_epoch(train_events)
            evaluation = (
                self.evaluate(test_events)
                if test_events is not None and len(test_events)
                else None
            )
            self.metric_log.append(epoch_metrics.epoch, epoch_metrics.loss, evaluation)
        return self.metric_log

    def _log_progress(
        self,
        processed: int,
        total: int,
        loss: RunningStats,
        error: RunningStats,
        start_time: float,
    ) -> None:
        elapsed = time.perf_counter() - start_time
        rate = processed / elapsed if elapsed > 0 else float("inf")
        self._logger.info(
            "Training progress | samples=%d/%d loss=%.4f error=%.4f rate=%.1f samples/s",
            processed,
            total,
            loss.mean,
            error.mean,
            rate,
        )
