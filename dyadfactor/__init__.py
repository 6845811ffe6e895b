"""Online latent-factor logistic models for dyadic data."""

from __future__ import annotations

from .bias import available_bias_transfers, get_bias_transfer
from .config import LearnerConfig
from .coordinator import DyadicCoordinator, TrainingPhase
from .entity_model import EntityFactorModel, Initialized, RowState, Uninitialized
from .errors import (
    ConfigurationError,
    DegenerateBiasError,
    DegenerateValueError,
    DimensionMismatchError,
    InvalidIndexError,
    InvalidLabelError,
)
from .evaluation import DyadicEvent, EvaluationMetrics, evaluate, make_synthetic_events, split_events
from .learner import OnlineLogisticLearner
from .locks import RowLockTable
from .ranking import FactorIndex, top_right_for_left
from .row_store import BlockColumn, GrowableRowStore
from .trainer import DyadicTrainer, EpochMetrics, MetricLog

__all__ = [
    "BlockColumn",
    "ConfigurationError",
    "DegenerateBiasError",
    "DegenerateValueError",
    "DimensionMismatchError",
    "DyadicCoordinator",
    "DyadicEvent",
    "DyadicTrainer",
    "EntityFactorModel",
    "EpochMetrics",
    "EvaluationMetrics",
    "FactorIndex",
    "GrowableRowStore",
    "Initialized",
    "InvalidIndexError",
    "InvalidLabelError",
    "LearnerConfig",
    "MetricLog",
    "OnlineLogisticLearner",
    "RowLockTable",
    "RowState",
    "TrainingPhase",
    "Uninitialized",
    "available_bias_transfers",
    "evaluate",
    "get_bias_transfer",
    "make_synthetic_events",
    "split_events",
    "top_right_for_left",
]
