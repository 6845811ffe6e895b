"""Learner configuration shared by both sides of a dyadic model."""
from __future__ import annotations

import math
from dataclasses import dataclass, replace

from .errors import ConfigurationError
from .priors import available_priors
from .schedules import available_schedules


@dataclass(frozen=True)
class LearnerConfig:
    """Hyper-parameters for one :class:`~dyadfactor.entity_model.EntityFactorModel`.

    Parameters
    ----------
    mu0:
        Base learning rate fed to the annealing schedule. Must be positive.
    lambda_:
        Regularization strength. Must be non-negative.
    prior:
        Name of the regularization prior (``"l1"`` or ``"l2"``).
    schedule:
        Name of the per-row annealing schedule (``"inverse"`` or
        ``"inverse_sqrt"``).
    init_scale:
        Standard deviation of the Gaussian noise used to initialize new rows.
    """

    mu0: float = 1.0
    lambda_: float = 1e-5
    prior: str = "l1"
    schedule: str = "inverse"
    init_scale: float = 0.1

    def __post_init__(self) -> None:
        mu0 = float(self.mu0)
        if not math.isfinite(mu0) or mu0 <= 0.0:
            raise ConfigurationError(f"learning rate must be positive, got {self.mu0!r}")
        lam = float(self.lambda_)
        if not math.isfinite(lam) or lam < 0.0:
            raise ConfigurationError(f"lambda must be non-negative, got {self.lambda_!r}")
        if self.prior not in available_priors():
            raise ConfigurationError(f"Unknown prior '{self.prior}'")
        if self.schedule not in available_schedules():
            raise ConfigurationError(f"Unknown learning rate schedule '{self.schedule}'")
        init_scale = float(self.init_scale)
        if not math.isfinite(init_scale) or init_scale < 0.0:
            raise ConfigurationError("init_scale must be non-negative")
        object.__setattr__(self, "mu0", mu0)
        object.__setattr__(self, "lambda_", lam)
        object.__setattr__(self, "init_scale", init_scale)

    def with_learning_rate(self, mu0: float) -> "LearnerConfig":
        return replace(self, mu0=mu0)

    def with_lambda(self, value: float) -> "LearnerConfig":
        return replace(self, lambda_=value)
