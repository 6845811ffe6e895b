"""Exception types raised by the dyadic factor learner."""
from __future__ import annotations


class InvalidIndexError(IndexError):
    """Raised for negative or non-integer entity IDs and out-of-range columns."""


class DimensionMismatchError(InvalidIndexError, ValueError):
    """Raised when a feature or weight vector has the wrong width."""


class InvalidLabelError(ValueError):
    """Raised when a training label is outside ``{0, 1}``."""


class DegenerateValueError(ArithmeticError):
    """Raised when an update would write a NaN or infinite weight."""


class DegenerateBiasError(DegenerateValueError):
    """Raised when a bias adjustment would produce a NaN or infinite bias."""


class ConfigurationError(ValueError):
    """Raised for invalid learning rates, regularization strengths or names."""
