"""Shared constants, errors and series expansions for JAX Lie Math."""

from .constants import (
    MAX_BERNOULLI_TERMS,
    NEAR_PI_TOL,
    Q_SMALL_ANGLE_TOL,
    REPROJECTION_TOL,
    SMALL_ANGLE_TOL,
)
from .errors import DimensionError

__all__ = [
    "DimensionError",
    "MAX_BERNOULLI_TERMS",
    "NEAR_PI_TOL",
    "Q_SMALL_ANGLE_TOL",
    "REPROJECTION_TOL",
    "SMALL_ANGLE_TOL",
]
