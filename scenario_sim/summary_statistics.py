"""Descriptive statistics for Monte Carlo outcome vectors.

Percentiles use the nearest-rank rule on the sorted sample
(``sorted[ceil(p / 100 * n) - 1]``), so every reported percentile is an
observed outcome. Variance uses the ``n - 1`` denominator; skewness and
kurtosis are the bias-corrected sample estimators (kurtosis is excess).
"""

from dataclasses import asdict, dataclass, field
import logging
import math
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from .config.constants import CONFIDENCE_LEVELS

logger = logging.getLogger(__name__)

REPORTED_PERCENTILES: tuple[int, ...] = (5, 10, 25, 75, 90, 95)


@dataclass
class SimulationStatistics:
    """Summary statistics of a set of terminal outcomes."""

    mean: float
    median: float
    std_dev: float
    variance: float
    minimum: float
    maximum: float
    skewness: float
    kurtosis: float
    percentiles: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    def to_series(self) -> pd.Series:
        """Flatten into a Series, percentiles keyed ``p5``, ``p10``, ..."""
        data: Dict[str, float] = {
            k: v for k, v in asdict(self).items() if k != "percentiles"
        }
        data.update(self.percentiles)
        return pd.Series(data, name="value")


@dataclass
class ConfidenceInterval:
    """Empirical central interval at a confidence level (percent)."""

    level: int
    lower: float
    upper: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def percentile(sorted_values: np.ndarray, p: float) -> float:
    """Nearest-rank percentile of an ascending array.

    Args:
        sorted_values: Non-empty ascending array.
        p: Percentile in [0, 100].

    Returns:
        ``sorted_values[ceil(p / 100 * n) - 1]`` with the index clamped
        into range.
    """
    n = len(sorted_values)
    index = math.ceil(p / 100.0 * n) - 1
    index = min(n - 1, max(0, index))
    return float(sorted_values[index])


def sample_skewness(values: np.ndarray, mean: float, std_dev: float) -> float:
    """Bias-corrected sample skewness; 0.0 when undefined."""
    n = len(values)
    if n < 3 or std_dev == 0:
        return 0.0
    z = (values - mean) / std_dev
    return float(n / ((n - 1) * (n - 2)) * np.sum(z**3))


def sample_excess_kurtosis(values: np.ndarray, mean: float, std_dev: float) -> float:
    """Bias-corrected sample excess kurtosis; 0.0 when undefined."""
    n = len(values)
    if n < 4 or std_dev == 0:
        return 0.0
    z = (values - mean) / std_dev
    term = n * (n + 1) / ((n - 1) * (n - 2) * (n - 3)) * np.sum(z**4)
    correction = 3 * (n - 1) ** 2 / ((n - 2) * (n - 3))
    return float(term - correction)


def calculate_statistics(outcomes: Sequence[float]) -> SimulationStatistics:
    """Compute summary statistics for an outcome vector.

    Args:
        outcomes: Terminal values, at least one.

    Returns:
        Populated :class:`SimulationStatistics`.

    Raises:
        ValueError: If ``outcomes`` is empty.
    """
    values = np.asarray(outcomes, dtype=np.float64)
    n = len(values)
    if n == 0:
        raise ValueError("Cannot compute statistics of an empty outcome set")

    sorted_values = np.sort(values)
    mean = float(np.mean(values))
    variance = float(np.sum((values - mean) ** 2) / (n - 1)) if n > 1 else 0.0
    std_dev = math.sqrt(variance)

    return SimulationStatistics(
        mean=mean,
        median=percentile(sorted_values, 50),
        std_dev=std_dev,
        variance=variance,
        minimum=float(sorted_values[0]),
        maximum=float(sorted_values[-1]),
        skewness=sample_skewness(values, mean, std_dev),
        kurtosis=sample_excess_kurtosis(values, mean, std_dev),
        percentiles={f"p{p}": percentile(sorted_values, p) for p in REPORTED_PERCENTILES},
    )


def calculate_confidence_intervals(
    outcomes: Sequence[float], levels: Sequence[int] = CONFIDENCE_LEVELS
) -> List[ConfidenceInterval]:
    """Empirical central intervals of the outcome distribution.

    For level ``L`` with ``alpha = (100 - L) / 100`` the bounds are
    ``sorted[floor(alpha / 2 * n)]`` and ``sorted[floor((1 - alpha / 2) * n) - 1]``.
    The upper index never falls below the lower one, so ``lower <= upper``
    holds even for tiny samples.
    """
    sorted_values = np.sort(np.asarray(outcomes, dtype=np.float64))
    n = len(sorted_values)
    intervals = []
    for level in levels:
        alpha = (100 - level) / 100.0
        lower_index = min(n - 1, int(math.floor(alpha / 2 * n)))
        upper_index = min(n - 1, int(math.floor((1 - alpha / 2) * n)) - 1)
        upper_index = max(lower_index, upper_index)
        intervals.append(
            ConfidenceInterval(
                level=level,
                lower=float(sorted_values[lower_index]),
                upper=float(sorted_values[upper_index]),
            )
        )
    return intervals


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation of two equal-length vectors.

    Returns 0.0 when either vector has zero variance.

    Raises:
        ValueError: If the vectors differ in length.
    """
    a = np.asarray(x, dtype=np.float64)
    b = np.asarray(y, dtype=np.float64)
    if len(a) != len(b):
        raise ValueError(f"Vectors differ in length: {len(a)} vs {len(b)}")
    da = a - a.mean()
    db = b - b.mean()
    denominator = math.sqrt(float(np.sum(da**2)) * float(np.sum(db**2)))
    if denominator == 0:
        return 0.0
    return float(np.clip(np.sum(da * db) / denominator, -1.0, 1.0))


def correlation_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """Symmetric Pearson correlation matrix with a unit diagonal."""
    k = len(vectors)
    matrix = np.eye(k)
    for i in range(k):
        for j in range(i + 1, k):
            matrix[i, j] = matrix[j, i] = pearson_correlation(vectors[i], vectors[j])
    return matrix
