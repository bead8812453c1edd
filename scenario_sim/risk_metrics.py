"""Risk metrics derived from Monte Carlo outcome distributions.

All return-based metrics work on simple total returns over the horizon,
``(outcome - initial) / initial``. The risk-free rate is taken as zero.

Max drawdown scans the outcome vector in iteration order. Trials are
independent, so this is a cross-sectional dispersion measure of how far
outcomes fall below the best outcome seen so far, not a path drawdown.
"""

from dataclasses import asdict, dataclass
import logging
import math
from typing import Dict, Sequence
import warnings

import numpy as np

from ._warnings import DataQualityWarning
from .config.constants import MAX_SORTINO, VAR_TAIL_PROBABILITY

logger = logging.getLogger(__name__)


@dataclass
class RiskMetricsResult:
    """Risk profile of one scenario's outcome distribution.

    Attributes:
        value_at_risk: 5th-percentile total return.
        conditional_var: Mean total return at or below the VaR cutoff.
        max_drawdown: Cross-sectional drawdown over outcomes in iteration order.
        sharpe_ratio: Mean return over volatility.
        sortino_ratio: Mean return over downside deviation, capped at ``MAX_SORTINO``.
        volatility: Outcome standard deviation relative to the initial value.
    """

    value_at_risk: float
    conditional_var: float
    max_drawdown: float
    sharpe_ratio: float
    sortino_ratio: float
    volatility: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class StressTestResults:
    """Extremes and loss probability of an outcome distribution."""

    worst_case: float
    best_case: float
    median_case: float
    probability_of_loss: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class BaselineComparison:
    """Scenario outcomes relative to the baseline scenario's outcomes.

    Attributes:
        return_difference: Relative difference of mean outcomes.
        risk_difference: Relative difference of outcome standard deviations.
        probability_outperformance: Share of index-paired trials where the
            scenario beats the baseline, ties counting one half.
    """

    return_difference: float
    risk_difference: float
    probability_outperformance: float

    @classmethod
    def for_baseline(cls) -> "BaselineComparison":
        """Comparison reported for the baseline scenario itself."""
        return cls(return_difference=0.0, risk_difference=0.0, probability_outperformance=0.5)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def safe_ratio(numerator: float, denominator: float, name: str) -> float:
    """Divide, returning 0.0 with a warning when the denominator is zero."""
    if denominator == 0 or not math.isfinite(denominator):
        message = f"{name} undefined (zero denominator); reporting 0.0"
        logger.warning(message)
        warnings.warn(message, DataQualityWarning, stacklevel=3)
        return 0.0
    return numerator / denominator


class ScenarioRiskMetrics:
    """Calculate risk metrics for a vector of terminal outcomes.

    Args:
        outcomes: Terminal values in iteration order.
        initial_value: Starting value the returns are measured against.

    Raises:
        ValueError: If ``outcomes`` is empty or ``initial_value`` is not positive.
    """

    def __init__(self, outcomes: Sequence[float], initial_value: float):
        self.outcomes = np.asarray(outcomes, dtype=np.float64)
        if len(self.outcomes) == 0:
            raise ValueError("Outcomes array cannot be empty")
        if initial_value <= 0:
            raise ValueError(f"initial_value must be positive, got {initial_value}")
        self.initial_value = float(initial_value)
        self.returns = (self.outcomes - self.initial_value) / self.initial_value
        self._sorted_returns = np.sort(self.returns)

    @property
    def mean_return(self) -> float:
        return float(np.mean(self.outcomes)) / self.initial_value - 1.0

    @property
    def volatility(self) -> float:
        n = len(self.outcomes)
        std_dev = float(np.std(self.outcomes, ddof=1)) if n > 1 else 0.0
        return std_dev / self.initial_value

    def _var_index(self) -> int:
        return int(math.floor(VAR_TAIL_PROBABILITY * len(self._sorted_returns)))

    def value_at_risk(self) -> float:
        """5th-percentile total return (``sorted[floor(0.05 n)]``)."""
        return float(self._sorted_returns[self._var_index()])

    def conditional_var(self) -> float:
        """Mean of the sorted returns up to and including the VaR index."""
        return float(np.mean(self._sorted_returns[: self._var_index() + 1]))

    def max_drawdown(self) -> float:
        """Largest relative drop below the running peak of outcomes.

        Peaks that are not positive carry no defined relative drawdown
        and are skipped.
        """
        peaks = np.maximum.accumulate(self.outcomes)
        valid = peaks > 0
        if not np.any(valid):
            return 0.0
        drawdowns = (peaks[valid] - self.outcomes[valid]) / peaks[valid]
        return float(max(0.0, np.max(drawdowns)))

    def sharpe_ratio(self) -> float:
        """Mean return over volatility; 0.0 for zero volatility."""
        return safe_ratio(self.mean_return, self.volatility, "Sharpe ratio")

    def downside_deviation(self) -> float:
        """Root mean square of the negative returns (0.0 if there are none)."""
        downside = self.returns[self.returns < 0]
        if len(downside) == 0:
            return 0.0
        return math.sqrt(float(np.mean(downside**2)))

    def sortino_ratio(self) -> float:
        """Mean return over downside deviation, capped at ``MAX_SORTINO``.

        Without negative returns the ratio is unbounded. A positive mean then
        reports ``MAX_SORTINO`` so loss-free scenarios rank as the safest; a
        non-positive mean reports 0.0. Both cases emit a
        :class:`DataQualityWarning`.
        """
        downside = self.downside_deviation()
        if downside == 0:
            if self.mean_return <= 0:
                return safe_ratio(self.mean_return, downside, "Sortino ratio")
            message = f"Sortino ratio undefined (no negative returns); reporting {MAX_SORTINO}"
            logger.warning(message)
            warnings.warn(message, DataQualityWarning, stacklevel=2)
            return MAX_SORTINO
        return min(self.mean_return / downside, MAX_SORTINO)

    def calculate(self) -> RiskMetricsResult:
        """Compute every risk metric."""
        return RiskMetricsResult(
            value_at_risk=self.value_at_risk(),
            conditional_var=self.conditional_var(),
            max_drawdown=self.max_drawdown(),
            sharpe_ratio=self.sharpe_ratio(),
            sortino_ratio=self.sortino_ratio(),
            volatility=self.volatility,
        )

    def stress_test(self) -> StressTestResults:
        """Worst, best and median outcomes plus the probability of a loss."""
        sorted_outcomes = np.sort(self.outcomes)
        n = len(sorted_outcomes)
        median_index = min(n - 1, max(0, math.ceil(0.5 * n) - 1))
        return StressTestResults(
            worst_case=float(sorted_outcomes[0]),
            best_case=float(sorted_outcomes[-1]),
            median_case=float(sorted_outcomes[median_index]),
            probability_of_loss=float(np.count_nonzero(self.outcomes < self.initial_value) / n),
        )

    def compare_to_baseline(self, baseline_outcomes: Sequence[float]) -> BaselineComparison:
        """Compare against baseline outcomes paired index-for-index.

        The pairing is only meaningful when both runs have the same
        iteration count and were drawn from comparably seeded generators.

        Raises:
            ValueError: If the outcome vectors differ in length.
        """
        baseline = np.asarray(baseline_outcomes, dtype=np.float64)
        if len(baseline) != len(self.outcomes):
            raise ValueError(
                f"Baseline has {len(baseline)} outcomes, scenario has {len(self.outcomes)}"
            )

        scenario_mean = float(np.mean(self.outcomes))
        baseline_mean = float(np.mean(baseline))
        scenario_std = float(np.std(self.outcomes, ddof=1)) if len(self.outcomes) > 1 else 0.0
        baseline_std = float(np.std(baseline, ddof=1)) if len(baseline) > 1 else 0.0

        wins = np.count_nonzero(self.outcomes > baseline)
        ties = np.count_nonzero(self.outcomes == baseline)

        return BaselineComparison(
            return_difference=safe_ratio(
                scenario_mean - baseline_mean, baseline_mean, "Baseline return difference"
            ),
            risk_difference=safe_ratio(
                scenario_std - baseline_std, baseline_std, "Baseline risk difference"
            ),
            probability_outperformance=float((wins + 0.5 * ties) / len(baseline)),
        )
