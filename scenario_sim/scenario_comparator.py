"""Pairwise and multi-scenario comparison of scenario results.

:class:`ScenarioComparator` scores scenario results on a common 0-1 scale
and builds on those scores to pick a winner between two scenarios, rank a
set of scenarios for a given risk tolerance, and prepare chart-ready data.

The composite score blends four normalized components:

- return: ``(mean / initial - 1) / 0.15``
- risk: ``1 - volatility / 0.30``
- stability: ``1 - max_drawdown / 0.50``
- downside protection: ``1 - probability_of_loss``

Each component is clamped to [0, 1] before weighting.

Examples:
    Compare a scenario against the baseline::

        from scenario_sim.economic_scenarios import get_scenario_by_id
        from scenario_sim.scenario_engine import ScenarioEngine

        engine = ScenarioEngine()
        normal = engine.run_scenario_simulation(get_scenario_by_id("normal-growth"))
        crash = engine.run_scenario_simulation(get_scenario_by_id("market-crash"))

        summary = ScenarioComparator().compare_scenarios(normal, crash)
        print(summary.winner, summary.recommendation)
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .config.constants import (
    MAX_SORTINO,
    NEUTRAL_SCORE_GAP,
    PROBABILITY_CONE_GROWTH,
    PROBABILITY_CONE_YEARS,
)
from .config.scenarios import EconomicScenario, ScenarioCategory
from .scenario_engine import ScenarioResult
from .statistical_tests import StatisticalSignificance, welch_t_test
from .summary_statistics import pearson_correlation

logger = logging.getLogger(__name__)

RETURN_SCALE = 0.15
VOLATILITY_SCALE = 0.30
DRAWDOWN_SCALE = 0.50

DISTRIBUTION_PERCENTILES = (5, 10, 25, 50, 75, 90, 95)

CATEGORY_COLORS: Dict[ScenarioCategory, str] = {
    ScenarioCategory.NORMAL: "#10b981",
    ScenarioCategory.RECESSION: "#ef4444",
    ScenarioCategory.INFLATION: "#f59e0b",
    ScenarioCategory.MARKET_CRASH: "#7c2d12",
    ScenarioCategory.BULL_MARKET: "#059669",
    ScenarioCategory.STAGFLATION: "#dc2626",
    ScenarioCategory.RECOVERY: "#3b82f6",
}
DEFAULT_COLOR = "#3b82f6"
UNKNOWN_CATEGORY_COLOR = "#6b7280"

NEUTRAL_RECOMMENDATION = (
    "Both scenarios show similar risk-adjusted performance. "
    "Consider diversification or other factors for selection."
)


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


class RiskTolerance(Enum):
    """Investor risk tolerance used when ranking scenarios."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"

    @property
    def drawdown_penalty(self) -> float:
        """Multiplier applied to max drawdown in the risk-adjusted score."""
        return _DRAWDOWN_PENALTIES[self]

    @property
    def max_volatility(self) -> float:
        return _SUITABILITY_THRESHOLDS[self][0]

    @property
    def max_loss_probability(self) -> float:
        return _SUITABILITY_THRESHOLDS[self][1]


_DRAWDOWN_PENALTIES = {
    RiskTolerance.CONSERVATIVE: 2.0,
    RiskTolerance.MODERATE: 1.0,
    RiskTolerance.AGGRESSIVE: 0.5,
}

_SUITABILITY_THRESHOLDS = {
    RiskTolerance.CONSERVATIVE: (0.12, 0.15),
    RiskTolerance.MODERATE: (0.18, 0.25),
    RiskTolerance.AGGRESSIVE: (0.30, 0.40),
}


class Winner(Enum):
    """Outcome of a pairwise comparison."""

    A = "A"
    B = "B"
    NEUTRAL = "neutral"


class Significance(Enum):
    """Bucket of a sensitivity impact."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ComparisonWeights:
    """Weights of the composite score components."""

    return_weight: float = 0.4
    risk_weight: float = 0.3
    stability_weight: float = 0.2
    downside_protection_weight: float = 0.1

    def __post_init__(self):
        negative = [name for name, value in asdict(self).items() if value < 0]
        if negative:
            raise ValueError(f"Comparison weights must be non-negative: {', '.join(negative)}")


@dataclass
class PerformanceAttribution:
    """Decomposition of the mean outcome difference between two scenarios."""

    total_return_difference: float
    market_return: float
    volatility: float
    inflation_impact: float
    market_shocks: float = 0.0
    correlation_effect: float = 0.0

    @property
    def contributions(self) -> Dict[str, float]:
        return {
            "market_return": self.market_return,
            "volatility": self.volatility,
            "inflation_impact": self.inflation_impact,
            "market_shocks": self.market_shocks,
            "correlation_effect": self.correlation_effect,
        }


@dataclass
class ComparisonSummary:
    """Result of :meth:`ScenarioComparator.compare_scenarios`."""

    scenario_a: str
    scenario_b: str
    winner: Winner
    winner_confidence: float
    key_differences: List[str]
    recommendation: str
    statistical_significance: StatisticalSignificance
    performance_attribution: PerformanceAttribution

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_a": self.scenario_a,
            "scenario_b": self.scenario_b,
            "winner": self.winner.value,
            "winner_confidence": self.winner_confidence,
            "key_differences": list(self.key_differences),
            "recommendation": self.recommendation,
            "statistical_significance": self.statistical_significance.to_dict(),
            "performance_attribution": {
                "total_return_difference": self.performance_attribution.total_return_difference,
                "contributions": self.performance_attribution.contributions,
            },
        }


@dataclass
class RankedScenario:
    """One entry of :meth:`ScenarioComparator.rank_scenarios`."""

    rank: int
    scenario_id: str
    score: float
    risk_adjusted_score: float
    suitability_score: float
    final_score: float


@dataclass
class RiskReturnProfile:
    """Headline risk and return figures of one scenario."""

    scenario: str
    expected_return: float
    volatility: float
    sharpe_ratio: float
    max_drawdown: float
    probability_of_loss: float
    value_at_risk: float
    risk_adjusted_score: float


@dataclass
class ScatterPoint:
    scenario: str
    x: float
    y: float
    size: float
    color: str


@dataclass
class DistributionPoint:
    scenario: str
    percentile: int
    value: float


@dataclass
class CorrelationPair:
    scenario_a: str
    scenario_b: str
    correlation: float


@dataclass
class ProbabilityCone:
    """Illustrative bands of terminal percentiles grown 2% per year."""

    scenario: str
    time_horizon: List[int]
    upper_bound: List[float]
    lower_bound: List[float]
    median: List[float]


@dataclass
class VisualizationData:
    """Chart-ready series for a set of scenario results."""

    risk_return_scatter_plot: List[ScatterPoint] = field(default_factory=list)
    performance_distribution: List[DistributionPoint] = field(default_factory=list)
    correlation_heatmap: List[CorrelationPair] = field(default_factory=list)
    probability_cones: List[ProbabilityCone] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SensitivityResult:
    parameter: str
    impact: float
    significance: Significance


class ScenarioComparator:
    """Compares, ranks and summarizes scenario results.

    Args:
        weights: Default composite-score weights.
    """

    def __init__(self, weights: Optional[ComparisonWeights] = None):
        self.weights = weights or ComparisonWeights()

    def compare_scenarios(
        self,
        scenario_a: ScenarioResult,
        scenario_b: ScenarioResult,
        economic_a: Optional[EconomicScenario] = None,
        economic_b: Optional[EconomicScenario] = None,
        weights: Optional[ComparisonWeights] = None,
    ) -> ComparisonSummary:
        """Compare two scenario results.

        Args:
            scenario_a: First result.
            scenario_b: Second result.
            economic_a: Economic scenario behind ``scenario_a``. Needed for
                the market-return and inflation attribution terms.
            economic_b: Economic scenario behind ``scenario_b``.
            weights: Composite-score weights; defaults to the comparator's.

        Returns:
            Winner (neutral when composite scores differ by less than 0.05),
            confidence, key differences, significance test and attribution.
        """
        weights = weights or self.weights
        significance = welch_t_test(
            scenario_a.simulation_result.outcomes, scenario_b.simulation_result.outcomes
        )
        attribution = self.analyze_performance_attribution(
            scenario_a, scenario_b, economic_a, economic_b
        )

        score_a = self.calculate_composite_score(scenario_a, weights)
        score_b = self.calculate_composite_score(scenario_b, weights)
        gap = abs(score_a - score_b)
        if gap < NEUTRAL_SCORE_GAP:
            winner = Winner.NEUTRAL
        else:
            winner = Winner.A if score_a > score_b else Winner.B

        logger.debug(
            "Compared %s (%.3f) with %s (%.3f): %s",
            scenario_a.scenario_id,
            score_a,
            scenario_b.scenario_id,
            score_b,
            winner.value,
        )
        return ComparisonSummary(
            scenario_a=scenario_a.scenario_id,
            scenario_b=scenario_b.scenario_id,
            winner=winner,
            winner_confidence=min(95.0, 50.0 + gap * 100.0),
            key_differences=self.identify_key_differences(scenario_a, scenario_b),
            recommendation=self._generate_recommendation(winner, attribution),
            statistical_significance=significance,
            performance_attribution=attribution,
        )

    def rank_scenarios(
        self,
        scenarios: Sequence[ScenarioResult],
        weights: Optional[ComparisonWeights] = None,
        risk_tolerance: RiskTolerance = RiskTolerance.MODERATE,
    ) -> List[RankedScenario]:
        """Rank scenarios by a blend of composite, risk-adjusted and suitability scores.

        ``final = 0.4 * composite + 0.4 * risk_adjusted + 0.2 * suitability``;
        ranks start at 1 for the highest final score.
        """
        weights = weights or self.weights
        risk_tolerance = RiskTolerance(risk_tolerance)

        scored = []
        for scenario in scenarios:
            base = self.calculate_composite_score(scenario, weights)
            risk_adjusted = self.calculate_risk_adjusted_score(scenario, risk_tolerance)
            suitability = self.calculate_suitability_score(scenario, risk_tolerance)
            final = base * 0.4 + risk_adjusted * 0.4 + suitability * 0.2
            scored.append((scenario.scenario_id, base, risk_adjusted, suitability, final))

        scored.sort(key=lambda item: item[4], reverse=True)
        return [
            RankedScenario(
                rank=index + 1,
                scenario_id=scenario_id,
                score=base,
                risk_adjusted_score=risk_adjusted,
                suitability_score=suitability,
                final_score=final,
            )
            for index, (scenario_id, base, risk_adjusted, suitability, final) in enumerate(scored)
        ]

    def generate_risk_return_profiles(
        self, scenarios: Sequence[ScenarioResult]
    ) -> List[RiskReturnProfile]:
        profiles = []
        for scenario in scenarios:
            stats = scenario.simulation_result.statistics
            initial_value = scenario.simulation_result.scenario.initial_value
            profiles.append(
                RiskReturnProfile(
                    scenario=scenario.scenario_id,
                    expected_return=(stats.mean - initial_value) / initial_value,
                    volatility=stats.std_dev / initial_value,
                    sharpe_ratio=scenario.risk_metrics.sharpe_ratio,
                    max_drawdown=scenario.risk_metrics.max_drawdown,
                    probability_of_loss=scenario.stress_test_results.probability_of_loss,
                    value_at_risk=scenario.risk_metrics.value_at_risk,
                    risk_adjusted_score=self.calculate_composite_score(
                        scenario, ComparisonWeights()
                    ),
                )
            )
        return profiles

    def prepare_visualization_data(
        self,
        scenarios: Sequence[ScenarioResult],
        economic_scenarios: Optional[Sequence[EconomicScenario]] = None,
    ) -> VisualizationData:
        """Build scatter, distribution, correlation and cone series.

        Scatter coordinates are in percent; point size is ten times the
        Sharpe ratio, floored at 0.1.
        """
        data = VisualizationData()

        for profile in self.generate_risk_return_profiles(scenarios):
            data.risk_return_scatter_plot.append(
                ScatterPoint(
                    scenario=profile.scenario,
                    x=profile.volatility * 100.0,
                    y=profile.expected_return * 100.0,
                    size=max(0.1, profile.sharpe_ratio * 10.0),
                    color=self.get_scenario_color(profile.scenario, economic_scenarios),
                )
            )

        for scenario in scenarios:
            stats = scenario.simulation_result.statistics
            for p in DISTRIBUTION_PERCENTILES:
                value = stats.median if p == 50 else stats.percentiles.get(f"p{p}")
                if value is not None:
                    data.performance_distribution.append(
                        DistributionPoint(scenario=scenario.scenario_id, percentile=p, value=value)
                    )

        for i, first in enumerate(scenarios):
            for second in scenarios[i + 1 :]:
                data.correlation_heatmap.append(
                    CorrelationPair(
                        scenario_a=first.scenario_id,
                        scenario_b=second.scenario_id,
                        correlation=self._correlation(first, second),
                    )
                )

        years = list(range(1, PROBABILITY_CONE_YEARS + 1))
        for scenario in scenarios:
            stats = scenario.simulation_result.statistics
            growth = [(1.0 + PROBABILITY_CONE_GROWTH) ** year for year in years]
            data.probability_cones.append(
                ProbabilityCone(
                    scenario=scenario.scenario_id,
                    time_horizon=years,
                    upper_bound=[stats.percentiles["p95"] * g for g in growth],
                    lower_bound=[stats.percentiles["p5"] * g for g in growth],
                    median=[stats.median * g for g in growth],
                )
            )

        return data

    def analyze_sensitivity(
        self, base_scenario: ScenarioResult, variations: Sequence[ScenarioResult]
    ) -> List[SensitivityResult]:
        """Relative change of the mean outcome of each variation versus the base.

        Impacts above 10% are high, above 5% medium, otherwise low.
        """
        base_mean = base_scenario.simulation_result.statistics.mean
        results = []
        for variation in variations:
            difference = abs(variation.simulation_result.statistics.mean - base_mean)
            impact = difference / base_mean if base_mean != 0 else 0.0
            if impact > 0.1:
                significance = Significance.HIGH
            elif impact > 0.05:
                significance = Significance.MEDIUM
            else:
                significance = Significance.LOW
            results.append(
                SensitivityResult(
                    parameter=variation.scenario_id, impact=impact, significance=significance
                )
            )
        return results

    # --- Scoring ---

    @staticmethod
    def calculate_composite_score(scenario: ScenarioResult, weights: ComparisonWeights) -> float:
        stats = scenario.simulation_result.statistics
        initial_value = scenario.simulation_result.scenario.initial_value
        metrics = scenario.risk_metrics

        return_score = _clamp01((stats.mean / initial_value - 1.0) / RETURN_SCALE)
        risk_score = _clamp01(1.0 - metrics.volatility / VOLATILITY_SCALE)
        stability_score = _clamp01(1.0 - metrics.max_drawdown / DRAWDOWN_SCALE)
        downside_score = _clamp01(1.0 - scenario.stress_test_results.probability_of_loss)

        return (
            return_score * weights.return_weight
            + risk_score * weights.risk_weight
            + stability_score * weights.stability_weight
            + downside_score * weights.downside_protection_weight
        )

    @staticmethod
    def calculate_risk_adjusted_score(
        scenario: ScenarioResult, risk_tolerance: RiskTolerance
    ) -> float:
        metrics = scenario.risk_metrics
        sortino = min(metrics.sortino_ratio, MAX_SORTINO)
        penalty = metrics.max_drawdown * risk_tolerance.drawdown_penalty
        return max(0.0, (metrics.sharpe_ratio + sortino) / 2.0 - penalty)

    @staticmethod
    def calculate_suitability_score(
        scenario: ScenarioResult, risk_tolerance: RiskTolerance
    ) -> float:
        volatility_score = max(
            0.0, 1.0 - scenario.risk_metrics.volatility / risk_tolerance.max_volatility
        )
        loss_score = max(
            0.0,
            1.0
            - scenario.stress_test_results.probability_of_loss
            / risk_tolerance.max_loss_probability,
        )
        return (volatility_score + loss_score) / 2.0

    # --- Helpers ---

    @staticmethod
    def analyze_performance_attribution(
        scenario_a: ScenarioResult,
        scenario_b: ScenarioResult,
        economic_a: Optional[EconomicScenario] = None,
        economic_b: Optional[EconomicScenario] = None,
    ) -> PerformanceAttribution:
        """Heuristic split of the mean outcome difference into drivers.

        Market-return and inflation terms are zero unless both economic
        scenarios are given.
        """
        have_economics = economic_a is not None and economic_b is not None
        market_return = 0.0
        inflation_impact = 0.0
        if have_economics:
            params_a = economic_a.parameters
            params_b = economic_b.parameters
            market_return = (params_a.market_return.mean - params_b.market_return.mean) * 0.3
            inflation_impact = (params_a.inflation_rate.mean - params_b.inflation_rate.mean) * -0.1

        return PerformanceAttribution(
            total_return_difference=(
                scenario_a.simulation_result.statistics.mean
                - scenario_b.simulation_result.statistics.mean
            ),
            market_return=market_return,
            volatility=(scenario_a.risk_metrics.volatility - scenario_b.risk_metrics.volatility)
            * -0.2,
            inflation_impact=inflation_impact,
        )

    @staticmethod
    def identify_key_differences(scenario_a: ScenarioResult, scenario_b: ScenarioResult) -> List[str]:
        """Describe material differences of ``scenario_a`` relative to ``scenario_b``."""
        differences = []

        def direction(value: float) -> str:
            return "higher" if value > 0 else "lower"

        result_a = scenario_a.simulation_result
        result_b = scenario_b.simulation_result
        return_diff = (
            result_a.statistics.mean / result_a.scenario.initial_value
            - result_b.statistics.mean / result_b.scenario.initial_value
        ) * 100.0
        if abs(return_diff) > 1:
            differences.append(f"{abs(return_diff):.1f}% {direction(return_diff)} expected return")

        metrics_a = scenario_a.risk_metrics
        metrics_b = scenario_b.risk_metrics
        risk_diff = (metrics_a.volatility - metrics_b.volatility) * 100.0
        if abs(risk_diff) > 2:
            differences.append(f"{abs(risk_diff):.1f}% {direction(risk_diff)} volatility")

        drawdown_diff = (metrics_a.max_drawdown - metrics_b.max_drawdown) * 100.0
        if abs(drawdown_diff) > 5:
            differences.append(
                f"{abs(drawdown_diff):.1f}% {direction(drawdown_diff)} maximum drawdown"
            )

        sharpe_diff = metrics_a.sharpe_ratio - metrics_b.sharpe_ratio
        if abs(sharpe_diff) > 0.2:
            differences.append(f"{abs(sharpe_diff):.2f} {direction(sharpe_diff)} Sharpe ratio")

        return differences

    @staticmethod
    def _generate_recommendation(winner: Winner, attribution: PerformanceAttribution) -> str:
        if winner is Winner.NEUTRAL:
            return NEUTRAL_RECOMMENDATION

        winner_name = "Scenario A" if winner is Winner.A else "Scenario B"
        drivers = {
            "market return expectations": abs(attribution.market_return),
            "volatility management": abs(attribution.volatility),
            "inflation protection": abs(attribution.inflation_impact),
        }
        # max() keeps the first key on ties
        main_driver = max(drivers, key=lambda name: drivers[name])
        return (
            f"{winner_name} outperforms primarily due to {main_driver}. "
            f"Consider this scenario for portfolios emphasizing {main_driver}."
        )

    @staticmethod
    def _correlation(first: ScenarioResult, second: ScenarioResult) -> float:
        a = first.simulation_result.outcomes
        b = second.simulation_result.outcomes
        n = min(len(a), len(b))
        return pearson_correlation(a[:n], b[:n])

    @staticmethod
    def get_scenario_color(
        scenario_id: str, economic_scenarios: Optional[Sequence[EconomicScenario]] = None
    ) -> str:
        """Chart color for a scenario, keyed by its category."""
        if not economic_scenarios:
            return DEFAULT_COLOR
        for scenario in economic_scenarios:
            if scenario.id == scenario_id:
                return CATEGORY_COLORS.get(scenario.category, UNKNOWN_CATEGORY_COLOR)
        return DEFAULT_COLOR


def quick_compare_scenarios(
    scenario_a: ScenarioResult, scenario_b: ScenarioResult
) -> Dict[str, Any]:
    """Compare two results with default weights.

    Returns:
        Dict with ``better_scenario`` (scenario id, or ``"tie"``),
        ``confidence`` and ``reason``.
    """
    summary = ScenarioComparator().compare_scenarios(scenario_a, scenario_b)
    if summary.winner is Winner.A:
        better = scenario_a.scenario_id
    elif summary.winner is Winner.B:
        better = scenario_b.scenario_id
    else:
        better = "tie"
    return {
        "better_scenario": better,
        "confidence": summary.winner_confidence,
        "reason": summary.recommendation,
    }


def _overall_rating(score: float) -> str:
    if score > 0.8:
        return "Excellent"
    if score > 0.6:
        return "Good"
    if score > 0.4:
        return "Fair"
    return "Poor"


def generate_comparison_table(scenarios: Sequence[ScenarioResult]) -> pd.DataFrame:
    """Formatted summary table, one row per scenario.

    Percent columns are strings with one decimal; the rating is derived
    from the default-weight composite score.
    """
    rows = []
    for profile in ScenarioComparator().generate_risk_return_profiles(scenarios):
        rows.append(
            {
                "scenario": profile.scenario,
                "expected_return": f"{profile.expected_return * 100:.1f}%",
                "volatility": f"{profile.volatility * 100:.1f}%",
                "sharpe_ratio": f"{profile.sharpe_ratio:.2f}",
                "max_drawdown": f"{profile.max_drawdown * 100:.1f}%",
                "probability_of_loss": f"{profile.probability_of_loss * 100:.1f}%",
                "overall_rating": _overall_rating(profile.risk_adjusted_score),
            }
        )
    columns = [
        "scenario",
        "expected_return",
        "volatility",
        "sharpe_ratio",
        "max_drawdown",
        "probability_of_loss",
        "overall_rating",
    ]
    return pd.DataFrame(rows, columns=columns)
