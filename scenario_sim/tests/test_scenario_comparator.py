"""Tests for scenario comparison, ranking and chart data."""

from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from scenario_sim.config import BaseInvestment
from scenario_sim.config.constants import MAX_SORTINO
from scenario_sim.monte_carlo import SimulationConfig
from scenario_sim.risk_metrics import BaselineComparison, RiskMetricsResult, StressTestResults
from scenario_sim.scenario_comparator import (
    CATEGORY_COLORS,
    DEFAULT_COLOR,
    NEUTRAL_RECOMMENDATION,
    ComparisonWeights,
    PerformanceAttribution,
    RiskTolerance,
    ScenarioComparator,
    Significance,
    Winner,
    generate_comparison_table,
    quick_compare_scenarios,
)
from scenario_sim.scenario_engine import ScenarioEngine, ScenarioResult


def make_result(
    scenario_id="a",
    mean=115.0,
    std_dev=15.0,
    volatility=0.15,
    max_drawdown=0.25,
    sharpe=1.0,
    sortino=1.4,
    probability_of_loss=0.2,
    outcomes=None,
    initial_value=100.0,
):
    """Scenario result with hand-picked headline figures."""
    if outcomes is None:
        outcomes = np.linspace(mean - 20.0, mean + 20.0, 50)
    statistics = SimpleNamespace(
        mean=mean,
        std_dev=std_dev,
        median=mean,
        percentiles={f"p{p}": mean + (p - 50) for p in (5, 10, 25, 50, 75, 90, 95)},
    )
    simulation = SimpleNamespace(
        scenario=SimpleNamespace(initial_value=initial_value),
        statistics=statistics,
        outcomes=np.asarray(outcomes, dtype=float),
    )
    return ScenarioResult(
        scenario_id=scenario_id,
        simulation_result=simulation,
        risk_metrics=RiskMetricsResult(
            value_at_risk=-0.1,
            conditional_var=-0.15,
            max_drawdown=max_drawdown,
            sharpe_ratio=sharpe,
            sortino_ratio=sortino,
            volatility=volatility,
        ),
        stress_test_results=StressTestResults(
            worst_case=mean - 20.0,
            best_case=mean + 20.0,
            median_case=mean,
            probability_of_loss=probability_of_loss,
        ),
        comparison_to_baseline=BaselineComparison.for_baseline(),
    )


@pytest.fixture
def comparator():
    return ScenarioComparator()


class TestScoring:
    """Test the component scores."""

    def test_composite_score(self, comparator):
        """Components are normalized, clamped and weighted."""
        score = comparator.calculate_composite_score(make_result(), ComparisonWeights())
        # 0.4 * 1.0 + 0.3 * 0.5 + 0.2 * 0.5 + 0.1 * 0.8
        assert score == pytest.approx(0.73)

    def test_composite_clamps_components(self, comparator):
        """Losses and extreme risk bottom out at zero."""
        result = make_result(mean=50.0, volatility=0.6, max_drawdown=0.9, probability_of_loss=1.0)
        assert comparator.calculate_composite_score(result, ComparisonWeights()) == 0.0

    def test_custom_weights(self, comparator):
        """Only the weighted components contribute."""
        weights = ComparisonWeights(1.0, 0.0, 0.0, 0.0)
        assert comparator.calculate_composite_score(make_result(), weights) == pytest.approx(1.0)

    def test_negative_weights_rejected(self):
        with pytest.raises(ValueError, match="risk_weight"):
            ComparisonWeights(risk_weight=-0.1)

    @pytest.mark.parametrize(
        "tolerance,expected",
        [
            (RiskTolerance.CONSERVATIVE, 0.7),
            (RiskTolerance.MODERATE, 0.95),
            (RiskTolerance.AGGRESSIVE, 1.075),
        ],
    )
    def test_risk_adjusted_score(self, comparator, tolerance, expected):
        """Average of Sharpe and Sortino less a tolerance-scaled drawdown penalty."""
        score = comparator.calculate_risk_adjusted_score(make_result(), tolerance)
        assert score == pytest.approx(expected)

    def test_risk_adjusted_floor(self, comparator):
        result = make_result(sharpe=-1.0, sortino=-1.0)
        assert comparator.calculate_risk_adjusted_score(result, RiskTolerance.MODERATE) == 0.0

    def test_suitability_score(self, comparator):
        """Volatility and loss probability are scored against tolerance limits."""
        result = make_result()
        assert comparator.calculate_suitability_score(
            result, RiskTolerance.CONSERVATIVE
        ) == pytest.approx(0.0)
        assert comparator.calculate_suitability_score(
            result, RiskTolerance.MODERATE
        ) == pytest.approx(((1 - 0.15 / 0.18) + (1 - 0.2 / 0.25)) / 2)

    def test_tolerance_thresholds(self):
        assert RiskTolerance.CONSERVATIVE.max_volatility == 0.12
        assert RiskTolerance.MODERATE.max_loss_probability == 0.25
        assert RiskTolerance.AGGRESSIVE.drawdown_penalty == 0.5


class TestCompareScenarios:
    """Test pairwise comparison."""

    def test_neutral_below_gap(self, comparator):
        """Composite scores within 0.05 are a tie."""
        a = make_result("a", probability_of_loss=0.2)
        b = make_result("b", probability_of_loss=0.6)
        summary = comparator.compare_scenarios(a, b)
        assert summary.winner is Winner.NEUTRAL
        assert summary.winner_confidence == pytest.approx(54.0)
        assert summary.recommendation == NEUTRAL_RECOMMENDATION

    def test_winner_above_gap(self, comparator):
        """A gap of at least 0.05 picks the higher score."""
        a = make_result("a", probability_of_loss=0.8)
        b = make_result("b", probability_of_loss=0.2)
        summary = comparator.compare_scenarios(a, b)
        assert summary.winner is Winner.B
        assert summary.winner_confidence == pytest.approx(56.0)
        assert summary.recommendation.startswith("Scenario B outperforms primarily due to")

    def test_confidence_capped(self, comparator):
        """Confidence never exceeds 95."""
        a = make_result("a")
        b = make_result("b", mean=50.0, volatility=0.6, max_drawdown=0.9, probability_of_loss=1.0)
        summary = comparator.compare_scenarios(a, b)
        assert summary.winner is Winner.A
        assert summary.winner_confidence == 95.0

    def test_significance(self, comparator):
        """Clearly separated outcomes are statistically significant."""
        a = make_result("a", outcomes=np.linspace(100, 120, 200))
        b = make_result("b", outcomes=np.linspace(200, 220, 200))
        summary = comparator.compare_scenarios(a, b)
        assert summary.statistical_significance.is_significant
        data = summary.to_dict()
        assert data["winner"] == summary.winner.value
        assert set(data["performance_attribution"]["contributions"]) == {
            "market_return",
            "volatility",
            "inflation_impact",
            "market_shocks",
            "correlation_effect",
        }

    def test_key_differences(self, comparator):
        """Material differences are described relative to the first scenario."""
        a = make_result("a", mean=115.0, volatility=0.15, max_drawdown=0.25, sharpe=1.0)
        b = make_result("b", mean=110.0, volatility=0.10, max_drawdown=0.10, sharpe=0.5)
        assert comparator.identify_key_differences(a, b) == [
            "5.0% higher expected return",
            "5.0% higher volatility",
            "15.0% higher maximum drawdown",
            "0.50 higher Sharpe ratio",
        ]
        assert comparator.identify_key_differences(b, a)[0] == "5.0% lower expected return"

    def test_no_key_differences(self, comparator):
        """Small differences are not reported."""
        a = make_result("a")
        b = make_result("b", mean=115.5, volatility=0.16, max_drawdown=0.27, sharpe=1.1)
        assert comparator.identify_key_differences(a, b) == []


class TestAttribution:
    """Test performance attribution and recommendations."""

    def test_with_economics(self, comparator, catalog):
        """Market return and inflation terms use the economic parameters."""
        normal = catalog.get("normal-growth")
        crash = catalog.get("market-crash")
        a = make_result("a", mean=115.0, volatility=0.15)
        b = make_result("b", mean=80.0, volatility=0.10)
        attribution = comparator.analyze_performance_attribution(a, b, normal, crash)
        assert attribution.total_return_difference == pytest.approx(35.0)
        assert attribution.market_return == pytest.approx((0.08 + 0.35) * 0.3)
        assert attribution.inflation_impact == pytest.approx((0.025 - 0.02) * -0.1)
        assert attribution.volatility == pytest.approx(-0.01)
        assert attribution.market_shocks == 0.0
        assert attribution.correlation_effect == 0.0

    def test_without_economics(self, comparator):
        """Without economic scenarios only the volatility term is set."""
        attribution = comparator.analyze_performance_attribution(
            make_result("a", volatility=0.2), make_result("b", volatility=0.1)
        )
        assert attribution.market_return == 0.0
        assert attribution.inflation_impact == 0.0
        assert attribution.volatility == pytest.approx(-0.02)

    def test_recommendation_names_main_driver(self, comparator):
        attribution = PerformanceAttribution(
            total_return_difference=10.0, market_return=0.1, volatility=-0.02, inflation_impact=0.0
        )
        assert comparator._generate_recommendation(Winner.A, attribution) == (
            "Scenario A outperforms primarily due to market return expectations. "
            "Consider this scenario for portfolios emphasizing market return expectations."
        )

    def test_recommendation_tie_break(self, comparator):
        """Equal drivers resolve to the first listed."""
        attribution = PerformanceAttribution(
            total_return_difference=0.0, market_return=0.0, volatility=0.0, inflation_impact=0.0
        )
        recommendation = comparator._generate_recommendation(Winner.B, attribution)
        assert "due to market return expectations" in recommendation


class TestRanking:
    """Test multi-scenario ranking."""

    def test_ranks_by_final_score(self, comparator):
        """Ranks start at one and follow the blended score."""
        strong = make_result("strong")
        weak = make_result("weak", mean=102.0, sharpe=0.2, sortino=0.2, probability_of_loss=0.45)
        ranking = comparator.rank_scenarios([weak, strong])
        assert [r.scenario_id for r in ranking] == ["strong", "weak"]
        assert [r.rank for r in ranking] == [1, 2]
        top = ranking[0]
        assert top.final_score == pytest.approx(
            0.4 * top.score + 0.4 * top.risk_adjusted_score + 0.2 * top.suitability_score
        )

    def test_string_tolerance(self, comparator):
        ranking = comparator.rank_scenarios([make_result()], risk_tolerance="aggressive")
        assert ranking[0].risk_adjusted_score == pytest.approx(1.075)

    def test_conservative_prefers_low_volatility(self, catalog):
        """Scenarios differing only in volatility rank calm first for conservative investors."""
        baseline = catalog.baseline()

        def variant(scenario_id, volatility):
            parameters = baseline.parameters.model_copy(deep=True)
            parameters.market_return.volatility = volatility
            parameters.market_shocks = []
            return baseline.model_copy(update={"id": scenario_id, "parameters": parameters})

        engine = ScenarioEngine(SimulationConfig(iterations=2000, seed=42), catalog)
        investment = BaseInvestment(initial_value=100_000, time_horizon_years=1, target_value=110_000)
        calm = engine.run_scenario_simulation(variant("calm", 0.10), investment)
        wild = engine.run_scenario_simulation(variant("wild", 0.30), investment)

        ranking = ScenarioComparator().rank_scenarios(
            [wild, calm], risk_tolerance=RiskTolerance.CONSERVATIVE
        )
        assert ranking[0].scenario_id == "calm"

    def test_uncapped_sortino_is_clamped(self):
        """Huge Sortino ratios score no higher than the ceiling."""
        capped = make_result("capped", sortino=MAX_SORTINO)
        huge = make_result("huge", sortino=1e6)
        conservative = RiskTolerance.CONSERVATIVE
        assert ScenarioComparator.calculate_risk_adjusted_score(
            huge, conservative
        ) == pytest.approx(ScenarioComparator.calculate_risk_adjusted_score(capped, conservative))

    def test_loss_free_scenarios_rank_first(self, catalog):
        """A volatility ladder whose calm end never loses ranks calmest first."""
        baseline = catalog.baseline()

        def variant(volatility):
            parameters = baseline.parameters.model_copy(deep=True)
            parameters.market_return.volatility = volatility
            parameters.market_shocks = []
            return baseline.model_copy(update={"id": f"v{volatility:.2f}", "parameters": parameters})

        engine = ScenarioEngine(SimulationConfig(iterations=2000, seed=42), catalog)
        investment = BaseInvestment(
            initial_value=100_000, time_horizon_years=10, target_value=150_000
        )
        volatilities = (0.08, 0.07, 0.06, 0.05, 0.04, 0.03)
        results = [
            engine.run_scenario_simulation(variant(volatility), investment)
            for volatility in volatilities
        ]
        calmest = results[-1]
        assert calmest.stress_test_results.probability_of_loss == 0.0
        assert calmest.risk_metrics.sortino_ratio == MAX_SORTINO

        ranking = ScenarioComparator().rank_scenarios(
            results, risk_tolerance=RiskTolerance.CONSERVATIVE
        )
        assert ranking[0].scenario_id == "v0.03"
        assert ranking[-1].scenario_id == "v0.08"


class TestVisualizationData:
    """Test chart-ready series."""

    def test_scatter(self, comparator, catalog):
        """Scatter points are in percent with Sharpe-scaled size."""
        results = [make_result("normal-growth"), make_result("market-crash", sharpe=-0.5)]
        data = comparator.prepare_visualization_data(results, catalog.scenarios)
        first, second = data.risk_return_scatter_plot
        assert first.x == pytest.approx(15.0)
        assert first.y == pytest.approx(15.0)
        assert first.size == pytest.approx(10.0)
        assert second.size == 0.1
        assert first.color == CATEGORY_COLORS[catalog.get("normal-growth").category]
        assert second.color == CATEGORY_COLORS[catalog.get("market-crash").category]

    def test_default_colors(self, comparator, catalog):
        assert comparator.get_scenario_color("normal-growth") == DEFAULT_COLOR
        assert comparator.get_scenario_color("missing", catalog.scenarios) == DEFAULT_COLOR

    def test_distribution_and_cones(self, comparator):
        """Seven percentile points per scenario and 30-year cones."""
        data = comparator.prepare_visualization_data([make_result("a")])
        points = {p.percentile: p.value for p in data.performance_distribution}
        assert sorted(points) == [5, 10, 25, 50, 75, 90, 95]
        assert points[50] == 115.0

        (cone,) = data.probability_cones
        assert cone.time_horizon == list(range(1, 31))
        assert cone.upper_bound[0] == pytest.approx(160.0 * 1.02)
        assert cone.lower_bound[0] == pytest.approx(70.0 * 1.02)
        assert cone.median[-1] == pytest.approx(115.0 * 1.02**30)

    def test_correlation_pairs(self, comparator):
        """One entry per unordered pair."""
        outcomes = np.linspace(0, 1, 20)
        results = [
            make_result("a", outcomes=outcomes),
            make_result("b", outcomes=outcomes * 2),
            make_result("c", outcomes=outcomes[::-1]),
        ]
        pairs = comparator.prepare_visualization_data(results).correlation_heatmap
        assert [(p.scenario_a, p.scenario_b) for p in pairs] == [("a", "b"), ("a", "c"), ("b", "c")]
        assert pairs[0].correlation == pytest.approx(1.0)
        assert pairs[1].correlation == pytest.approx(-1.0)
        assert set(comparator.prepare_visualization_data(results).to_dict()) == {
            "risk_return_scatter_plot",
            "performance_distribution",
            "correlation_heatmap",
            "probability_cones",
        }


class TestSensitivity:
    """Test relative-impact bucketing."""

    def test_buckets(self, comparator):
        base = make_result("base", mean=100.0)
        variations = [
            make_result("high", mean=115.0),
            make_result("medium", mean=93.0),
            make_result("low", mean=102.0),
        ]
        results = comparator.analyze_sensitivity(base, variations)
        assert [r.parameter for r in results] == ["high", "medium", "low"]
        assert [r.significance for r in results] == [
            Significance.HIGH,
            Significance.MEDIUM,
            Significance.LOW,
        ]
        assert results[0].impact == pytest.approx(0.15)

    def test_zero_base(self, comparator):
        results = comparator.analyze_sensitivity(
            make_result("base", mean=0.0), [make_result("v", mean=10.0)]
        )
        assert results[0].impact == 0.0
        assert results[0].significance is Significance.LOW


class TestModuleHelpers:
    """Test quick comparison and the summary table."""

    def test_quick_compare_tie(self):
        """Identical results are a tie."""
        quick = quick_compare_scenarios(make_result("a"), make_result("b"))
        assert quick["better_scenario"] == "tie"
        assert quick["confidence"] == 50.0
        assert quick["reason"] == NEUTRAL_RECOMMENDATION

    def test_quick_compare_winner(self):
        quick = quick_compare_scenarios(
            make_result("a"), make_result("b", mean=50.0, probability_of_loss=1.0)
        )
        assert quick["better_scenario"] == "a"

    def test_comparison_table(self):
        poor = make_result(
            "b", mean=50.0, volatility=0.6, max_drawdown=0.9, sharpe=-0.3, probability_of_loss=1.0
        )
        table = generate_comparison_table([make_result("a"), poor])
        assert isinstance(table, pd.DataFrame)
        assert list(table.columns) == [
            "scenario",
            "expected_return",
            "volatility",
            "sharpe_ratio",
            "max_drawdown",
            "probability_of_loss",
            "overall_rating",
        ]
        first = table.iloc[0]
        assert first["expected_return"] == "15.0%"
        assert first["volatility"] == "15.0%"
        assert first["sharpe_ratio"] == "1.00"
        assert first["max_drawdown"] == "25.0%"
        assert first["probability_of_loss"] == "20.0%"
        assert first["overall_rating"] == "Good"
        assert table.iloc[1]["overall_rating"] == "Poor"
        assert table.iloc[1]["expected_return"] == "-50.0%"
