"""Economic scenario testing on top of the Monte Carlo engine.

:class:`ScenarioEngine` converts catalog scenarios into investment
projections, runs them, and derives risk metrics, stress-test extremes and
a comparison against the baseline scenario. :meth:`ScenarioEngine.run_scenario_analysis`
runs a whole set of scenarios and ranks them.

All runs of one engine start from the same seed. A scenario and the
baseline are therefore driven by the same random stream, which is what
makes the index-paired outperformance probability meaningful: trial ``i``
of each run sees the same underlying draws. This holds as long as both
scenarios have the same number of shock events; otherwise the streams
diverge after the first year and the pairing is only approximate.

Examples:
    Analyze the packaged catalog::

        from scenario_sim.config import BaseInvestment
        from scenario_sim.monte_carlo import SimulationConfig
        from scenario_sim.scenario_engine import run_predefined_scenario_analysis

        comparison = run_predefined_scenario_analysis(
            BaseInvestment(initial_value=250_000, target_value=1_000_000),
            SimulationConfig(iterations=5_000, seed=7),
        )
        print(comparison.recommendation)
"""

from dataclasses import asdict, dataclass, replace
import hashlib
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config.scenarios import BaseInvestment, EconomicScenario, ScenarioCategory
from .economic_scenarios import ScenarioCatalog, default_catalog
from .monte_carlo import InvestmentScenario, MonteCarloEngine, SimulationConfig, SimulationResult
from .random_generator import time_seed
from .risk_metrics import (
    BaselineComparison,
    RiskMetricsResult,
    ScenarioRiskMetrics,
    StressTestResults,
    safe_ratio,
)
from .summary_statistics import correlation_matrix

logger = logging.getLogger(__name__)


@dataclass
class ScenarioResult:
    """Simulation and derived metrics for one economic scenario."""

    scenario_id: str
    simulation_result: SimulationResult
    risk_metrics: RiskMetricsResult
    stress_test_results: StressTestResults
    comparison_to_baseline: BaselineComparison

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "simulation_result": self.simulation_result.to_dict(),
            "risk_metrics": self.risk_metrics.to_dict(),
            "stress_test_results": self.stress_test_results.to_dict(),
            "comparison_to_baseline": self.comparison_to_baseline.to_dict(),
        }


@dataclass
class ScenarioRanking:
    """Scenario ids ordered by return, risk and risk-adjusted return."""

    by_return: List[str]
    by_risk: List[str]
    by_risk_adjusted_return: List[str]


@dataclass
class ScenarioRecommendation:
    """Preferred scenario id per investor profile."""

    conservative: str
    moderate: str
    aggressive: str


@dataclass
class ScenarioComparison:
    """Results of a multi-scenario analysis.

    Attributes:
        scenarios: Per-scenario results in input order.
        ranking: Scenario orderings.
        correlation_matrix: Pearson correlations of outcome vectors, in
            the order of ``scenarios``.
        diversification_benefit: Relative volatility reduction of an
            equal-weight mix versus the average scenario volatility.
        recommendation: Scenario picks per investor profile.
    """

    scenarios: List[ScenarioResult]
    ranking: ScenarioRanking
    correlation_matrix: np.ndarray
    diversification_benefit: float
    recommendation: ScenarioRecommendation

    @property
    def scenario_ids(self) -> List[str]:
        return [r.scenario_id for r in self.scenarios]

    def get_result(self, scenario_id: str) -> ScenarioResult:
        """Return the result for ``scenario_id``.

        Raises:
            KeyError: If the scenario was not part of the analysis.
        """
        for result in self.scenarios:
            if result.scenario_id == scenario_id:
                return result
        raise KeyError(f"Scenario {scenario_id} not in comparison")

    def correlation_frame(self) -> pd.DataFrame:
        """Correlation matrix labelled by scenario id."""
        ids = self.scenario_ids
        return pd.DataFrame(self.correlation_matrix, index=ids, columns=ids)

    def summary_frame(self) -> pd.DataFrame:
        """One row per scenario with headline statistics and risk metrics."""
        rows = []
        for result in self.scenarios:
            stats = result.simulation_result.statistics
            row: Dict[str, Any] = {
                "scenario": result.scenario_id,
                "mean": stats.mean,
                "median": stats.median,
                "std_dev": stats.std_dev,
                "goal_success_probability": result.simulation_result.goal_success_probability,
            }
            row.update(result.risk_metrics.to_dict())
            row["probability_of_loss"] = result.stress_test_results.probability_of_loss
            rows.append(row)
        return pd.DataFrame(rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenarios": [r.to_dict() for r in self.scenarios],
            "ranking": asdict(self.ranking),
            "correlation_matrix": self.correlation_matrix.tolist(),
            "diversification_benefit": self.diversification_benefit,
            "recommendation": asdict(self.recommendation),
        }


def scenario_cache_key(
    economic_scenario: EconomicScenario,
    base_investment: BaseInvestment,
    config: SimulationConfig,
) -> str:
    """Stable hash of everything that determines a scenario result.

    Intended for external caching layers; the key changes whenever the
    scenario, the investment, the iteration count, the seed or the
    chunking of a parallel run changes.
    """
    payload = {
        "scenario": economic_scenario.model_dump(mode="json"),
        "investment": base_investment.model_dump(mode="json"),
        "iterations": config.iterations,
        "seed": config.seed,
        "parallel": config.parallel,
        "chunk_size": config.chunk_size if config.parallel else None,
    }
    encoded = json.dumps(payload, sort_keys=True).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class ScenarioEngine:
    """Runs economic scenarios through Monte Carlo simulation.

    Args:
        config: Simulation configuration. When ``config.seed`` is None a
            seed is drawn once here and shared by every run of the engine.
        catalog: Scenario catalog used to resolve the baseline. Defaults to
            the packaged catalog.
        baseline_scenario_id: Id of the baseline scenario.

    Raises:
        KeyError: If the baseline id is not in the catalog.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        catalog: Optional[ScenarioCatalog] = None,
        baseline_scenario_id: Optional[str] = None,
    ):
        config = config or SimulationConfig()
        self.seed = config.seed if config.seed is not None else time_seed()
        self.config = replace(config, seed=self.seed)
        self.catalog = catalog if catalog is not None else default_catalog()
        if baseline_scenario_id is None:
            self.baseline_scenario = self.catalog.baseline()
        else:
            self.baseline_scenario = self.catalog.baseline(baseline_scenario_id)
        self._baseline_cache: Dict[str, SimulationResult] = {}

    def convert_to_investment_scenario(
        self,
        economic_scenario: EconomicScenario,
        base_investment: Optional[BaseInvestment] = None,
    ) -> InvestmentScenario:
        """Map macro assumptions onto an investment projection.

        Market return mean and volatility become the expected return and
        volatility, inflation mean becomes the inflation rate and market
        shocks pass through unchanged. Initial value, horizon and target
        come from ``base_investment`` (defaults when omitted).
        """
        base_investment = base_investment or BaseInvestment()
        params = economic_scenario.parameters
        return InvestmentScenario(
            initial_value=base_investment.initial_value,
            expected_return=params.market_return.mean,
            volatility=params.market_return.volatility,
            time_horizon_years=base_investment.time_horizon_years,
            inflation_rate=params.inflation_rate.mean,
            target_value=base_investment.target_value,
            shock_events=tuple(params.market_shocks),
        )

    def _simulate(
        self, economic_scenario: EconomicScenario, base_investment: BaseInvestment, report_progress: bool
    ) -> SimulationResult:
        config = self.config if report_progress else replace(self.config, on_progress=None)
        investment = self.convert_to_investment_scenario(economic_scenario, base_investment)
        return MonteCarloEngine(config).run_simulation(investment)

    def _baseline_result(self, base_investment: BaseInvestment) -> SimulationResult:
        key = scenario_cache_key(self.baseline_scenario, base_investment, self.config)
        if key not in self._baseline_cache:
            logger.debug("Running baseline scenario '%s'", self.baseline_scenario.id)
            self._baseline_cache[key] = self._simulate(
                self.baseline_scenario, base_investment, report_progress=False
            )
        return self._baseline_cache[key]

    def run_scenario_simulation(
        self,
        economic_scenario: EconomicScenario,
        base_investment: Optional[BaseInvestment] = None,
        report_progress: bool = True,
    ) -> ScenarioResult:
        """Simulate one scenario and derive its risk profile.

        Args:
            economic_scenario: Scenario to run.
            base_investment: Investment to project.
            report_progress: Forward per-iteration progress to the
                configured callback.

        Returns:
            Scenario result, compared against the baseline unless the
            scenario is the baseline itself.

        Raises:
            ConfigurationError: If the converted scenario is invalid.
            SimulationError: If a trial fails.
        """
        base_investment = base_investment or BaseInvestment()
        simulation_result = self._simulate(economic_scenario, base_investment, report_progress)

        metrics = ScenarioRiskMetrics(simulation_result.outcomes, base_investment.initial_value)

        if economic_scenario.id == self.baseline_scenario.id:
            comparison = BaselineComparison.for_baseline()
        else:
            baseline = self._baseline_result(base_investment)
            comparison = metrics.compare_to_baseline(baseline.outcomes)

        logger.info("Scenario '%s' simulated", economic_scenario.id)
        return ScenarioResult(
            scenario_id=economic_scenario.id,
            simulation_result=simulation_result,
            risk_metrics=metrics.calculate(),
            stress_test_results=metrics.stress_test(),
            comparison_to_baseline=comparison,
        )

    def run_scenario_analysis(
        self,
        scenarios: Sequence[EconomicScenario],
        base_investment: Optional[BaseInvestment] = None,
    ) -> ScenarioComparison:
        """Simulate every scenario and compare them.

        The progress callback receives the fraction of scenarios completed.

        Raises:
            ValueError: If ``scenarios`` is empty.
        """
        if not scenarios:
            raise ValueError("Scenario analysis needs at least one scenario")

        base_investment = base_investment or BaseInvestment()
        results: List[ScenarioResult] = []
        for scenario in scenarios:
            results.append(
                self.run_scenario_simulation(scenario, base_investment, report_progress=False)
            )
            if self.config.on_progress is not None:
                self.config.on_progress(len(results) / len(scenarios))

        matrix = correlation_matrix([r.simulation_result.outcomes for r in results])
        return ScenarioComparison(
            scenarios=results,
            ranking=self._calculate_rankings(results),
            correlation_matrix=matrix,
            diversification_benefit=self._calculate_diversification_benefit(results, matrix),
            recommendation=self._generate_recommendations(results),
        )

    @staticmethod
    def _calculate_rankings(results: List[ScenarioResult]) -> ScenarioRanking:
        by_return = sorted(results, key=lambda r: r.simulation_result.statistics.mean, reverse=True)
        by_risk = sorted(results, key=lambda r: r.risk_metrics.volatility)
        by_sharpe = sorted(results, key=lambda r: r.risk_metrics.sharpe_ratio, reverse=True)
        return ScenarioRanking(
            by_return=[r.scenario_id for r in by_return],
            by_risk=[r.scenario_id for r in by_risk],
            by_risk_adjusted_return=[r.scenario_id for r in by_sharpe],
        )

    @staticmethod
    def _calculate_diversification_benefit(
        results: List[ScenarioResult], matrix: np.ndarray
    ) -> float:
        """Volatility reduction of an equal-weight mix of the scenarios.

        Portfolio variance is ``sum_ij w^2 vol_i vol_j corr_ij`` with
        ``w = 1 / n`` and a unit-diagonal correlation matrix.
        """
        vols = np.array([r.risk_metrics.volatility for r in results])
        weight = 1.0 / len(results)
        portfolio_variance = max(0.0, float(weight**2 * vols @ matrix @ vols))
        average_vol = float(np.mean(vols))
        return safe_ratio(
            average_vol - np.sqrt(portfolio_variance), average_vol, "Diversification benefit"
        )

    @staticmethod
    def _generate_recommendations(results: List[ScenarioResult]) -> ScenarioRecommendation:
        conservative = min(results, key=lambda r: r.risk_metrics.volatility)
        moderate = max(results, key=lambda r: r.risk_metrics.sharpe_ratio)
        aggressive = max(results, key=lambda r: r.simulation_result.statistics.mean)
        return ScenarioRecommendation(
            conservative=conservative.scenario_id,
            moderate=moderate.scenario_id,
            aggressive=aggressive.scenario_id,
        )


def run_predefined_scenario_analysis(
    base_investment: Optional[BaseInvestment] = None,
    config: Optional[SimulationConfig] = None,
) -> ScenarioComparison:
    """Run every packaged catalog scenario."""
    engine = ScenarioEngine(config)
    return engine.run_scenario_analysis(engine.catalog.scenarios, base_investment)


def run_stress_test(
    base_investment: Optional[BaseInvestment] = None,
    config: Optional[SimulationConfig] = None,
) -> ScenarioComparison:
    """Run the recession and market-crash scenarios of the packaged catalog."""
    engine = ScenarioEngine(config)
    stress_scenarios = [
        s
        for s in engine.catalog
        if s.category in (ScenarioCategory.RECESSION, ScenarioCategory.MARKET_CRASH)
    ]
    return engine.run_scenario_analysis(stress_scenarios, base_investment)
