"""Time-based scenario evolution with parameter drift and regime changes.

:class:`TimeBasedScenarioEngine` keeps one long-lived
:class:`ScenarioEvolution` and advances it on a periodic update. Each update

1. adds the elapsed time (in years) to the regime age,
2. drifts configured parameters (Euler step with optional mean reversion,
   noise from the engine's generator, clamped to bounds),
3. evaluates regime-change rules for the current scenario; the first rule
   whose triggers hold and whose Bernoulli trial fires wins,
4. applies or advances the transition,
5. records a snapshot and prunes snapshots older than the retention window,
6. refits linear trends of tracked parameters over recent snapshots,
7. notifies subscribers.

The engine has two states. It is *steady* when ``active_transition`` is
None and *transitioning* otherwise. Immediate transitions complete within
the update that fires them. Gradual and smooth transitions ramp over
``transition_duration_months``: progress grows by ``dt * 12 / months`` per
update and parameters are blended from the pre-transition snapshot toward
the target scenario with weight ``p`` (gradual) or ``3p^2 - 2p^3`` (smooth).
Drift and rule evaluation pause while a transition is in progress. On
completion the target scenario becomes current and the regime age resets
to zero.

Examples:
    Step the engine by hand::

        from datetime import timedelta
        from scenario_sim.config import TimeBasedScenarioConfig
        from scenario_sim.scheduling import ManualClock, ManualScheduler

        clock = ManualClock()
        engine = TimeBasedScenarioEngine(
            time_based_config=TimeBasedScenarioConfig.from_profile("dynamic"),
            clock=clock,
            scheduler=ManualScheduler(clock),
        )
        engine.start_time_based_updates()
        engine.scheduler.advance(timedelta(days=365))
        print(engine.get_scenario_evolution().regime_age_years)
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
import itertools
import logging
import math
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple
import warnings

import numpy as np
from scipy import stats

from ._warnings import ConfigurationWarning
from .config.constants import (
    DAYS_PER_YEAR,
    DEFAULT_MARKET_CONDITION,
    DEFAULT_TRANSITION_DURATION_MONTHS,
    EQUAL_COMPARISON_TOLERANCE,
    TREND_STABILITY_THRESHOLD,
)
from .config.scenarios import BaseInvestment, EconomicParameters, EconomicScenario
from .config.time_based import (
    RegimeChangeRule,
    ThresholdComparison,
    TimeBasedScenarioConfig,
    TransitionSpeed,
)
from .economic_scenarios import ScenarioCatalog
from .market_data import MarketCondition, MarketDataProvider
from .monte_carlo import SimulationConfig
from .observers import ObserverRegistry
from .parameters import (
    TRACKED_TREND_PARAMETERS,
    ScenarioParameter,
    get_parameter,
    interpolate_parameters,
    set_parameter,
)
from .random_generator import RandomNumberGenerator
from .scenario_engine import ScenarioEngine, ScenarioResult
from .scheduling import Clock, ScheduledTask, Scheduler, SystemClock, ThreadingScheduler

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = DAYS_PER_YEAR * 24 * 60 * 60

STABILITY_PARAMETERS = (ScenarioParameter.MARKET_RETURN_MEAN, ScenarioParameter.INFLATION_MEAN)


class TrendDirection(Enum):
    """Direction of a fitted parameter trend."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass
class HistoricalParameterSnapshot:
    """State of the evolution at one update."""

    timestamp: datetime
    scenario_id: str
    parameters: EconomicParameters
    market_condition: MarketCondition
    regime_age_years: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "scenario_id": self.scenario_id,
            "parameters": self.parameters.model_dump(mode="json"),
            "market_condition": self.market_condition.value,
            "regime_age_years": self.regime_age_years,
        }


@dataclass
class ParameterTrend:
    """Linear trend of a parameter over recent snapshots.

    ``rate`` is the absolute slope per update; ``confidence`` is the
    coefficient of determination of the fit.
    """

    parameter: ScenarioParameter
    direction: TrendDirection
    rate: float
    confidence: float


@dataclass
class ScenarioTransition:
    """A regime change, either in progress or completed."""

    id: str
    timestamp: datetime
    from_scenario_id: str
    to_scenario_id: str
    reason: str
    method: TransitionSpeed
    completion_progress: float
    parameters_snapshot: EconomicParameters
    duration_months: float = DEFAULT_TRANSITION_DURATION_MONTHS
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "from_scenario_id": self.from_scenario_id,
            "to_scenario_id": self.to_scenario_id,
            "reason": self.reason,
            "method": self.method.value,
            "completion_progress": self.completion_progress,
            "parameters_snapshot": self.parameters_snapshot.model_dump(mode="json"),
            "duration_months": self.duration_months,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ScenarioEvolution:
    """Long-lived evolving state of the time-based engine."""

    current_scenario: EconomicScenario
    current_parameters: EconomicParameters
    last_update: datetime
    regime_age_years: float = 0.0
    historical_snapshots: List[HistoricalParameterSnapshot] = field(default_factory=list)
    active_transition: Optional[ScenarioTransition] = None
    parameter_trends: List[ParameterTrend] = field(default_factory=list)

    @property
    def is_transitioning(self) -> bool:
        return self.active_transition is not None


@dataclass
class TimeBasedMetrics:
    """Summary of how the evolution has behaved so far."""

    parameter_stability: float
    regime_change_count: int
    average_regime_duration: float
    parameter_drift_impact: float
    adaptability_score: float


@dataclass
class TimeBasedScenarioResult(ScenarioResult):
    """Scenario result for the evolved parameters plus evolution history."""

    time_based_metrics: TimeBasedMetrics
    evolution_history: List[HistoricalParameterSnapshot]
    transition_history: List[ScenarioTransition]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["time_based_metrics"] = vars(self.time_based_metrics).copy()
        data["evolution_history"] = [s.to_dict() for s in self.evolution_history]
        data["transition_history"] = [t.to_dict() for t in self.transition_history]
        return data


def calculate_trend(values: List[float]) -> Tuple[TrendDirection, float, float]:
    """Fit a line to ``values`` against their index.

    Returns:
        Tuple of (direction, absolute slope, r squared). Fewer than two
        values give a stable trend with zero rate and confidence.
    """
    if len(values) < 2:
        return TrendDirection.STABLE, 0.0, 0.0

    fit = stats.linregress(np.arange(len(values), dtype=np.float64), np.asarray(values))
    slope = float(fit.slope) if math.isfinite(fit.slope) else 0.0
    r_squared = float(fit.rvalue) ** 2 if math.isfinite(fit.rvalue) else 0.0

    if abs(slope) < TREND_STABILITY_THRESHOLD:
        direction = TrendDirection.STABLE
    elif slope > 0:
        direction = TrendDirection.INCREASING
    else:
        direction = TrendDirection.DECREASING
    return direction, abs(slope), min(1.0, r_squared)


def evaluate_threshold(value: float, threshold: float, comparison: ThresholdComparison) -> bool:
    """Evaluate a parameter-threshold trigger."""
    if comparison is ThresholdComparison.GREATER:
        return value > threshold
    if comparison is ThresholdComparison.LESS:
        return value < threshold
    return abs(value - threshold) < EQUAL_COMPARISON_TOLERANCE


class TimeBasedScenarioEngine(ScenarioEngine):
    """Scenario engine whose active scenario evolves over time.

    Args:
        config: Simulation configuration (see :class:`ScenarioEngine`).
        time_based_config: Drift, regime and cadence settings.
        initial_scenario: Starting regime. Defaults to the baseline.
        market_data: Optional provider consulted by market-condition triggers.
        clock: Time source. Defaults to :class:`SystemClock`.
        scheduler: Periodic runner. Defaults to :class:`ThreadingScheduler`.
        catalog: Scenario catalog used to resolve baseline and rule targets.
        baseline_scenario_id: Id of the baseline scenario.
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        time_based_config: Optional[TimeBasedScenarioConfig] = None,
        initial_scenario: Optional[EconomicScenario] = None,
        market_data: Optional[MarketDataProvider] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        catalog: Optional[ScenarioCatalog] = None,
        baseline_scenario_id: Optional[str] = None,
    ):
        super().__init__(config, catalog, baseline_scenario_id)
        self.time_based_config = time_based_config or TimeBasedScenarioConfig()
        self.market_data = market_data
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or ThreadingScheduler()
        self.rng = RandomNumberGenerator(self.seed)

        self._observers: ObserverRegistry[ScenarioEvolution] = ObserverRegistry(
            "scenario evolution"
        )
        self._tick_lock = threading.Lock()
        self._state_lock = threading.RLock()
        self._schedule_lock = threading.Lock()
        self._schedule: Optional[ScheduledTask] = None
        self._transition_target: Optional[EconomicScenario] = None
        self._transition_history: List[ScenarioTransition] = []
        self._transition_ids = itertools.count(1)

        self._check_rule_targets()

        initial = initial_scenario or self.baseline_scenario
        now = self.clock.now()
        self._evolution = ScenarioEvolution(
            current_scenario=initial,
            current_parameters=initial.parameters.model_copy(deep=True),
            last_update=now,
        )
        self._record_snapshot(now, self._current_market_condition())

    # --- Lifecycle ---

    @property
    def is_running(self) -> bool:
        return self._schedule is not None

    def start_time_based_updates(self) -> None:
        """Start periodic updates. No-op if already running."""
        with self._schedule_lock:
            if self._schedule is not None:
                return
            interval = self.time_based_config.update_frequency.interval
            self._schedule = self.scheduler.every(interval, self.tick)
            logger.info("Time-based updates started (every %s)", interval)

    def stop_time_based_updates(self) -> None:
        """Stop periodic updates. No-op if already stopped."""
        with self._schedule_lock:
            if self._schedule is None:
                return
            self._schedule.cancel()
            self._schedule = None
            logger.info("Time-based updates stopped")

    # --- Observers ---

    def subscribe_to_evolution(
        self, callback: Callable[[ScenarioEvolution], None]
    ) -> Callable[[], None]:
        """Register ``callback`` for evolution updates.

        The callback receives a copy of the evolution after every update.

        Returns:
            Function that removes the subscription.
        """
        return self._observers.subscribe(callback)

    def get_scenario_evolution(self) -> ScenarioEvolution:
        """Return a deep copy of the current evolution state."""
        with self._state_lock:
            return copy.deepcopy(self._evolution)

    def get_transition_history(self) -> List[ScenarioTransition]:
        """Return completed transitions, oldest first."""
        with self._state_lock:
            return copy.deepcopy(self._transition_history)

    # --- Update cycle ---

    def tick(self) -> bool:
        """Perform one update.

        Returns:
            False if another update was still running and this one was
            skipped, True otherwise.
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Skipping time-based update; previous update still running")
            return False
        try:
            with self._state_lock:
                self._perform_update()
                evolution = copy.deepcopy(self._evolution)
            self._observers.notify(evolution)
            return True
        finally:
            self._tick_lock.release()

    def _perform_update(self) -> None:
        now = self.clock.now()
        condition = self._current_market_condition()
        saved = (
            copy.deepcopy(self._evolution),
            self._transition_target,
            list(self._transition_history),
        )
        try:
            self._apply_update(now, condition)
        except Exception:
            self._evolution, self._transition_target, self._transition_history = saved
            raise

    def _apply_update(self, now: datetime, condition: MarketCondition) -> None:
        evolution = self._evolution
        dt = max(0.0, (now - evolution.last_update).total_seconds() / SECONDS_PER_YEAR)
        evolution.regime_age_years += dt

        if evolution.active_transition is not None:
            self._advance_transition(dt, now)
        else:
            if self.time_based_config.enable_parameter_drift:
                self._apply_parameter_drift(dt)
            if self.time_based_config.enable_regime_changes:
                self._check_for_regime_change(now, condition)

        self._record_snapshot(now, condition)
        self._prune_snapshots(now)
        self._update_parameter_trends()
        evolution.last_update = now

    def _apply_parameter_drift(self, dt: float) -> None:
        params = self._evolution.current_parameters
        for drift in self.time_based_config.parameter_drifts:
            current = get_parameter(params, drift.parameter)
            noise = self.rng.normal(0.0, drift.volatility * math.sqrt(dt))
            new_value = current + drift.drift_rate * dt + noise

            reversion = drift.mean_reversion
            if reversion is not None and reversion.enabled:
                new_value += reversion.rate * (reversion.target - current) * dt

            new_value = min(drift.bounds.max, max(drift.bounds.min, new_value))
            params = set_parameter(params, drift.parameter, new_value)
        self._evolution.current_parameters = params

    def _current_market_condition(self) -> MarketCondition:
        if self.market_data is None:
            return MarketCondition(DEFAULT_MARKET_CONDITION)
        return MarketCondition(self.market_data.get_current_data().market_condition)

    def _triggers_satisfied(self, rule: RegimeChangeRule, condition: MarketCondition) -> bool:
        triggers = rule.triggers
        evolution = self._evolution

        if (
            triggers.time_threshold_years is not None
            and evolution.regime_age_years < triggers.time_threshold_years
        ):
            return False

        for threshold in triggers.parameter_thresholds:
            value = get_parameter(evolution.current_parameters, threshold.parameter)
            if not evaluate_threshold(value, threshold.threshold, threshold.comparison):
                return False

        if triggers.market_conditions and self.market_data is not None:
            if condition not in triggers.market_conditions:
                return False

        return True

    def _check_for_regime_change(self, now: datetime, condition: MarketCondition) -> None:
        current_id = self._evolution.current_scenario.id
        for rule in self.time_based_config.regime_rules:
            if rule.from_scenario_id != current_id:
                continue
            if not self._triggers_satisfied(rule, condition):
                continue
            if self.rng.uniform() >= rule.transition_probability:
                continue

            target = self.catalog.get(rule.to_scenario_id)
            if target is None:
                logger.warning(
                    "Regime rule targets unknown scenario '%s'; ignoring", rule.to_scenario_id
                )
                continue
            self._initiate_transition(rule, target, now)
            break

    def _initiate_transition(
        self, rule: RegimeChangeRule, target: EconomicScenario, now: datetime
    ) -> None:
        evolution = self._evolution
        transition = ScenarioTransition(
            id=f"transition_{next(self._transition_ids)}",
            timestamp=now,
            from_scenario_id=evolution.current_scenario.id,
            to_scenario_id=target.id,
            reason=(
                f"Automatic regime change from {rule.from_scenario_id} to "
                f"{rule.to_scenario_id} triggered by configured rules"
            ),
            method=rule.transition_speed,
            completion_progress=0.0,
            parameters_snapshot=evolution.current_parameters.model_copy(deep=True),
            duration_months=rule.transition_duration_months or DEFAULT_TRANSITION_DURATION_MONTHS,
        )
        logger.info(
            "Regime change %s -> %s (%s)",
            transition.from_scenario_id,
            transition.to_scenario_id,
            transition.method.value,
        )

        self._transition_target = target
        if rule.transition_speed is TransitionSpeed.IMMEDIATE:
            self._complete_transition(transition, now)
        else:
            evolution.active_transition = transition

    def _advance_transition(self, dt: float, now: datetime) -> None:
        transition = self._evolution.active_transition
        target = self._transition_target
        if transition is None or target is None:
            return

        progress = min(1.0, transition.completion_progress + dt * 12.0 / transition.duration_months)
        transition.completion_progress = progress
        if progress >= 1.0:
            self._complete_transition(transition, now)
            return

        if transition.method is TransitionSpeed.SMOOTH:
            weight = progress * progress * (3.0 - 2.0 * progress)
        else:
            weight = progress
        self._evolution.current_parameters = interpolate_parameters(
            transition.parameters_snapshot, target.parameters, weight
        )

    def _complete_transition(self, transition: ScenarioTransition, now: datetime) -> None:
        target = self._transition_target
        if target is None:
            return
        evolution = self._evolution
        evolution.current_scenario = target
        evolution.current_parameters = target.parameters.model_copy(deep=True)
        evolution.regime_age_years = 0.0
        evolution.active_transition = None
        transition.completion_progress = 1.0
        transition.completed_at = now
        self._transition_history.append(transition)
        self._transition_target = None

    def _record_snapshot(self, now: datetime, condition: MarketCondition) -> None:
        evolution = self._evolution
        evolution.historical_snapshots.append(
            HistoricalParameterSnapshot(
                timestamp=now,
                scenario_id=evolution.current_scenario.id,
                parameters=evolution.current_parameters.model_copy(deep=True),
                market_condition=condition,
                regime_age_years=evolution.regime_age_years,
            )
        )

    def _prune_snapshots(self, now: datetime) -> None:
        window = timedelta(days=self.time_based_config.historical_context_window * DAYS_PER_YEAR)
        cutoff = now - window
        self._evolution.historical_snapshots = [
            s for s in self._evolution.historical_snapshots if s.timestamp >= cutoff
        ]

    def _update_parameter_trends(self) -> None:
        snapshots = self._evolution.historical_snapshots
        window = min(self.time_based_config.smoothing_window, len(snapshots))
        if window < 2:
            return

        recent = snapshots[-window:]
        trends = []
        for parameter in TRACKED_TREND_PARAMETERS:
            values = [get_parameter(s.parameters, parameter) for s in recent]
            direction, rate, confidence = calculate_trend(values)
            trends.append(
                ParameterTrend(
                    parameter=parameter, direction=direction, rate=rate, confidence=confidence
                )
            )
        self._evolution.parameter_trends = trends

    # --- Simulation ---

    def calculate_time_based_metrics(self) -> TimeBasedMetrics:
        """Summarize stability, regime changes and trend strength."""
        with self._state_lock:
            evolution = self._evolution
            snapshots = evolution.historical_snapshots
            changes = sum(
                1
                for previous, current in zip(snapshots, snapshots[1:])
                if previous.scenario_id != current.scenario_id
            )
            trends = evolution.parameter_trends
            trend_count = max(1, len(trends))
            drift_impact = sum(t.rate * t.confidence for t in trends) / trend_count
            trend_score = sum(t.confidence for t in trends) / trend_count
            regime_score = min(1.0, evolution.regime_age_years / 2.0)

            return TimeBasedMetrics(
                parameter_stability=self._parameter_stability(snapshots),
                regime_change_count=changes,
                average_regime_duration=(
                    evolution.regime_age_years / max(1, changes) if snapshots else 0.0
                ),
                parameter_drift_impact=drift_impact,
                adaptability_score=(trend_score + regime_score) / 2.0,
            )

    @staticmethod
    def _parameter_stability(snapshots: List[HistoricalParameterSnapshot]) -> float:
        """One minus the average coefficient of variation, floored at zero."""
        if len(snapshots) < 2:
            return 1.0
        total = 0.0
        for parameter in STABILITY_PARAMETERS:
            values = np.array([get_parameter(s.parameters, parameter) for s in snapshots])
            mean = float(np.mean(values))
            std = float(np.std(values))
            if mean == 0:
                # Coefficient of variation undefined; treat any spread as fully unstable
                total += 0.0 if std == 0 else 1.0
            else:
                total += std / abs(mean)
        return max(0.0, 1.0 - total / len(STABILITY_PARAMETERS))

    def run_time_based_scenario_simulation(
        self, base_investment: Optional[BaseInvestment] = None
    ) -> TimeBasedScenarioResult:
        """Simulate the current regime with its evolved parameters."""
        with self._state_lock:
            evolution = self._evolution
            scenario = evolution.current_scenario.model_copy(
                update={"parameters": evolution.current_parameters.model_copy(deep=True)}
            )
            history = copy.deepcopy(evolution.historical_snapshots)
            transitions = copy.deepcopy(self._transition_history)
            metrics = self.calculate_time_based_metrics()

        result = self.run_scenario_simulation(scenario, base_investment)
        return TimeBasedScenarioResult(
            scenario_id=result.scenario_id,
            simulation_result=result.simulation_result,
            risk_metrics=result.risk_metrics,
            stress_test_results=result.stress_test_results,
            comparison_to_baseline=result.comparison_to_baseline,
            time_based_metrics=metrics,
            evolution_history=history,
            transition_history=transitions,
        )

    def _check_rule_targets(self) -> None:
        for rule in self.time_based_config.regime_rules:
            for scenario_id in (rule.from_scenario_id, rule.to_scenario_id):
                if scenario_id not in self.catalog:
                    message = f"Regime rule references unknown scenario '{scenario_id}'"
                    logger.warning(message)
                    warnings.warn(message, ConfigurationWarning, stacklevel=3)
