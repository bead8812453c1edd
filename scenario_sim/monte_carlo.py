"""Monte Carlo engine projecting investment outcomes under random returns.

Each trial compounds an initial value over the scenario horizon with
normally distributed annual returns, net of inflation, optionally scaled
by discrete market shocks. A run collects one terminal value per trial and
summarizes the distribution (moments, percentiles, confidence intervals and
the probability of reaching the target value).

Runs are reproducible: every call to :meth:`MonteCarloEngine.run_simulation`
restarts the engine's generator from its seed, so identical
``(seed, scenario, iterations)`` inputs give bit-identical outcome vectors.

Examples:
    Basic run::

        from scenario_sim.monte_carlo import InvestmentScenario, MonteCarloEngine, SimulationConfig

        scenario = InvestmentScenario(
            initial_value=100_000,
            expected_return=0.07,
            volatility=0.12,
            time_horizon_years=30,
            target_value=500_000,
        )
        engine = MonteCarloEngine(SimulationConfig(iterations=10_000, seed=42))
        result = engine.run_simulation(scenario)
        print(f"P(goal) = {result.goal_success_probability:.1%}")
"""

from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
import logging
import math
import numbers
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import warnings

import numpy as np
from tqdm import tqdm

from ._warnings import DataQualityWarning
from .config.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_INFLATION_RATE,
    DEFAULT_ITERATIONS,
    DEFAULT_TARGET_VALUE,
    ENGINE_VERSION,
    PROGRESS_REPORT_INTERVAL,
    VALIDATION_BINS,
    VALIDATION_SAMPLE_SIZE,
)
from .config.exceptions import ConfigurationError
from .config.scenarios import MarketShock
from .monte_carlo_worker import run_chunk_standalone, simulate_trial
from .random_generator import RandomNumberGenerator
from .statistical_tests import UniformityTestResult, chi_square_uniformity_test
from .summary_statistics import (
    ConfidenceInterval,
    SimulationStatistics,
    calculate_confidence_intervals,
    calculate_statistics,
)

logger = logging.getLogger(__name__)


class SimulationError(RuntimeError):
    """Raised when a trial fails during a simulation run.

    The original exception is available as ``__cause__``.
    """


@dataclass(frozen=True)
class InvestmentScenario:
    """Assumptions for a single investment projection.

    Attributes:
        initial_value: Starting portfolio value.
        expected_return: Mean nominal annual return.
        volatility: Standard deviation of the annual return.
        time_horizon_years: Number of annual compounding steps.
        inflation_rate: Annual inflation subtracted from each return.
        target_value: Goal value for the success probability.
        shock_events: Discrete shocks evaluated every year.

    Raises:
        ConfigurationError: On construction, if any value is non-finite or
            out of range.
    """

    initial_value: float
    expected_return: float
    volatility: float
    time_horizon_years: int
    inflation_rate: float = DEFAULT_INFLATION_RATE
    target_value: float = DEFAULT_TARGET_VALUE
    shock_events: Tuple[MarketShock, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "shock_events", tuple(self.shock_events))
        issues = self._find_issues()
        if issues:
            raise ConfigurationError(issues)

    def _find_issues(self) -> List[str]:
        issues = []
        for name in (
            "initial_value",
            "expected_return",
            "volatility",
            "inflation_rate",
            "target_value",
        ):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not math.isfinite(value):
                issues.append(f"{name} must be a finite number, got {value!r}")

        if not issues:
            if self.initial_value <= 0:
                issues.append(f"initial_value must be positive, got {self.initial_value}")
            if self.volatility < 0:
                issues.append(f"volatility must be non-negative, got {self.volatility}")
            if self.target_value <= 0:
                issues.append(f"target_value must be positive, got {self.target_value}")

        horizon = self.time_horizon_years
        if isinstance(horizon, bool) or not isinstance(horizon, numbers.Integral):
            issues.append(f"time_horizon_years must be an integer, got {horizon!r}")
        elif horizon <= 0:
            issues.append(f"time_horizon_years must be positive, got {horizon}")

        for i, shock in enumerate(self.shock_events):
            if not 0.0 <= shock.probability <= 1.0:
                issues.append(f"shock_events[{i}].probability must be in [0, 1]")
            if not math.isfinite(shock.impact) or shock.impact <= -1.0:
                issues.append(f"shock_events[{i}].impact must be finite and > -1")
        return issues

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["shock_events"] = [shock.model_dump() for shock in self.shock_events]
        return data


@dataclass
class SimulationConfig:
    """Configuration for a Monte Carlo run.

    Attributes:
        iterations: Number of trials.
        seed: Generator seed. None picks a time-derived seed once, when the
            engine is created; it is reported in the result metadata.
        on_progress: Optional callback receiving the completed fraction.
            It fires on iterations 0, 1000, 2000, ... and is advisory only.
        progress_bar: Show a tqdm progress bar.
        parallel: Run trial chunks in worker processes.
        n_workers: Number of worker processes (None for auto).
        chunk_size: Trials per worker chunk.
    """

    iterations: int = DEFAULT_ITERATIONS
    seed: Optional[int] = None
    on_progress: Optional[Callable[[float], None]] = None
    progress_bar: bool = False
    parallel: bool = False
    n_workers: Optional[int] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is out of its valid range.
        """
        if self.iterations <= 0:
            raise ValueError(
                f"iterations must be positive, got {self.iterations}. "
                "Use at least 1000 for meaningful results."
            )
        if self.seed is not None and not 0 <= self.seed <= 0xFFFFFFFF:
            raise ValueError(f"seed must be a 32-bit unsigned integer, got {self.seed}")
        if self.chunk_size <= 0:
            raise ValueError(
                f"chunk_size must be positive, got {self.chunk_size}. "
                "Typical values are 1000-10000."
            )
        if self.n_workers is not None and self.n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {self.n_workers}")


@dataclass
class SimulationResult:
    """Results from a Monte Carlo run.

    Attributes:
        scenario: Scenario that was simulated.
        iterations: Number of trials.
        outcomes: Terminal value of every trial, in iteration order.
        statistics: Summary statistics of ``outcomes``.
        goal_success_probability: Share of outcomes at or above the target.
        confidence_intervals: Empirical intervals at 90/95/99 percent.
        execution_time: Wall-clock duration of the run in seconds.
        metadata: Seed, timestamp and engine version.
    """

    scenario: InvestmentScenario
    iterations: int
    outcomes: np.ndarray
    statistics: SimulationStatistics
    goal_success_probability: float
    confidence_intervals: List[ConfidenceInterval]
    execution_time: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "scenario": self.scenario.to_dict(),
            "iterations": self.iterations,
            "outcomes": self.outcomes.tolist(),
            "statistics": self.statistics.to_dict(),
            "goal_success_probability": self.goal_success_probability,
            "confidence_intervals": [ci.to_dict() for ci in self.confidence_intervals],
            "execution_time": self.execution_time,
            "metadata": dict(self.metadata),
        }


class MonteCarloEngine:
    """Runs Monte Carlo projections of investment scenarios.

    The engine exclusively owns one :class:`RandomNumberGenerator`. Parallel
    runs derive an independent child generator per chunk instead of
    sharing it.

    Args:
        config: Simulation configuration. Defaults to ``SimulationConfig()``.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config or SimulationConfig()
        self.rng = RandomNumberGenerator(self.config.seed)

    @property
    def seed(self) -> int:
        """Seed every run starts from."""
        return self.rng.seed

    def run_simulation(self, scenario: InvestmentScenario) -> SimulationResult:
        """Run the configured number of trials for ``scenario``.

        Args:
            scenario: Investment assumptions (validated on construction).

        Returns:
            Populated :class:`SimulationResult`.

        Raises:
            SimulationError: If a trial raises or yields a non-finite value.
        """
        start_time = time.time()
        seed = self.rng.seed
        iterations = self.config.iterations
        self.rng.reseed(seed)

        logger.debug(
            "Running %d iterations over %d years (seed=%d, parallel=%s)",
            iterations,
            scenario.time_horizon_years,
            seed,
            self.config.parallel,
        )

        try:
            if self.config.parallel and iterations > self.config.chunk_size:
                outcomes = self._run_parallel(scenario)
            else:
                outcomes = self._run_sequential(scenario)
        except SimulationError:
            raise
        except (ArithmeticError, ValueError, TypeError, RuntimeError, OSError) as e:
            raise SimulationError(f"Monte Carlo simulation failed: {e}") from e

        if not np.all(np.isfinite(outcomes)):
            bad = int(np.count_nonzero(~np.isfinite(outcomes)))
            raise SimulationError(f"Monte Carlo simulation produced {bad} non-finite outcomes")

        statistics = calculate_statistics(outcomes)
        goal_success_probability = (
            np.count_nonzero(outcomes >= scenario.target_value) / iterations
        )
        execution_time = time.time() - start_time

        logger.info(
            "Simulation complete: %d iterations in %.2fs, mean=%.2f, P(goal)=%.3f",
            iterations,
            execution_time,
            statistics.mean,
            goal_success_probability,
        )

        return SimulationResult(
            scenario=scenario,
            iterations=iterations,
            outcomes=outcomes,
            statistics=statistics,
            goal_success_probability=float(goal_success_probability),
            confidence_intervals=calculate_confidence_intervals(outcomes),
            execution_time=execution_time,
            metadata={
                "seed": seed,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "engine_version": ENGINE_VERSION,
            },
        )

    def _run_sequential(self, scenario: InvestmentScenario) -> np.ndarray:
        """Run all trials on the engine's own generator."""
        iterations = self.config.iterations
        on_progress = self.config.on_progress
        outcomes = np.empty(iterations, dtype=np.float64)

        iterator: Sequence[int] = range(iterations)
        if self.config.progress_bar:
            iterator = tqdm(iterator, desc="Running simulations")

        for i in iterator:
            outcomes[i] = simulate_trial(scenario, self.rng)
            if on_progress is not None and i % PROGRESS_REPORT_INTERVAL == 0:
                on_progress(i / iterations)

        return outcomes

    def _run_parallel(self, scenario: InvestmentScenario) -> np.ndarray:
        """Run trial chunks in worker processes.

        Each chunk gets a child seed derived from the engine seed, so a
        parallel run is reproducible for a fixed ``(seed, chunk_size)`` but
        draws a different stream than the sequential path.
        """
        iterations = self.config.iterations
        chunk_size = self.config.chunk_size
        starts = list(range(0, iterations, chunk_size))
        seeds = self.rng.spawn_seeds(len(starts))
        chunks = [
            (start, min(start + chunk_size, iterations), seed)
            for start, seed in zip(starts, seeds)
        ]

        outcomes = np.empty(iterations, dtype=np.float64)
        completed = 0
        pbar = tqdm(total=len(chunks), desc="Processing chunks") if self.config.progress_bar else None

        with ProcessPoolExecutor(max_workers=self.config.n_workers) as executor:
            futures = {
                executor.submit(run_chunk_standalone, chunk, scenario): chunk for chunk in chunks
            }
            for future in as_completed(futures):
                start_idx, chunk_outcomes = future.result()
                outcomes[start_idx : start_idx + len(chunk_outcomes)] = chunk_outcomes
                completed += len(chunk_outcomes)

                if pbar is not None:
                    pbar.update(1)
                if self.config.on_progress is not None:
                    self.config.on_progress(completed / iterations)

        if pbar is not None:
            pbar.close()
        return outcomes

    def validate_random_generator(
        self, sample_size: int = VALIDATION_SAMPLE_SIZE
    ) -> UniformityTestResult:
        """Check the generator's uniformity with a 10-bin chi-square test.

        Draws continue the generator stream; the next run still restarts
        from the seed.

        Args:
            sample_size: Number of uniforms to draw.

        Returns:
            Test result with the tabulated and exact p-values.
        """
        samples = self.rng.uniform_array(sample_size)
        result = chi_square_uniformity_test(samples, bins=VALIDATION_BINS)
        logger.debug(
            "Generator check: chi2=%.3f, tabulated p=%.2f, exact p=%.4f",
            result.chi_square,
            result.p_value,
            result.exact_p_value,
        )
        if not result.is_valid:
            warnings.warn(
                f"Random generator failed uniformity check (chi2={result.chi_square:.3f}, "
                f"exact p={result.exact_p_value:.4f})",
                DataQualityWarning,
                stacklevel=2,
            )
        return result
