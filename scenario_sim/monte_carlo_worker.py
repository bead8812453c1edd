"""Trial kernel and standalone chunk worker for Monte Carlo simulations."""

from typing import TYPE_CHECKING, Tuple

import numpy as np

from .random_generator import RandomNumberGenerator

if TYPE_CHECKING:
    from .monte_carlo import InvestmentScenario


def simulate_trial(scenario: "InvestmentScenario", rng: RandomNumberGenerator) -> float:
    """Project one terminal portfolio value.

    Each year draws a nominal return, subtracts inflation, applies every
    shock that fires that year as a multiplier on the real return, and
    compounds the portfolio value.

    Args:
        scenario: Investment assumptions.
        rng: Generator the draws are taken from, in a fixed order
            (one normal, then one uniform per shock, per year).

    Returns:
        Terminal value after ``scenario.time_horizon_years`` years.
    """
    value = scenario.initial_value
    for _ in range(scenario.time_horizon_years):
        nominal_return = rng.normal(scenario.expected_return, scenario.volatility)
        real_return = nominal_return - scenario.inflation_rate

        shock_multiplier = 1.0
        for shock in scenario.shock_events:
            if rng.uniform() < shock.probability:
                shock_multiplier *= 1.0 + shock.impact

        value *= 1.0 + real_return * shock_multiplier
    return value


def run_chunk_standalone(
    chunk: Tuple[int, int, int],
    scenario: "InvestmentScenario",
) -> Tuple[int, np.ndarray]:
    """Standalone function to run a chunk of trials for multiprocessing.

    This function is independent of the MonteCarloEngine class and can be
    pickled for multiprocessing on all platforms including Windows.

    Args:
        chunk: Tuple of (start_idx, end_idx, seed). Each chunk owns a
            generator seeded with its own seed.
        scenario: Investment assumptions.

    Returns:
        Tuple of (start_idx, terminal values for the chunk).
    """
    start_idx, end_idx, seed = chunk
    rng = RandomNumberGenerator(seed)
    outcomes = np.empty(end_idx - start_idx, dtype=np.float64)
    for i in range(end_idx - start_idx):
        outcomes[i] = simulate_trial(scenario, rng)
    return start_idx, outcomes
