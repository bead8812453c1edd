"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from scenario_sim.config import BaseInvestment
from scenario_sim.economic_scenarios import ScenarioCatalog, default_catalog
from scenario_sim.monte_carlo import InvestmentScenario, SimulationConfig


@pytest.fixture
def project_root():
    """Return the package root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def catalog() -> ScenarioCatalog:
    """Return the packaged scenario catalog."""
    return default_catalog()


@pytest.fixture
def small_config() -> SimulationConfig:
    """Seeded configuration small enough for fast tests."""
    return SimulationConfig(iterations=500, seed=42)


@pytest.fixture
def short_investment() -> BaseInvestment:
    """Five-year investment used by scenario-level tests."""
    return BaseInvestment(initial_value=100_000, time_horizon_years=5, target_value=130_000)


@pytest.fixture
def basic_scenario() -> InvestmentScenario:
    """Plain 30-year projection without shocks."""
    return InvestmentScenario(
        initial_value=100_000,
        expected_return=0.07,
        volatility=0.12,
        time_horizon_years=30,
        target_value=500_000,
    )
