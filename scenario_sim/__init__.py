"""Economic scenario Monte Carlo simulation"""

import importlib

from ._version import __version__
from ._warnings import ConfigurationWarning, DataQualityWarning, ScenarioSimWarning

# Use lazy imports to avoid import issues during test discovery
# Names are resolved to their modules only when accessed

_LAZY_IMPORTS = {
    "Config": ".config",
    "ConfigurationError": ".config",
    "BaseInvestment": ".config",
    "EconomicScenario": ".config",
    "MarketShock": ".config",
    "TimeBasedScenarioConfig": ".config",
    "ScenarioCatalog": ".economic_scenarios",
    "get_scenario_by_id": ".economic_scenarios",
    "RandomNumberGenerator": ".random_generator",
    "InvestmentScenario": ".monte_carlo",
    "MonteCarloEngine": ".monte_carlo",
    "SimulationConfig": ".monte_carlo",
    "SimulationError": ".monte_carlo",
    "SimulationResult": ".monte_carlo",
    "ScenarioRiskMetrics": ".risk_metrics",
    "ScenarioEngine": ".scenario_engine",
    "ScenarioResult": ".scenario_engine",
    "ScenarioComparison": ".scenario_engine",
    "run_predefined_scenario_analysis": ".scenario_engine",
    "run_stress_test": ".scenario_engine",
    "TimeBasedScenarioEngine": ".time_based_engine",
    "ScenarioComparator": ".scenario_comparator",
    "quick_compare_scenarios": ".scenario_comparator",
    "generate_comparison_table": ".scenario_comparator",
    "ManualClock": ".scheduling",
    "ManualScheduler": ".scheduling",
}

__all__ = [
    "__version__",
    "ConfigurationWarning",
    "DataQualityWarning",
    "ScenarioSimWarning",
    *_LAZY_IMPORTS,
]


def __getattr__(name):
    """Lazy import modules to avoid circular dependencies during test discovery."""
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module = importlib.import_module(module_name, __name__)
    return getattr(module, name)
