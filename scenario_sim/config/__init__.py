"""Configuration management using Pydantic v2 models.

Sub-modules:
    constants: Module-level defaults and thresholds.
    core: Master Config class with YAML I/O and logging setup.
    exceptions: ConfigurationError raised for unusable inputs.
    reporting: Logging configuration.
    scenarios: Economic scenario, market shock and base investment models.
    time_based: Parameter drift, regime rules and time-based profiles.
"""

from .constants import BASELINE_SCENARIO_ID, DEFAULT_ITERATIONS
from .core import Config, SimulationSettings
from .exceptions import ConfigurationError
from .reporting import LoggingConfig
from .scenarios import (
    BaseInvestment,
    DurationRange,
    EconomicParameters,
    EconomicScenario,
    GdpGrowth,
    InflationRate,
    InterestRates,
    MarketReturn,
    MarketShock,
    ScenarioCategory,
    Unemployment,
)
from .time_based import (
    MeanReversion,
    ParameterBounds,
    ParameterDrift,
    ParameterThreshold,
    RegimeChangeRule,
    RegimeTriggers,
    ThresholdComparison,
    TimeBasedProfile,
    TimeBasedScenarioConfig,
    TransitionSpeed,
    UpdateFrequency,
)

__all__ = [
    "BASELINE_SCENARIO_ID",
    "DEFAULT_ITERATIONS",
    "BaseInvestment",
    "Config",
    "ConfigurationError",
    "DurationRange",
    "EconomicParameters",
    "EconomicScenario",
    "GdpGrowth",
    "InflationRate",
    "InterestRates",
    "LoggingConfig",
    "MarketReturn",
    "MarketShock",
    "MeanReversion",
    "ParameterBounds",
    "ParameterDrift",
    "ParameterThreshold",
    "RegimeChangeRule",
    "RegimeTriggers",
    "ScenarioCategory",
    "SimulationSettings",
    "ThresholdComparison",
    "TimeBasedProfile",
    "TimeBasedScenarioConfig",
    "TransitionSpeed",
    "Unemployment",
    "UpdateFrequency",
]
