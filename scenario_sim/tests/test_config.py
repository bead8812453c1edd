"""Tests for configuration models and YAML loading."""

import logging
from pathlib import Path

from pydantic import ValidationError
import pytest
import yaml

from scenario_sim.config import (
    BaseInvestment,
    Config,
    ConfigurationError,
    InflationRate,
    MarketShock,
    TimeBasedProfile,
    TimeBasedScenarioConfig,
    TransitionSpeed,
    UpdateFrequency,
)
from scenario_sim.config.time_based import ParameterBounds, RegimeChangeRule
from scenario_sim.parameters import ScenarioParameter


class TestScenarioModels:
    """Test validation of scenario-level models."""

    def test_inflation_range_order(self):
        """Inflation min may not exceed max."""
        with pytest.raises(ValidationError):
            InflationRate(mean=0.02, volatility=0.01, min=0.05, max=0.01)

    def test_market_shock_bounds(self):
        """Shock probability must be in [0, 1] and impact above -1."""
        with pytest.raises(ValidationError):
            MarketShock(probability=1.5, impact=-0.1)
        with pytest.raises(ValidationError):
            MarketShock(probability=0.1, impact=-1.0)

    def test_base_investment_defaults(self):
        """Defaults describe a 30-year, 100k investment with a 500k goal."""
        investment = BaseInvestment()
        assert investment.initial_value == 100_000
        assert investment.time_horizon_years == 30
        assert investment.target_value == 500_000

    def test_base_investment_positive(self):
        """Non-positive values are rejected."""
        with pytest.raises(ValidationError):
            BaseInvestment(initial_value=0)


class TestConfigurationError:
    """Test the aggregated configuration error."""

    def test_message_lists_issues(self):
        """Message counts and lists every issue."""
        error = ConfigurationError(["first problem", "second problem"])
        assert error.issues == ["first problem", "second problem"]
        assert "2 critical issues" in str(error)
        assert "  - second problem" in str(error)

    def test_singular_message(self):
        """A single issue uses the singular form."""
        assert "1 critical issue:" in str(ConfigurationError(["only"]))


class TestTimeBasedConfig:
    """Test time-based configuration and profiles."""

    def test_update_intervals(self):
        """Update frequencies map to fixed intervals."""
        assert UpdateFrequency.DAILY.interval.days == 1
        assert UpdateFrequency.WEEKLY.interval.days == 7
        assert UpdateFrequency.MONTHLY.interval.days == 30
        assert UpdateFrequency.QUARTERLY.interval.days == 90

    def test_defaults(self):
        """Default configuration updates monthly with no rules."""
        config = TimeBasedScenarioConfig()
        assert config.update_frequency is UpdateFrequency.MONTHLY
        assert config.parameter_drifts == []
        assert config.regime_rules == []
        assert config.historical_context_window == 10.0
        assert config.smoothing_window == 12

    def test_bounds_order(self):
        """Drift bounds must be ordered."""
        with pytest.raises(ValidationError):
            ParameterBounds(min=1.0, max=0.0)

    def test_unknown_parameter_rejected(self):
        """Drift specs must name a known parameter."""
        with pytest.raises(ValidationError):
            TimeBasedScenarioConfig(
                parameter_drifts=[
                    {
                        "parameter": "market_return.median",
                        "drift_rate": 0.0,
                        "volatility": 0.0,
                        "bounds": {"min": 0, "max": 1},
                    }
                ]
            )

    def test_rule_defaults(self):
        """Rules default to immediate transitions without triggers."""
        rule = RegimeChangeRule(from_scenario_id="a", to_scenario_id="b", transition_probability=1)
        assert rule.transition_speed is TransitionSpeed.IMMEDIATE
        assert rule.triggers.time_threshold_years is None
        assert rule.triggers.market_conditions == []

    def test_conservative_profile(self):
        """Conservative profile halves volatility and disables regime changes."""
        config = TimeBasedScenarioConfig.from_profile("conservative")
        assert config.enable_regime_changes is False
        assert config.regime_rules == []
        assert config.update_frequency is UpdateFrequency.MONTHLY
        inflation = next(
            d for d in config.parameter_drifts if d.parameter is ScenarioParameter.INFLATION_MEAN
        )
        assert inflation.volatility == pytest.approx(0.0025)
        assert inflation.mean_reversion.rate == pytest.approx(0.3)

    def test_dynamic_profile(self):
        """Dynamic profile keeps the shared rules unscaled."""
        config = TimeBasedScenarioConfig.from_profile(TimeBasedProfile.DYNAMIC)
        assert config.update_frequency is UpdateFrequency.WEEKLY
        assert config.smoothing_window == 8
        assert len(config.regime_rules) == 6
        assert config.regime_rules[0].transition_probability == pytest.approx(0.15)

    def test_stress_profile_caps_probability(self):
        """Stress profile scales probabilities but never above one."""
        config = TimeBasedScenarioConfig.from_profile("stress-test")
        assert config.update_frequency is UpdateFrequency.DAILY
        assert all(0 <= r.transition_probability <= 1 for r in config.regime_rules)
        assert config.regime_rules[2].transition_probability == pytest.approx(0.6)

    def test_unknown_profile(self):
        """Unknown profile names raise ValueError."""
        with pytest.raises(ValueError):
            TimeBasedScenarioConfig.from_profile("reckless")


class TestConfig:
    """Test the master configuration."""

    def test_defaults(self):
        """Default config composes default sections."""
        config = Config()
        assert config.simulation.iterations == 10_000
        assert config.baseline_scenario_id == "normal-growth"
        assert config.time_based_profile is TimeBasedProfile.DYNAMIC
        assert config.logging.level == "INFO"

    def test_yaml_round_trip(self, tmp_path: Path):
        """Saved configuration loads back unchanged."""
        config = Config(
            simulation={"iterations": 2_000, "seed": 7},
            investment={"initial_value": 50_000, "time_horizon_years": 10},
        )
        path = tmp_path / "nested" / "config.yaml"
        config.to_yaml(path)
        loaded = Config.from_yaml(path)
        assert loaded == config

    def test_from_yaml_strips_private_keys(self, tmp_path: Path):
        """Top-level keys starting with an underscore are ignored."""
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump({"_defaults": {"x": 1}, "simulation": {"iterations": 100}}),
            encoding="utf-8",
        )
        assert Config.from_yaml(path).simulation.iterations == 100

    def test_missing_file(self, tmp_path: Path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "absent.yaml")

    def test_invalid_values(self):
        """Invalid nested values fail validation."""
        with pytest.raises(ValidationError):
            Config(simulation={"iterations": 0})

    def test_to_simulation_config(self):
        """Engine config mirrors the simulation settings."""
        callback = lambda fraction: None  # noqa: E731
        config = Config(simulation={"iterations": 1234, "seed": 5, "chunk_size": 100})
        sim_config = config.to_simulation_config(on_progress=callback)
        assert sim_config.iterations == 1234
        assert sim_config.seed == 5
        assert sim_config.chunk_size == 100
        assert sim_config.on_progress is callback

    def test_setup_logging(self, tmp_path: Path):
        """Logging setup attaches handlers to the package logger."""
        log_file = tmp_path / "logs" / "run.log"
        config = Config(logging={"level": "DEBUG", "log_file": str(log_file)})
        config.setup_logging()
        package_logger = logging.getLogger("scenario_sim")
        try:
            assert package_logger.level == logging.DEBUG
            assert len(package_logger.handlers) == 2
            assert log_file.parent.exists()
        finally:
            for handler in list(package_logger.handlers):
                handler.close()
                package_logger.removeHandler(handler)

    def test_disabled_logging(self):
        """Disabled logging leaves handlers untouched."""
        package_logger = logging.getLogger("scenario_sim")
        before = list(package_logger.handlers)
        Config(logging={"enabled": False}).setup_logging()
        assert package_logger.handlers == before
