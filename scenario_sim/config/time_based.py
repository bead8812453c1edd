"""Time-based scenario evolution configuration.

Contains configuration classes for gradual parameter drift (with optional
mean reversion), regime-change rules between catalog scenarios, and the
update cadence of the time-based engine. Predefined risk profiles are
stored in ``scenario_sim/data/time_based_profiles.yaml`` and built with
:meth:`TimeBasedScenarioConfig.from_profile`.
"""

from datetime import timedelta
from enum import Enum
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator
import yaml

from ..market_data import MarketCondition
from ..parameters import ScenarioParameter

logger = logging.getLogger(__name__)

PROFILES_PATH = Path(__file__).parent.parent / "data" / "time_based_profiles.yaml"


class UpdateFrequency(Enum):
    """Cadence of time-based updates."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"

    @property
    def interval(self) -> timedelta:
        """Wall-clock interval between two updates."""
        return UPDATE_INTERVALS[self]


UPDATE_INTERVALS: Dict[UpdateFrequency, timedelta] = {
    UpdateFrequency.DAILY: timedelta(days=1),
    UpdateFrequency.WEEKLY: timedelta(days=7),
    UpdateFrequency.MONTHLY: timedelta(days=30),
    UpdateFrequency.QUARTERLY: timedelta(days=90),
}


class TransitionSpeed(Enum):
    """How quickly a regime change is applied."""

    IMMEDIATE = "immediate"
    GRADUAL = "gradual"
    SMOOTH = "smooth"


class ThresholdComparison(Enum):
    """Comparison operator for parameter-threshold triggers."""

    GREATER = "greater"
    LESS = "less"
    EQUAL = "equal"


class TimeBasedProfile(Enum):
    """Predefined time-based configuration profiles."""

    CONSERVATIVE = "conservative"
    DYNAMIC = "dynamic"
    STRESS_TEST = "stress-test"


class ParameterBounds(BaseModel):
    """Inclusive clamp applied after every drift step."""

    min: float
    max: float

    @model_validator(mode="after")
    def validate_range(self) -> "ParameterBounds":
        """Ensure the bounds are ordered."""
        if self.min > self.max:
            raise ValueError(f"Bounds min ({self.min}) exceeds max ({self.max})")
        return self


class MeanReversion(BaseModel):
    """Pull of a drifting parameter toward a long-run target."""

    enabled: bool = True
    rate: float = Field(ge=0, description="Annual reversion speed")
    target: float = Field(description="Long-run level")


class ParameterDrift(BaseModel):
    """Stochastic drift settings for one parameter."""

    parameter: ScenarioParameter
    drift_rate: float = Field(description="Deterministic annual drift")
    volatility: float = Field(ge=0, description="Annual diffusion volatility")
    bounds: ParameterBounds
    mean_reversion: Optional[MeanReversion] = None


class ParameterThreshold(BaseModel):
    """Condition on a parameter's current value."""

    parameter: ScenarioParameter
    threshold: float
    comparison: ThresholdComparison


class RegimeTriggers(BaseModel):
    """Conditions that must all hold before a rule's Bernoulli trial."""

    time_threshold_years: Optional[float] = Field(default=None, ge=0)
    parameter_thresholds: List[ParameterThreshold] = Field(default_factory=list)
    market_conditions: List[MarketCondition] = Field(default_factory=list)


class RegimeChangeRule(BaseModel):
    """Rule allowing a transition from one catalog scenario to another."""

    from_scenario_id: str
    to_scenario_id: str
    transition_probability: float = Field(
        ge=0, le=1, description="Probability of firing on any eligible update"
    )
    triggers: RegimeTriggers = Field(default_factory=RegimeTriggers)
    transition_speed: TransitionSpeed = TransitionSpeed.IMMEDIATE
    transition_duration_months: Optional[float] = Field(
        default=None, gt=0, description="Ramp length for gradual/smooth speeds"
    )


class TimeBasedScenarioConfig(BaseModel):
    """Settings for the time-based scenario engine."""

    enable_parameter_drift: bool = True
    enable_regime_changes: bool = True
    update_frequency: UpdateFrequency = UpdateFrequency.MONTHLY
    parameter_drifts: List[ParameterDrift] = Field(default_factory=list)
    regime_rules: List[RegimeChangeRule] = Field(default_factory=list)
    historical_context_window: float = Field(
        default=10.0, gt=0, description="Snapshot retention in years"
    )
    smoothing_window: int = Field(
        default=12, ge=2, description="Snapshots used for trend regression"
    )

    @classmethod
    def from_profile(
        cls,
        profile: Union[TimeBasedProfile, str],
        path: Optional[Path] = None,
    ) -> "TimeBasedScenarioConfig":
        """Build a predefined configuration.

        Profiles scale a shared set of drift specs and regime rules by
        per-profile multipliers (volatility, drift rate, mean-reversion
        rate and transition probability).

        Args:
            profile: Profile name or member.
            path: Alternative profile YAML file.

        Returns:
            Validated configuration.

        Raises:
            ValueError: If the profile is unknown.
        """
        profile = TimeBasedProfile(profile)
        with open(path or PROFILES_PATH, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        settings: Dict[str, Any] = data["profiles"][profile.value]
        scaling = settings.get("scaling", {})
        vol_scale = scaling.get("volatility", 1.0)
        drift_scale = scaling.get("drift_rate", 1.0)
        reversion_scale = scaling.get("mean_reversion_rate", 1.0)
        probability_scale = scaling.get("transition_probability", 1.0)

        drifts = []
        for spec in data["parameter_drifts"]:
            drift = ParameterDrift(**spec)
            drift.volatility *= vol_scale
            drift.drift_rate *= drift_scale
            if drift.mean_reversion is not None:
                drift.mean_reversion.rate *= reversion_scale
            drifts.append(drift)

        rules = []
        if settings.get("include_regime_rules", True):
            for spec in data["regime_rules"]:
                rule = RegimeChangeRule(**spec)
                rule.transition_probability = min(
                    1.0, rule.transition_probability * probability_scale
                )
                rules.append(rule)

        logger.debug("Loaded time-based profile '%s'", profile.value)
        return cls(
            enable_parameter_drift=settings.get("enable_parameter_drift", True),
            enable_regime_changes=settings.get("enable_regime_changes", True),
            update_frequency=settings["update_frequency"],
            parameter_drifts=drifts,
            regime_rules=rules,
            historical_context_window=settings["historical_context_window"],
            smoothing_window=settings["smoothing_window"],
        )
