"""Economic scenario and investment configuration models.

Contains the Pydantic models describing a named macroeconomic regime
(market returns, inflation, rates, growth, unemployment and discrete
market shocks) and the base investment a scenario is applied to.
"""

from enum import Enum
import logging
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .constants import DEFAULT_INITIAL_VALUE, DEFAULT_TARGET_VALUE, DEFAULT_TIME_HORIZON_YEARS

logger = logging.getLogger(__name__)


class ScenarioCategory(Enum):
    """Broad classification of an economic scenario."""

    NORMAL = "normal"
    RECESSION = "recession"
    INFLATION = "inflation"
    MARKET_CRASH = "market-crash"
    BULL_MARKET = "bull-market"
    STAGFLATION = "stagflation"
    RECOVERY = "recovery"


class MarketReturn(BaseModel):
    """Annual market return distribution."""

    mean: float = Field(description="Expected annual return")
    volatility: float = Field(ge=0, description="Annual return standard deviation")
    skew: Optional[float] = Field(default=None, description="Optional return skew")


class InflationRate(BaseModel):
    """Annual inflation distribution and plausible range."""

    mean: float = Field(description="Expected annual inflation")
    volatility: float = Field(ge=0, description="Inflation standard deviation")
    min: float = Field(description="Lowest plausible inflation")
    max: float = Field(description="Highest plausible inflation")

    @model_validator(mode="after")
    def validate_range(self) -> "InflationRate":
        """Ensure the inflation range is ordered."""
        if self.min > self.max:
            raise ValueError(f"Inflation min ({self.min}) exceeds max ({self.max})")
        return self


class InterestRates(BaseModel):
    """Prevailing interest rate levels."""

    short_term: float = Field(description="Short-term rate")
    long_term: float = Field(description="Long-term rate")
    federal_funds: float = Field(ge=0, description="Policy rate")


class GdpGrowth(BaseModel):
    """Real GDP growth distribution."""

    mean: float = Field(description="Expected annual GDP growth")
    volatility: float = Field(ge=0, description="GDP growth standard deviation")


class Unemployment(BaseModel):
    """Labor market state."""

    rate: float = Field(ge=0, le=1, description="Unemployment rate")
    trend: Literal["rising", "falling", "stable"] = Field(description="Direction of change")


class MarketShock(BaseModel):
    """A discrete adverse (or favorable) event that may occur in any year.

    In each simulated year the shock fires with ``probability`` and, when
    it does, scales that year's real return by ``1 + impact``.
    """

    probability: float = Field(ge=0, le=1, description="Probability of occurring per year")
    impact: float = Field(gt=-1, description="Multiplicative impact on the period return")
    duration_months: Optional[float] = Field(
        default=None, gt=0, description="Informational shock duration"
    )
    sector: Optional[str] = Field(default=None, description="Affected sector, if specific")


class EconomicParameters(BaseModel):
    """Complete macroeconomic parameter set for one scenario."""

    market_return: MarketReturn
    inflation_rate: InflationRate
    interest_rates: InterestRates
    gdp_growth: GdpGrowth
    unemployment: Unemployment
    market_shocks: List[MarketShock] = Field(default_factory=list)
    currency_volatility: float = Field(default=0.0, ge=0)
    international_exposure: float = Field(default=0.0, ge=0, le=1)


class DurationRange(BaseModel):
    """Typical regime length in years."""

    min: float = Field(ge=0, description="Shortest typical duration (years)")
    max: float = Field(ge=0, description="Longest typical duration (years)")

    @model_validator(mode="after")
    def validate_range(self) -> "DurationRange":
        """Ensure the duration range is ordered."""
        if self.min > self.max:
            raise ValueError(f"Duration min ({self.min}) exceeds max ({self.max})")
        return self


class EconomicScenario(BaseModel):
    """A named set of macroeconomic assumptions.

    ``probability`` is a relative weight describing how often the regime
    is historically observed; weights across a catalog need not sum to 1.
    """

    id: str = Field(min_length=1, description="Unique catalog identifier")
    name: str = Field(description="Display name")
    description: str = Field(default="", description="Narrative description")
    category: ScenarioCategory = Field(description="Scenario classification")
    probability: float = Field(ge=0, le=1, description="Relative likelihood weight")
    duration: DurationRange
    parameters: EconomicParameters
    historical_precedent: Optional[str] = Field(default=None)
    tags: List[str] = Field(default_factory=list)


class BaseInvestment(BaseModel):
    """Investment a scenario is projected onto."""

    initial_value: float = Field(
        default=DEFAULT_INITIAL_VALUE, gt=0, description="Starting portfolio value"
    )
    time_horizon_years: int = Field(
        default=DEFAULT_TIME_HORIZON_YEARS, gt=0, description="Years to project"
    )
    target_value: float = Field(default=DEFAULT_TARGET_VALUE, gt=0, description="Goal value")
