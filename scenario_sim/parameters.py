"""Structured identifiers for economic scenario parameters.

Every scalar inside :class:`~scenario_sim.config.scenarios.EconomicParameters`
that drift specs, regime triggers or trend tracking can refer to is named by
a :class:`ScenarioParameter` member. Accessors resolve a member to its
section and field explicitly, so an unknown parameter is a validation error
at configuration time rather than a silent lookup miss at run time.

Examples:
    Read and update the market return mean::

        from scenario_sim.parameters import ScenarioParameter, get_parameter, set_parameter

        current = get_parameter(params, ScenarioParameter.MARKET_RETURN_MEAN)
        updated = set_parameter(params, ScenarioParameter.MARKET_RETURN_MEAN, current + 0.01)
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .config.scenarios import EconomicParameters


class ScenarioParameter(Enum):
    """Enumerable identifier for a scalar economic parameter."""

    MARKET_RETURN_MEAN = "market_return.mean"
    MARKET_RETURN_VOLATILITY = "market_return.volatility"
    INFLATION_MEAN = "inflation_rate.mean"
    INFLATION_VOLATILITY = "inflation_rate.volatility"
    SHORT_TERM_RATE = "interest_rates.short_term"
    LONG_TERM_RATE = "interest_rates.long_term"
    FEDERAL_FUNDS = "interest_rates.federal_funds"
    GDP_GROWTH_MEAN = "gdp_growth.mean"
    GDP_GROWTH_VOLATILITY = "gdp_growth.volatility"
    UNEMPLOYMENT_RATE = "unemployment.rate"
    CURRENCY_VOLATILITY = "currency_volatility"
    INTERNATIONAL_EXPOSURE = "international_exposure"

    @property
    def section(self) -> Optional[str]:
        """Name of the nested parameter group, or None for top-level fields."""
        if "." not in self.value:
            return None
        return self.value.split(".", 1)[0]

    @property
    def field(self) -> str:
        """Name of the scalar field within its section."""
        return self.value.rsplit(".", 1)[-1]


TRACKED_TREND_PARAMETERS: tuple[ScenarioParameter, ...] = (
    ScenarioParameter.MARKET_RETURN_MEAN,
    ScenarioParameter.INFLATION_MEAN,
    ScenarioParameter.FEDERAL_FUNDS,
)
"""Parameters whose trends are recomputed on every time-based update."""


def get_parameter(params: "EconomicParameters", parameter: ScenarioParameter) -> float:
    """Return the current value of ``parameter`` in ``params``."""
    owner = params if parameter.section is None else getattr(params, parameter.section)
    return float(getattr(owner, parameter.field))


def set_parameter(
    params: "EconomicParameters", parameter: ScenarioParameter, value: float
) -> "EconomicParameters":
    """Return a deep copy of ``params`` with ``parameter`` set to ``value``.

    The input is never mutated.
    """
    updated = params.model_copy(deep=True)
    owner = updated if parameter.section is None else getattr(updated, parameter.section)
    setattr(owner, parameter.field, float(value))
    return updated


def interpolate_parameters(
    start: "EconomicParameters", end: "EconomicParameters", weight: float
) -> "EconomicParameters":
    """Blend every scalar parameter linearly from ``start`` toward ``end``.

    Args:
        start: Parameters at weight 0.
        end: Parameters at weight 1.
        weight: Blend weight, clamped to [0, 1].

    Returns:
        New parameters. Non-scalar fields (shock list, unemployment trend)
        switch to ``end`` once the weight reaches one half.
    """
    weight = min(1.0, max(0.0, weight))
    base = end if weight >= 0.5 else start
    blended = base.model_copy(deep=True)
    for parameter in ScenarioParameter:
        a = get_parameter(start, parameter)
        b = get_parameter(end, parameter)
        owner = blended if parameter.section is None else getattr(blended, parameter.section)
        setattr(owner, parameter.field, a * (1.0 - weight) + b * weight)
    return blended
