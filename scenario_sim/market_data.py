"""Market condition collaborator interface.

The time-based engine optionally consults an external market-data
service when evaluating regime-change triggers. Anything with a
``get_current_data()`` method returning an object that carries a
``market_condition`` attribute satisfies :class:`MarketDataProvider`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Protocol, runtime_checkable


class MarketCondition(Enum):
    """Coarse classification of current market behavior."""

    BULL = "bull"
    BEAR = "bear"
    SIDEWAYS = "sideways"
    VOLATILE = "volatile"


@dataclass
class MarketData:
    """Snapshot returned by a market-data provider.

    Attributes:
        market_condition: Current market classification.
        extras: Provider-specific fields not used by the engine.
    """

    market_condition: MarketCondition
    extras: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class MarketDataProvider(Protocol):
    """Source of current market conditions."""

    def get_current_data(self) -> MarketData:
        """Return the latest market snapshot."""


class StaticMarketDataProvider:
    """Provider that always reports a fixed condition.

    Useful for tests and for pinning trigger evaluation to a known
    market state. The condition can be changed between ticks.
    """

    def __init__(self, condition: MarketCondition = MarketCondition.SIDEWAYS):
        self.condition = condition

    def get_current_data(self) -> MarketData:
        return MarketData(market_condition=self.condition)
