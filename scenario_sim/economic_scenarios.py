"""Catalog of predefined economic scenarios.

The packaged catalog lives in ``scenario_sim/data/economic_scenarios.yaml``
and is validated into :class:`~scenario_sim.config.scenarios.EconomicScenario`
records on first use. Custom catalogs can be loaded from any YAML file with
the same layout or built directly from a list of scenarios.

Examples:
    Look up scenarios from the default catalog::

        from scenario_sim.economic_scenarios import get_baseline_scenario, get_stress_test_scenarios

        baseline = get_baseline_scenario()
        stress = get_stress_test_scenarios()
"""

from functools import lru_cache
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Union

import yaml

from .config.constants import BASELINE_SCENARIO_ID
from .config.exceptions import ConfigurationError
from .config.scenarios import EconomicScenario, ScenarioCategory

logger = logging.getLogger(__name__)

CATALOG_PATH = Path(__file__).parent / "data" / "economic_scenarios.yaml"

STRESS_TEST_CATEGORIES = (
    ScenarioCategory.RECESSION,
    ScenarioCategory.MARKET_CRASH,
    ScenarioCategory.INFLATION,
)
"""Categories treated as adverse when assembling stress-test sets."""


class ScenarioCatalog:
    """Ordered, id-indexed collection of economic scenarios.

    Args:
        scenarios: Scenarios in catalog order. Ids must be unique.

    Raises:
        ConfigurationError: If two scenarios share an id.
    """

    def __init__(self, scenarios: Sequence[EconomicScenario]):
        issues = []
        self._by_id: Dict[str, EconomicScenario] = {}
        for scenario in scenarios:
            if scenario.id in self._by_id:
                issues.append(f"Duplicate scenario id '{scenario.id}'")
            self._by_id[scenario.id] = scenario
        if issues:
            raise ConfigurationError(issues)
        self._scenarios = list(scenarios)

    @classmethod
    def from_yaml(cls, path: Path) -> "ScenarioCatalog":
        """Load a catalog from a YAML file with a top-level ``scenarios`` list.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValidationError: If a scenario record is invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Scenario catalog not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        scenarios = [EconomicScenario(**record) for record in data.get("scenarios", [])]
        logger.debug("Loaded %d scenarios from %s", len(scenarios), path)
        return cls(scenarios)

    def __len__(self) -> int:
        return len(self._scenarios)

    def __iter__(self) -> Iterator[EconomicScenario]:
        return iter(self._scenarios)

    def __contains__(self, scenario_id: object) -> bool:
        return scenario_id in self._by_id

    @property
    def scenarios(self) -> List[EconomicScenario]:
        return list(self._scenarios)

    def get(self, scenario_id: str) -> Optional[EconomicScenario]:
        """Return the scenario with ``scenario_id``, or None."""
        return self._by_id.get(scenario_id)

    def by_category(self, category: Union[ScenarioCategory, str]) -> List[EconomicScenario]:
        """Return scenarios of one category in catalog order."""
        category = ScenarioCategory(category)
        return [s for s in self._scenarios if s.category == category]

    def baseline(self, scenario_id: str = BASELINE_SCENARIO_ID) -> EconomicScenario:
        """Return the baseline scenario.

        Raises:
            KeyError: If the catalog has no scenario with that id.
        """
        scenario = self.get(scenario_id)
        if scenario is None:
            raise KeyError(f"Baseline scenario '{scenario_id}' not in catalog")
        return scenario

    def stress_test_scenarios(self) -> List[EconomicScenario]:
        """Return the adverse scenarios (recession, market crash, inflation)."""
        return [s for s in self._scenarios if s.category in STRESS_TEST_CATEGORIES]


@lru_cache(maxsize=1)
def default_catalog() -> ScenarioCatalog:
    """Return the packaged scenario catalog (loaded once)."""
    return ScenarioCatalog.from_yaml(CATALOG_PATH)


def get_scenario_by_id(scenario_id: str) -> Optional[EconomicScenario]:
    """Get a packaged scenario by id."""
    return default_catalog().get(scenario_id)


def get_scenarios_by_category(category: Union[ScenarioCategory, str]) -> List[EconomicScenario]:
    """Get packaged scenarios of one category."""
    return default_catalog().by_category(category)


def get_baseline_scenario() -> EconomicScenario:
    """Get the packaged baseline (normal growth) scenario."""
    return default_catalog().baseline()


def get_stress_test_scenarios() -> List[EconomicScenario]:
    """Get packaged scenarios for stress testing."""
    return default_catalog().stress_test_scenarios()
