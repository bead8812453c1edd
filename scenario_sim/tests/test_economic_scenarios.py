"""Tests for the economic scenario catalog."""

from pathlib import Path

from pydantic import ValidationError
import pytest
import yaml

from scenario_sim.config import ConfigurationError, ScenarioCategory
from scenario_sim.economic_scenarios import (
    ScenarioCatalog,
    get_baseline_scenario,
    get_scenario_by_id,
    get_scenarios_by_category,
    get_stress_test_scenarios,
)


class TestPackagedCatalog:
    """Test the packaged scenario catalog."""

    def test_contents(self, catalog):
        """The packaged catalog holds six scenarios in file order."""
        assert [s.id for s in catalog] == [
            "normal-growth",
            "recession-mild",
            "recession-severe",
            "high-inflation",
            "bull-market",
            "market-crash",
        ]
        assert len(catalog) == 6
        assert "market-crash" in catalog

    def test_baseline(self):
        """Baseline is the normal growth scenario."""
        baseline = get_baseline_scenario()
        assert baseline.id == "normal-growth"
        assert baseline.category is ScenarioCategory.NORMAL
        assert baseline.parameters.market_return.mean == pytest.approx(0.08)
        assert baseline.parameters.market_return.volatility == pytest.approx(0.16)

    def test_lookup(self):
        """Lookup by id returns the scenario or None."""
        crash = get_scenario_by_id("market-crash")
        assert crash is not None
        assert crash.parameters.market_shocks[0].probability == pytest.approx(0.8)
        assert get_scenario_by_id("does-not-exist") is None

    def test_by_category(self):
        """Category filter accepts members and raw values."""
        by_member = get_scenarios_by_category(ScenarioCategory.RECESSION)
        by_value = get_scenarios_by_category("recession")
        assert [s.id for s in by_member] == ["recession-mild", "recession-severe"]
        assert by_member == by_value

    def test_stress_scenarios(self):
        """Stress set contains recession, crash and inflation scenarios."""
        ids = {s.id for s in get_stress_test_scenarios()}
        assert ids == {"recession-mild", "recession-severe", "high-inflation", "market-crash"}

    def test_missing_baseline(self, catalog):
        """Unknown baseline ids raise KeyError."""
        with pytest.raises(KeyError):
            catalog.baseline("missing")

    def test_scenarios_returns_copy(self, catalog):
        """Mutating the returned list leaves the catalog intact."""
        scenarios = catalog.scenarios
        scenarios.clear()
        assert len(catalog) == 6


class TestCustomCatalog:
    """Test catalogs built from custom inputs."""

    def test_duplicate_ids(self, catalog):
        """Duplicate ids are a configuration error."""
        baseline = catalog.baseline()
        with pytest.raises(ConfigurationError):
            ScenarioCatalog([baseline, baseline])

    def test_from_yaml(self, tmp_path: Path, catalog):
        """Catalogs load from YAML files with a scenarios list."""
        path = tmp_path / "catalog.yaml"
        record = catalog.baseline().model_dump(mode="json")
        record["id"] = "custom"
        path.write_text(yaml.safe_dump({"scenarios": [record]}), encoding="utf-8")
        custom = ScenarioCatalog.from_yaml(path)
        assert [s.id for s in custom] == ["custom"]

    def test_from_yaml_invalid_record(self, tmp_path: Path):
        """Malformed scenario records fail validation."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"scenarios": [{"id": "x"}]}), encoding="utf-8")
        with pytest.raises(ValidationError):
            ScenarioCatalog.from_yaml(path)

    def test_from_yaml_missing(self, tmp_path: Path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            ScenarioCatalog.from_yaml(tmp_path / "none.yaml")
