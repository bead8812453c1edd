"""Master configuration composing simulation, investment and logging settings.

Examples:
    Load from YAML and configure logging::

        from pathlib import Path
        from scenario_sim.config import Config

        config = Config.from_yaml(Path("analysis.yaml"))
        config.setup_logging()
        sim_config = config.to_simulation_config()
"""

import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from pydantic import BaseModel, Field
import yaml

from .constants import BASELINE_SCENARIO_ID, DEFAULT_CHUNK_SIZE, DEFAULT_ITERATIONS
from .reporting import LoggingConfig
from .scenarios import BaseInvestment
from .time_based import TimeBasedProfile

if TYPE_CHECKING:
    from ..monte_carlo import SimulationConfig

logger = logging.getLogger(__name__)


class SimulationSettings(BaseModel):
    """Monte Carlo execution settings."""

    iterations: int = Field(default=DEFAULT_ITERATIONS, gt=0, description="Trials per run")
    seed: Optional[int] = Field(default=None, ge=0, description="Random seed (None=time-based)")
    progress_bar: bool = Field(default=False, description="Show a tqdm progress bar")
    parallel: bool = Field(default=False, description="Run trial chunks in worker processes")
    n_workers: Optional[int] = Field(default=None, gt=0, description="Worker processes")
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0, description="Trials per chunk")


class Config(BaseModel):
    """Complete configuration for a scenario analysis session."""

    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    investment: BaseInvestment = Field(default_factory=BaseInvestment)
    baseline_scenario_id: str = Field(default=BASELINE_SCENARIO_ID)
    time_based_profile: TimeBasedProfile = Field(default=TimeBasedProfile.DYNAMIC)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Config object with validated parameters.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValidationError: If configuration is invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Remove private anchors if present
        data = {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Write configuration to a YAML file.

        Args:
            path: Destination path. Parent directories are created.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, sort_keys=False)

    def to_simulation_config(
        self, on_progress: Optional[Callable[[float], None]] = None
    ) -> "SimulationConfig":
        """Build the engine-level simulation config."""
        from ..monte_carlo import SimulationConfig

        settings: Dict[str, Any] = self.simulation.model_dump()
        return SimulationConfig(on_progress=on_progress, **settings)

    def setup_logging(self) -> None:
        """Configure the ``scenario_sim`` logger based on settings."""
        if not self.logging.enabled:
            return

        package_logger = logging.getLogger("scenario_sim")
        package_logger.setLevel(getattr(logging, self.logging.level))
        package_logger.handlers.clear()

        formatter = logging.Formatter(self.logging.format)

        if self.logging.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            package_logger.addHandler(console_handler)

        if self.logging.log_file:
            log_path = Path(self.logging.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)
