"""Module-level constants for the scenario_sim framework.

Centralizes default values and thresholds shared by the simulation,
scenario and comparison layers, providing a single source of truth.
"""

ENGINE_VERSION: str = "1.0.0"
"""Version string recorded in every simulation result's metadata."""

# --- Investment defaults ---

DEFAULT_INITIAL_VALUE: float = 100_000.0
"""Starting portfolio value used when a base investment omits one."""

DEFAULT_TIME_HORIZON_YEARS: int = 30
"""Projection horizon used when a base investment omits one."""

DEFAULT_TARGET_VALUE: float = 500_000.0
"""Goal value used when a base investment omits one."""

DEFAULT_INFLATION_RATE: float = 0.025
"""Annual inflation subtracted from returns when a scenario omits it."""

# --- Simulation defaults ---

DEFAULT_ITERATIONS: int = 10_000
"""Number of Monte Carlo trials per run."""

PROGRESS_REPORT_INTERVAL: int = 1_000
"""Progress callbacks fire on every iteration index divisible by this value."""

DEFAULT_CHUNK_SIZE: int = 2_500
"""Trials per worker chunk in parallel mode."""

CONFIDENCE_LEVELS: tuple[int, ...] = (90, 95, 99)
"""Confidence levels (percent) reported for every simulation."""

VALIDATION_SAMPLE_SIZE: int = 10_000
"""Default number of uniforms drawn by the generator self-check."""

VALIDATION_BINS: int = 10
"""Histogram bins used by the generator self-check."""

# --- Risk metrics ---

VAR_TAIL_PROBABILITY: float = 0.05
"""Tail probability for Value-at-Risk and Conditional VaR."""

MAX_SORTINO: float = 10.0
"""Ceiling on the Sortino ratio, reported when a gaining scenario has no losing trials."""

BASELINE_SCENARIO_ID: str = "normal-growth"
"""Catalog id of the scenario every other scenario is compared against."""

# --- Time-based evolution ---

DAYS_PER_YEAR: float = 365.25
"""Calendar days per year when converting elapsed time to years."""

EQUAL_COMPARISON_TOLERANCE: float = 0.001
"""Absolute tolerance for ``equal`` parameter-threshold triggers."""

TREND_STABILITY_THRESHOLD: float = 0.001
"""Absolute slope below which a parameter trend is reported as stable."""

DEFAULT_TRANSITION_DURATION_MONTHS: float = 6.0
"""Ramp length for gradual and smooth transitions without an explicit duration."""

DEFAULT_MARKET_CONDITION: str = "sideways"
"""Market condition recorded in snapshots when no provider is attached."""

# --- Comparison ---

NEUTRAL_SCORE_GAP: float = 0.05
"""Composite-score gap below which two scenarios are declared equivalent."""

SIGNIFICANCE_LEVEL: float = 0.05
"""Alpha used for two-sample significance tests."""

PROBABILITY_CONE_YEARS: int = 30
"""Number of years projected in visualization probability cones."""

PROBABILITY_CONE_GROWTH: float = 0.02
"""Annual growth applied to probability cone bands."""
