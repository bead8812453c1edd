"""Custom warning classes for the scenario_sim package.

These warning classes allow users to programmatically filter, suppress,
or capture warnings using Python's standard ``warnings`` module.

Example:
    Silence degenerate-ratio warnings in a large sweep::

        import warnings
        from scenario_sim._warnings import DataQualityWarning

        warnings.filterwarnings("ignore", category=DataQualityWarning)
"""


class ScenarioSimWarning(UserWarning):
    """Base class for all scenario_sim warnings."""


class ConfigurationWarning(ScenarioSimWarning):
    """Unusual or potentially incorrect configuration parameters.

    Raised when catalog or time-based settings reference unknown
    scenarios or fall outside typical ranges.
    """


class DataQualityWarning(ScenarioSimWarning):
    """Runtime data-quality observations.

    Raised when an analysis encounters degenerate data, such as a ratio
    whose denominator is zero or an approximate p-value that is much
    coarser than the exact reference.
    """
