"""Custom exceptions for configuration validation."""


class ConfigurationError(Exception):
    """Raised when a scenario or configuration is unusable.

    Engines raise this before running any iteration, so a malformed
    input never produces a partially computed result.

    Attributes:
        issues: List of specific configuration problems found.

    Examples:
        Catching and inspecting issues::

            try:
                engine.run_simulation(scenario)
            except ConfigurationError as e:
                for issue in e.issues:
                    print(f"  - {issue}")
    """

    def __init__(self, issues: list[str]) -> None:
        self.issues = issues
        bullet_list = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(
            f"Configuration has {len(issues)} critical "
            f"{'issue' if len(issues) == 1 else 'issues'}:\n{bullet_list}"
        )
