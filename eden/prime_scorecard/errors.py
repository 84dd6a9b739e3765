from typing import Any, Iterable


class PrimeScorecardError(Exception):
    """Base class for Prime Scorecard engine errors."""


class ConfigurationError(PrimeScorecardError):
    """The scoring rule set itself is broken; no scorecard can be produced.

    Raised at registry/quality-table construction time. All problems found
    during a validation pass are collected and reported together.
    """

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid scoring configuration")


class InvalidEvidenceValue(PrimeScorecardError):
    """A measurement cannot be scored by its driver (out of range or wrong kind).

    Never escapes the engine: the resolver records it and treats the item as absent.
    """

    def __init__(self, driver_key: str, value: Any, reason: str):
        self.driver_key = driver_key
        self.value = value
        self.reason = reason
        super().__init__(f"{driver_key}: {reason}")
