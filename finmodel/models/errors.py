"""
Exceptions raised by the financial model.

Configuration problems surface at construction time, mostly as
``pydantic.ValidationError``. The types below cover scenario assembly and
failures during a simulation run.
"""


class FinModelError(Exception):
    """Base exception for financial model errors."""


class ScenarioValidationError(FinModelError, ValueError):
    """Raised when a scenario is assembled from self-inconsistent parts."""


class SimulationError(FinModelError):
    """Raised when a period-level business rule is violated during a run."""
