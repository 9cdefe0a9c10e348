class ScenarioValidationError(ValueError):
    """Raised when a scenario or request parameter is rejected before any computation starts."""


class ProjectionComputationError(RuntimeError):
    """Raised when the engine cannot resolve a configuration into a single answer."""
