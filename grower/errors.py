class GrowerError(Exception):
    """Base class for all grow room engine errors."""


class InvariantViolation(GrowerError):
    """Raised when a caller asks the engine for something that can never be valid, e.g. an unknown offer id."""


class InvalidState(InvariantViolation):
    """Raised when an action is not valid for the entity's current state, e.g. harvesting an unready plant."""
