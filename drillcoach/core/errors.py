"""
Error taxonomy for drillcoach.

All errors are raised synchronously from the operation that detects them and
propagate to the caller unchanged.
"""
from __future__ import annotations


class DrillCoachError(Exception):
    """Base class for all drillcoach errors."""
    pass


class ConfigurationError(DrillCoachError):
    """Raised when assignment cannot proceed, e.g. the drill catalog is empty."""
    pass


class NotFoundError(DrillCoachError):
    """Raised for unknown session ids or drills referenced by a session."""
    pass


class InvalidStateError(DrillCoachError):
    """Raised when a session transition is not legal from its current state."""
    pass


class ValidationError(DrillCoachError, ValueError):
    """Raised for out-of-range or malformed caller input."""
    pass
