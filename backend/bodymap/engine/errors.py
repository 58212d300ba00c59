"""Engine error taxonomy. No retries anywhere: every error propagates to the caller."""

from __future__ import annotations


class BodyMapError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(BodyMapError):
    """No drawable raster surface is available. Fatal for the unit of work."""


class DomainMismatchError(BodyMapError, ValueError):
    """A point falls outside the pre-allocated bin grid."""


class NotComputedError(BodyMapError, RuntimeError):
    """Derived data was read before it was computed."""
