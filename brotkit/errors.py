"""Error kinds raised by the rendering pipeline."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a parameter is rejected before any work starts."""


class SequenceExhaustedError(RuntimeError):
    """Raised when a zoom sequence is advanced past its terminal scale."""
