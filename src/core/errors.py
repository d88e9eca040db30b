"""
Base error hierarchy for the timeline editing system.

All layer-specific errors (persistence, import) inherit from
``CanvasError`` so callers can catch a single base type.

Not-found conditions inside the mutation helpers are *not* errors:
they surface as a ``None`` return so stale UI references can be
ignored silently.
"""
from __future__ import annotations


class CanvasError(Exception):
    """Base class for all timeline editing errors."""


class ValidationError(CanvasError, ValueError):
    """Raised synchronously by factories when given unusable input
    (e.g. a blank game name or an unknown tone)."""
