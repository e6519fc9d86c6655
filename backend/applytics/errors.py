"""Error kinds raised by the core and translated at the HTTP boundary."""
from __future__ import annotations


class ApplyticsError(Exception):
    """Base class for errors raised by the Applytics core."""


class ValidationError(ApplyticsError):
    """Raised when a caller supplies missing or malformed input."""


class CapacityError(ApplyticsError):
    """Raised when a batch exceeds the maximum accepted size."""


class StorageError(ApplyticsError):
    """Raised when the storage layer fails to apply a write batch."""
