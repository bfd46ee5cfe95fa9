"""Error taxonomy for the tracking core.

The API layer maps ValidationError and NotFound to HTTP responses.
PersistenceFailure and TransportFailure never leave the component that
owns the failing resource: they are logged and counted there.
"""

from __future__ import annotations


class DredgeTrackError(Exception):
    """Base class for all core errors."""


class ValidationError(DredgeTrackError):
    """Caller supplied an unusable request. No state was changed."""


class NotFound(DredgeTrackError):
    """Operation referenced an id that does not exist. No state was changed."""


class PersistenceFailure(DredgeTrackError):
    """A durable write or read failed."""


class TransportFailure(DredgeTrackError):
    """A send to one observer failed."""
