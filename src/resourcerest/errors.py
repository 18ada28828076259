"""Resource error taxonomy.

Every store and decoder failure that a caller can act on is raised as one
of these. The resource router maps each class onto exactly one HTTP
outcome; anything else is treated as an internal store failure.
"""

from __future__ import annotations

from typing import Any


class ResourceError(Exception):
    """Base class for resource failures.

    Args:
        message: Human-readable description of the failure.
        resource: Name or path of the affected resource, if known.
        key: Key of the affected entry, if known.
        value: The offending value, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        key: Any = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.key = key
        self.value = value


class ResourceSyntaxError(ResourceError, ValueError):
    """A malformed path segment, request body, or rejected value."""


class ResourceNotFoundError(ResourceError, LookupError):
    """The addressed key does not exist."""


class UnsupportedOperationError(ResourceError):
    """The resource lacks the capability needed for an operation."""


class UnsupportedMediaTypeError(UnsupportedOperationError):
    """The request body content type has no decoder."""
