"""Error response body returned by resource routes."""

from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body of every non-2xx resource response.

    ``key``, ``path`` and ``value`` are only present when they identify the
    offending entry, change target or payload.
    """

    message: str
    resource: str
    key: str | None = None
    path: str | None = None
    value: Any = None
