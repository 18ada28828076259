"""Generic CRUD and PATCH endpoints bound to a Resource.

``resource_router`` turns any :class:`~resourcerest.resources.Resource`
into an APIRouter with list, get, create, update, partial update and
delete endpoints. Mount it with a prefix::

    app.include_router(resource_router(skills, parse_skill), prefix="/skills")

Every handler awaits a single store call and maps its outcome onto one
response. Store errors become JSON bodies with at least ``message`` and
``resource``; unexpected failures are logged and answered with a generic
500 so no internal detail leaks to the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from resourcerest.errors import (
    ResourceError,
    ResourceNotFoundError,
    ResourceSyntaxError,
    UnsupportedOperationError,
)
from resourcerest.resources.changes import parse_resource_changes
from resourcerest.resources.contract import (
    BodyParser,
    RecordResource,
    Resource,
    is_record_resource,
    parse_body,
)
from resourcerest.schemas.errors import ErrorResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, resource: str, **extra: Any) -> JSONResponse:
    body = ErrorResponse(message=message, resource=resource, **extra)
    return JSONResponse(
        status_code=status_code, content=jsonable_encoder(body, exclude_none=True)
    )


def _unavailable(resource: str) -> JSONResponse:
    return _error(500, "The resource is not available.", resource)


def _not_found(resource: str, key: str) -> JSONResponse:
    return _error(404, f"The {resource}/{key} does not exist.", resource, key=key)


def _unsupported(resource: str, operation: str) -> JSONResponse:
    return _error(405, f"The {resource} does not support {operation}", resource)


def _invalid(
    resource: str, exc: ResourceError, key: str | None = None, value: Any = None
) -> JSONResponse:
    return _error(
        400,
        exc.message if exc.message else f"Invalid {resource}.",
        resource,
        key=key,
        path=exc.resource if exc.resource != resource else None,
        value=value if value is not None else exc.value,
    )


def _json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def read_body(request: Request, max_length: int | None = None) -> bytes:
    """Read the raw request body, refusing bodies over ``max_length`` bytes.

    Raises:
        ResourceSyntaxError: The body is too large.
    """
    if max_length is None:
        return await request.body()
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_length:
        raise ResourceSyntaxError(f"Request body exceeds {max_length} bytes")
    raw = await request.body()
    if len(raw) > max_length:
        raise ResourceSyntaxError(f"Request body exceeds {max_length} bytes")
    return raw


async def read_json_body(request: Request, max_length: int | None = None) -> Any:
    """Decode a JSON request body.

    Raises:
        ResourceSyntaxError: The body is too large, empty or not valid JSON.
    """
    raw = await read_body(request, max_length)
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ResourceSyntaxError(
            f"Malformed JSON body: {exc}", value=raw.decode("utf-8", "replace")
        ) from exc


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------


def resource_router(
    resource: Resource[Any, str],
    parser: BodyParser[Any] | None = None,
    *,
    max_content_length: int | None = None,
) -> APIRouter:
    """Build the endpoints serving ``resource``.

    Args:
        resource: The backing store.
        parser: Converts a decoded JSON body into a resource value. Without
            it, create and update answer 405.
        max_content_length: Largest request body accepted, in bytes.
            Larger bodies are rejected as invalid input.

    Returns:
        A router with routes relative to the resource base path.
    """
    router = APIRouter()
    name = resource.name

    @router.get("")
    async def list_entries() -> Response:
        """List every ``[key, value]`` pair of the resource."""
        try:
            entries = await resource.get_all()
        except Exception:
            logger.exception("Listing %s failed", name)
            return _unavailable(name)
        return _json([[key, value] for key, value in entries])

    @router.get("/{key}")
    async def get_entry(key: str) -> Response:
        """Get the value stored under a key."""
        try:
            value = await resource.get(key)
        except ResourceNotFoundError:
            logger.debug("%s/%s not found", name, key)
            return _not_found(name, key)
        except Exception:
            logger.exception("Fetching %s/%s failed", name, key)
            return _unavailable(name)
        return _json(value)

    @router.post("", status_code=201)
    async def create_entry(request: Request) -> Response:
        """Create a new value; the store assigns and returns its key."""
        if parser is None:
            return _unsupported(name, "create")
        body: Any = None
        try:
            body = await read_json_body(request, max_content_length)
            value = await parse_body(body, parser)
            key = await resource.create(value)
        except ResourceSyntaxError as exc:
            logger.info("Rejected new %s: %s", name, exc.message)
            return _invalid(name, exc, value=body)
        except Exception:
            logger.exception("Creating %s failed", name)
            return _unavailable(name)
        logger.info("Created a new %s: id=%s", name, key)
        return _json(key, status_code=201)

    @router.post("/{key}", status_code=204)
    async def update_entry(key: str, request: Request) -> Response:
        """Replace the value stored under a key."""
        if parser is None:
            return _unsupported(name, "update")
        body: Any = None
        try:
            body = await read_json_body(request, max_content_length)
            value = await parse_body(body, parser)
            await resource.update(key, value)
        except ResourceNotFoundError:
            return _not_found(name, key)
        except ResourceSyntaxError as exc:
            logger.info("Rejected update of %s/%s: %s", name, key, exc.message)
            return _invalid(name, exc, key=key, value=body)
        except Exception:
            logger.exception("Updating %s/%s failed", name, key)
            return _unavailable(name)
        logger.info("Updated %s: id=%s", name, key)
        return Response(status_code=204)

    if is_record_resource(resource):
        _add_adjust_route(router, resource, max_content_length)
    else:

        @router.patch("/{key}", status_code=204)
        async def adjust_entry(key: str) -> Response:
            """Partial updates are not available for this resource."""
            return _unsupported(name, "PATCH")

    @router.delete("/{key}")
    async def delete_entry(key: str) -> Response:
        """Delete the value stored under a key."""
        try:
            removed = await resource.delete(key)
        except ResourceNotFoundError:
            return _not_found(name, key)
        except Exception:
            logger.exception("Deleting %s/%s failed", name, key)
            return _unavailable(name)
        logger.info("Deleted %s: id=%s", name, key)
        return _json(removed)

    return router


def _add_adjust_route(
    router: APIRouter,
    resource: RecordResource[Any, str],
    max_content_length: int | None,
) -> None:
    name = resource.name

    @router.patch("/{key}", status_code=204)
    async def adjust_entry(key: str, request: Request) -> Response:
        """Apply a JSON or XML batch of property changes to a value."""
        try:
            body = await read_body(request, max_content_length)
            changes = parse_resource_changes(body, request.headers.get("content-type"))
            await resource.adjust(key, changes)
        except ResourceNotFoundError:
            return _not_found(name, key)
        except (ResourceSyntaxError, UnsupportedOperationError) as exc:
            logger.info("Rejected changes to %s/%s: %s", name, key, exc.message)
            return _invalid(name, exc, key=key)
        except Exception:
            logger.exception("Adjusting %s/%s failed", name, key)
            return _unavailable(name)
        logger.info("Adjusted %s: id=%s, changes=%d", name, key, len(changes))
        return Response(status_code=204)
