"""API router aggregating the system router and every mounted resource."""

from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter

from resourcerest.api.resource_router import resource_router
from resourcerest.api.system.router import router as system_router
from resourcerest.resources.contract import BodyParser, Resource


def build_api_router(
    resources: Mapping[str, tuple[Resource[Any, str], BodyParser[Any] | None]],
    max_content_length: int | None = None,
) -> APIRouter:
    """Mount each resource at ``/{base path}`` next to the system router.

    Args:
        resources: Base path -> (resource, body parser) to expose.
        max_content_length: Largest request body accepted, in bytes.
    """
    api_router = APIRouter()
    api_router.include_router(system_router, prefix="/system", tags=["system"])
    for path, (resource, parser) in resources.items():
        api_router.include_router(
            resource_router(resource, parser, max_content_length=max_content_length),
            prefix="/" + path.strip("/"),
            tags=[resource.name],
        )
    return api_router
