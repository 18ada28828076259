"""System router providing health check and operational endpoints."""

import logging

from fastapi import APIRouter, Request

from resourcerest.api.system.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Return system health status including the availability of every mounted resource.

    Each resource is probed by listing its entries. The overall status is
    ``healthy`` when all resources answer and ``degraded`` otherwise.
    """
    resources: dict[str, str] = {}
    for resource in request.app.state.resources.values():
        try:
            await resource.get_all()
            resources[resource.name] = "available"
        except Exception:
            logger.warning("Resource %s health check failed", resource.name, exc_info=True)
            resources[resource.name] = "unavailable"

    healthy = all(state == "available" for state in resources.values())
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        resources=resources,
    )
