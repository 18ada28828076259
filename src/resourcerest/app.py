"""FastAPI application factory wiring resources to their routes."""

import logging
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from resourcerest.api.router import build_api_router
from resourcerest.config import Settings, get_settings
from resourcerest.resources.contract import BodyParser, Resource
from resourcerest.resources.memory import InMemoryRecordResource
from resourcerest.schemas.skill import SAMPLE_SKILLS, Skill, parse_skill

logger = logging.getLogger(__name__)

Mounts = Mapping[str, tuple[Resource[Any, str], BodyParser[Any] | None]]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the mounted resources on startup and shutdown."""
    for path, resource in app.state.resources.items():
        logger.info("Serving %s at %s", resource.name, path)

    yield

    logger.info("Stopped serving %d resource(s)", len(app.state.resources))


def default_resources(settings: Settings) -> Mounts:
    """Build the sample skills store.

    The store is created once per application and owned by it; handlers
    only ever see the instance passed to the router.
    """
    skills = InMemoryRecordResource(
        "skill",
        Skill,
        entries=SAMPLE_SKILLS if settings.seed_sample_data else None,
    )
    return {"/skills": (skills, parse_skill)}


def create_app(
    resources: Mounts | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the app factory. Uvicorn calls it with the --factory flag:
        uvicorn resourcerest.app:create_app --factory

    Args:
        resources: Base path -> (resource, body parser) to serve. Defaults
            to the sample skills resource.
        settings: Settings to use instead of the environment.
    """
    settings = settings or get_settings()
    if resources is None:
        resources = default_resources(settings)

    app = FastAPI(
        title="Resource REST",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )
    prefix = settings.api_prefix.rstrip("/")
    app.state.resources = {
        prefix + "/" + path.strip("/"): resource for path, (resource, _) in resources.items()
    }
    app.include_router(
        build_api_router(resources, settings.max_content_length), prefix=prefix
    )

    return app


def main() -> None:
    """Run the application with uvicorn using the configured host and port."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Resource server running at port %d", settings.port)
    uvicorn.run(
        "resourcerest.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
