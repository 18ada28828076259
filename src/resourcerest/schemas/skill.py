"""Skill records served by the sample skills resource."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from resourcerest.errors import ResourceSyntaxError


class Skill(BaseModel):
    """An ability a character can have."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=250)


def parse_skill(body: Any) -> Skill:
    """Build a Skill from a decoded JSON request body.

    Raises:
        ResourceSyntaxError: The body holds more than one skill.
        pydantic.ValidationError: The body is not a valid skill.
    """
    if isinstance(body, list):
        raise ResourceSyntaxError("Cannot handle more than one skill.", value=body)
    return Skill.model_validate(body)


SAMPLE_SKILLS: dict[str, Skill] = {
    "1": Skill(name="Battle", description="An ability to fight or command."),
    "2": Skill(name="Communication", description="Communicate with other people"),
}
