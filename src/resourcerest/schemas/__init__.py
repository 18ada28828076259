"""Pydantic schemas for resource request/response bodies."""

from resourcerest.schemas.errors import ErrorResponse
from resourcerest.schemas.skill import Skill, parse_skill

__all__ = ["ErrorResponse", "Skill", "parse_skill"]
