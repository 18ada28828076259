"""Resource change descriptors and their request body decoders.

A PATCH body is an ordered batch of changes. Each change is one of four
variants discriminated by ``type``; the variant fixes which of ``value``
and ``new_resource`` are present::

    [
        {"type": "update", "resource": "description", "value": "Fight"},
        {"type": "move", "resource": "name", "newResource": "title"},
        {"type": "remove", "resource": "title"}
    ]

The same batch in XML::

    <changes>
      <change type="update" resource="description"><value>Fight</value></change>
      <change type="move" resource="name" newResource="title"/>
      <change type="remove" resource="title"/>
    </changes>

Change documents never need a DTD, so XML bodies carrying a ``<!DOCTYPE``
declaration are refused before parsing. That keeps entity expansion out of
the parser whatever the runtime expat version. Body size is capped by the
router (``Settings.max_content_length``).
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    TypeAdapter,
    ValidationError,
)

from resourcerest.errors import ResourceSyntaxError, UnsupportedMediaTypeError
from resourcerest.resources.path import Parent, ResourcePath

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
XML_MEDIA_TYPE = "application/xml"

_DOCTYPE = "<!DOCTYPE"


# ---------------------------------------------------------------------------
# Change variants
# ---------------------------------------------------------------------------


def _check_target(value: Any) -> ResourcePath | str:
    """Accept a ResourcePath or a string that parses as one."""
    if isinstance(value, ResourcePath):
        return value
    if isinstance(value, str):
        ResourcePath.parse(value)
        return value
    raise ValueError(f"Invalid resource path {value!r}")


ResourceTarget = Annotated[Any, PlainValidator(_check_target)]


class _Change(BaseModel):
    """Fields shared by every change variant."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="forbid",
    )

    resource: ResourceTarget

    @property
    def path(self) -> Parent:
        """The altered resource as a path."""
        if isinstance(self.resource, ResourcePath):
            return self.resource
        return ResourcePath.parse(self.resource)


class ResourceAdded(_Change):
    """Add a new property or resource."""

    type: Literal["add"] = "add"
    value: Any


class ResourceRemoved(_Change):
    """Remove a property or resource."""

    type: Literal["remove"] = "remove"


class ResourceUpdated(_Change):
    """Change the value of an existing property."""

    type: Literal["update"] = "update"
    value: Any


class ResourceMoved(_Change):
    """Move or rename a property or resource.

    ``new_resource`` is either a new name or a path, which may be relative
    to the parent of ``resource``. When ``value`` is given it replaces the
    moved value at the destination; an explicit ``null`` clears it.
    """

    type: Literal["move"] = "move"
    new_resource: ResourceTarget = Field(alias="newResource")
    value: Any = None

    @property
    def new_path(self) -> Parent:
        """The destination as a path."""
        if isinstance(self.new_resource, ResourcePath):
            return self.new_resource
        return ResourcePath.parse(self.new_resource)


ResourceChange = Annotated[
    Union[ResourceAdded, ResourceRemoved, ResourceUpdated, ResourceMoved],
    Field(discriminator="type"),
]

_change_list = TypeAdapter(list[ResourceChange])


def build_changes(items: Any) -> list[ResourceChange]:
    """Validate raw change mappings into typed changes, preserving order.

    Raises:
        ResourceSyntaxError: An item is not a valid change.
    """
    if isinstance(items, dict):
        items = [items]
    try:
        return _change_list.validate_python(items)
    except ValidationError as exc:
        raise ResourceSyntaxError(
            f"Invalid resource changes: {exc.error_count()} error(s)",
            value=exc.errors(include_url=False, include_context=False),
        ) from exc


# ---------------------------------------------------------------------------
# Body decoders
# ---------------------------------------------------------------------------


def parse_json_changes(body: bytes | str) -> list[ResourceChange]:
    """Parse a JSON array of resource changes.

    Args:
        body: The raw request body.

    Returns:
        The changes in the order of the body.

    Raises:
        ResourceSyntaxError: The body is not valid JSON or not a list of
            valid changes.
    """
    try:
        items = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ResourceSyntaxError(f"Malformed JSON body: {exc}") from exc
    if not isinstance(items, (list, dict)):
        raise ResourceSyntaxError("Resource changes must be a JSON array")
    return build_changes(items)


def parse_xml_changes(body: bytes | str) -> list[ResourceChange]:
    """Parse an XML ``<changes>`` document of resource changes.

    Args:
        body: The raw request body.

    Returns:
        The changes in document order.

    Raises:
        ResourceSyntaxError: The body is not well-formed XML or does not
            describe valid changes, or declares a DTD.
    """
    marker = _DOCTYPE if isinstance(body, str) else _DOCTYPE.encode()
    if marker in body:
        raise ResourceSyntaxError("XML changes must not declare a DTD")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise ResourceSyntaxError(f"Malformed XML body: {exc}") from exc

    if root.tag != "changes":
        raise ResourceSyntaxError(
            f"Unexpected root element <{root.tag}>, expected <changes>"
        )

    items: list[dict[str, Any]] = []
    for index, element in enumerate(root):
        if element.tag != "change":
            raise ResourceSyntaxError(
                f"Unexpected element <{element.tag}> at change {index}"
            )
        item: dict[str, Any] = dict(element.attrib)
        value = element.find("value")
        if value is not None:
            item["value"] = value.text or ""
        items.append(item)
    return build_changes(items)


def media_type(content_type: str | None) -> str:
    """Return the bare, lower-case media type of a Content-Type header."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def parse_resource_changes(
    body: bytes | str, content_type: str | None
) -> list[ResourceChange]:
    """Decode a PATCH body with the decoder for its content type.

    Raises:
        UnsupportedMediaTypeError: No decoder exists for the content type.
        ResourceSyntaxError: The body could not be decoded.
    """
    kind = media_type(content_type)
    if kind == JSON_MEDIA_TYPE:
        return parse_json_changes(body)
    if kind == XML_MEDIA_TYPE:
        return parse_xml_changes(body)
    logger.debug("No change decoder for content type %r", content_type)
    raise UnsupportedMediaTypeError(f"Unsupported content type {content_type}")
