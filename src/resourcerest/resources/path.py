"""Hierarchical resource paths.

A path is a chain of immutable nodes linked towards the root. The chain
terminates either at ``None`` (the root of an absolute path) or at the
``RELATIVE`` marker (the start of a relative path)::

    /skills/battle   ->  battle -> skills -> None
    ../battle        ->  battle -> .. -> RELATIVE

Relative chains may start with a run of ``..`` nodes; any other ``.``/``..``
segment is folded away when the node is created. The empty relative path
is ``RELATIVE`` itself, so ``a/..`` and ``.`` both parse to it.

Equality, hashing and ``repr`` walk the chain iteratively, so arbitrarily
deep paths compare without recursion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from resourcerest.errors import ResourceSyntaxError

CURRENT = "."
UP = ".."
SEPARATOR = "/"


class _Relative:
    """Terminal marker of a relative chain."""

    def __repr__(self) -> str:
        return "RELATIVE"


RELATIVE = _Relative()

Parent = Union["ResourcePath", None, _Relative]


def is_absolute(path: Parent) -> bool:
    """Return whether the chain ending at ``path`` hangs off the root."""
    cursor = path
    while isinstance(cursor, ResourcePath):
        cursor = cursor.parent
    return cursor is None


def is_relative(path: Parent) -> bool:
    """Return whether the chain ending at ``path`` is a relative path."""
    return not is_absolute(path)


@dataclass(frozen=True, eq=False, repr=False)
class ResourcePath:
    """A single segment of a resource path with a link to its parent.

    Use :meth:`create` or :meth:`parse` rather than the constructor: they
    enforce the segment rules and fold ``.``/``..`` segments.
    """

    name: str
    parent: Parent = RELATIVE

    @classmethod
    def create(cls, name: str, parent: Parent = RELATIVE) -> Parent:
        """Create a path segment below ``parent``.

        Args:
            name: The segment name.
            parent: The parent path, ``None`` for the absolute root or
                ``RELATIVE`` for the start of a relative path.

        Returns:
            The new node, or an existing node (possibly ``RELATIVE``) when
            ``name`` is ``.`` or ``..`` and folds into ``parent``.

        Raises:
            ResourceSyntaxError: The name is empty, or a ``.``/``..``
                segment is applied to an absolute path.
        """
        if name == "":
            raise ResourceSyntaxError("An empty path segment is not allowed")

        if name in (CURRENT, UP):
            if is_absolute(parent):
                raise ResourceSyntaxError(
                    "Absolute path does not allow relative segments",
                    resource=name,
                )
            if name == CURRENT:
                return parent
            if isinstance(parent, ResourcePath) and parent.name != UP:
                return parent.parent
            return cls(UP, parent)

        return cls(name, parent)

    @classmethod
    def parse(cls, text: str) -> Parent:
        """Parse a ``/``-separated path string.

        A leading ``/`` makes the path absolute; ``"/"`` alone is the
        absolute root and parses to ``None``. A relative path that folds
        away entirely, such as ``"."`` or ``"a/.."``, parses to ``RELATIVE``.

        Raises:
            ResourceSyntaxError: The text is empty or contains an empty or
                misplaced segment.
        """
        if not isinstance(text, str):
            raise ResourceSyntaxError(f"Invalid path {text!r}")
        if text == "":
            raise ResourceSyntaxError("An empty path is not allowed")

        cursor: Parent = RELATIVE
        if text.startswith(SEPARATOR):
            cursor = None
            text = text[1:]
            if text == "":
                return None

        for index, segment in enumerate(text.split(SEPARATOR)):
            if segment == "":
                raise ResourceSyntaxError(
                    f"Invalid path segment {index}: An empty segment.",
                    resource=text,
                )
            cursor = cls.create(segment, cursor)
        return cursor

    @property
    def segments(self) -> tuple[str, ...]:
        """Segment names from the root (or relative start) to this node."""
        return self._identity()[0]

    @property
    def absolute(self) -> bool:
        return is_absolute(self)

    @property
    def relative(self) -> bool:
        return is_relative(self)

    def resolve(self, path: ResourcePath | str) -> Parent:
        """Resolve ``path`` against this path. See :func:`resolve_path`."""
        return resolve_path(self, path)

    def _identity(self) -> tuple[tuple[str, ...], bool]:
        names: list[str] = []
        cursor: Parent = self
        while isinstance(cursor, ResourcePath):
            names.append(cursor.name)
            cursor = cursor.parent
        return tuple(reversed(names)), cursor is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourcePath):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __repr__(self) -> str:
        return f"ResourcePath({str(self)!r})"

    def __str__(self) -> str:
        segments, absolute = self._identity()
        text = SEPARATOR.join(segments)
        return SEPARATOR + text if absolute else text


def resolve_path(current: Parent, path: Parent | str) -> Parent:
    """Resolve a path relative to ``current``.

    Absolute paths are returned unchanged. Relative paths are replayed
    segment by segment on top of ``current``: ``.`` is skipped, ``..``
    steps up one level and any other segment appends a child.

    Args:
        current: The base path (``None`` for the absolute root,
            ``RELATIVE`` for the empty relative path).
        path: The path to apply, as a ResourcePath or a string.

    Returns:
        The resolved path. ``None`` means the absolute root.

    Raises:
        ResourceSyntaxError: The path is malformed, or ``..`` steps past
            the absolute root. On a relative ``current`` a leading ``..``
            is kept, so ``resolve_path(RELATIVE, "..")`` is ``..``.
    """
    child = ResourcePath.parse(path) if isinstance(path, str) else path
    if child is None:
        return None
    if child is RELATIVE:
        return current

    segments = child.segments
    if child.absolute:
        if any(segment in (CURRENT, UP) for segment in segments):
            raise ResourceSyntaxError(
                "Absolute path cannot contain relative elements.",
                resource=str(child),
            )
        return child

    cursor = current
    for index, segment in enumerate(segments):
        if segment == CURRENT:
            continue
        if segment == UP:
            if cursor is None:
                raise ResourceSyntaxError(
                    f"Invalid relative path at segment {index}.",
                    resource=str(child),
                )
            if is_absolute(cursor):
                cursor = cursor.parent
            else:
                cursor = ResourcePath.create(UP, cursor)
        else:
            cursor = ResourcePath.create(segment, cursor)
    return cursor


def path_to_string(path: Parent) -> str:
    """Render a path, including the absolute root (``/``) and empty relative path (``.``)."""
    if path is None:
        return SEPARATOR
    if path is RELATIVE:
        return CURRENT
    return str(path)


create_path = ResourcePath.create
parse_path = ResourcePath.parse
