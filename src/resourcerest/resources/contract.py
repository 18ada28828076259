"""The capability contract a backing store implements to be served.

``Resource`` is the plain CRUD contract. ``RecordResource`` marks stores
whose values are records with individually adjustable properties; only
those get a working PATCH route. The capability is an explicit subclass
relationship, checked once when a router is bound.

Every operation is a coroutine and reports failure by raising one of the
``resourcerest.errors`` classes, so callers only have one error channel to
handle.
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any, Generic, TypeVar, Union

from resourcerest.errors import ResourceSyntaxError
from resourcerest.resources.changes import (
    ResourceAdded,
    ResourceChange,
    ResourceMoved,
    ResourceRemoved,
    ResourceUpdated,
)
from resourcerest.resources.path import ResourcePath, path_to_string, resolve_path

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")

Parser = Callable[[Any], T]
AsyncParser = Callable[[Any], Awaitable[T]]
BodyParser = Union[Parser[T], AsyncParser[T]]


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class Resource(ABC, Generic[T, K]):
    """A named collection of values addressed by store-assigned keys."""

    name: str

    @abstractmethod
    async def get_all(self) -> Sequence[tuple[K, T]]:
        """Return every ``(key, value)`` pair in store order."""
        ...

    @abstractmethod
    async def get(self, key: K) -> T:
        """Return the value stored under ``key``.

        Raises:
            ResourceNotFoundError: No value has the key.
        """
        ...

    @abstractmethod
    async def create(self, value: T) -> K:
        """Store a new value and return the key assigned to it.

        Raises:
            ResourceSyntaxError: The value was rejected.
        """
        ...

    @abstractmethod
    async def update(self, key: K, value: T) -> None:
        """Replace the value stored under ``key``.

        Raises:
            ResourceNotFoundError: No value has the key.
            ResourceSyntaxError: The value was rejected.
        """
        ...

    @abstractmethod
    async def delete(self, key: K) -> bool:
        """Remove the value stored under ``key``.

        Returns:
            ``True`` when a value was removed.

        Raises:
            ResourceNotFoundError: No value has the key.
        """
        ...


class RecordResource(Resource[T, K]):
    """A resource whose values have individually adjustable properties."""

    @abstractmethod
    def properties(self) -> Iterator[str]:
        """Iterate over the names of the adjustable properties."""
        ...

    @abstractmethod
    def valid_value(self, source: T, property: str, value: Any) -> bool:
        """Return whether ``property`` of ``source`` may be set to ``value``.

        ``None`` stands for the absent value of a removed property.
        """
        ...

    @abstractmethod
    def change_value(self, source: T, property: str, value: Any) -> T:
        """Return a new value equal to ``source`` with ``property`` set to ``value``.

        ``source`` itself must not be modified.
        """
        ...

    def read_value(self, source: T, property: str) -> Any:
        """Return the current value of ``property`` in ``source``."""
        if isinstance(source, Mapping):
            return source.get(property)
        return getattr(source, property, None)

    @abstractmethod
    async def adjust(self, key: K, changes: Sequence[ResourceChange]) -> None:
        """Apply a batch of changes to the value stored under ``key``.

        The batch is all-or-nothing: either every change is applied or the
        stored value is left untouched.

        Raises:
            ResourceNotFoundError: No value has the key.
            ResourceSyntaxError: A change addressed an unknown property or
                proposed an invalid value.
        """
        ...

    def apply_changes(
        self, source: T, changes: Iterable[ResourceChange], key: K | None = None
    ) -> T:
        """Fold a batch of changes over ``source`` and return the result.

        Each change is validated against the value produced by the changes
        before it. ``source`` is never modified, so a failure part way
        through leaves nothing to roll back.

        Raises:
            ResourceSyntaxError: The first rejected change.
        """
        result = source
        for change in changes:
            prop = self._property_of(change.path, change, key)
            if isinstance(change, (ResourceAdded, ResourceUpdated)):
                result = self._set(result, prop, change.value, change, key)
            elif isinstance(change, ResourceRemoved):
                result = self._set(result, prop, None, change, key)
            elif isinstance(change, ResourceMoved):
                target = resolve_path(change.path.parent, change.new_path)
                destination = self._property_of(target, change, key)
                if "value" in change.model_fields_set:
                    value = change.value
                else:
                    value = self.read_value(result, prop)
                if destination != prop:
                    result = self._set(result, prop, None, change, key)
                result = self._set(result, destination, value, change, key)
            else:
                raise ResourceSyntaxError(
                    f"Unknown change {change!r}", resource=self.name, key=key
                )
        return result

    def _property_of(self, path: Any, change: ResourceChange, key: K | None) -> str:
        """Map a change path onto a property name of this record."""
        if not isinstance(path, ResourcePath) or path.absolute or len(path.segments) != 1:
            raise ResourceSyntaxError(
                f"Invalid property path {path_to_string(path)}",
                resource=str(change.resource),
                key=key,
            )
        if path.name not in set(self.properties()):
            raise ResourceSyntaxError(
                f"Unknown property {path.name} of {self.name}",
                resource=str(change.resource),
                key=key,
            )
        return path.name

    def _set(self, source: T, prop: str, value: Any, change: ResourceChange, key: K | None) -> T:
        if not self.valid_value(source, prop, value):
            raise ResourceSyntaxError(
                f"Invalid value for {self.name} property {prop}",
                resource=str(change.resource),
                key=key,
                value=value,
            )
        return self.change_value(source, prop, value)


def is_record_resource(resource: Resource[Any, Any]) -> bool:
    """Return whether ``resource`` supports partial updates."""
    return isinstance(resource, RecordResource)


async def parse_body(body: Any, parser: BodyParser[T]) -> T:
    """Run a sync or async body parser.

    Any exception raised by the parser counts as a rejection of the body.

    Raises:
        ResourceSyntaxError: The parser rejected the body.
    """
    try:
        result = parser(body)
        if inspect.isawaitable(result):
            result = await result
    except ResourceSyntaxError:
        raise
    except Exception as exc:
        raise ResourceSyntaxError(f"Invalid body: {exc}", value=body) from exc
    return result
