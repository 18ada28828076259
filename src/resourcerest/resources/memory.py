"""In-memory backing stores.

Both stores keep entries in an insertion-ordered dict owned by the store
object and serialize mutations with an ``asyncio.Lock``. Construct one per
resource at start-up and hand it to :func:`resource_router`.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from resourcerest.errors import ResourceNotFoundError, ResourceSyntaxError
from resourcerest.resources.changes import ResourceChange
from resourcerest.resources.contract import RecordResource, Resource

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def new_key() -> str:
    """Return a fresh random UUID string."""
    return str(uuid.uuid4())


class InMemoryResource(Resource[T, str]):
    """A dict-backed resource with UUID keys.

    Args:
        name: The resource name reported in responses and logs.
        entries: Optional initial ``key -> value`` entries.
        key_factory: Generator of new keys; must not repeat.
    """

    def __init__(
        self,
        name: str,
        entries: Mapping[str, T] | Iterable[tuple[str, T]] | None = None,
        key_factory: Callable[[], str] = new_key,
    ) -> None:
        self.name = name
        self._entries: dict[str, T] = dict(entries or {})
        self._key_factory = key_factory
        self._lock = asyncio.Lock()

    def validate(self, value: T) -> T:
        """Hook for subclasses to check or normalise a value before storing it."""
        return value

    async def get_all(self) -> Sequence[tuple[str, T]]:
        return list(self._entries.items())

    async def get(self, key: str) -> T:
        try:
            return self._entries[key]
        except KeyError as exc:
            raise self._not_found(key) from exc

    async def create(self, value: T) -> str:
        value = self.validate(value)
        async with self._lock:
            key = self._key_factory()
            while key in self._entries:
                logger.warning("Key collision in %s: %s", self.name, key)
                key = self._key_factory()
            self._entries[key] = value
        return key

    async def update(self, key: str, value: T) -> None:
        value = self.validate(value)
        async with self._lock:
            if key not in self._entries:
                raise self._not_found(key)
            self._entries[key] = value

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key not in self._entries:
                raise self._not_found(key)
            del self._entries[key]
        return True

    def _not_found(self, key: str) -> ResourceNotFoundError:
        return ResourceNotFoundError(
            f"The {self.name}/{key} does not exist.", resource=self.name, key=key
        )


class InMemoryRecordResource(InMemoryResource[M], RecordResource[M, str], Generic[M]):
    """An in-memory resource of pydantic records with adjustable fields.

    The properties are the model's fields. A property value is valid when
    the model still validates with it, so field types and constraints of
    the model decide what a PATCH may do.

    Args:
        name: The resource name reported in responses and logs.
        model: The pydantic model of the stored records.
        entries: Optional initial ``key -> record`` entries.
        key_factory: Generator of new keys; must not repeat.
    """

    def __init__(
        self,
        name: str,
        model: type[M],
        entries: Mapping[str, M] | Iterable[tuple[str, M]] | None = None,
        key_factory: Callable[[], str] = new_key,
    ) -> None:
        super().__init__(name, entries, key_factory)
        self.model = model

    def validate(self, value: M | Mapping[str, Any]) -> M:
        if isinstance(value, self.model):
            return value
        try:
            return self.model.model_validate(value)
        except ValidationError as exc:
            raise ResourceSyntaxError(
                f"Invalid {self.name}.", resource=self.name, value=value
            ) from exc

    def properties(self) -> Iterator[str]:
        return iter(self.model.model_fields)

    def valid_value(self, source: M, property: str, value: Any) -> bool:
        try:
            self._replace(source, property, value)
        except ValidationError:
            return False
        return True

    def change_value(self, source: M, property: str, value: Any) -> M:
        return self._replace(source, property, value)

    def _replace(self, source: M, property: str, value: Any) -> M:
        data = source.model_dump()
        data[property] = value
        return self.model.model_validate(data)

    async def adjust(self, key: str, changes: Sequence[ResourceChange]) -> None:
        async with self._lock:
            if key not in self._entries:
                raise self._not_found(key)
            result = self.apply_changes(self._entries[key], changes, key=key)
            self._entries[key] = result
        logger.debug("Applied %d change(s) to %s/%s", len(changes), self.name, key)
