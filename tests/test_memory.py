"""Tests for the in-memory stores and the record change protocol."""

import asyncio

import pytest
from pydantic import BaseModel

from resourcerest.errors import ResourceNotFoundError, ResourceSyntaxError
from resourcerest.resources.changes import (
    ResourceAdded,
    ResourceMoved,
    ResourceRemoved,
    ResourceUpdated,
)
from resourcerest.resources.contract import is_record_resource, parse_body
from resourcerest.resources.memory import InMemoryRecordResource, InMemoryResource
from resourcerest.schemas.skill import Skill


class Point(BaseModel):
    a: int
    b: int


class Profile(BaseModel):
    name: str
    title: str | None = None
    nickname: str | None = None


@pytest.fixture
def points() -> InMemoryRecordResource[Point]:
    return InMemoryRecordResource("point", Point, entries={"p": Point(a=1, b=2)})


@pytest.fixture
def profiles() -> InMemoryRecordResource[Profile]:
    return InMemoryRecordResource("profile", Profile, entries={"k": Profile(name="Ada")})


class TestInMemoryResource:
    @pytest.mark.asyncio
    async def test_crud_round_trip(self) -> None:
        store = InMemoryResource("thing")
        key = await store.create({"x": 1})
        assert await store.get(key) == {"x": 1}
        assert await store.get_all() == [(key, {"x": 1})]
        await store.update(key, {"x": 2})
        assert await store.get(key) == {"x": 2}
        assert await store.delete(key) is True
        with pytest.raises(ResourceNotFoundError):
            await store.get(key)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["get", "update", "delete"])
    async def test_missing_key(self, operation) -> None:
        store = InMemoryResource("thing", {"a": 1})
        args = ("missing", 2) if operation == "update" else ("missing",)
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await getattr(store, operation)(*args)
        assert exc_info.value.key == "missing"
        assert await store.get_all() == [("a", 1)]

    @pytest.mark.asyncio
    async def test_distinct_keys(self) -> None:
        store = InMemoryResource("thing")
        keys = [await store.create(i) for i in range(1000)]
        assert len(set(keys)) == 1000

    @pytest.mark.asyncio
    async def test_concurrent_creates(self) -> None:
        store = InMemoryResource("thing")
        keys = await asyncio.gather(*(store.create(i) for i in range(200)))
        assert len(set(keys)) == 200
        assert len(await store.get_all()) == 200

    @pytest.mark.asyncio
    async def test_key_collision_regenerates(self) -> None:
        generated = iter(["a", "a", "b"])
        store = InMemoryResource("thing", key_factory=lambda: next(generated))
        assert await store.create(1) == "a"
        assert await store.create(2) == "b"

    @pytest.mark.asyncio
    async def test_store_order(self) -> None:
        store = InMemoryResource("thing", [("z", 1), ("a", 2)])
        assert [key for key, _ in await store.get_all()] == ["z", "a"]

    def test_not_record_capable(self) -> None:
        assert not is_record_resource(InMemoryResource("thing"))


class TestInMemoryRecordResource:
    def test_record_capable(self, points) -> None:
        assert is_record_resource(points)
        assert list(points.properties()) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_create_validates(self) -> None:
        store = InMemoryRecordResource("skill", Skill)
        key = await store.create({"name": "Battle"})
        assert await store.get(key) == Skill(name="Battle")
        with pytest.raises(ResourceSyntaxError):
            await store.create({"description": "no name"})

    @pytest.mark.asyncio
    async def test_update(self, points) -> None:
        await points.adjust("p", [ResourceUpdated(resource="a", value=5)])
        assert await points.get("p") == Point(a=5, b=2)

    @pytest.mark.asyncio
    async def test_batch_is_atomic(self, points) -> None:
        changes = [
            ResourceUpdated(resource="a", value=5),
            ResourceUpdated(resource="b", value="invalid"),
        ]
        with pytest.raises(ResourceSyntaxError) as exc_info:
            await points.adjust("p", changes)
        assert exc_info.value.resource == "b"
        assert exc_info.value.key == "p"
        assert await points.get("p") == Point(a=1, b=2)

    @pytest.mark.asyncio
    async def test_unknown_property(self, points) -> None:
        with pytest.raises(ResourceSyntaxError) as exc_info:
            await points.adjust("p", [ResourceAdded(resource="c", value=1)])
        assert exc_info.value.resource == "c"

    @pytest.mark.asyncio
    async def test_nested_property_path(self, points) -> None:
        with pytest.raises(ResourceSyntaxError):
            await points.adjust("p", [ResourceUpdated(resource="a/x", value=1)])

    @pytest.mark.asyncio
    async def test_missing_key(self, points) -> None:
        with pytest.raises(ResourceNotFoundError):
            await points.adjust("missing", [ResourceUpdated(resource="a", value=5)])

    @pytest.mark.asyncio
    async def test_changes_apply_in_order(self, profiles) -> None:
        await profiles.adjust(
            "k",
            [
                ResourceAdded(resource="title", value="Countess"),
                ResourceMoved(resource="title", new_resource="nickname"),
                ResourceUpdated(resource="title", value="Dr"),
            ],
        )
        assert await profiles.get("k") == Profile(name="Ada", title="Dr", nickname="Countess")

    @pytest.mark.asyncio
    async def test_remove(self, profiles) -> None:
        await profiles.adjust("k", [ResourceAdded(resource="title", value="Countess")])
        await profiles.adjust("k", [ResourceRemoved(resource="title")])
        assert await profiles.get("k") == Profile(name="Ada")

    @pytest.mark.asyncio
    async def test_remove_required(self, profiles) -> None:
        with pytest.raises(ResourceSyntaxError):
            await profiles.adjust("k", [ResourceRemoved(resource="name")])
        assert await profiles.get("k") == Profile(name="Ada")

    @pytest.mark.asyncio
    async def test_move_with_value(self, profiles) -> None:
        await profiles.adjust(
            "k", [ResourceMoved(resource="title", new_resource="nickname", value="Ace")]
        )
        assert await profiles.get("k") == Profile(name="Ada", nickname="Ace")

    @pytest.mark.asyncio
    async def test_move_explicit_null_clears(self, profiles) -> None:
        await profiles.adjust("k", [ResourceAdded(resource="title", value="Countess")])
        await profiles.adjust(
            "k", [ResourceMoved(resource="title", new_resource="nickname", value=None)]
        )
        assert await profiles.get("k") == Profile(name="Ada")

    @pytest.mark.asyncio
    async def test_move_required_property(self, profiles) -> None:
        # name cannot be left empty behind the move
        with pytest.raises(ResourceSyntaxError):
            await profiles.adjust("k", [ResourceMoved(resource="name", new_resource="nickname")])
        assert await profiles.get("k") == Profile(name="Ada")

    @pytest.mark.asyncio
    async def test_move_outside_record(self, profiles) -> None:
        with pytest.raises(ResourceSyntaxError):
            await profiles.adjust("k", [ResourceMoved(resource="title", new_resource="../title")])

    @pytest.mark.asyncio
    async def test_empty_batch(self, points) -> None:
        await points.adjust("p", [])
        assert await points.get("p") == Point(a=1, b=2)


class TestParseBody:
    @pytest.mark.asyncio
    async def test_sync_parser(self) -> None:
        assert await parse_body({"name": "Battle"}, Skill.model_validate) == Skill(name="Battle")

    @pytest.mark.asyncio
    async def test_async_parser(self) -> None:
        async def parser(body):
            return body["x"]

        assert await parse_body({"x": 1}, parser) == 1

    @pytest.mark.asyncio
    async def test_parser_failures(self) -> None:
        async def parser(body):
            raise ValueError("bad")

        with pytest.raises(ResourceSyntaxError):
            await parse_body({}, parser)
        with pytest.raises(ResourceSyntaxError):
            await parse_body({}, Skill.model_validate)

    @pytest.mark.asyncio
    async def test_any_parser_exception_rejects_body(self) -> None:
        class NoteFormatError(Exception):
            pass

        def strict(body):
            raise NoteFormatError("unexpected layout")

        with pytest.raises(ResourceSyntaxError) as exc_info:
            await parse_body({"x": 1}, lambda body: body.strip())
        assert exc_info.value.value == {"x": 1}
        with pytest.raises(ResourceSyntaxError):
            await parse_body({"x": 1}, strict)
