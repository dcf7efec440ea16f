"""Tests for Collection."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from typed_documents.adapter import Adapter
from typed_documents.collection import Collection
from typed_documents.errors import MutatedCollectionError, NotFoundError
from typed_documents.metadata import MetadataRegistry
from typed_documents.query import Query
from typed_documents.where import Where, WhereOperator


pytestmark = pytest.mark.asyncio


class Task:
    def __init__(self, tid: str = "", name: str = "") -> None:
        self.tid = tid
        self.name = name


@pytest.fixture
def metadata():
    registry = MetadataRegistry()
    registry.add_document("tasks", "tid", Task)
    return registry.resolve_all()[Task]


@pytest.fixture
def adapter():
    """Create a mock Adapter."""
    return AsyncMock(spec=Adapter)


@pytest.fixture
def collection(adapter, metadata):
    return Collection(adapter, metadata)


class TestRefining:
    """Tests for builder behavior of collections."""

    async def test_refined_collection_keeps_binding(self, collection, adapter, metadata):
        """Test that derived collections keep adapter and metadata."""
        refined = collection.where("name", "a").limit(3)
        assert isinstance(refined, Collection)
        assert refined.adapter is adapter
        assert refined.metadata is metadata
        assert refined.version == 2
        assert collection.version == 0


class TestFirst:
    """Tests for Collection.first."""

    async def test_returns_first_document(self, collection, adapter, metadata):
        """Test that first() fetches with limit 1."""
        task = Task("t1")
        adapter.fetch.return_value = [task]

        assert await collection.where("name", "a").first() is task

        _, query = adapter.fetch.call_args.args
        assert query.limit == 1
        assert query.where == (Where("name", WhereOperator.EQUAL_TO, "a"),)

    async def test_empty_raises(self, collection, adapter):
        """Test that first() on no results raises NotFoundError."""
        adapter.fetch.return_value = []
        with pytest.raises(NotFoundError, match="'tasks'"):
            await collection.first()


class TestFind:
    """Tests for Collection.find."""

    async def test_by_id_uses_id_key(self, collection, adapter, metadata):
        """Test that a bare id becomes an equality filter on the id key."""
        adapter.fetch.return_value = [Task("t1")]
        await collection.find("t1")

        called_metadata, query = adapter.fetch.call_args.args
        assert called_metadata is metadata
        assert query.where == (Where("tid", WhereOperator.EQUAL_TO, "t1"),)
        assert query.limit == 1

    async def test_by_record(self, collection, adapter):
        """Test that a record becomes equality and membership filters."""
        adapter.fetch.return_value = [Task("t1")]
        await collection.find({"name": "a", "tid": ["t1", "t2"]})

        _, query = adapter.fetch.call_args.args
        assert query.where == (
            Where("name", WhereOperator.EQUAL_TO, "a"),
            Where("tid", WhereOperator.IN, ["t1", "t2"]),
        )

    async def test_on_refined_collection_raises(self, collection, adapter):
        """Test that find() through a refined collection is rejected."""
        with pytest.raises(MutatedCollectionError):
            await collection.where("name", "a").find("t1")
        adapter.fetch.assert_not_called()

    async def test_not_found(self, collection, adapter):
        """Test that find() with no match raises NotFoundError."""
        adapter.fetch.return_value = []
        with pytest.raises(NotFoundError):
            await collection.find("missing")


class TestCount:
    """Tests for Collection.count."""

    async def test_without_record(self, collection, adapter, metadata):
        """Test counting the current query."""
        adapter.count.return_value = 7
        assert await collection.where("name", "a").count() == 7
        adapter.count.assert_awaited_once_with(
            metadata, Query(where=(Where("name", WhereOperator.EQUAL_TO, "a"),))
        )

    async def test_with_record(self, collection, adapter):
        """Test that a record adds filters before counting."""
        adapter.count.return_value = 2
        assert await collection.count({"name": ["a", "b"]}) == 2

        _, query = adapter.count.call_args.args
        assert query.where == (Where("name", WhereOperator.IN, ["a", "b"]),)

    async def test_allowed_on_refined_collection(self, collection, adapter):
        """Test that count is a read and needs no original collection."""
        adapter.count.return_value = 0
        assert await collection.limit(1).count() == 0


class TestWrites:
    """Tests for create, update and delete."""

    @pytest.mark.parametrize("method", ["create", "update", "delete"])
    async def test_delegates_on_original(self, collection, adapter, metadata, method):
        """Test that writes go to the adapter with the collection's metadata."""
        task = Task("t1")
        await getattr(collection, method)(task)
        getattr(adapter, method).assert_awaited_once_with(metadata, task)

    @pytest.mark.parametrize("method", ["create", "update", "delete"])
    async def test_rejected_on_refined(self, collection, adapter, method):
        """Test that writes through a refined collection are rejected."""
        with pytest.raises(MutatedCollectionError, match="version 1"):
            await getattr(collection.where("name", "a"), method)(Task("t1"))
        getattr(adapter, method).assert_not_called()


class TestReads:
    """Tests for fetch and stream."""

    async def test_fetch_passes_query(self, collection, adapter, metadata):
        """Test that fetch hands the finalized query to the adapter."""
        adapter.fetch.return_value = []
        await collection.order_by("name").offset(2).fetch()
        adapter.fetch.assert_awaited_once()
        _, query = adapter.fetch.call_args.args
        assert query.offset == 2
        assert [o.key for o in query.order_by] == ["name"]

    async def test_stream_and_async_iteration(self, metadata):
        """Test that a collection can be iterated with async for."""
        tasks = [Task("t1"), Task("t2")]

        async def stream(_metadata, _query):
            for task in tasks:
                yield task

        adapter = MagicMock(spec=Adapter)
        adapter.stream.side_effect = stream
        collection = Collection(adapter, metadata)

        assert [task async for task in collection.where("name", "a")] == tasks
        _, query = adapter.stream.call_args.args
        assert query.where == (Where("name", WhereOperator.EQUAL_TO, "a"),)
