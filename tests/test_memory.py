"""Tests for the in-memory store, normalizer and adapter."""

from datetime import datetime

import pytest

from typed_documents.errors import AdapterError
from typed_documents.memory import (
    DocumentRef,
    MemoryAdapter,
    MemoryNormalizer,
    MemoryStore,
    StoredDocument,
)
from typed_documents.metadata import MetadataRegistry
from typed_documents.query import Query
from typed_documents.query_builder import QueryBuilder


class Employee:
    def __init__(self, id=None, name="", manager=None):
        self.id = id
        self.name = name
        self.manager = manager


class Task:
    def __init__(self, tid=None, title="", points=0, tags=None, assignee=None, due=None):
        self.tid = tid
        self.title = title
        self.points = points
        self.tags = tags or []
        self.assignee = assignee
        self.due = due


@pytest.fixture
def graph():
    registry = MetadataRegistry()
    registry.add_document("tasks", "tid", Task)
    registry.add_reference(Task, "assignee", Employee)
    registry.add_document("employees", "id", Employee)
    registry.add_reference(Employee, "manager", Employee)
    return registry.resolve_all()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def adapter(store):
    return MemoryAdapter(store)


class TestMemoryStore:
    """Tests for MemoryStore."""

    def test_put_get_remove(self, store):
        """Test the basic store operations."""
        store.put("tasks", "t1", {"title": "a"})
        assert store.get(DocumentRef("tasks", "t1")) == StoredDocument("t1", {"title": "a"})
        assert store.list_collections() == ["tasks"]

        assert store.remove("tasks", "t1") is True
        assert store.remove("tasks", "t1") is False
        assert store.get(DocumentRef("tasks", "t1")) is None

    def test_generate_id_is_unique(self):
        """Test that generated ids differ."""
        assert MemoryStore.generate_id() != MemoryStore.generate_id()


class TestMemoryNormalizer:
    """Tests for MemoryNormalizer."""

    def test_denormalize_replaces_references_and_drops_id(self, graph, store):
        """Test the stored shape of a document with a reference."""
        normalizer = MemoryNormalizer(store)
        boss = Employee("e1", "Boss")
        task = Task("t1", "Write", 3, ["x"], assignee=boss)

        data = normalizer.denormalize(graph[Task], task)

        assert "tid" not in data
        assert data["assignee"] == DocumentRef("employees", "e1")
        assert data["tags"] == ["x"]
        assert data["tags"] is not task.tags

    def test_denormalize_accepts_raw_id_and_none(self, graph, store):
        """Test that a raw id becomes a handle and a missing referent None."""
        normalizer = MemoryNormalizer(store)
        assert normalizer.denormalize(graph[Task], Task("t1", assignee="e9"))["assignee"] == (
            DocumentRef("employees", "e9")
        )
        assert normalizer.denormalize(graph[Task], Task("t1"))["assignee"] is None

    def test_normalize_resolves_references(self, graph, store):
        """Test that references come back as nested documents."""
        store.put("employees", "e1", {"name": "Boss", "manager": None})
        normalizer = MemoryNormalizer(store)

        task = normalizer.normalize(
            graph[Task],
            StoredDocument("t1", {"title": "Write", "assignee": DocumentRef("employees", "e1")}),
        )

        assert isinstance(task, Task)
        assert task.tid == "t1"
        assert isinstance(task.assignee, Employee)
        assert task.assignee.id == "e1"
        assert task.assignee.name == "Boss"

    def test_normalize_cyclic_data(self, graph, store):
        """Test that documents referencing each other resolve to shared objects."""
        store.put("employees", "a", {"name": "A", "manager": DocumentRef("employees", "b")})
        store.put("employees", "b", {"name": "B", "manager": DocumentRef("employees", "a")})
        normalizer = MemoryNormalizer(store)

        a = normalizer.normalize(graph[Employee], store.get(DocumentRef("employees", "a")))
        assert a.manager.name == "B"
        assert a.manager.manager is a

    def test_normalize_dangling_reference(self, graph, store):
        """Test that a reference to a missing document becomes None."""
        normalizer = MemoryNormalizer(store)
        task = normalizer.normalize(
            graph[Task], StoredDocument("t1", {"assignee": DocumentRef("employees", "gone")})
        )
        assert task.assignee is None


async def _seed(adapter, graph):
    boss = Employee("e1", "Boss")
    dev = Employee("e2", "Dev", manager=boss)
    for employee in (boss, dev):
        await adapter.create(graph[Employee], employee)
    tasks = [
        Task("t1", "Alpha", 5, ["red"], dev, datetime(2024, 1, 3)),
        Task("t2", "Beta", 3, ["red", "blue"], boss, datetime(2024, 1, 1)),
        Task("t3", "Gamma", 8, ["green"], dev, datetime(2024, 1, 2)),
        Task("t4", "Delta", 3, [], None, None),
    ]
    for task in tasks:
        await adapter.create(graph[Task], task)
    return boss, dev


@pytest.mark.asyncio
class TestMemoryAdapter:
    """Tests for MemoryAdapter."""

    async def _ids(self, adapter, graph, builder):
        return [t.tid for t in await adapter.fetch(graph[Task], builder.to_query())]

    async def test_fetch_all(self, adapter, graph):
        """Test that an empty query returns everything in insertion order."""
        await _seed(adapter, graph)
        assert await self._ids(adapter, graph, QueryBuilder()) == ["t1", "t2", "t3", "t4"]

    @pytest.mark.parametrize(
        "expression,expected",
        [
            ("where points == 3", ["t2", "t4"]),
            ("where points < 5", ["t2", "t4"]),
            ("where points <= 5", ["t1", "t2", "t4"]),
            ("where points > 5", ["t3"]),
            ("where points >= 5", ["t1", "t3"]),
            ('where title in ["Alpha", "Gamma"]', ["t1", "t3"]),
            ('where tags array-contains "red"', ["t1", "t2"]),
            ('where tags array-contains-any ["blue", "green"]', ["t2", "t3"]),
            ('where points >= 3 and tags array-contains "red"', ["t1", "t2"]),
            ('where title > 3', []),
        ],
    )
    async def test_operators(self, adapter, graph, expression, expected):
        """Test each filter operator."""
        await _seed(adapter, graph)
        assert await self._ids(adapter, graph, QueryBuilder().apply(expression)) == expected

    async def test_filter_on_id_key(self, adapter, graph):
        """Test that filters on the id key match document ids."""
        await _seed(adapter, graph)
        builder = QueryBuilder().where_in("tid", ["t2", "t4"])
        assert await self._ids(adapter, graph, builder) == ["t2", "t4"]

    async def test_filter_on_reference(self, adapter, graph):
        """Test that reference filters accept documents or raw ids."""
        boss, dev = await _seed(adapter, graph)
        assert await self._ids(adapter, graph, QueryBuilder().where("assignee", dev)) == ["t1", "t3"]
        assert await self._ids(adapter, graph, QueryBuilder().where("assignee", "e1")) == ["t2"]
        assert await self._ids(adapter, graph, QueryBuilder().where_in("assignee", [boss, "e2"])) == [
            "t1", "t2", "t3",
        ]

    async def test_filter_on_datetime(self, adapter, graph):
        """Test that datetimes compare as values."""
        await _seed(adapter, graph)
        builder = QueryBuilder().where_greater_than("due", datetime(2024, 1, 1))
        assert await self._ids(adapter, graph, builder) == ["t1", "t3"]

    async def test_order_by(self, adapter, graph):
        """Test multi-key ordering."""
        await _seed(adapter, graph)
        builder = QueryBuilder().order_by("points").order_by_descending("title")
        assert await self._ids(adapter, graph, builder) == ["t4", "t2", "t1", "t3"]

    async def test_order_by_excludes_missing_values(self, adapter, graph, store):
        """Test that documents without the ordering field are left out."""
        await _seed(adapter, graph)
        store.put("tasks", "t5", {"title": "NoPoints"})
        builder = QueryBuilder().order_by_descending("points")
        assert await self._ids(adapter, graph, builder) == ["t3", "t1", "t2", "t4"]

    async def test_offset_and_limit(self, adapter, graph):
        """Test pagination."""
        await _seed(adapter, graph)
        builder = QueryBuilder().order_by("title").offset(1).limit(2)
        assert await self._ids(adapter, graph, builder) == ["t2", "t4"]

    async def test_limit_zero(self, adapter, graph):
        """Test that limit 0 returns nothing."""
        await _seed(adapter, graph)
        assert await self._ids(adapter, graph, QueryBuilder().limit(0)) == []

    async def test_select(self, adapter, graph):
        """Test that projection keeps only selected fields and the id."""
        await _seed(adapter, graph)
        (task,) = await adapter.fetch(graph[Task], QueryBuilder().select("title").where("tid", "t1").to_query())
        assert task.tid == "t1"
        assert task.title == "Alpha"
        assert not hasattr(task, "points")

    async def test_count_ignores_pagination(self, adapter, graph):
        """Test that count applies filters only."""
        await _seed(adapter, graph)
        query = QueryBuilder().where("points", 3).limit(1).offset(1).to_query()
        assert await adapter.count(graph[Task], query) == 2

    async def test_stream(self, adapter, graph):
        """Test streaming documents."""
        await _seed(adapter, graph)
        query = QueryBuilder().where("points", 3).to_query()
        assert [t.tid async for t in adapter.stream(graph[Task], query)] == ["t2", "t4"]

    async def test_fetch_resolves_references(self, adapter, graph):
        """Test that fetched documents carry nested referents."""
        await _seed(adapter, graph)
        (task,) = await adapter.fetch(graph[Task], QueryBuilder().where("tid", "t1").to_query())
        assert task.assignee.name == "Dev"
        assert task.assignee.manager.name == "Boss"

    async def test_create_assigns_id(self, adapter, graph, store):
        """Test that create generates an id when the document has none."""
        employee = Employee(name="New")
        await adapter.create(graph[Employee], employee)
        assert employee.id
        assert store.get(DocumentRef("employees", employee.id)).data["name"] == "New"

    async def test_update_and_delete(self, adapter, graph, store):
        """Test overwriting and removing a document."""
        await _seed(adapter, graph)
        (task,) = await adapter.fetch(graph[Task], QueryBuilder().where("tid", "t4").to_query())
        task.title = "Renamed"
        await adapter.update(graph[Task], task)
        assert store.get(DocumentRef("tasks", "t4")).data["title"] == "Renamed"

        await adapter.delete(graph[Task], task)
        assert await adapter.count(graph[Task], Query()) == 3

    async def test_update_without_id(self, adapter, graph):
        """Test that updating a document without id raises."""
        with pytest.raises(AdapterError, match="'tid'"):
            await adapter.update(graph[Task], Task())

    @pytest.mark.parametrize(
        "builder",
        [
            QueryBuilder().limit(-1),
            QueryBuilder().offset(-2),
            QueryBuilder().offset(1).limit(-3),
        ],
    )
    async def test_negative_pagination(self, adapter, graph, builder):
        """Test that negative limits and offsets are rejected."""
        await _seed(adapter, graph)
        with pytest.raises(AdapterError, match="must not be negative"):
            await adapter.fetch(graph[Task], builder.to_query())
        with pytest.raises(AdapterError, match="must not be negative"):
            [t async for t in adapter.stream(graph[Task], builder.to_query())]

    async def test_falsy_ids(self, adapter, graph, store):
        """Test that ids such as 0 and the empty string are real ids."""
        zero = Task(0, "Zero")
        empty = Task("", "Empty")
        await adapter.create(graph[Task], zero)
        await adapter.create(graph[Task], empty)
        assert zero.tid == 0
        assert empty.tid == ""
        assert sorted(store.collection("tasks"), key=str) == ["", 0]

        zero.title = "Renamed"
        await adapter.update(graph[Task], zero)
        assert store.collection("tasks")[0]["title"] == "Renamed"

        await adapter.delete(graph[Task], empty)
        assert list(store.collection("tasks")) == [0]
