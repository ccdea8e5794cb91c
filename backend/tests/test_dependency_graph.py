"""
Dependency graph manager tests.

These run the manager against the real store on in-memory SQLite, so the
existence checks, the unique edge constraint and cascades are all live.
"""

import pytest

from app.exceptions import (
    ConflictError,
    CyclicDependencyError,
    DuplicateDependencyError,
    InvalidArgumentError,
    NotFoundError,
    SelfDependencyError,
)
from app.models import utcnow

pytestmark = pytest.mark.asyncio


def depends_on_ids(edges):
    return {edge.depends_on_task_id for edge in edges}


def dependent_ids(edges):
    return {edge.task_id for edge in edges}


class TestAddDependency:
    """Validation order and persistence of add_dependency."""

    async def test_creates_edge_with_id_and_timestamp(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")

        edge = await manager.add_dependency(a, b)

        assert edge.dependency_id is not None
        assert edge.task_id == a
        assert edge.depends_on_task_id == b
        assert edge.created_at is not None

    async def test_self_dependency_rejected(self, manager, make_task):
        a = await make_task("A")

        with pytest.raises(SelfDependencyError):
            await manager.add_dependency(a, a)

    async def test_self_dependency_rejected_for_missing_task(self, manager):
        """Self-loops are invalid before existence is even checked."""
        with pytest.raises(InvalidArgumentError):
            await manager.add_dependency(999, 999)

    @pytest.mark.parametrize("bad", [None, "1", 1.5, True])
    async def test_malformed_ids_rejected(self, manager, make_task, bad):
        a = await make_task("A")

        with pytest.raises(InvalidArgumentError) as exc_info:
            await manager.add_dependency(a, bad)
        assert exc_info.value.field == "depends_on_task_id"

    async def test_missing_task_named_in_error(self, manager, make_task):
        a = await make_task("A")

        with pytest.raises(NotFoundError) as exc_info:
            await manager.add_dependency(a, 424242)
        assert exc_info.value.resource_id == 424242

        with pytest.raises(NotFoundError) as exc_info:
            await manager.add_dependency(525252, a)
        assert exc_info.value.resource_id == 525252

        assert await manager.list_dependencies(a) == []

    async def test_duplicate_rejected_with_conflict(self, manager, store, make_task):
        a = await make_task("A")
        b = await make_task("B")
        await manager.add_dependency(a, b)

        with pytest.raises(DuplicateDependencyError) as exc_info:
            await manager.add_dependency(a, b)
        assert isinstance(exc_info.value, ConflictError)

        edges = await store.list_outgoing_edges(a)
        assert len(edges) == 1

    async def test_reverse_of_existing_edge_is_a_cycle(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")
        await manager.add_dependency(a, b)

        with pytest.raises(CyclicDependencyError):
            await manager.add_dependency(b, a)


class TestCycleDetection:
    """Cycle rejection over direct and transitive paths."""

    async def test_three_task_scenario(self, manager, make_task):
        """
        1 -> 2 -> 3, then 3 -> 1 would close the loop.
        After removing 1 -> 2 the same edge is allowed.
        """
        t1 = await make_task("1")
        t2 = await make_task("2")
        t3 = await make_task("3")

        await manager.add_dependency(t1, t2)
        await manager.add_dependency(t2, t3)

        with pytest.raises(CyclicDependencyError):
            await manager.add_dependency(t3, t1)
        with pytest.raises(InvalidArgumentError):
            await manager.add_dependency(t1, t1)

        await manager.remove_dependency(t1, t2)
        edge = await manager.add_dependency(t3, t1)
        assert edge.task_id == t3

    async def test_rejected_cycle_leaves_edges_unchanged(self, manager, store, make_task):
        t1 = await make_task("1")
        t2 = await make_task("2")
        t3 = await make_task("3")
        await manager.add_dependency(t1, t2)
        await manager.add_dependency(t2, t3)
        before = [(e.task_id, e.depends_on_task_id) for e in await store.list_all_edges()]

        with pytest.raises(CyclicDependencyError):
            await manager.add_dependency(t3, t1)

        after = [(e.task_id, e.depends_on_task_id) for e in await store.list_all_edges()]
        assert after == before

    async def test_long_chain_cycle(self, manager, make_task):
        ids = [await make_task(f"T{i}") for i in range(12)]
        for current, prerequisite in zip(ids, ids[1:]):
            await manager.add_dependency(current, prerequisite)

        with pytest.raises(CyclicDependencyError):
            await manager.add_dependency(ids[-1], ids[0])

    async def test_diamond_is_not_a_cycle(self, manager, make_task):
        """
            A
           / \\
          B   C
           \\ /
            D

        A depends on B and C, both depend on D. Two paths to D are fine.
        """
        a = await make_task("A")
        b = await make_task("B")
        c = await make_task("C")
        d = await make_task("D")

        await manager.add_dependency(a, b)
        await manager.add_dependency(a, c)
        await manager.add_dependency(b, d)
        await manager.add_dependency(c, d)
        await manager.add_dependency(a, d)

        with pytest.raises(CyclicDependencyError):
            await manager.add_dependency(d, a)

    async def test_would_create_cycle_terminates_on_corrupt_graph(self, manager, store, make_task):
        """A cycle already in storage must not hang the traversal."""
        a = await make_task("A")
        b = await make_task("B")
        c = await make_task("C")
        outsider = await make_task("Outsider")

        # Bypass the manager to plant a b <-> c loop
        created_at = utcnow()
        await store.insert_edge(b, c, created_at)
        await store.insert_edge(c, b, created_at)

        assert await manager.would_create_cycle(outsider, b) is False
        assert await manager.would_create_cycle(b, c) is True

    async def test_disconnected_components(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")
        c = await make_task("C")
        d = await make_task("D")
        await manager.add_dependency(a, b)
        await manager.add_dependency(c, d)

        assert await manager.would_create_cycle(b, c) is False
        await manager.add_dependency(b, c)
        with pytest.raises(CyclicDependencyError):
            await manager.add_dependency(d, a)


class TestRemoveDependency:
    async def test_remove_missing_edge(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")

        with pytest.raises(NotFoundError):
            await manager.remove_dependency(a, b)

    async def test_remove_only_that_edge(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")
        c = await make_task("C")
        await manager.add_dependency(a, b)
        await manager.add_dependency(a, c)
        await manager.add_dependency(b, c)

        await manager.remove_dependency(a, b)

        assert depends_on_ids(await manager.list_dependencies(a)) == {c}
        assert depends_on_ids(await manager.list_dependencies(b)) == {c}

    async def test_remove_is_directional(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")
        await manager.add_dependency(a, b)

        with pytest.raises(NotFoundError):
            await manager.remove_dependency(b, a)


class TestQueries:
    async def test_query_symmetry(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")

        await manager.add_dependency(a, b)
        assert b in depends_on_ids(await manager.list_dependencies(a))
        assert a in dependent_ids(await manager.list_dependents(b))

        await manager.remove_dependency(a, b)
        assert b not in depends_on_ids(await manager.list_dependencies(a))
        assert a not in dependent_ids(await manager.list_dependents(b))

    async def test_direct_only(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")
        c = await make_task("C")
        await manager.add_dependency(a, b)
        await manager.add_dependency(b, c)

        assert depends_on_ids(await manager.list_dependencies(a)) == {b}
        assert dependent_ids(await manager.list_dependents(c)) == {b}

    async def test_queries_require_existing_task(self, manager):
        with pytest.raises(NotFoundError):
            await manager.list_dependencies(31337)
        with pytest.raises(NotFoundError):
            await manager.list_dependents(31337)
        with pytest.raises(NotFoundError):
            await manager.describe(31337)

    async def test_describe_both_directions(self, manager, make_task):
        a = await make_task("A")
        b = await make_task("B")
        c = await make_task("C")
        await manager.add_dependency(a, b)
        await manager.add_dependency(b, c)

        summary = await manager.describe(b)

        assert summary["task_id"] == b
        assert depends_on_ids(summary["dependencies"]) == {c}
        assert dependent_ids(summary["dependents"]) == {a}

    async def test_deleting_task_cascades_edges(self, manager, store, make_task):
        a = await make_task("A")
        b = await make_task("B")
        c = await make_task("C")
        await manager.add_dependency(a, b)
        await manager.add_dependency(b, c)

        assert await store.delete_task(b) is True

        assert await manager.list_dependencies(a) == []
        assert await manager.list_dependents(c) == []
        assert await store.list_all_edges() == []
