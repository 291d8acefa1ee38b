"""
Pytest fixtures for hierarchy generation tests.

Provides:
- A small, seeded EntityFactory (fast to build)
- In-memory and fault-injecting sinks
- A generator wired to the in-memory sink
"""

from datetime import date

import pytest

from org_seeder import EntityFactory, HierarchyGenerator, InMemorySink

# Small pools keep factory construction cheap in tests
SMALL_POOLS = {
    "companies": 50,
    "industries": 50,
    "cities": 50,
    "countries": 20,
    "first_names": 100,
    "last_names": 100,
}

TODAY = date(2024, 6, 1)


class SinkFailure(Exception):
    """Raised by FailingSink to simulate a storage error."""

    pass


class FailingSink(InMemorySink):
    """
    InMemorySink that fails the Nth bulk insert of one kind.

    Chunks before the failing one are stored normally.
    """

    def __init__(self, fail_kind: str, fail_on_call: int = 1) -> None:
        super().__init__()
        self.fail_kind = fail_kind
        self.fail_on_call = fail_on_call
        self._calls: dict[str, int] = {}

    def _maybe_fail(self, kind: str) -> None:
        call = self._calls.get(kind, 0)
        self._calls[kind] = call + 1
        if kind == self.fail_kind and call == self.fail_on_call:
            raise SinkFailure(f"simulated failure on {kind} call {call}")

    def bulk_insert(self, kind, records):
        self._maybe_fail(kind)
        return super().bulk_insert(kind, records)

    def bulk_insert_edges(self, edge_kind, edges):
        self._maybe_fail(edge_kind)
        super().bulk_insert_edges(edge_kind, edges)


def make_factory(seed: int = 42, pool_sizes: dict | None = None, **kwargs) -> EntityFactory:
    pools = {**SMALL_POOLS, **(pool_sizes or {})}
    return EntityFactory(seed=seed, pool_sizes=pools, today=TODAY, **kwargs)


@pytest.fixture
def factory() -> EntityFactory:
    """Seeded factory with small pools."""
    return make_factory()


@pytest.fixture
def sink() -> InMemorySink:
    """Fresh in-memory sink."""
    return InMemorySink()


@pytest.fixture
def generator(sink, factory) -> HierarchyGenerator:
    """Generator writing to the in-memory sink."""
    return HierarchyGenerator(sink, factory=factory)


@pytest.fixture
def scenario_a() -> dict:
    """1 company x 2 branches x 2 departments x 2 employees."""
    return {
        "companyCount": 1,
        "branchesPerCompany": 2,
        "deptsPerBranch": 2,
        "employeesPerDept": 2,
    }
