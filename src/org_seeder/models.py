"""
Data model for the organizational hierarchy.

Defines:
- Entity kinds and the fixed level table driving generation
- Edge records for graph-style stores
- Summary and ProgressEvent result types
"""

from dataclasses import dataclass, field
from typing import Any, Hashable

# Sink-assigned identifier (serial int for PostgreSQL, elementId str for Neo4j)
Identifier = Hashable

# Entity draft or stored record
Record = dict[str, Any]

COMPANY = "Company"
BRANCH = "Branch"
DEPARTMENT = "Department"
EMPLOYEE = "Employee"

ENTITY_KINDS = (COMPANY, BRANCH, DEPARTMENT, EMPLOYEE)


@dataclass(frozen=True)
class LevelSpec:
    """One level of the hierarchy."""

    kind: str
    parent_kind: str | None
    fanout_field: str
    """GenerationConfig attribute giving the number of entities per parent."""

    parent_field: str | None
    """Field holding the parent id in reference mode."""

    label: str
    """Plural name used for summaries and table names."""

    @property
    def is_root(self) -> bool:
        return self.parent_kind is None

    @property
    def edge_kind(self) -> str | None:
        """Edge kind linking this level to its parent, e.g. ``Company_Branch``."""
        if self.parent_kind is None:
            return None
        return f"{self.parent_kind}_{self.kind}"


# Ordered root first. Each level's parent is the level before it.
LEVELS: tuple[LevelSpec, ...] = (
    LevelSpec(COMPANY, None, "company_count", None, "companies"),
    LevelSpec(BRANCH, COMPANY, "branches_per_company", "company_id", "branches"),
    LevelSpec(DEPARTMENT, BRANCH, "depts_per_branch", "branch_id", "departments"),
    LevelSpec(EMPLOYEE, DEPARTMENT, "employees_per_dept", "department_id", "employees"),
)

LEVELS_BY_KIND: dict[str, LevelSpec] = {level.kind: level for level in LEVELS}


@dataclass(frozen=True)
class Edge:
    """Directed parent -> child link written after both ends exist."""

    from_id: Identifier
    to_id: Identifier
    kind: str

    def as_record(self) -> Record:
        return {"from": self.from_id, "to": self.to_id}


@dataclass(frozen=True)
class ProgressEvent:
    """Published once per flushed chunk."""

    kind: str
    chunk_index: int
    chunk_rows: int
    written: int
    """Running total for this kind within the current run."""

    is_edge: bool = False


@dataclass
class Summary:
    """
    Result of a generate_all() run.

    Attributes:
        counts: Entities written per kind
        edges: Edges written (None when the run did not use edges)
        elapsed_ms: Wall-clock time of the run in milliseconds
        completed: False when the run stopped on an error or cancellation
    """

    counts: dict[str, int] = field(
        default_factory=lambda: {kind: 0 for kind in ENTITY_KINDS}
    )
    edges: int | None = None
    elapsed_ms: float = 0.0
    completed: bool = False

    @property
    def companies(self) -> int:
        return self.counts.get(COMPANY, 0)

    @property
    def branches(self) -> int:
        return self.counts.get(BRANCH, 0)

    @property
    def departments(self) -> int:
        return self.counts.get(DEPARTMENT, 0)

    @property
    def employees(self) -> int:
        return self.counts.get(EMPLOYEE, 0)

    @property
    def total_entities(self) -> int:
        return sum(self.counts.values())

    def as_dict(self) -> dict[str, Any]:
        """Return the JSON shape the seeding service responds with."""
        stats: dict[str, Any] = {
            level.label: self.counts.get(level.kind, 0) for level in LEVELS
        }
        if self.edges is not None:
            stats["edges"] = self.edges
        return {
            "timeMs": round(self.elapsed_ms, 3),
            "completed": self.completed,
            "stats": stats,
        }
