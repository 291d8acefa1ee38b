"""
Neo4j sink.

Nodes are created with one ``UNWIND $rows ... CREATE`` statement per
chunk, returning elementId() in input order. Edges become relationships
typed by the upper-cased edge kind (Company_Branch -> COMPANY_BRANCH).
"""

import logging
from decimal import Decimal
from typing import Any, Sequence

from neo4j import Driver, GraphDatabase, ManagedTransaction

from ..models import LEVELS_BY_KIND, Identifier, Record
from .base import Sink

logger = logging.getLogger(__name__)


class Neo4jSink(Sink):
    """
    Bulk-creates hierarchy nodes and relationships in Neo4j.

    Node labels are the entity kinds (Company, Branch, Department, Employee).

    Attributes:
        driver: neo4j Driver
        database: Target database (None = server default)
    """

    def __init__(
        self,
        driver: Driver,
        database: str | None = None,
        owns_driver: bool = False,
    ) -> None:
        self.driver = driver
        self.database = database
        self.owns_driver = owns_driver

    @classmethod
    def connect(
        cls,
        uri: str,
        auth: tuple[str, str],
        database: str | None = None,
    ) -> "Neo4jSink":
        """Create a driver, verify connectivity and return a sink that owns it."""
        driver = GraphDatabase.driver(uri, auth=auth)
        driver.verify_connectivity()
        return cls(driver, database=database, owns_driver=True)

    def clear(self) -> None:
        """Detach-delete every hierarchy node."""
        labels = "|".join(LEVELS_BY_KIND)
        with self.driver.session(database=self.database) as session:
            session.run(
                f"MATCH (n:{labels}) "
                "CALL { WITH n DETACH DELETE n } IN TRANSACTIONS OF 10000 ROWS"
            ).consume()
        logger.info("Cleared Neo4j hierarchy nodes")

    def bulk_insert(self, kind: str, records: Sequence[Record]) -> list[Identifier]:
        if not records:
            return []
        label = _label(kind)
        rows = [_convert_record(record) for record in records]
        query = (
            f"UNWIND $rows AS row CREATE (n:{label}) SET n = row "
            "RETURN elementId(n) AS id"
        )
        with self.driver.session(database=self.database) as session:
            return session.execute_write(_create_nodes, query, rows)

    def bulk_insert_edges(self, edge_kind: str, edges: Sequence[dict[str, Any]]) -> None:
        if not edges:
            return
        from_kind, _, to_kind = edge_kind.partition("_")
        from_label, to_label = _label(from_kind), _label(to_kind)
        rel_type = edge_kind.upper()

        query = (
            "UNWIND $edges AS e "
            f"MATCH (a:{from_label}) WHERE elementId(a) = e.from "
            f"MATCH (b:{to_label}) WHERE elementId(b) = e.to "
            f"CREATE (a)-[:{rel_type}]->(b) "
            "RETURN count(*) AS created"
        )
        with self.driver.session(database=self.database) as session:
            session.execute_write(_create_edges, query, list(edges), rel_type)

    def close(self) -> None:
        if self.owns_driver and self.driver is not None:
            self.driver.close()
            self.driver = None


def _create_nodes(tx: ManagedTransaction, query: str, rows: list[dict]) -> list[str]:
    return [record["id"] for record in tx.run(query, rows=rows)]


def _create_edges(tx: ManagedTransaction, query: str, edges: list[dict], rel_type: str) -> int:
    # Raising inside the transaction function rolls the whole chunk back
    record = tx.run(query, edges=edges).single()
    created = record["created"] if record is not None else 0
    if created != len(edges):
        raise RuntimeError(
            f"Created {created} of {len(edges)} {rel_type} relationships; "
            "some endpoints were not found"
        )
    return created


def _label(kind: str) -> str:
    # Labels are interpolated into Cypher, so only known kinds pass
    if kind not in LEVELS_BY_KIND:
        raise ValueError(f"Unknown entity kind: {kind}")
    return kind


def _convert_value(value: Any) -> Any:
    """Convert Python values to Neo4j-compatible property types."""
    if isinstance(value, Decimal):
        return float(value)
    return value


def _convert_record(record: Record) -> dict[str, Any]:
    # Neo4j properties cannot hold null, so None fields are dropped
    return {k: _convert_value(v) for k, v in record.items() if v is not None}
