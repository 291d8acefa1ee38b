"""
Storage sinks.

- Sink: abstract interface (bulk_insert, bulk_insert_edges)
- InMemorySink: dry runs and tests
- PostgresSink: psycopg2, FK columns or junction tables
- Neo4jSink: neo4j driver, nodes and typed relationships
"""

from .base import Sink
from .memory import InMemorySink
from .neo4j_sink import Neo4jSink
from .postgres import PostgresSink

__all__ = [
    "Sink",
    "InMemorySink",
    "PostgresSink",
    "Neo4jSink",
]
