"""
PostgreSQL sink.

One multi-row ``INSERT ... VALUES ... RETURNING id`` per chunk via
psycopg2's execute_values, committed per chunk. Reference mode stores the
parent id in the child's FK column; edge mode writes junction tables
(company_branch, branch_department, department_employee).
"""

import logging
from typing import Any, Sequence

import psycopg2
from psycopg2.extensions import connection as PgConnection
from psycopg2.extras import execute_values

from ..models import LEVELS, Identifier, Record
from .base import Sink

logger = logging.getLogger(__name__)

# kind -> (table, allowed columns in insert order)
TABLES: dict[str, tuple[str, tuple[str, ...]]] = {
    "Company": ("companies", ("name", "industry", "founded_year", "revenue")),
    "Branch": ("branches", ("company_id", "name", "location", "established")),
    "Department": ("departments", ("branch_id", "name", "budget", "head_count")),
    "Employee": (
        "employees",
        (
            "department_id",
            "first_name",
            "last_name",
            "email",
            "position",
            "salary",
            "join_date",
        ),
    ),
}

# edge kind -> junction table
EDGE_TABLES: dict[str, str] = {
    level.edge_kind: level.edge_kind.lower() for level in LEVELS if level.edge_kind
}

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS companies (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    industry TEXT,
    founded_year INTEGER,
    revenue NUMERIC(15, 2)
);

CREATE TABLE IF NOT EXISTS branches (
    id SERIAL PRIMARY KEY,
    company_id INTEGER REFERENCES companies(id),
    name TEXT NOT NULL,
    location TEXT,
    established DATE
);
CREATE INDEX IF NOT EXISTS branches_company_id_idx ON branches(company_id);

CREATE TABLE IF NOT EXISTS departments (
    id SERIAL PRIMARY KEY,
    branch_id INTEGER REFERENCES branches(id),
    name TEXT NOT NULL,
    budget NUMERIC(12, 2),
    head_count INTEGER
);
CREATE INDEX IF NOT EXISTS departments_branch_id_idx ON departments(branch_id);

CREATE TABLE IF NOT EXISTS employees (
    id SERIAL PRIMARY KEY,
    department_id INTEGER REFERENCES departments(id),
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    position TEXT,
    salary NUMERIC(10, 2),
    join_date DATE
);
CREATE INDEX IF NOT EXISTS employees_department_id_idx ON employees(department_id);

CREATE TABLE IF NOT EXISTS company_branch (
    from_id INTEGER NOT NULL REFERENCES companies(id),
    to_id INTEGER NOT NULL REFERENCES branches(id),
    PRIMARY KEY (from_id, to_id)
);

CREATE TABLE IF NOT EXISTS branch_department (
    from_id INTEGER NOT NULL REFERENCES branches(id),
    to_id INTEGER NOT NULL REFERENCES departments(id),
    PRIMARY KEY (from_id, to_id)
);

CREATE TABLE IF NOT EXISTS department_employee (
    from_id INTEGER NOT NULL REFERENCES departments(id),
    to_id INTEGER NOT NULL REFERENCES employees(id),
    PRIMARY KEY (from_id, to_id)
);
"""


class PostgresSink(Sink):
    """
    Bulk-inserts hierarchy rows into PostgreSQL.

    Attributes:
        conn: psycopg2 connection (autocommit off; the sink commits per chunk)
    """

    def __init__(self, conn: PgConnection, owns_connection: bool = False) -> None:
        """
        Args:
            conn: Open psycopg2 connection
            owns_connection: Close the connection in close()
        """
        self.conn = conn
        self.owns_connection = owns_connection

    @classmethod
    def connect(cls, dsn: str) -> "PostgresSink":
        """Open a connection from a DSN and return a sink that owns it."""
        return cls(psycopg2.connect(dsn), owns_connection=True)

    def ensure_schema(self) -> None:
        """Create hierarchy and junction tables if they do not exist."""
        self._execute(SCHEMA_DDL)
        logger.info("Ensured PostgreSQL schema")

    def clear(self) -> None:
        """Remove all hierarchy rows and reset id sequences."""
        tables = [table for table, _ in TABLES.values()] + list(EDGE_TABLES.values())
        self._execute(f"TRUNCATE {', '.join(tables)} RESTART IDENTITY CASCADE")
        logger.info("Cleared PostgreSQL hierarchy tables")

    def bulk_insert(self, kind: str, records: Sequence[Record]) -> list[Identifier]:
        if not records:
            return []
        table, columns = self._columns_for(kind, records[0])

        query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES %s RETURNING id"
        rows = [tuple(record.get(col) for col in columns) for record in records]

        try:
            with self.conn.cursor() as cur:
                # One statement per chunk so RETURNING follows input order
                result = execute_values(cur, query, rows, page_size=len(rows), fetch=True)
            self.conn.commit()
        except psycopg2.Error:
            self.conn.rollback()
            raise

        return [row[0] for row in result]

    def bulk_insert_edges(self, edge_kind: str, edges: Sequence[dict[str, Any]]) -> None:
        if not edges:
            return
        try:
            table = EDGE_TABLES[edge_kind]
        except KeyError:
            raise ValueError(f"Unknown edge kind: {edge_kind}") from None

        rows = [(edge["from"], edge["to"]) for edge in edges]
        try:
            with self.conn.cursor() as cur:
                execute_values(
                    cur,
                    f"INSERT INTO {table} (from_id, to_id) VALUES %s",
                    rows,
                    page_size=len(rows),
                )
            self.conn.commit()
        except psycopg2.Error:
            self.conn.rollback()
            raise

    def close(self) -> None:
        if self.owns_connection and self.conn is not None:
            self.conn.close()
            self.conn = None

    def _columns_for(self, kind: str, sample: Record) -> tuple[str, list[str]]:
        """Table name and insert columns, restricted to the known column set."""
        try:
            table, allowed = TABLES[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind: {kind}") from None

        unknown = set(sample) - set(allowed)
        if unknown:
            raise ValueError(f"Unknown {kind} columns: {sorted(unknown)}")
        return table, [col for col in allowed if col in sample]

    def _execute(self, sql: str) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql)
            self.conn.commit()
        except psycopg2.Error:
            self.conn.rollback()
            raise
