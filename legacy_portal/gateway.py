"""
Data gateway abstraction over the hosted store.

Views talk to a table-scoped query builder (``select``/``eq``/``order`` then
``execute``/``single``, or ``insert``). Three backends implement it: the
hosted Supabase project through the official client, a direct SQLAlchemy
connection, and an in-memory store for development and tests.
"""

from __future__ import annotations

import copy
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from supabase import Client, ClientOptions, create_client

logger = logging.getLogger(__name__)

PROFILES_TABLE = "legacy_profiles"
AUTH_TABLE = "legacy_auth"
BLOGS_TABLE = "blogs"
FORUM_POSTS_TABLE = "forum_posts"
CONTRIBUTIONS_TABLE = "contributions"

# Embedded resources and the column that references them.
FOREIGN_KEYS = {PROFILES_TABLE: "legacy_profile_id"}

_EMBED_PATTERN = re.compile(r"^(\w+)\((.*)\)$")


class GatewayError(Exception):
    pass


@dataclass
class QueryResult:
    """Outcome of a gateway call: either ``data`` or an ``error`` message."""

    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class TableQuery:
    """Chainable query against a single table."""

    gateway: "Gateway"
    table: str
    columns: str = "*"
    filters: list[tuple[str, Any]] = field(default_factory=list)
    orders: list[tuple[str, bool]] = field(default_factory=list)

    def select(self, columns: str = "*") -> "TableQuery":
        self.columns = columns
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        self.orders.append((column, ascending))
        return self

    def execute(self) -> QueryResult:
        return self._run(lambda: self.gateway.run_select(self))

    def single(self) -> QueryResult:
        """Return exactly one row; zero or several matches are an error."""
        return self._run(lambda: self.gateway.run_single(self))

    def insert(self, rows: dict | list[dict]) -> QueryResult:
        if isinstance(rows, dict):
            rows = [rows]
        return self._run(lambda: self.gateway.run_insert(self.table, list(rows)))

    def _run(self, call: Callable[[], Any]) -> QueryResult:
        try:
            return QueryResult(data=call())
        except GatewayError as exc:
            logger.warning("Query on %s failed: %s", self.table, exc)
            return QueryResult(error=str(exc))


class Gateway(Protocol):
    """Interface the views need from the data store."""

    def table(self, name: str) -> TableQuery:
        ...

    def run_select(self, query: TableQuery) -> list[dict]:
        ...

    def run_single(self, query: TableQuery) -> dict:
        ...

    def run_insert(self, table: str, rows: list[dict]) -> list[dict]:
        ...


def parse_columns(columns: str) -> tuple[list[str], dict[str, list[str]]]:
    """
    Split a select expression into plain fields and embedded resources.

    ``"*, legacy_profiles(name)"`` -> ``(["*"], {"legacy_profiles": ["name"]})``
    """
    fields: list[str] = []
    embeds: dict[str, list[str]] = {}
    depth = 0
    current = ""
    parts: list[str] = []
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += char
    parts.append(current)

    for part in (p.strip() for p in parts):
        if not part:
            continue
        match = _EMBED_PATTERN.match(part)
        if match:
            name, inner = match.groups()
            if name not in FOREIGN_KEYS:
                raise GatewayError(f"Unknown embedded resource: {name}")
            embeds[name] = [c.strip() for c in inner.split(",") if c.strip()] or ["*"]
        else:
            fields.append(part)
    return fields or ["*"], embeds


def _project(row: dict, fields: list[str]) -> dict:
    if "*" in fields:
        return dict(row)
    return {name: row.get(name) for name in fields}


def shape_rows(
    rows: Iterable[dict],
    columns: str,
    lookup: Callable[[str, set], dict[str, dict]],
) -> list[dict]:
    """Project rows and attach embedded owner records via ``lookup``."""
    rows = list(rows)
    fields, embeds = parse_columns(columns)
    referenced: dict[str, dict[str, dict]] = {}
    for name in embeds:
        fk = FOREIGN_KEYS[name]
        ids = {row.get(fk) for row in rows if row.get(fk) is not None}
        referenced[name] = lookup(name, ids) if ids else {}

    shaped = []
    for row in rows:
        out = _project(row, fields)
        for name, embed_fields in embeds.items():
            ref = referenced[name].get(row.get(FOREIGN_KEYS[name]))
            out[name] = _project(ref, embed_fields) if ref else None
        shaped.append(out)
    return shaped


def _sort_rows(rows: list[dict], orders: list[tuple[str, bool]]) -> list[dict]:
    # Stable sorts applied last-key-first give multi-column ordering.
    for column, ascending in reversed(orders):
        present = [r for r in rows if r.get(column) is not None]
        missing = [r for r in rows if r.get(column) is None]
        present.sort(key=lambda r: r[column], reverse=not ascending)
        # Nulls sort last ascending and first descending, as in Postgres.
        rows = present + missing if ascending else missing + present
    return rows


def _stamp(row: dict, created_at: bool = True) -> dict:
    stamped = dict(row)
    stamped.setdefault("id", uuid.uuid4().hex)
    if created_at:
        stamped.setdefault("created_at", datetime.now(timezone.utc).isoformat())
    return stamped


def _exactly_one(rows: list[dict], table: str) -> dict:
    if len(rows) != 1:
        raise GatewayError(f"Expected a single row from {table}, got {len(rows)}")
    return rows[0]


class InMemoryGateway:
    """Simple in-memory store for development and tests."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}

    def table(self, name: str) -> TableQuery:
        return TableQuery(gateway=self, table=name)

    def seed(self, table: str, rows: Iterable[dict]) -> None:
        self.tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.tables.clear()

    def _lookup(self, table: str, ids: set) -> dict[str, dict]:
        return {
            row["id"]: row for row in self.tables.get(table, []) if row.get("id") in ids
        }

    def run_select(self, query: TableQuery) -> list[dict]:
        rows = [
            row
            for row in self.tables.get(query.table, [])
            if all(row.get(column) == value for column, value in query.filters)
        ]
        rows = _sort_rows(rows, query.orders)
        return copy.deepcopy(shape_rows(rows, query.columns, self._lookup))

    def run_single(self, query: TableQuery) -> dict:
        return _exactly_one(self.run_select(query), query.table)

    def run_insert(self, table: str, rows: list[dict]) -> list[dict]:
        stamped = [_stamp(row) for row in rows]
        self.tables.setdefault(table, []).extend(copy.deepcopy(stamped))
        return stamped


metadata = MetaData()

profiles_table = Table(
    PROFILES_TABLE,
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("image_url", String, nullable=True),
    Column("description", Text, nullable=True),
    Column("one_liner", String, nullable=True),
    Column("tenure_start", String, nullable=False, index=True),
    Column("tenure_end", String, nullable=True),
)

auth_table = Table(
    AUTH_TABLE,
    metadata,
    Column("id", String, primary_key=True),
    Column("username", String, nullable=False, index=True),
    Column("password", String, nullable=False),
    Column("legacy_profile_id", String, nullable=False),
    Column("created_at", String, nullable=True),
)

blogs_table = Table(
    BLOGS_TABLE,
    metadata,
    Column("id", String, primary_key=True),
    Column("title", String, nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", String, nullable=False, index=True),
    Column("legacy_profile_id", String, nullable=False, index=True),
)

forum_posts_table = Table(
    FORUM_POSTS_TABLE,
    metadata,
    Column("id", String, primary_key=True),
    Column("title", String, nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", String, nullable=False, index=True),
    Column("legacy_profile_id", String, nullable=False, index=True),
)

contributions_table = Table(
    CONTRIBUTIONS_TABLE,
    metadata,
    Column("id", String, primary_key=True),
    Column("title", String, nullable=False),
    Column("resource_url", String, nullable=False),
    Column("description", Text, nullable=False),
    Column("created_at", String, nullable=False),
    Column("legacy_profile_id", String, nullable=False, index=True),
)


class SqlGateway:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlGateway")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        metadata.create_all(self.engine)

    def table(self, name: str) -> TableQuery:
        return TableQuery(gateway=self, table=name)

    def _table(self, name: str) -> Table:
        table = metadata.tables.get(name)
        if table is None:
            raise GatewayError(f"Unknown table: {name}")
        return table

    def _column(self, table: Table, name: str):
        if name not in table.c:
            raise GatewayError(f"Unknown column {table.name}.{name}")
        return table.c[name]

    def _lookup(self, name: str, ids: set) -> dict[str, dict]:
        table = self._table(name)
        with self.engine.connect() as conn:
            rows = conn.execute(select(table).where(table.c.id.in_(list(ids)))).mappings()
            return {row["id"]: dict(row) for row in rows}

    def run_select(self, query: TableQuery) -> list[dict]:
        table = self._table(query.table)
        stmt = select(table)
        for column, value in query.filters:
            stmt = stmt.where(self._column(table, column) == value)
        for column, ascending in query.orders:
            col = self._column(table, column)
            stmt = stmt.order_by(col.asc() if ascending else col.desc())
        try:
            with self.engine.connect() as conn:
                rows = [dict(row) for row in conn.execute(stmt).mappings()]
            return shape_rows(rows, query.columns, self._lookup)
        except SQLAlchemyError as exc:
            raise GatewayError(str(exc)) from exc

    def run_single(self, query: TableQuery) -> dict:
        return _exactly_one(self.run_select(query), query.table)

    def run_insert(self, table: str, rows: list[dict]) -> list[dict]:
        sql_table = self._table(table)
        stamped = [_stamp(row, "created_at" in sql_table.c) for row in rows]
        for row in stamped:
            for name in row:
                self._column(sql_table, name)
        try:
            with self.engine.begin() as conn:
                conn.execute(sql_table.insert(), stamped)
        except SQLAlchemyError as exc:
            raise GatewayError(str(exc)) from exc
        return stamped


class SupabaseGateway:
    """
    Gateway over the hosted Supabase project, using the official client.
    """

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = 30.0,
        client: Client | None = None,
    ):
        if client is None:
            if not url or not key:
                raise ValueError("A service URL and access key are required")
            client = create_client(
                url, key, options=ClientOptions(postgrest_client_timeout=timeout)
            )
        self.client = client

    def table(self, name: str) -> TableQuery:
        return TableQuery(gateway=self, table=name)

    def _builder(self, query: TableQuery):
        builder = self.client.table(query.table).select(query.columns)
        for column, value in query.filters:
            builder = builder.eq(column, value)
        for column, ascending in query.orders:
            builder = builder.order(column, desc=not ascending)
        return builder

    def _execute(self, table: str, request) -> Any:
        try:
            return request.execute().data
        except APIError as exc:
            raise GatewayError(f"{table}: {exc.message}") from exc
        except httpx.HTTPError as exc:
            raise GatewayError(f"{table}: {exc}") from exc

    def run_select(self, query: TableQuery) -> list[dict]:
        return self._execute(query.table, self._builder(query))

    def run_single(self, query: TableQuery) -> dict:
        # The client reports zero or several matching rows as an APIError.
        return self._execute(query.table, self._builder(query).single())

    def run_insert(self, table: str, rows: list[dict]) -> list[dict]:
        return self._execute(table, self.client.table(table).insert(rows))
