# Overview: Generic table gateway over the remote data store (hosted or SQL).

"""
Remote Data Store gateway.

The application never joins or filters server-side: it selects whole tables,
inserts rows, and updates/deletes rows matched by key equality. Both backends
expose exactly that surface so the services above them do not care which one
is configured.

- SupabaseTableStore: hosted tables through the supabase client
- SqlTableStore: the same tables through SQLAlchemy Core (self-hosted
  Postgres, SQLite for development and tests)

Every backend failure is re-raised as RemoteError. Callers must leave their
cached state untouched when one escapes.
"""
from __future__ import annotations

import logging
from typing import Iterable

import httpx
import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from ..time_utils import utcnow


logger = logging.getLogger(__name__)

STORE_TABLES = ("users", "clients", "catalog")


class RemoteError(Exception):
    """The remote store or auth provider reported a failure."""


class RemoteTimeoutError(RemoteError, TimeoutError):
    """Stopped waiting on a remote call; the call itself may still complete."""


class TableStore:
    """Contract shared by every store backend."""

    name = "abstract"

    def select(
        self,
        table: str,
        columns: str = "*",
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict]:
        raise NotImplementedError

    def insert(self, table: str, rows: Iterable[dict]) -> list[dict]:
        raise NotImplementedError

    def update(self, table: str, values: dict, match: dict) -> list[dict]:
        raise NotImplementedError

    def delete(self, table: str, match: dict) -> list[dict]:
        raise NotImplementedError


class SqlTableStore(TableStore):
    """
    Table gateway over SQLAlchemy Core.

    Holds the engine rather than a scoped session so calls are safe from the
    bootstrap worker threads without an application context.
    """

    name = "sql"

    def __init__(self, engine: sa.engine.Engine, metadata: sa.MetaData, tables: Iterable[str] = STORE_TABLES):
        self._engine = engine
        self._tables = {name: metadata.tables[name] for name in tables}

    def _table(self, name: str) -> sa.Table:
        try:
            return self._tables[name]
        except KeyError:
            raise RemoteError(f"Unknown table: {name}") from None

    def _column(self, table: sa.Table, name: str) -> sa.Column:
        try:
            return table.c[name.strip()]
        except KeyError:
            raise RemoteError(f"Unknown column {table.name}.{name.strip()}") from None

    def _where(self, table: sa.Table, match: dict):
        if not match:
            raise RemoteError("update/delete requires a match filter")
        return sa.and_(*[self._column(table, k) == v for k, v in match.items()])

    def select(self, table, columns="*", *, order_by=None, descending=False):
        t = self._table(table)
        if columns.strip() == "*":
            cols = list(t.c)
        else:
            cols = [self._column(t, c) for c in columns.split(",")]
        stmt = sa.select(*cols)
        if order_by:
            col = self._column(t, order_by)
            stmt = stmt.order_by(col.desc() if descending else col.asc())

        try:
            with self._engine.connect() as conn:
                return [dict(row._mapping) for row in conn.execute(stmt)]
        except SQLAlchemyError as e:
            logger.error("select on %s failed: %s", table, e)
            raise RemoteError(f"Failed to read {table}") from e

    def insert(self, table, rows):
        t = self._table(table)
        rows = [dict(r) for r in rows]
        if not rows:
            return []
        if "created_at" in t.c:
            now = utcnow()
            for r in rows:
                r.setdefault("created_at", now)

        try:
            with self._engine.begin() as conn:
                conn.execute(t.insert(), rows)
        except SQLAlchemyError as e:
            logger.error("insert into %s failed: %s", table, e)
            raise RemoteError(f"Failed to insert into {table}") from e
        return rows

    def update(self, table, values, match):
        t = self._table(table)
        where = self._where(t, match)
        for key in values:
            self._column(t, key)

        try:
            with self._engine.begin() as conn:
                conn.execute(t.update().where(where).values(**values))
                return [dict(row._mapping) for row in conn.execute(sa.select(t).where(where))]
        except SQLAlchemyError as e:
            logger.error("update on %s failed: %s", table, e)
            raise RemoteError(f"Failed to update {table}") from e

    def delete(self, table, match):
        t = self._table(table)
        where = self._where(t, match)

        try:
            with self._engine.begin() as conn:
                removed = [dict(row._mapping) for row in conn.execute(sa.select(t).where(where))]
                conn.execute(t.delete().where(where))
                return removed
        except SQLAlchemyError as e:
            logger.error("delete on %s failed: %s", table, e)
            raise RemoteError(f"Failed to delete from {table}") from e


class SupabaseTableStore(TableStore):
    """Hosted tables via supabase-py's PostgREST query builder."""

    name = "supabase"

    def __init__(self, client):
        self._client = client

    def _execute(self, query, table: str, action: str) -> list[dict]:
        from postgrest.exceptions import APIError

        try:
            resp = query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error("%s on %s failed: %s", action, table, e)
            raise RemoteError(getattr(e, "message", None) or str(e)) from e
        return list(resp.data or [])

    def select(self, table, columns="*", *, order_by=None, descending=False):
        query = self._client.table(table).select(columns)
        if order_by:
            query = query.order(order_by, desc=descending)
        return self._execute(query, table, "select")

    def insert(self, table, rows):
        rows = [dict(r) for r in rows]
        if not rows:
            return []
        return self._execute(self._client.table(table).insert(rows), table, "insert")

    def update(self, table, values, match):
        if not match:
            raise RemoteError("update requires a match filter")
        query = self._client.table(table).update(values)
        for key, value in match.items():
            query = query.eq(key, value)
        return self._execute(query, table, "update")

    def delete(self, table, match):
        if not match:
            raise RemoteError("delete requires a match filter")
        query = self._client.table(table).delete()
        for key, value in match.items():
            query = query.eq(key, value)
        return self._execute(query, table, "delete")


def create_store(app) -> TableStore:
    """Build the store backend named by STORE_BACKEND."""
    backend = app.config.get("STORE_BACKEND", "sql")

    if backend == "supabase":
        from supabase import create_client

        url = app.config.get("SUPABASE_URL")
        key = app.config.get("SUPABASE_KEY")
        if not url or not key:
            raise RuntimeError("STORE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY")
        return SupabaseTableStore(create_client(url, key))

    if backend == "sql":
        from ..extensions import db

        with app.app_context():
            return SqlTableStore(db.engine, db.metadata)

    raise RuntimeError(f"Unknown STORE_BACKEND: {backend}")
