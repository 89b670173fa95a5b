"""Fluent query builder for keel.data.

Accumulates a query plan through chaining methods and compiles it to a
SQL string plus a positional bindings list. Terminal methods (``get``,
``first``, ``count``, ``insert``, ``update``, ``delete``) execute right
away through the bound ``Connection``.

Usage::

    from keel.data import Database

    db = Database("sqlite:///app.db")

    adults = (
        db.table("users")
        .select("id", "name")
        .where("age", ">", 18)
        .or_where("vip", True)
        .order_by("name")
        .limit(20)
        .get()
    )

Values only ever travel as bindings. Table names, column names, join
clauses and sort directions are interpolated into the SQL text, so they
must come from code, never from user input.

Transparency: ``to_sql()`` and ``bindings`` show exactly what will run.

A builder is mutable and not shared between requests. Resolve a fresh
one per use (the app container binds it as a factory).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from keel.data.connection import Connection, Statement
from keel.data.errors import DataError, QueryError

# Distinguishes where(column, value) from where(column, operator, value)
_UNSET: Any = object()

OPERATORS: frozenset[str] = frozenset(
    {"=", "!=", "<>", "<", ">", "<=", ">=", "LIKE", "NOT LIKE", "IS", "IS NOT"}
)


class QueryBuilder:
    """Mutable SELECT/INSERT/UPDATE/DELETE builder over one table.

    The Nth predicate's value is always the Nth binding.
    """

    __slots__ = (
        "_bindings",
        "_connection",
        "_joins",
        "_limit",
        "_offset",
        "_orders",
        "_selects",
        "_table",
        "_wheres",
    )

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._reset("")

    def _reset(self, table: str) -> None:
        self._table = table
        self._selects: list[str] = ["*"]
        self._wheres: list[tuple[str, str, str]] = []
        self._bindings: list[Any] = []
        self._joins: list[str] = []
        self._orders: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def __repr__(self) -> str:
        return f"<QueryBuilder {self.to_sql()!r} {self._bindings!r}>"

    def new(self) -> QueryBuilder:
        """A fresh builder on the same connection. This one is left untouched."""
        return QueryBuilder(self._connection)

    # -- Building --

    def table(self, name: str) -> QueryBuilder:
        """Target *name* and start a fresh plan."""
        self._reset(name)
        return self

    def select(self, *columns: str | Sequence[str]) -> QueryBuilder:
        """Replace the column list. ``select()`` with nothing means ``*``.

        ::

            builder.select("id", "name")
            builder.select(["id", "name"])
        """
        flat: list[str] = []
        for col in columns:
            if isinstance(col, str):
                flat.append(col)
            else:
                flat.extend(col)
        self._selects = flat or ["*"]
        return self

    def where(self, column: str, operator: Any, value: Any = _UNSET) -> QueryBuilder:
        """Add an AND predicate.

        ::

            builder.where("status", "paid")          # status = ?
            builder.where("total", ">=", 100)        # total >= ?
            builder.where("deleted_at", "IS", None)  # deleted_at IS ?
        """
        return self._add_where("AND", column, operator, value)

    def or_where(self, column: str, operator: Any, value: Any = _UNSET) -> QueryBuilder:
        """Add an OR predicate. Same call forms as ``where``."""
        return self._add_where("OR", column, operator, value)

    def where_if(
        self, condition: object, column: str, operator: Any, value: Any = _UNSET
    ) -> QueryBuilder:
        """``where`` only when *condition* is truthy.

        ::

            builder.where_if(status, "status", status).where_if(q, "name", "LIKE", f"%{q}%")
        """
        if not condition:
            return self
        return self.where(column, operator, value)

    def _add_where(self, conjunction: str, column: str, operator: Any, value: Any) -> QueryBuilder:
        if value is _UNSET:
            operator, value = "=", operator
        op = str(operator).upper()
        if op not in OPERATORS:
            msg = f"Unsupported operator {operator!r} for column {column!r}"
            raise ValueError(msg)
        self._wheres.append((conjunction, column, op))
        self._bindings.append(value)
        return self

    def join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        """Add ``INNER JOIN table ON first operator second``."""
        self._joins.append(f"INNER JOIN {table} ON {first} {operator} {second}")
        return self

    def left_join(self, table: str, first: str, operator: str, second: str) -> QueryBuilder:
        """Add ``LEFT JOIN table ON first operator second``."""
        self._joins.append(f"LEFT JOIN {table} ON {first} {operator} {second}")
        return self

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        direction = direction.upper()
        if direction not in ("ASC", "DESC"):
            msg = f"Sort direction must be ASC or DESC, got {direction!r}"
            raise ValueError(msg)
        self._orders.append(f"{column} {direction}")
        return self

    def limit(self, n: int) -> QueryBuilder:
        if n < 0:
            msg = f"limit must be non-negative, got {n}"
            raise ValueError(msg)
        self._limit = int(n)
        return self

    def offset(self, n: int) -> QueryBuilder:
        if n < 0:
            msg = f"offset must be non-negative, got {n}"
            raise ValueError(msg)
        self._offset = int(n)
        return self

    # -- Compilation --

    @property
    def bindings(self) -> list[Any]:
        """Positional values for the predicates, in order."""
        return list(self._bindings)

    def to_sql(self) -> str:
        """The exact SELECT that ``get()`` will run."""
        sql = f"SELECT {', '.join(self._selects)} FROM {self._table}"
        if self._joins:
            sql += " " + " ".join(self._joins)
        sql += self._compile_wheres()
        if self._orders:
            sql += " ORDER BY " + ", ".join(self._orders)
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        if self._offset is not None:
            sql += f" OFFSET {self._offset}"
        return sql

    def _compile_wheres(self) -> str:
        if not self._wheres:
            return ""
        parts: list[str] = []
        for i, (conjunction, column, operator) in enumerate(self._wheres):
            clause = f"{column} {operator} ?"
            parts.append(clause if i == 0 else f"{conjunction} {clause}")
        return " WHERE " + " ".join(parts)

    # -- Reading --

    def get(self) -> list[dict[str, Any]]:
        """Run the SELECT and return every row."""
        return self._run(self.to_sql(), self._bindings).fetch_all()

    def first(self) -> dict[str, Any] | None:
        """Run the SELECT with ``LIMIT 1``. The limit stays on the builder."""
        self.limit(1)
        rows = self.get()
        return rows[0] if rows else None

    def find(self, id: Any, column: str = "id") -> dict[str, Any] | None:  # noqa: A002
        return self.where(column, id).first()

    def count(self) -> int:
        """Count matching rows. The column list is restored afterwards."""
        saved = self._selects
        self._selects = ["COUNT(*) AS count"]
        try:
            row = self.first()
        finally:
            self._selects = saved
        return int(row["count"]) if row else 0

    # -- Writing --

    def insert(self, fields: dict[str, Any]) -> int:
        """Insert one row and return its generated id.

        The id comes from the executed statement, so inserts from other
        threads sharing the connection cannot leak in. The connection's
        ``last_insert_id()`` is consulted only when the statement has none.
        """
        columns = ", ".join(fields)
        placeholders = ", ".join("?" for _ in fields)
        sql = f"INSERT INTO {self._table} ({columns}) VALUES ({placeholders})"
        statement = self._run(sql, list(fields.values()))
        last_id = getattr(statement, "last_insert_id", None)
        if last_id is None:
            return self._connection.last_insert_id()
        return int(last_id)

    def update(self, fields: dict[str, Any]) -> int:
        """Update matching rows and return how many changed.

        Without predicates every row in the table is updated.
        """
        sets = ", ".join(f"{column} = ?" for column in fields)
        sql = f"UPDATE {self._table} SET {sets}{self._compile_wheres()}"
        return self._run(sql, [*fields.values(), *self._bindings]).row_count

    def delete(self) -> int:
        """Delete matching rows and return how many went.

        Without predicates every row in the table is deleted.
        """
        sql = f"DELETE FROM {self._table}{self._compile_wheres()}"
        return self._run(sql, self._bindings).row_count

    # -- Raw statements and transactions --

    def query(self, sql: str, bindings: Iterable[Any] = ()) -> Statement:
        """Run a hand-written statement with ``?`` placeholders."""
        return self._run(sql, list(bindings))

    def begin_transaction(self) -> bool:
        return self._connection.begin()

    def commit(self) -> bool:
        return self._connection.commit()

    def rollback(self) -> bool:
        return self._connection.rollback()

    def _run(self, sql: str, bindings: list[Any]) -> Statement:
        try:
            return self._connection.execute(sql, bindings)
        except DataError:
            raise
        except Exception as exc:
            msg = f"Query execution failed: {exc}"
            raise QueryError(msg) from exc
