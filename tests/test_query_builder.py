"""Tests for keel.data.query — SQL compilation and terminal methods."""

from collections.abc import Sequence
from typing import Any

import pytest

from keel.data import QueryBuilder, QueryError
from keel.data.connection import Connection, Result
from keel.data.errors import DatabaseConnectionError


class FakeConnection:
    """Records statements instead of running them."""

    def __init__(self, rows: list[dict[str, Any]] | None = None, row_count: int = 0) -> None:
        self.calls: list[tuple[str, list[Any]]] = []
        self.rows = rows or []
        self.row_count = row_count
        self.fail: Exception | None = None
        self.transactions: list[str] = []
        self.statement_id: int | None = None

    def execute(self, sql: str, bindings: Sequence[Any] = ()) -> Result:
        self.calls.append((sql, list(bindings)))
        if self.fail is not None:
            raise self.fail
        return Result(rows=self.rows, row_count=self.row_count, last_insert_id=self.statement_id)

    def last_insert_id(self) -> int:
        return 7

    def begin(self) -> bool:
        self.transactions.append("begin")
        return True

    def commit(self) -> bool:
        self.transactions.append("commit")
        return True

    def rollback(self) -> bool:
        self.transactions.append("rollback")
        return True

    def close(self) -> None:
        pass


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def qb(conn: FakeConnection) -> QueryBuilder:
    return QueryBuilder(conn)


class TestProtocol:
    def test_fake_satisfies_connection(self, conn: FakeConnection) -> None:
        assert isinstance(conn, Connection)


# =============================================================================
# Compilation
# =============================================================================


class TestToSql:
    def test_default_select(self, qb: QueryBuilder) -> None:
        assert qb.table("users").to_sql() == "SELECT * FROM users"
        assert qb.bindings == []

    def test_select_columns(self, qb: QueryBuilder) -> None:
        assert qb.table("users").select("id", "name").to_sql() == "SELECT id, name FROM users"

    def test_select_list(self, qb: QueryBuilder) -> None:
        assert qb.table("users").select(["id", "email"]).to_sql() == "SELECT id, email FROM users"

    def test_where_and_or(self, qb: QueryBuilder) -> None:
        qb.table("users").where("age", ">", 18).or_where("vip", True)
        assert qb.to_sql() == "SELECT * FROM users WHERE age > ? OR vip = ?"
        assert qb.bindings == [18, True]

    def test_two_argument_where_is_equality(self, qb: QueryBuilder) -> None:
        qb.table("users").where("status", "active").where("role", "admin")
        assert qb.to_sql() == "SELECT * FROM users WHERE status = ? AND role = ?"
        assert qb.bindings == ["active", "admin"]

    def test_none_value_is_bound(self, qb: QueryBuilder) -> None:
        qb.table("users").where("deleted_at", "is", None)
        assert qb.to_sql() == "SELECT * FROM users WHERE deleted_at IS ?"
        assert qb.bindings == [None]

    def test_operator_case_insensitive(self, qb: QueryBuilder) -> None:
        qb.table("users").where("name", "like", "a%")
        assert qb.to_sql() == "SELECT * FROM users WHERE name LIKE ?"

    def test_unknown_operator_rejected(self, qb: QueryBuilder) -> None:
        with pytest.raises(ValueError, match="Unsupported operator"):
            qb.table("users").where("id", "; DROP TABLE users", 1)

    def test_where_if(self, qb: QueryBuilder) -> None:
        qb.table("users").where_if("", "status", "x").where_if("q", "name", "LIKE", "%q%")
        assert qb.to_sql() == "SELECT * FROM users WHERE name LIKE ?"
        assert qb.bindings == ["%q%"]

    def test_joins(self, qb: QueryBuilder) -> None:
        sql = (
            qb.table("users")
            .select("users.name", "orders.total")
            .join("orders", "users.id", "=", "orders.user_id")
            .left_join("refunds", "orders.id", "=", "refunds.order_id")
            .where("orders.total", ">", 100)
            .to_sql()
        )
        assert sql == (
            "SELECT users.name, orders.total FROM users "
            "INNER JOIN orders ON users.id = orders.user_id "
            "LEFT JOIN refunds ON orders.id = refunds.order_id "
            "WHERE orders.total > ?"
        )

    def test_order_limit_offset(self, qb: QueryBuilder) -> None:
        sql = qb.table("posts").order_by("created_at", "desc").order_by("id").limit(10).offset(20).to_sql()
        assert sql == "SELECT * FROM posts ORDER BY created_at DESC, id ASC LIMIT 10 OFFSET 20"

    def test_bad_direction(self, qb: QueryBuilder) -> None:
        with pytest.raises(ValueError, match="ASC or DESC"):
            qb.table("posts").order_by("id", "sideways")

    def test_negative_limit_and_offset(self, qb: QueryBuilder) -> None:
        with pytest.raises(ValueError):
            qb.table("posts").limit(-1)
        with pytest.raises(ValueError):
            qb.table("posts").offset(-5)

    def test_table_resets_plan(self, qb: QueryBuilder) -> None:
        qb.table("users").select("id").where("id", 1).limit(3)
        assert qb.table("posts").to_sql() == "SELECT * FROM posts"
        assert qb.bindings == []

    def test_new_starts_blank_on_same_connection(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        qb.table("users").where("id", 1)
        other = qb.new()
        assert other is not qb
        assert other.table("posts").get() == []
        assert conn.calls == [("SELECT * FROM posts", [])]
        assert qb.to_sql() == "SELECT * FROM users WHERE id = ?"

    def test_bindings_is_a_copy(self, qb: QueryBuilder) -> None:
        qb.table("users").where("id", 1)
        qb.bindings.append(99)
        assert qb.bindings == [1]


# =============================================================================
# Reading
# =============================================================================


class TestReading:
    def test_get(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.rows = [{"id": 1}, {"id": 2}]
        assert qb.table("users").where("active", True).get() == [{"id": 1}, {"id": 2}]
        assert conn.calls == [("SELECT * FROM users WHERE active = ?", [True])]

    def test_first(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.rows = [{"id": 1}]
        assert qb.table("users").first() == {"id": 1}
        assert conn.calls[-1][0] == "SELECT * FROM users LIMIT 1"

    def test_first_empty(self, qb: QueryBuilder) -> None:
        assert qb.table("users").first() is None

    def test_find(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.rows = [{"id": 5}]
        assert qb.table("users").find(5) == {"id": 5}
        assert conn.calls[-1] == ("SELECT * FROM users WHERE id = ? LIMIT 1", [5])

    def test_find_custom_column(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        qb.table("users").find("ada", column="name")
        assert conn.calls[-1] == ("SELECT * FROM users WHERE name = ? LIMIT 1", ["ada"])

    def test_count(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.rows = [{"count": 3}]
        assert qb.table("users").select("id").where("active", True).count() == 3
        assert conn.calls[-1] == ("SELECT COUNT(*) AS count FROM users WHERE active = ? LIMIT 1", [True])
        assert qb.to_sql().startswith("SELECT id FROM users")

    def test_count_without_rows(self, qb: QueryBuilder) -> None:
        assert qb.table("users").count() == 0


# =============================================================================
# Writing
# =============================================================================


class TestWriting:
    def test_insert(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        new_id = qb.table("users").insert({"name": "Ada", "email": "ada@example.com"})
        assert new_id == 7
        assert conn.calls == [
            ("INSERT INTO users (name, email) VALUES (?, ?)", ["Ada", "ada@example.com"]),
        ]

    def test_insert_id_from_statement(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.statement_id = 42
        assert qb.table("users").insert({"name": "Ada"}) == 42

    def test_update_bindings_values_then_predicates(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.row_count = 2
        changed = qb.table("users").where("team", "red").where("active", True).update({"status": "x"})
        assert changed == 2
        assert conn.calls == [
            ("UPDATE users SET status = ? WHERE team = ? AND active = ?", ["x", "red", True]),
        ]

    def test_update_without_predicates(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        qb.table("users").update({"a": 1, "b": 2})
        assert conn.calls == [("UPDATE users SET a = ?, b = ?", [1, 2])]

    def test_delete(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.row_count = 1
        assert qb.table("users").where("id", 4).delete() == 1
        assert conn.calls == [("DELETE FROM users WHERE id = ?", [4])]

    def test_raw_query(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.rows = [{"n": 1}]
        assert qb.query("SELECT 1 AS n WHERE ? = ?", (1, 1)).fetch_one() == {"n": 1}
        assert conn.calls == [("SELECT 1 AS n WHERE ? = ?", [1, 1])]


class TestErrors:
    def test_driver_error_wrapped(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.fail = RuntimeError("disk full")
        with pytest.raises(QueryError, match="Query execution failed: disk full") as exc_info:
            qb.table("users").get()
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_data_errors_pass_through(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        conn.fail = DatabaseConnectionError("gone")
        with pytest.raises(DatabaseConnectionError):
            qb.table("users").delete()


class TestTransactions:
    def test_delegates_to_connection(self, conn: FakeConnection, qb: QueryBuilder) -> None:
        assert qb.begin_transaction()
        assert qb.commit()
        assert qb.rollback()
        assert conn.transactions == ["begin", "commit", "rollback"]
