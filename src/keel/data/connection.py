"""Connection and statement protocols.

``QueryBuilder`` only talks to these shapes, so any object providing
them works: the bundled drivers, ``Database`` itself, or a fake in tests.
Placeholders in SQL handed to ``execute`` are always ``?``; drivers with
another paramstyle translate.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Statement(Protocol):
    """An executed statement.

    ``last_insert_id`` is the id generated by this statement, captured
    when it ran, or ``None`` when the driver reports none.
    """

    @property
    def row_count(self) -> int: ...

    @property
    def last_insert_id(self) -> int | None: ...

    def fetch_all(self) -> list[dict[str, Any]]: ...

    def fetch_one(self) -> dict[str, Any] | None: ...


@runtime_checkable
class Connection(Protocol):
    """A live database connection."""

    def execute(self, sql: str, bindings: Sequence[Any] = ()) -> Statement: ...

    def last_insert_id(self) -> int: ...

    def begin(self) -> bool: ...

    def commit(self) -> bool: ...

    def rollback(self) -> bool: ...

    def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class Result:
    """A fully fetched statement result.

    Drivers read every row while holding their connection lock, so a
    ``Result`` never touches the connection again.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    last_insert_id: int | None = None

    def fetch_all(self) -> list[dict[str, Any]]:
        return list(self.rows)

    def fetch_one(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None
