"""Synchronous SQL access for keel.

A fluent builder over a held connection. Not an ORM.

Basic usage::

    from keel.data import Database

    db = Database("sqlite:///app.db")

    db.table("users").insert({"name": "Alice", "email": "a@example.com"})
    user = db.table("users").where("email", "a@example.com").first()

SQLite works out of the box; MySQL needs ``mysql-connector-python``::

    pip install keel[mysql]
"""

from keel.data.connection import Connection, Result, Statement
from keel.data.database import Database
from keel.data.errors import DatabaseConnectionError, DataError, DriverNotInstalledError, QueryError
from keel.data.query import QueryBuilder

__all__ = [
    "Connection",
    "DataError",
    "Database",
    "DatabaseConnectionError",
    "DriverNotInstalledError",
    "QueryBuilder",
    "QueryError",
    "Result",
    "Statement",
]
