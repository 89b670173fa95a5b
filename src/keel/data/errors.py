"""Data layer error hierarchy."""

from keel.errors import KeelError


class DataError(KeelError):
    """Base for all keel.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class DatabaseConnectionError(DataError):
    """Raised when a database connection cannot be established."""


class QueryError(DataError):
    """Raised when a SQL statement fails.

    The driver's exception is chained as ``__cause__``.
    """
