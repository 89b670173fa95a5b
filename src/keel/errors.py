"""Keel exception hierarchy.

Shared across Container, Router, App, and the validation layer so every
module raises and catches the same types. Data-layer errors live in
``keel.data.errors`` and derive from ``KeelError`` as well.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


class KeelError(Exception):
    """Base for all keel-specific errors."""


class ConfigurationError(KeelError):
    """Raised when framework setup is invalid.

    Covers bad rule parameters, unsupported database URLs, missing
    optional packages, and registration after the app has frozen.
    """


class ResolutionError(KeelError):
    """Raised when the container cannot build a requested type.

    The message names the abstract and, where relevant, the constructor
    parameter that could not be satisfied.
    """


class CyclicDependencyError(ResolutionError):
    """Raised when a constructor graph refers back to a type being built."""

    def __init__(self, chain: Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__("Circular dependency detected: " + " -> ".join(self.chain))


class InvalidAction(KeelError):  # noqa: N818
    """Raised when a route action cannot be executed.

    Fatal for the request that hit it: no retry, no fallback.
    """


class ValidationFailure(KeelError):  # noqa: N818
    """Aggregated field errors from a failed validation.

    Never meant to reach the top-level handler. The immediate caller
    turns it into a structured error payload or a redirect back to the
    form (see ``keel.validation.failure_response``).

    Attributes:
        errors: Field name to ordered list of messages.
        old_input: The submitted input, for re-populating forms.
    """

    def __init__(
        self,
        errors: Mapping[str, list[str]],
        old_input: Mapping[str, Any] | None = None,
    ) -> None:
        self.errors = dict(errors)
        self.old_input = dict(old_input or {})
        fields = ", ".join(self.errors)
        super().__init__(f"Validation failed for: {fields}")


@dataclass(frozen=True, slots=True)
class HTTPError(KeelError):
    """An error that maps directly to an HTTP status code.

    Raised by middleware or handlers. ``App.handle`` catches it and
    answers with a plain response carrying the status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 raised explicitly by a handler (e.g. a missing record)."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
