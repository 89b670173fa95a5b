"""Middleware protocol.

A middleware is an object with a ``handle`` method, or a plain function
of the same shape::

    class Authenticate:
        def __init__(self, config: AppConfig) -> None:
            self.config = config

        def handle(self, request: Request) -> Response | None:
            if "user_id" not in request.state:
                return redirect("/login")
            return None

Returning ``None`` lets the request continue down the chain; returning a
``Response`` ends it. Classes and string keys listed on a route are
resolved through the container, so their constructor dependencies are
auto-wired.
"""

from collections.abc import Callable
from typing import Any, Protocol, TypeAlias, runtime_checkable

from keel.http.request import Request
from keel.http.response import Response

# Function middleware
MiddlewareFunc: TypeAlias = Callable[[Request], Response | None]

# Anything a route's middleware list may hold
MiddlewareEntry: TypeAlias = "type | str | Middleware | MiddlewareFunc | Any"


@runtime_checkable
class Middleware(Protocol):
    """Protocol for class-based middleware."""

    def handle(self, request: Request) -> Response | None: ...
