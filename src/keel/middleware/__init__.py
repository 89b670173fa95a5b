"""Middleware — Protocol-based, no inheritance required.

A middleware is any object with ``handle(request) -> Response | None``
or a function with that signature. The first ``Response`` returned ends
the chain.
"""

from keel.middleware.protocol import Middleware, MiddlewareEntry, MiddlewareFunc

__all__ = ["Middleware", "MiddlewareEntry", "MiddlewareFunc"]
