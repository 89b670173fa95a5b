"""Keel — a small synchronous web framework core.

Routing with middleware, constructor-injected services, a fluent SQL
builder, and rule-based validation.

Basic usage::

    from keel import App, AppConfig, Request, json_response

    app = App(AppConfig(database_url="sqlite:///app.db"))

    @app.route("/users/{id}")
    def show(request: Request, id: str, db: QueryBuilder):
        return json_response(db.table("users").find(id))

Serve it with any ASGI server (``uvicorn myapp:app``).
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Container",
    "Database",
    "HTTPError",
    "KeelError",
    "Middleware",
    "NotFound",
    "QueryBuilder",
    "Request",
    "Response",
    "Router",
    "ValidationFailure",
    "Validator",
    "download",
    "json_response",
    "redirect",
    "validate",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import keel`` fast while providing a clean top-level API.
    """
    if name == "App":
        from keel.app import App

        return App

    if name == "AppConfig":
        from keel.config import AppConfig

        return AppConfig

    if name == "Container":
        from keel.container import Container

        return Container

    if name == "Request":
        from keel.http.request import Request

        return Request

    if name in ("Response", "download", "json_response", "redirect"):
        from keel.http import response as _resp

        return getattr(_resp, name)

    if name == "Router":
        from keel.routing.router import Router

        return Router

    if name == "Middleware":
        from keel.middleware.protocol import Middleware

        return Middleware

    if name in ("Database", "QueryBuilder"):
        from keel import data as _data

        return getattr(_data, name)

    if name in ("Validator", "validate"):
        from keel import validation as _validation

        return getattr(_validation, name)

    if name in ("ConfigurationError", "HTTPError", "KeelError", "NotFound", "ValidationFailure"):
        from keel import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
