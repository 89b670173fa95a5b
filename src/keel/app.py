"""Keel application class.

Mutable during setup (route registration, container bindings, hooks).
Frozen at runtime when ``handle()`` or ``__call__()`` is first invoked.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from keel._internal.asgi import Receive, Scope, Send
from keel.config import AppConfig
from keel.container import Container
from keel.data.database import Database
from keel.data.query import QueryBuilder
from keel.errors import ConfigurationError, HTTPError, NotFound
from keel.http.request import Request
from keel.http.response import Response
from keel.routing.router import Router
from keel.server.errors import ErrorHandler, handle_http_error, handle_internal_error
from keel.server.handler import handle_http
from keel.server.logs import configure_logging

logger = logging.getLogger("keel.server")


class App:
    """The keel application.

    Owns the configuration, the service container and the router, and is
    the top-level request boundary: whatever escapes a handler is turned
    into a response here.

    Usage::

        app = App(AppConfig(database_url="sqlite:///app.db"))

        @app.route("/invoices/{id}", name="invoices.show")
        def show(request: Request, id: str, db: QueryBuilder) -> Response:
            invoice = db.table("invoices").find(id)
            if invoice is None:
                raise NotFound()
            return json_response(invoice)

    Container defaults:
        ``AppConfig``, ``Container``, ``Router`` and ``App`` resolve to the
        app's own objects. With a database URL configured, ``Database`` is
        a singleton and every ``QueryBuilder`` resolution returns a fresh
        builder bound to it.

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread freezes the app, even
        when several worker threads take their first request at once.
    """

    __slots__ = (
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "container",
        "router",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        container: Container | None = None,
        db: Database | str | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.container: Container = container or Container()
        self.router: Router = Router()
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        self.container.instance(AppConfig, self.config)
        self.container.instance(Container, self.container)
        self.container.instance(Router, self.router)
        self.container.instance(App, self)

        # Database: an instance, a URL, or the configured database_url
        if isinstance(db, Database):
            self.container.instance(Database, db)
        else:
            url = db or self.config.database_url
            if url:
                echo = self.config.database_echo
                self.container.singleton(Database, lambda _c: Database(url, echo=echo))
        if self.container.has(Database):
            self.container.bind(QueryBuilder, lambda c: c.get(Database).builder())

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> App:
        """Build an app from environment variables and set up logging.

        The bootstrap path for deployments configured through ``.env``
        files (see ``AppConfig.from_env``).
        """
        config = AppConfig.from_env(environ)
        configure_logging(config)
        return cls(config)

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: Iterable[str] | None = None,
        name: str | None = None,
        middleware: Iterable[Any] = (),
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name for ``url_for``.
            middleware: Middleware run before the handler, in order.
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self.router.add_route(
                list(methods) if methods else ["GET"],
                path,
                func,
                middleware=middleware,
                name=name,
            )
            return func

        return decorator

    def url_for(self, name: str, /, **params: Any) -> str:
        return self.router.url_for(name, **params)

    # -- Services --

    @property
    def db(self) -> Database:
        """The app's database.

        Raises ``ConfigurationError`` if none is configured.
        """
        if not self.container.has(Database):
            msg = "No database configured. Pass db= to App or set AppConfig.database_url."
            raise ConfigurationError(msg)
        return self.container.get(Database)

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator.

        Usage::

            @app.error(404)
            def missing(request: Request) -> Response:
                return Response("<h1>Nothing here</h1>", status=404)
        """

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the database (if any) has connected.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown,
        before the database disconnects.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Request boundary --

    def handle(self, request: Request) -> Response:
        """Dispatch *request* and always return a Response.

        ``HTTPError`` becomes its status response. Any other exception is
        logged on ``keel.server`` and answered with a 500 (including the
        traceback when ``config.debug`` is on).
        """
        self._ensure_frozen()
        handlers = self._error_handlers
        try:
            if 404 in handlers and self.router.match(request.method, request.path) is None:
                raise NotFound()
            return self.router.dispatch(request, self.container)
        except HTTPError as exc:
            return handle_http_error(exc, request, handlers)
        except Exception as exc:
            return handle_internal_error(exc, request, handlers, debug=self.config.debug)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly and hands HTTP scopes to the
        request pipeline. Other scope types are ignored.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            return

        self._ensure_frozen()
        await handle_http(
            scope,
            receive,
            send,
            handle=self.handle,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup, connects the database, runs hooks,
        and signals completion back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    if self.container.has(Database):
                        self.container.get(Database).connect()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                if self.container.is_resolved(Database):
                    self.container.get(Database).disconnect()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def freeze(self) -> None:
        """Freeze the app now instead of on the first request."""
        self._ensure_frozen()

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self.router.freeze()
            self._frozen = True
            logger.debug("App %r frozen with %d routes", self.config.name, len(self.router.routes))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, hooks, and error handlers before the first request."
            )
            raise RuntimeError(msg)
