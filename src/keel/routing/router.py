"""Route table with exact-then-pattern matching and middleware dispatch.

Routes live in a ``method -> uri -> Route`` table. A lookup first tries
the request path as a literal key, then scans that method's routes in
registration order and takes the first whose placeholder regex matches.
A miss therefore costs one regex test per route registered for the
method.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from keel.errors import ConfigurationError, InvalidAction
from keel.http.request import Request, normalize_path
from keel.http.response import Response
from keel.routing.params import build_path, extract_params, normalize_uri
from keel.routing.route import Action, Route, RouteMatch

if TYPE_CHECKING:
    from keel.container import Container

logger = logging.getLogger("keel.routing")

ANY_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE")

NOT_FOUND_BODY = "<h1>404 - Not Found</h1>"


def to_response(result: Any) -> Response:
    """Normalize a handler return value.

    ``Response`` passes through; ``None`` becomes an empty body; anything
    else is rendered with ``str()`` as ``text/plain``.
    """
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(body="", content_type="text/plain; charset=utf-8")
    if isinstance(result, bytes):
        return Response(body=result, content_type="text/plain; charset=utf-8")
    return Response(body=str(result), content_type="text/plain; charset=utf-8")


class Router:
    """Registers routes and dispatches requests through middleware to actions.

    Usage::

        router = Router()
        router.get("/", home)
        router.get("/users/{id}", (UserController, "show"), name="users.show")

        with router.group(prefix="/admin", middleware=[AuthMiddleware]):
            router.get("/dashboard", "DashboardController@index")

        response = router.dispatch(request, container)
    """

    __slots__ = ("_frozen", "_group_middleware", "_group_prefix", "_named", "_order", "_table")

    def __init__(self) -> None:
        self._table: dict[str, dict[str, Route]] = {}
        self._order: list[Route] = []
        self._named: dict[str, Route] = {}
        self._group_prefix = ""
        self._group_middleware: tuple[Any, ...] = ()
        self._frozen = False

    # -- Registration --

    def add_route(
        self,
        methods: str | Iterable[str],
        uri: str,
        action: Action,
        *,
        middleware: Iterable[Any] = (),
        name: str | None = None,
    ) -> Route:
        """Register *action* for *methods* at *uri*.

        The active group prefix is prepended to *uri* and the active group
        middleware runs before the route's own. Registering the same
        method and uri again replaces the earlier route in place.
        """
        if self._frozen:
            msg = "Cannot add routes after the router has been frozen."
            raise RuntimeError(msg)

        if isinstance(methods, str):
            methods = (methods,)
        method_set = frozenset(m.upper() for m in methods)
        route = Route(
            uri=normalize_uri(self._group_prefix, uri),
            action=action,
            methods=method_set,
            middleware=(*self._group_middleware, *middleware),
            name=name,
        )
        for method in sorted(method_set):
            self._table.setdefault(method, {})[route.uri] = route
        self._order.append(route)
        if name is not None:
            self._named[name] = route
        return route

    def get(self, uri: str, action: Action, **kwargs: Any) -> Route:
        return self.add_route("GET", uri, action, **kwargs)

    def post(self, uri: str, action: Action, **kwargs: Any) -> Route:
        return self.add_route("POST", uri, action, **kwargs)

    def put(self, uri: str, action: Action, **kwargs: Any) -> Route:
        return self.add_route("PUT", uri, action, **kwargs)

    def delete(self, uri: str, action: Action, **kwargs: Any) -> Route:
        return self.add_route("DELETE", uri, action, **kwargs)

    def any(self, uri: str, action: Action, **kwargs: Any) -> Route:
        """Register *action* for GET, POST, PUT and DELETE."""
        return self.add_route(ANY_METHODS, uri, action, **kwargs)

    def group(
        self,
        *,
        prefix: str | None = None,
        middleware: Iterable[Any] = (),
        callback: Callable[[Router], None] | None = None,
    ) -> Any:
        """Register routes under a shared prefix and middleware.

        With *callback*, it is called with the router and the previous
        group state is restored afterwards. Without one, returns a context
        manager doing the same around its ``with`` block::

            router.group(prefix="/api", callback=lambda r: r.get("/ping", ping))

            with router.group(prefix="/api"):
                router.get("/ping", ping)
        """
        scope = self._group_scope(prefix, tuple(middleware))
        if callback is None:
            return scope
        with scope:
            callback(self)
        return None

    @contextmanager
    def _group_scope(self, prefix: str | None, middleware: tuple[Any, ...]) -> Iterator[Router]:
        saved_prefix, saved_middleware = self._group_prefix, self._group_middleware
        if prefix:
            self._group_prefix = normalize_uri(saved_prefix, prefix)
        self._group_middleware = (*saved_middleware, *middleware)
        try:
            yield self
        finally:
            self._group_prefix, self._group_middleware = saved_prefix, saved_middleware

    def freeze(self) -> None:
        """Reject further registration."""
        self._frozen = True

    # -- Introspection --

    @property
    def routes(self) -> list[Route]:
        """Registered routes in registration order, replaced ones excluded."""
        live = {id(r) for by_uri in self._table.values() for r in by_uri.values()}
        seen: set[int] = set()
        result: list[Route] = []
        for route in self._order:
            if id(route) in live and id(route) not in seen:
                seen.add(id(route))
                result.append(route)
        return result

    def url_for(self, name: str, /, **params: Any) -> str:
        """Build the path of the route registered under *name*.

        Parameters that are not placeholders go into the query string.
        Raises ``KeyError`` for an unknown name and ``ValueError`` for a
        missing placeholder value.
        """
        route = self._named[name]
        path = build_path(route.uri, params)
        extra = {k: v for k, v in params.items() if k not in route.param_names}
        if extra:
            path += "?" + urlencode(extra)
        return path

    # -- Matching --

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Find the route for *method* and *path*, or ``None``.

        A literal uri hit wins; otherwise routes are tried in registration
        order and the first regex match wins.
        """
        by_uri = self._table.get(method.upper())
        if not by_uri:
            return None
        path = normalize_path(path)

        route = by_uri.get(path)
        if route is not None:
            return RouteMatch(route=route, path_params={})

        for route in by_uri.values():
            if not route.is_dynamic:
                continue
            params = extract_params(route.pattern, route.param_names, path)
            if params is not None:
                return RouteMatch(route=route, path_params=params)
        return None

    # -- Dispatch --

    def dispatch(self, request: Request, container: Container) -> Response:
        """Run *request* through its route's middleware and action.

        Unmatched requests get a 404 page. The first middleware returning
        a ``Response`` ends the chain; otherwise the action's return value
        is normalized with ``to_response``.
        """
        found = self.match(request.method, request.path)
        if found is None:
            return Response(body=NOT_FOUND_BODY, status=404)

        request = request.with_path_params(found.path_params)

        for entry in found.route.middleware:
            result = self._run_middleware(entry, request, container)
            if isinstance(result, Response):
                logger.debug("Middleware %r answered %s %s", entry, request.method, request.path)
                return result

        args = tuple(found.path_params.values())
        return to_response(self._call_action(found.route.action, request, args, container))

    def _run_middleware(self, entry: Any, request: Request, container: Container) -> Any:
        middleware = container.get(entry) if isinstance(entry, (str, type)) else entry
        handle = getattr(middleware, "handle", None)
        if callable(handle):
            return handle(request)
        if callable(middleware):
            return middleware(request)
        msg = f"Middleware {entry!r} has no handle() method and is not callable"
        raise ConfigurationError(msg)

    def _call_action(
        self,
        action: Action,
        request: Request,
        args: tuple[str, ...],
        container: Container,
    ) -> Any:
        if isinstance(action, str):
            if "@" not in action:
                msg = "Invalid route action"
                raise InvalidAction(msg)
            identifier, _, method = action.partition("@")
            return self._call_controller(identifier, method, request, args, container)

        if isinstance(action, (tuple, list)):
            if len(action) != 2 or not isinstance(action[1], str):
                msg = "Invalid route action"
                raise InvalidAction(msg)
            return self._call_controller(action[0], action[1], request, args, container)

        if callable(action) and not isinstance(action, type):
            return container.call(action, request, *args)

        msg = "Invalid route action"
        raise InvalidAction(msg)

    def _call_controller(
        self,
        identifier: Any,
        method: str,
        request: Request,
        args: tuple[str, ...],
        container: Container,
    ) -> Any:
        controller = container.get(identifier)
        bound = getattr(controller, method, None)
        if not callable(bound):
            name = identifier if isinstance(identifier, str) else type(controller).__qualname__
            msg = f"Method {method} not found on controller {name}"
            raise InvalidAction(msg)
        return container.call(bound, request, *args)
