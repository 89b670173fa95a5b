"""Error responses for the top-level request boundary.

Maps HTTPError exceptions and unexpected failures to Response objects,
using registered error handlers or plain defaults.
"""

import html
import inspect
import logging
import traceback
from collections.abc import Callable
from http import HTTPStatus
from typing import Any, TypeAlias

from keel.errors import HTTPError
from keel.http.request import Request
from keel.http.response import Response, json_response
from keel.routing.router import to_response

logger = logging.getLogger("keel.server")

ErrorHandler: TypeAlias = Callable[..., Any]


def _phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return f"Error {status}"


def call_error_handler(handler: ErrorHandler, request: Request, exc: Exception) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Handlers may take ``(request, exc)``, ``(request)`` or nothing.
    """
    params = list(inspect.signature(handler).parameters)
    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()
    return to_response(result)


def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, ErrorHandler],
) -> Response:
    """Map an HTTPError to a Response."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = call_error_handler(handler, request, exc)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    detail = exc.detail or _phrase(exc.status)
    if request.expects_json:
        resp = json_response({"error": detail}, status=exc.status)
    else:
        resp = Response(body=f"<h1>{exc.status} - {html.escape(detail)}</h1>", status=exc.status)
    for name, value in exc.headers:
        resp = resp.with_header(name, value)
    return resp


def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, ErrorHandler],
    *,
    debug: bool,
) -> Response:
    """Log an unexpected exception and answer 500."""
    logger.error("500 %s %s", request.method, request.path, exc_info=exc)

    handler = error_handlers.get(type(exc)) or error_handlers.get(500)
    if handler is not None:
        return call_error_handler(handler, request, exc).with_status(500)

    if debug:
        trace = "".join(traceback.format_exception(exc))
        if request.expects_json:
            return json_response({"error": repr(exc), "traceback": trace}, status=500)
        body = f"<h1>500 - {html.escape(repr(exc))}</h1>\n<pre>{html.escape(trace)}</pre>"
        return Response(body=body, status=500)

    if request.expects_json:
        return json_response({"error": "Internal Server Error"}, status=500)
    return Response(body="<h1>500 - Internal Server Error</h1>", status=500)
