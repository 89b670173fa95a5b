"""ASGI handler — translates ASGI scope/messages to keel types.

The only component that touches raw ASGI directly. Reads the whole body,
builds a Request, runs the synchronous pipeline in a worker thread, and
sends the Response back through ASGI send().
"""

import logging
from collections.abc import Callable

import anyio

from keel._internal.asgi import HTTPScope, Receive, Scope, Send
from keel.errors import HTTPError
from keel.http.cookies import parse_cookies
from keel.http.headers import Headers
from keel.http.query import QueryParams
from keel.http.request import Request, normalize_path
from keel.http.response import Response
from keel.server.errors import handle_http_error
from keel.server.sender import send_response

logger = logging.getLogger("keel.server")


class _ClientDisconnected(Exception):  # noqa: N818
    pass


async def read_body(receive: Receive, *, limit: int) -> bytes:
    """Collect ``http.request`` messages into one body.

    Raises ``HTTPError(413)`` once more than *limit* bytes arrive.
    """
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise _ClientDisconnected
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise HTTPError(status=413, detail="Payload Too Large")
        chunks.append(chunk)
        if not message.get("more_body", False):
            return b"".join(chunks)


def request_from_scope(scope: Scope, body: bytes = b"") -> Request:
    """Build a Request from an ASGI http scope and its body."""
    http = HTTPScope.from_scope(scope)
    headers = Headers.from_raw(http.headers)
    return Request(
        method=http.method.upper(),
        path=normalize_path(http.path),
        headers=headers,
        query=QueryParams(http.query_string),
        body=body,
        cookies=parse_cookies(headers.get("cookie", "") or ""),
        client=http.client,
        http_version=http.http_version,
    )


async def handle_http(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    handle: Callable[[Request], Response],
    max_content_length: int,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    try:
        body = await read_body(receive, limit=max_content_length)
    except _ClientDisconnected:
        logger.debug("Client disconnected before the body was read")
        return
    except HTTPError as exc:
        await send_response(handle_http_error(exc, request_from_scope(scope), {}), send)
        return

    request = request_from_scope(scope, body)
    response = await anyio.to_thread.run_sync(handle, request)
    await send_response(response, send)
