"""Response to ASGI: one ``http.response.start`` then one body message."""

from keel._internal.asgi import Send
from keel.http.response import Response

# Statuses that never carry a message body (RFC 9110 §6.4.1)
_BODYLESS = frozenset({204, 304})


def _body_allowed(status: int) -> bool:
    return status >= 200 and status not in _BODYLESS


def raw_headers(response: Response, body: bytes) -> list[tuple[bytes, bytes]]:
    """Latin-1 header pairs: content-type, the response's own, content-length."""
    pairs = [(b"content-type", response.content_type.encode("latin-1"))]
    pairs.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in response.headers
    )
    pairs.append((b"content-length", str(len(body)).encode("latin-1")))
    return pairs


async def send_response(response: Response, send: Send) -> None:
    """Send *response* as a complete, non-streamed ASGI reply."""
    body = response.body_bytes if _body_allowed(response.status) else b""
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers(response, body),
        }
    )
    await send({"type": "http.response.body", "body": body, "more_body": False})
