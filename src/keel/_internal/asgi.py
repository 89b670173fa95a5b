"""ASGI aliases and the parsed HTTP scope.

Only ``keel.server`` and ``App.__call__`` see raw ASGI; everything past
``request_from_scope`` works with ``Request``.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeAlias

Message: TypeAlias = MutableMapping[str, Any]

Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HTTPScope:
    """The parts of an ``http`` scope keel reads, with defaults filled in.

    Servers may omit ``client``, ``http_version``, ``query_string`` and
    ``root_path``; ``method`` and ``path`` are required by ASGI.
    """

    method: str
    path: str
    query_string: bytes = b""
    headers: tuple[tuple[bytes, bytes], ...] = ()
    client: tuple[str, int] | None = None
    http_version: str = "1.1"
    root_path: str = ""

    @classmethod
    def from_scope(cls, scope: Scope) -> "HTTPScope":
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            query_string=scope.get("query_string") or b"",
            headers=tuple((bytes(k), bytes(v)) for k, v in scope.get("headers") or ()),
            client=(str(client[0]), int(client[1])) if client else None,
            http_version=scope.get("http_version") or "1.1",
            root_path=scope.get("root_path") or "",
        )
