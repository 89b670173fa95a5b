"""Immutable HTTP request.

Frozen metadata with a fully-read body. The host server hands keel the
whole body before dispatch, so every accessor here is synchronous.

Per-request data that middleware wants to hand to handlers goes into
``request.state``, a plain dict travelling with the request object
through the middleware chain. Nothing is stored in module globals.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from keel.errors import HTTPError
from keel.http.cookies import parse_cookies
from keel.http.forms import FORM_CONTENT_TYPES, FormData, UploadFile, media_type, parse_form_data
from keel.http.headers import Headers
from keel.http.query import QueryParams

if TYPE_CHECKING:
    from keel.data.query import QueryBuilder
    from keel.validation.rules import RuleSet


# Never echoed back to a form after a failed validation
_UNREMEMBERED_FIELDS = ("password", "password_confirmation")


def normalize_path(path: str) -> str:
    """Drop the query string and trailing slashes; ``""`` becomes ``"/"``."""
    path = path.split("?", 1)[0]
    return path.rstrip("/") or "/"


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Parsed form and JSON bodies are cached on first access.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    body: bytes = b""
    path_params: dict[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    client: tuple[str, int] | None = None
    http_version: str = "1.1"

    # Per-request namespace shared by middleware and handlers
    state: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # Private: parsed body cache (the dict is mutable, the field is not)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Factory --

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | Headers | None = None,
        body: bytes = b"",
        client: tuple[str, int] | None = None,
        http_version: str = "1.1",
    ) -> Request:
        """Create a request from plain values.

        A query string may be passed as part of *path*
        (``"/search?q=keel"``).
        """
        raw_path, _, query_string = path.partition("?")
        hdrs = headers if isinstance(headers, Headers) else Headers(headers or ())
        return cls(
            method=method.upper(),
            path=normalize_path(raw_path),
            headers=hdrs,
            query=QueryParams(query_string),
            body=body,
            cookies=parse_cookies(hdrs.get("cookie", "") or ""),
            client=client,
            http_version=http_version,
        )

    def with_path_params(self, params: Mapping[str, str]) -> Request:
        """Return a copy carrying *params*. ``state`` stays shared."""
        return replace(self, path_params=dict(params))

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def url(self) -> str:
        """Path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw}"
        return self.path

    @property
    def ip(self) -> str:
        """Client address, or ``0.0.0.0`` when the server did not report one."""
        return self.client[0] if self.client else "0.0.0.0"

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "") or ""

    @property
    def is_ajax(self) -> bool:
        """True if the client sent ``X-Requested-With: XMLHttpRequest``."""
        return self.headers.get("x-requested-with") == "XMLHttpRequest"

    @property
    def is_json(self) -> bool:
        """True if the body is declared as JSON."""
        return "application/json" in (self.content_type or "")

    @property
    def expects_json(self) -> bool:
        """True when the client prefers a JSON answer over an HTML page.

        AJAX requests, JSON bodies, and ``Accept`` headers that ask for
        ``application/json`` without ``text/html`` all count.
        """
        if self.is_ajax or self.is_json:
            return True
        accept = self.headers.get("accept", "") or ""
        return "application/json" in accept and "text/html" not in accept

    def is_method(self, method: str) -> bool:
        return self.method == method.upper()

    # -- Headers and cookies --

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name, default)

    def cookie(self, name: str, default: str | None = None) -> str | None:
        return self.cookies.get(name, default)

    # -- Body access --

    def text(self) -> str:
        """Read the body as text (UTF-8)."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Parse the body as JSON. Cached.

        Raises:
            HTTPError: 400 when the body is not valid JSON.
        """
        if "_json" not in self._cache:
            try:
                self._cache["_json"] = json_module.loads(self.body) if self.body else None
            except ValueError as exc:
                raise HTTPError(status=400, detail="Malformed JSON body") from exc
        return self._cache["_json"]

    def form(self) -> FormData:
        """Parse the body as form data.

        Non-form content types yield an empty ``FormData`` so handlers can
        read input without checking the encoding first.
        """
        if "_form" not in self._cache:
            ct = self.content_type or ""
            if media_type(ct) in FORM_CONTENT_TYPES:
                self._cache["_form"] = parse_form_data(self.body, ct)
            else:
                self._cache["_form"] = FormData()
        return self._cache["_form"]

    def file(self, name: str) -> UploadFile | None:
        """Return an uploaded file by field name."""
        return self.form().files.get(name)

    # -- Merged input --

    def all(self) -> dict[str, Any]:
        """Query parameters merged with the body; body values win.

        Form bodies contribute their fields, JSON object bodies their
        top-level keys.
        """
        merged: dict[str, Any] = dict(self.query.to_dict())
        if self.is_json:
            payload = self.json()
            if isinstance(payload, dict):
                merged.update(payload)
        else:
            merged.update(self.form().to_dict())
        return merged

    def input(self, key: str, default: Any = None) -> Any:
        return self.all().get(key, default)

    def has(self, key: str) -> bool:
        return key in self.all()

    def only(self, *keys: str) -> dict[str, Any]:
        data = self.all()
        return {k: data[k] for k in keys if k in data}

    def without(self, *keys: str) -> dict[str, Any]:
        return {k: v for k, v in self.all().items() if k not in keys}

    # -- Validation --

    def validate(self, rules: RuleSet, *, db: QueryBuilder | None = None) -> dict[str, Any]:
        """Validate ``all()`` against *rules*.

        Returns the validated fields. Raises ``ValidationFailure`` carrying
        the errors and the submitted input (minus password fields); the
        calling handler decides how to answer (see
        ``keel.validation.failure_response``).
        """
        from keel.errors import ValidationFailure
        from keel.validation import Validator

        data = self.all()
        validator = Validator(data, rules, db=db)
        if validator.fails():
            raise ValidationFailure(validator.errors(), self.without(*_UNREMEMBERED_FIELDS))
        return validator.validated()
