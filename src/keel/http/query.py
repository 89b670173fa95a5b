"""Multi-valued string mappings: the shared base and query strings.

``MultiDict`` backs both ``QueryParams`` and ``FormData`` so request input
reads the same way wherever it came from.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class MultiDict(Mapping[str, str]):
    """Read-only mapping where a key can carry several values.

    ``__getitem__`` returns the first value for a key, ``get_list`` all of
    them. Repeated keys arise from checkboxes and ``?tag=a&tag=b``.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, list[str]] | None = None) -> None:
        object.__setattr__(self, "_data", {k: list(v) for k, v in (data or {}).items()})

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"{type(self).__name__}({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, []))

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Return the value as ``int``, or *default* if missing or not numeric."""
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        """Return the value as ``bool`` (``true``/``1``/``yes``/``on`` are True)."""
        value = self.get(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def to_dict(self) -> dict[str, str | list[str]]:
        """Flatten to plain values; keys with several values keep the list."""
        return {k: v[0] if len(v) == 1 else list(v) for k, v in self._data.items()}


class QueryParams(MultiDict):
    """Parsed query string. Keeps the raw string for URL reconstruction."""

    __slots__ = ("raw",)

    def __init__(self, query_string: str | bytes = "") -> None:
        if isinstance(query_string, bytes):
            query_string = query_string.decode("latin-1")
        super().__init__(parse_qs(query_string, keep_blank_values=True))
        object.__setattr__(self, "raw", query_string)
