"""Path placeholder parsing.

Route URIs use ``{name}`` placeholders. Each placeholder matches one
path segment (``[^/]+``); everything else in the URI is literal text.
"""

import re

# A single placeholder inside a route URI
PLACEHOLDER = re.compile(r"\{([^/{}]+)\}")

# Regex fragment substituted for each placeholder
SEGMENT = r"([^/]+)"


def normalize_uri(*parts: str) -> str:
    """Join URI fragments into ``/a/b`` form: one leading slash, no trailing."""
    segments = [seg for part in parts for seg in part.split("/") if seg]
    return "/" + "/".join(segments)


def param_names(uri: str) -> tuple[str, ...]:
    """Placeholder names in the order they appear in *uri*."""
    return tuple(PLACEHOLDER.findall(uri))


def compile_pattern(uri: str) -> re.Pattern[str]:
    """Compile *uri* into a full-match regex.

    Examples::

        "/users"             -> ^/users$
        "/users/{id}"        -> ^/users/([^/]+)$
        "/a/{x}/b/{y}"       -> ^/a/([^/]+)/b/([^/]+)$
    """
    pieces: list[str] = []
    pos = 0
    for m in PLACEHOLDER.finditer(uri):
        pieces.append(re.escape(uri[pos : m.start()]))
        pieces.append(SEGMENT)
        pos = m.end()
    pieces.append(re.escape(uri[pos:]))
    return re.compile("^" + "".join(pieces) + "$")


def extract_params(
    pattern: re.Pattern[str],
    names: tuple[str, ...],
    path: str,
) -> dict[str, str] | None:
    """Match *path* and zip captured groups with *names*, or ``None``."""
    m = pattern.match(path)
    if m is None:
        return None
    return dict(zip(names, m.groups(), strict=True))


def build_path(uri: str, params: dict[str, object]) -> str:
    """Substitute *params* into *uri*'s placeholders.

    Raises ``ValueError`` if a placeholder has no value.
    """

    def _sub(m: re.Match[str]) -> str:
        name = m.group(1)
        if name not in params:
            msg = f"Missing route parameter {name!r} for {uri!r}"
            raise ValueError(msg)
        return str(params[name])

    return PLACEHOLDER.sub(_sub, uri)
