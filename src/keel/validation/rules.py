"""Built-in validation rules.

Rules are named in a rule set string (``"required|email|max:255"``) or
list (``["required", "min:8"]``). Each name maps to a function in the
``RULES`` registry with the signature::

    def rule(value: Any, params: list[str], ctx: RuleContext) -> str | None:
        '''Return an error message, or None if valid.'''

``params`` are the comma-separated values after the colon
(``"in:draft,sent,paid"`` gives ``["draft", "sent", "paid"]``).

Application rules register the same way::

    @rule("iban")
    def iban(value, params, ctx):
        if present(value) and not IBAN_RE.match(str(value)):
            return f"The {ctx.field} must be a valid IBAN."
        return None

Every rule except ``required`` and ``confirmed`` passes absent values;
combine with ``required`` to demand presence.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, TypeAlias
from urllib.parse import urlsplit

from keel.errors import ConfigurationError

if TYPE_CHECKING:
    from keel.data.query import QueryBuilder


@dataclass(frozen=True, slots=True)
class RuleContext:
    """What a rule may look at besides the value itself."""

    field: str
    data: Mapping[str, Any]
    db: QueryBuilder | None = None


# Type alias for a rule function
Rule: TypeAlias = Callable[[Any, list[str], RuleContext], str | None]

# A field's rules: "a|b:1,2" or ["a", "b:1,2"]
RuleSet: TypeAlias = Mapping[str, str | Sequence[str]]

RULES: dict[str, Rule] = {}


def rule(name: str) -> Callable[[Rule], Rule]:
    """Decorator registering a rule function under *name*."""

    def decorator(func: Rule) -> Rule:
        RULES[name] = func
        return func

    return decorator


def register_rule(name: str, func: Rule) -> None:
    """Register *func* under *name*, replacing any existing rule."""
    RULES[name] = func


def parse_rule(text: str) -> tuple[str, list[str]]:
    """Split ``"name:p1,p2"`` into ``("name", ["p1", "p2"])``."""
    name, sep, raw = text.strip().partition(":")
    return name, raw.split(",") if sep else []


def split_rules(rules: str | Sequence[str]) -> list[str]:
    """Normalize a field's rules to a list of rule strings."""
    if isinstance(rules, str):
        return [r for r in rules.split("|") if r.strip()]
    return [r for r in rules if r.strip()]


def present(value: Any) -> bool:
    """Neither ``None`` nor the empty string."""
    return value is not None and value != ""


def _int_param(name: str, params: list[str]) -> int:
    try:
        return int(params[0])
    except (IndexError, ValueError):
        msg = f"Rule {name!r} requires an integer parameter"
        raise ConfigurationError(msg) from None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value: Any) -> float | None:
    """A number, or a numeric string as a float; ``None`` for anything else."""
    if _is_number(value):
        return value
    if isinstance(value, str) and _NUMERIC_RE.match(value):
        return float(value)
    return None


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


@rule("required")
def required(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    if not present(value):
        return f"The {ctx.field} field is required."
    return None


@rule("confirmed")
def confirmed(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """``password`` must equal ``password_confirmation``."""
    if ctx.data.get(f"{ctx.field}_confirmation") != value:
        return f"The {ctx.field} confirmation does not match."
    return None


# ---------------------------------------------------------------------------
# Size
# ---------------------------------------------------------------------------


@rule("min")
def min_(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """Strings by length; numbers and numeric strings also by value."""
    n = _int_param("min", params)
    if isinstance(value, str) and len(value) < n:
        return f"The {ctx.field} must be at least {n} characters."
    number = _as_number(value)
    if number is not None and number < n:
        return f"The {ctx.field} must be at least {n}."
    return None


@rule("max")
def max_(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """Strings by length; numbers and numeric strings also by value."""
    n = _int_param("max", params)
    if isinstance(value, str) and len(value) > n:
        return f"The {ctx.field} must not exceed {n} characters."
    number = _as_number(value)
    if number is not None and number > n:
        return f"The {ctx.field} must not exceed {n}."
    return None


# ---------------------------------------------------------------------------
# Type
# ---------------------------------------------------------------------------

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


@rule("numeric")
def numeric(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    if not present(value) or _is_number(value):
        return None
    if not (isinstance(value, str) and _NUMERIC_RE.match(value)):
        return f"The {ctx.field} must be a number."
    return None


@rule("integer")
def integer(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    if not present(value):
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return None
    if not (isinstance(value, str) and _INTEGER_RE.match(value.strip())):
        return f"The {ctx.field} must be an integer."
    return None


@rule("alpha")
def alpha(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """Letters and spaces only."""
    if present(value) and not str(value).replace(" ", "").isalpha():
        return f"The {ctx.field} must contain only letters."
    return None


@rule("alphanumeric")
def alphanumeric(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """Letters, digits and spaces only."""
    if present(value) and not str(value).replace(" ", "").isalnum():
        return f"The {ctx.field} must contain only letters and numbers."
    return None


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

# Checks structure, not deliverability
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9\-]+(\.[a-zA-Z0-9\-]+)*\.[a-zA-Z]{2,}$")


@rule("email")
def email(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    if present(value) and not _EMAIL_RE.match(str(value)):
        return f"The {ctx.field} must be a valid email address."
    return None


@rule("url")
def url(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """A scheme and a host, no whitespace."""
    if not present(value):
        return None
    text = str(value)
    try:
        parts = urlsplit(text)
    except ValueError:
        parts = None
    if parts is None or not parts.scheme or not parts.netloc or any(c.isspace() for c in text):
        return f"The {ctx.field} must be a valid URL."
    return None


# Accepted in addition to ISO 8601
DATE_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d.%m.%Y",
    "%d-%m-%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
)


def parse_date(text: str) -> datetime | None:
    """Parse *text* as ISO 8601 or one of ``DATE_FORMATS``, else ``None``."""
    text = text.strip()
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


@rule("date")
def date_(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    if not present(value) or isinstance(value, (date, datetime)):
        return None
    if parse_date(str(value)) is None:
        return f"The {ctx.field} must be a valid date."
    return None


# ---------------------------------------------------------------------------
# Choice and lookup
# ---------------------------------------------------------------------------


@rule("in")
def in_(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """``in:draft,sent,paid`` — compared as strings."""
    if present(value) and str(value) not in params:
        return f"The selected {ctx.field} is invalid."
    return None


@rule("unique")
def unique(value: Any, params: list[str], ctx: RuleContext) -> str | None:
    """``unique:table[,column[,except_id]]`` — no other row holds *value*.

    The column defaults to the field name. ``except_id`` skips the row
    being edited. The lookup runs on a fresh builder, so a plan the
    caller is composing on ``db`` survives validation.
    """
    if not present(value):
        return None
    table = params[0].strip() if params else ""
    if not table:
        msg = "Table name required for unique validation"
        raise ConfigurationError(msg)
    if ctx.db is None:
        msg = f"Rule 'unique' on {ctx.field!r} needs a query builder (pass db=...)"
        raise ConfigurationError(msg)

    column = params[1].strip() if len(params) > 1 and params[1].strip() else ctx.field
    query = ctx.db.new().table(table).where(column, value)
    if len(params) > 2 and params[2].strip():
        query.where("id", "!=", params[2].strip())
    if query.first() is not None:
        return f"The {ctx.field} has already been taken."
    return None
