"""Route and RouteMatch frozen dataclasses."""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from keel.routing.params import compile_pattern, param_names

# A callable, a (controller, "method") pair, or "Controller@method"
Action: TypeAlias = Callable[..., Any] | tuple[Any, str] | str


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    Created at registration time and held for the life of the router.
    ``pattern`` and ``param_names`` are derived from ``uri``.
    """

    uri: str
    action: Action
    methods: frozenset[str]
    middleware: tuple[Any, ...] = ()
    name: str | None = None
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)
    param_names: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pattern", compile_pattern(self.uri))
        object.__setattr__(self, "param_names", param_names(self.uri))

    @property
    def is_dynamic(self) -> bool:
        return bool(self.param_names)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
