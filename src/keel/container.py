"""Dependency injection container with constructor auto-wiring.

Abstracts are classes or string keys. A binding maps an abstract to a
concrete class, another key, or a factory ``(container) -> object``.
Classes without a binding resolve to themselves: the container reads the
``__init__`` signature and builds every class-typed parameter through
``get()``, depth-first.

Usage::

    container = Container()
    container.singleton(AppConfig, lambda c: AppConfig.from_env())
    container.bind(Mailer, SmtpMailer)
    container.instance("clock", time.monotonic)

    service = container.get(InvoiceService)  # dependencies wired from hints

Lifetimes:
    - ``bind()``: a fresh instance on every ``get()``
    - ``singleton()``: first built instance cached for the container's life
    - ``instance()``: a pre-built value returned as-is

Registration must finish before the first ``get()`` of anything that
depends on a late-bound service. The registry is not locked; the setup
phase is single-threaded. Resolution is thread-safe: each thread tracks
its own construction chain, and a singleton is built at most once.
"""

from __future__ import annotations

import inspect
import logging
import threading
import types
from collections.abc import Callable
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints, overload

from keel.errors import CyclicDependencyError, ResolutionError

logger = logging.getLogger("keel.container")

T = TypeVar("T")

# Annotations the container never tries to construct
_PRIMITIVES: frozenset[Any] = frozenset(
    {
        str,
        int,
        float,
        bool,
        bytes,
        bytearray,
        complex,
        list,
        dict,
        tuple,
        set,
        frozenset,
        object,
        type,
        Any,
    }
)

_EMPTY = inspect.Parameter.empty


def _describe(abstract: Any) -> str:
    if isinstance(abstract, str):
        return abstract
    return getattr(abstract, "__qualname__", None) or repr(abstract)


def _is_factory(concrete: Any) -> bool:
    """A factory is any callable that is not itself a class."""
    return callable(concrete) and not isinstance(concrete, type)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into ``(X, True)``; anything else is ``(annotation, False)``."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1 and len(get_args(annotation)) == 2:
            return args[0], True
    return annotation, False


class Container:
    """Resolves abstracts to instances, auto-wiring constructor parameters.

    ``get()`` follows a fixed order: cached instance, then the bound
    concrete (default: the abstract itself), then a factory call or a
    reflective construction, then singleton caching.
    """

    __slots__ = ("_bindings", "_instances", "_local", "_singleton_lock", "_singletons")

    def __init__(self) -> None:
        self._bindings: dict[Any, Any] = {}
        self._instances: dict[Any, Any] = {}
        self._singletons: set[Any] = set()
        self._local = threading.local()
        # Reentrant: a singleton's constructor may resolve other singletons
        self._singleton_lock = threading.RLock()

    @property
    def _resolving(self) -> list[Any]:
        """Abstracts this thread is currently building, in resolution order."""
        chain = getattr(self._local, "chain", None)
        if chain is None:
            chain = self._local.chain = []
        return chain

    # -- Registration --

    def bind(self, abstract: Any, concrete: Any = None) -> None:
        """Register *concrete* as the resolver for *abstract*.

        *concrete* may be a class, a string key, or a factory taking the
        container. When omitted, *abstract* resolves to itself.
        """
        self._bindings[abstract] = abstract if concrete is None else concrete

    def singleton(self, abstract: Any, concrete: Any = None) -> None:
        """Like ``bind()``, but cache the first built instance."""
        self.bind(abstract, concrete)
        self._singletons.add(abstract)

    def instance(self, abstract: Any, value: Any) -> None:
        """Store a pre-built *value*, bypassing construction entirely."""
        self._instances[abstract] = value

    def has(self, abstract: Any) -> bool:
        """True if *abstract* has a binding or a stored instance."""
        return abstract in self._bindings or abstract in self._instances

    def is_resolved(self, abstract: Any) -> bool:
        """True if *abstract* has a cached instance."""
        return abstract in self._instances

    def forget(self, abstract: Any) -> None:
        """Drop a cached instance so the next ``get()`` rebuilds it."""
        self._instances.pop(abstract, None)

    # -- Resolution --

    @overload
    def get(self, abstract: type[T]) -> T: ...

    @overload
    def get(self, abstract: str) -> Any: ...

    def get(self, abstract: Any) -> Any:
        """Resolve *abstract* to an instance.

        Raises:
            ResolutionError: The type is unknown, not instantiable, or has a
                constructor parameter that cannot be satisfied.
            CyclicDependencyError: The constructor graph loops back onto a
                type that is still being built.
        """
        if abstract in self._instances:
            return self._instances[abstract]

        if abstract not in self._singletons:
            return self._construct(abstract)

        # Lock + double-check so concurrent first gets build one instance
        with self._singleton_lock:
            if abstract in self._instances:
                return self._instances[abstract]
            instance = self._construct(abstract)
            self._instances[abstract] = instance
            return instance

    def call(self, func: Callable[..., T], /, *args: Any, **overrides: Any) -> T:
        """Call *func*, wiring annotated class parameters from the container.

        Positional *args* fill the leading parameters; *overrides* win over
        anything the container would supply.
        """
        positional, kwargs = self._resolve_parameters(func, skip=len(args), overrides=overrides)
        return func(*args, *positional, **kwargs)

    # -- Internal --

    def _construct(self, abstract: Any) -> Any:
        resolving = self._resolving
        if abstract in resolving:
            chain = [*resolving[resolving.index(abstract) :], abstract]
            raise CyclicDependencyError([_describe(a) for a in chain])

        concrete = self._bindings.get(abstract, abstract)
        resolving.append(abstract)
        try:
            return self._build(abstract, concrete)
        finally:
            resolving.pop()

    def _build(self, abstract: Any, concrete: Any) -> Any:
        if _is_factory(concrete):
            return concrete(self)

        if isinstance(concrete, str):
            if concrete != abstract and (concrete in self._bindings or concrete in self._instances):
                return self.get(concrete)
            msg = f"Class {concrete!r} does not exist"
            raise ResolutionError(msg)

        if not isinstance(concrete, type):
            msg = f"Cannot build {_describe(abstract)!r} from {concrete!r}"
            raise ResolutionError(msg)

        if inspect.isabstract(concrete) or getattr(concrete, "_is_protocol", False):
            msg = f"Class {_describe(concrete)} is not instantiable"
            raise ResolutionError(msg)

        if concrete.__init__ is object.__init__:
            return concrete()

        positional, kwargs = self._resolve_parameters(concrete, skip=0, overrides={})
        logger.debug("Building %s", _describe(concrete))
        try:
            return concrete(*positional, **kwargs)
        except ResolutionError:
            raise
        except Exception as exc:
            msg = f"Failed to instantiate {_describe(concrete)}: {exc}"
            raise ResolutionError(msg) from exc

    def _resolve_parameters(
        self,
        target: Callable[..., Any],
        *,
        skip: int,
        overrides: dict[str, Any],
    ) -> tuple[list[Any], dict[str, Any]]:
        """Build call arguments for *target* from its annotations.

        Positional-only parameters are returned in the list, everything
        else by keyword.
        """
        init = target.__init__ if isinstance(target, type) else target
        try:
            signature = inspect.signature(target)
        except (TypeError, ValueError) as exc:
            msg = f"Cannot inspect signature of {_describe(target)}"
            raise ResolutionError(msg) from exc
        try:
            hints = get_type_hints(init)
        except Exception:
            # Unresolvable forward references: fall back to raw annotations
            hints = {}

        positional: list[Any] = []
        kwargs: dict[str, Any] = {}
        params = list(signature.parameters.values())
        for param in params[skip:]:
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            if param.name in overrides:
                value = overrides[param.name]
            else:
                annotation = hints.get(param.name, param.annotation)
                value = self._resolve_parameter(target, param, annotation)
            if param.kind is param.POSITIONAL_ONLY:
                positional.append(value)
            else:
                kwargs[param.name] = value
        return positional, kwargs

    def _resolve_parameter(
        self,
        owner: Any,
        param: inspect.Parameter,
        annotation: Any,
    ) -> Any:
        has_default = param.default is not _EMPTY

        if annotation is _EMPTY or isinstance(annotation, str):
            if has_default:
                return param.default
            msg = f"Cannot resolve parameter {param.name!r} of {_describe(owner)}"
            raise ResolutionError(msg)

        annotation, optional = _unwrap_optional(annotation)

        if annotation in _PRIMITIVES or get_origin(annotation) is not None or not isinstance(
            annotation, type
        ):
            if has_default:
                return param.default
            msg = f"Cannot resolve primitive parameter {param.name!r} of {_describe(owner)}"
            raise ResolutionError(msg)

        if optional and has_default:
            try:
                return self.get(annotation)
            except CyclicDependencyError:
                raise
            except ResolutionError:
                return param.default

        return self.get(annotation)

