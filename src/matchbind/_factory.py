from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar, get_origin, overload

from ._arguments import ArgumentMatchedResult, describe_parameters, match_arguments
from ._convert import convert, is_convertible
from ._errors import (
    NoMatchingCallableError,
    UnresolvableAbstractError,
    UnresolvableArrayError,
    UnresolvableEnumError,
    UnresolvableInterfaceError,
    UnresolvableNonClassError,
)
from ._hooks import Hooks
from ._markers import is_constructor, overloaded_name
from ._types import (
    CONTAINER_CLASSES,
    SCALAR_ITERABLES,
    is_array_class,
    is_primitive,
    is_protocol,
    is_union,
    type_name,
    typevar_map,
    unwrap_annotated,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ._arguments import DependencyLookup

T = TypeVar("T")


@dataclass(frozen=True)
class MethodInvokeContext:
    """A matched call prepared ahead of time.

    Holds the argument vector chosen for ``method`` so the call can be made
    later, possibly several times.
    """

    score: float
    arguments: tuple[Any, ...]
    method: Callable[..., Any]
    _result: ArgumentMatchedResult

    def invoke(self) -> Any:
        return self._result.call()


def find_best_match(results: Iterable[ArgumentMatchedResult]) -> ArgumentMatchedResult | None:
    """Pick the passed result with the strictly highest score; ties keep the first."""
    best = None
    max_score = 0.0
    for result in results:
        if not result.passed:
            continue
        if result.score > max_score:
            best = result
            max_score = result.score
    return best


class ObjectFactory:
    """Build instances and invoke methods by matching inputs to parameters.

    - constructors: ``__init__`` plus classmethods marked ``@constructor``
    - methods: the public method plus siblings marked ``@overload_of(name)``
    - the best scoring candidate wins; exceptions from the callee propagate as raised
    """

    def __init__(self, *, hooks: Hooks | None = None) -> None:
        self._hooks = hooks if hooks is not None else Hooks()

    @property
    def hooks(self) -> Hooks:
        return self._hooks

    @overload
    def create_instance(
        self,
        instance_type: type[T],
        *positional: Any,
        named: Mapping[str, Any] | None = ...,
        services: DependencyLookup | None = ...,
    ) -> T: ...

    @overload
    def create_instance(
        self,
        instance_type: Any,
        *positional: Any,
        named: Mapping[str, Any] | None = ...,
        services: DependencyLookup | None = ...,
    ) -> Any: ...

    def create_instance(
        self,
        instance_type: Any,
        *positional: Any,
        named: Mapping[str, Any] | None = None,
        services: DependencyLookup | None = None,
    ) -> Any:
        """Construct ``instance_type`` from the best matching constructor.

        Example:
          factory.create_instance(Report, "title", named={"pages": 3}, services=provider.try_get_service)

        """
        target, _ = unwrap_annotated(instance_type)
        cls = check_instantiable(target)

        if is_primitive(cls):
            ok, value = _find_primitive(cls, named, positional)
            if ok:
                return value
            msg = f"primitive type {cls.__name__} has no constructor"
            raise NoMatchingCallableError(msg)
        if cls in CONTAINER_CLASSES:
            return _build_container(cls, named, positional)

        typevars = typevar_map(target)
        candidates = _constructor_candidates(cls)
        results = self._match_all(candidates, named, positional, services, typevars)
        best = find_best_match(results)
        if best is None:
            msg = f"cannot find any constructor of type {type_name(cls)} that matches given parameters"
            raise NoMatchingCallableError(msg)

        logger.debug("constructing %s via %s (score %.2f)", type_name(cls), type_name(best.method), best.score)
        return best.call()

    def invoke_method(
        self,
        instance: Any,
        method_name: str,
        *positional: Any,
        named: Mapping[str, Any] | None = None,
        services: DependencyLookup | None = None,
    ) -> Any:
        """Invoke the best matching overload of ``instance.method_name`` and return its result."""
        if instance is None:
            msg = "instance must not be None"
            raise ValueError(msg)

        candidates = _method_candidates(instance, method_name)
        if not candidates:
            msg = f"cannot find method {method_name} of instance {instance!r}"
            raise NoMatchingCallableError(msg)

        results = self._match_all(candidates, named, positional, services, None)
        best = find_best_match(results)
        if best is None:
            msg = f"cannot find any method {method_name} of instance {instance!r} that matches given parameters"
            raise NoMatchingCallableError(msg)

        logger.debug("invoking %s (score %.2f)", type_name(best.method), best.score)
        return best.call()

    def create_invoke_context(
        self,
        method: Callable[..., Any],
        *positional: Any,
        named: Mapping[str, Any] | None = None,
        services: DependencyLookup | None = None,
    ) -> MethodInvokeContext | None:
        """Match ``method`` now and return a call that can be invoked later.

        Returns ``None`` when the match did not pass.
        """
        result = match_arguments(method, named=named, positional=positional, services=services, hooks=self._hooks)
        if not result.passed:
            return None
        return MethodInvokeContext(score=result.score, arguments=result.arguments, method=method, _result=result)

    def _match_all(
        self,
        candidates: list[Callable[..., Any]],
        named: Mapping[str, Any] | None,
        positional: tuple[Any, ...],
        services: DependencyLookup | None,
        typevars: Mapping[Any, Any] | None,
    ) -> list[ArgumentMatchedResult]:
        results = []
        for candidate in candidates:
            try:
                describe_parameters(candidate)
            except (ValueError, TypeError) as exc:
                # no introspectable signature (some builtins)
                logger.debug("skipping %s: %s", type_name(candidate), exc)
                continue

            result = match_arguments(
                candidate,
                named=named,
                positional=positional if positional else None,
                services=services,
                hooks=self._hooks,
                typevars=typevars,
            )
            results.append(result)
        return results


def check_instantiable(target: Any) -> type:
    """Return the class to instantiate for ``target`` or raise an ``UnresolvableTypeError``."""
    name = type_name(target)
    if is_array_class(target):
        msg = f"cannot create instance of array {name}"
        raise UnresolvableArrayError(msg)

    origin = get_origin(target)
    cls = origin if origin is not None else target
    if is_union(target) or not inspect.isclass(cls):
        msg = f"cannot create instance of non-class type {name}"
        raise UnresolvableNonClassError(msg)
    if issubclass(cls, Enum):
        msg = f"cannot create instance of enum type {name}"
        raise UnresolvableEnumError(msg)
    if is_protocol(cls):
        msg = f"cannot create instance of interface {name}"
        raise UnresolvableInterfaceError(msg)
    if inspect.isabstract(cls):
        msg = f"cannot create instance of abstract class {name}"
        raise UnresolvableAbstractError(msg)
    return cls


def _constructor_candidates(cls: type) -> list[Callable[..., Any]]:
    candidates: list[Callable[..., Any]] = [cls]
    for name, member in _iter_members(cls):
        if not name.startswith("_") and is_constructor(member):
            candidates.append(getattr(cls, name))
    return candidates


def _method_candidates(instance: Any, method_name: str) -> list[Callable[..., Any]]:
    if method_name.startswith("_"):
        # only public methods take part in overload resolution
        return []

    candidates: list[Callable[..., Any]] = []
    primary = getattr(instance, method_name, None)
    if callable(primary) and not inspect.isclass(primary):
        candidates.append(primary)

    for name, member in _iter_members(type(instance)):
        if name != method_name and overloaded_name(member) == method_name:
            candidates.append(getattr(instance, name))
    return candidates


def _iter_members(cls: type) -> list[tuple[str, Any]]:
    """Return raw class members, subclass first and in definition order."""
    seen: set[str] = set()
    members = []
    for klass in cls.__mro__:
        for name, member in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            members.append((name, member))
    return members


def _find_primitive(
    cls: type,
    named: Mapping[str, Any] | None,
    positional: tuple[Any, ...],
) -> tuple[bool, Any]:
    if named:
        value_key = next((key for key in named if key.lower() == "value"), None)
        if value_key is not None:
            ok, value = _best_primitive(cls, [named[value_key]])
            if ok:
                return ok, value

    ok, value = _best_primitive(cls, list(positional))
    if ok:
        return ok, value

    if named:
        return _best_primitive(cls, list(named.values()))
    return False, None


def _best_primitive(cls: type, values: list[Any]) -> tuple[bool, Any]:
    for value in values:
        if type(value) is cls:
            return True, value

    for value in values:
        if is_convertible(type(value)):
            ok, converted = convert(value, cls)
            if ok:
                return True, converted
    return False, None


def _build_container(
    cls: type,
    named: Mapping[str, Any] | None,
    positional: tuple[Any, ...],
) -> Any:
    """Copy the first input ``cls`` can be built from, or return an empty ``cls``."""
    source = Mapping if cls is dict else Iterable
    for value in (*positional, *(named.values() if named else ())):
        if isinstance(value, source) and not isinstance(value, SCALAR_ITERABLES):
            return cls(value)
    return cls()
