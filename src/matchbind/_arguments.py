"""Parameter matching: bind the formal parameters of a callable to candidate inputs.

Every parameter is bound independently, left to right, by the first rule that
produces a value:

1. ``*args`` / ``**kwargs`` collect every unconsumed matching candidate
2. ``Out[T]`` parameters receive the type-intrinsic default
3. a named value whose key equals the parameter name (case-insensitive)
4. the first unconsumed positional value that matches the parameter type
5. the dependency lookup
6. the parameter matching hook
7. the declared default
8. one leftover positional value coerced into a tuple/list parameter
9. the type-intrinsic default

Each rule carries a weight; the score of a match is the mean weight of its
parameters, so a callable whose inputs were all supplied scores highest.
"""

from __future__ import annotations

import dataclasses
import functools
import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._markers import is_out_annotation
from ._matching import coerce_to_collection, match_value
from ._traverse import ArgumentTraverseContext
from ._types import (
    is_any,
    is_primitive,
    load_type_hints,
    service_key,
    substitute,
    type_default,
    type_name,
    unwrap_annotated,
)


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from ._hooks import Hooks

    DependencyLookup = Callable[[Any], tuple[bool, Any]]


SINGLE_PARAMETER_SCORE = 10.0
DEFAULT_VALUE_RATIO = 0.75
TYPE_DEFAULT_RATIO = 0.5

_MATCHED = SINGLE_PARAMETER_SCORE
_DEFAULT_VALUE = SINGLE_PARAMETER_SCORE * DEFAULT_VALUE_RATIO
_TYPE_DEFAULT = SINGLE_PARAMETER_SCORE * TYPE_DEFAULT_RATIO

_EMPTY = inspect.Parameter.empty


@dataclass(frozen=True)
class ParameterInfo:
    """Type metadata of one formal parameter."""

    name: str
    position: int
    kind: inspect._ParameterKind
    annotation: Any = Any
    default: Any = _EMPTY
    is_out: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY

    @property
    def is_variadic(self) -> bool:
        return self.kind is inspect.Parameter.VAR_POSITIONAL

    @property
    def is_variadic_keyword(self) -> bool:
        return self.kind is inspect.Parameter.VAR_KEYWORD


@dataclass(frozen=True)
class ArgumentMatchedResult:
    """Outcome of matching one candidate callable against the inputs.

    ``arguments`` holds one resolved value per entry of ``parameters``; for a
    ``*args`` parameter it is the tuple of collected values and for
    ``**kwargs`` the dict of collected entries.
    """

    method: Callable[..., Any]
    parameters: tuple[ParameterInfo, ...]
    arguments: tuple[Any, ...]
    score: float
    passed: bool = True

    def materialize(self) -> tuple[list[Any], dict[str, Any]]:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}

        for param, value in zip(self.parameters, self.arguments):
            if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
                # passed positionally so a following *args stays legal
                args.append(value)
            elif param.is_variadic:
                args.extend(value)
            elif param.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[param.name] = value
            elif param.is_variadic_keyword:
                kwargs.update(value)

        return args, kwargs

    def call(self) -> Any:
        """Invoke the matched callable; its exceptions propagate unchanged."""
        args, kwargs = self.materialize()
        return self.method(*args, **kwargs)


def describe_parameters(method: Callable[..., Any]) -> tuple[ParameterInfo, ...]:
    """Return the parameter metadata of a class constructor, function or bound method."""
    if inspect.isclass(method):
        return _describe_class(method)

    func = getattr(method, "__func__", None)
    if func is not None and getattr(method, "__self__", None) is not None:
        return _describe_function(func, skip_first=True)
    return _describe_function(method, skip_first=False)


@functools.lru_cache(maxsize=512)
def _describe_class(cls: type) -> tuple[ParameterInfo, ...]:
    if cls.__init__ is object.__init__ and cls.__new__ is object.__new__:
        return ()

    sig = inspect.signature(cls)
    init = inspect.getattr_static(cls, "__init__", None)
    hints = load_type_hints(init, f"{cls.__name__} ({cls.__qualname__})") if inspect.isfunction(init) else {}
    return _build_parameters(list(sig.parameters.values()), hints)


@functools.lru_cache(maxsize=512)
def _describe_function(func: Callable[..., Any], *, skip_first: bool) -> tuple[ParameterInfo, ...]:
    sig = inspect.signature(func)
    hints = load_type_hints(func, type_name(func))
    params = list(sig.parameters.values())
    if skip_first:
        params = params[1:]
    return _build_parameters(params, hints)


def _build_parameters(params: list[inspect.Parameter], hints: dict[str, Any]) -> tuple[ParameterInfo, ...]:
    result = []
    for position, p in enumerate(params):
        annotation = hints.get(p.name, _EMPTY)
        if annotation is _EMPTY and not isinstance(p.annotation, str):
            annotation = p.annotation
        if annotation is _EMPTY or isinstance(annotation, str):
            annotation = Any

        inner, metadata = unwrap_annotated(annotation)
        is_out = is_out_annotation(metadata)
        result.append(
            ParameterInfo(
                name=p.name,
                position=position,
                kind=p.kind,
                annotation=inner if is_out else annotation,
                default=p.default,
                is_out=is_out,
            )
        )
    return tuple(result)


def match_arguments(
    method: Callable[..., Any],
    *,
    named: Mapping[str, Any] | None = None,
    positional: Sequence[Any] | None = None,
    services: DependencyLookup | None = None,
    hooks: Hooks | None = None,
    typevars: Mapping[Any, Any] | None = None,
) -> ArgumentMatchedResult:
    """Bind every parameter of ``method`` and score the match.

    No parameter ever fails to bind: unmatched parameters degrade to their
    declared or type-intrinsic default, which lowers the score instead.
    """
    parameters = describe_parameters(method)
    if typevars:
        parameters = tuple(
            dataclasses.replace(p, annotation=substitute(p.annotation, typevars)) for p in parameters
        )

    binder = _ArgumentBinder(parameters, named, positional, services, hooks)
    arguments = []
    total = 0.0
    for parameter in parameters:
        value, weight = binder.bind(parameter)
        arguments.append(value)
        total += weight

    score = total / len(parameters) if parameters else SINGLE_PARAMETER_SCORE
    return ArgumentMatchedResult(method=method, parameters=parameters, arguments=tuple(arguments), score=score)


class _ArgumentBinder:
    """Binding state shared by the parameters of one match."""

    def __init__(
        self,
        parameters: tuple[ParameterInfo, ...],
        named: Mapping[str, Any] | None,
        positional: Sequence[Any] | None,
        services: DependencyLookup | None,
        hooks: Hooks | None,
    ) -> None:
        self._named_source = named
        # lowered key -> (original key, value); a later key wins over a case variant
        self._named = {key.lower(): (key, value) for key, value in named.items()} if named else {}
        self._used_keys: set[str] = set()
        self._has_positional = positional is not None
        self._context = ArgumentTraverseContext(positional or ())
        self._services = services
        self._hooks = hooks
        # keys naming a declared parameter are never swallowed by *args/**kwargs
        self._reserved = {
            p.name.lower() for p in parameters if not p.is_variadic and not p.is_variadic_keyword
        }

    def bind(self, parameter: ParameterInfo) -> tuple[Any, float]:  # noqa: PLR0911
        tp = parameter.annotation

        if parameter.is_variadic:
            return self._collect_variadic(tp), _MATCHED
        if parameter.is_variadic_keyword:
            return self._collect_keywords(tp), _MATCHED
        if parameter.is_out:
            return type_default(tp), _MATCHED

        ok, value = self._from_named(parameter.name, tp)
        if ok:
            return value, _MATCHED

        ok, value = self._context.search(lambda candidate: match_value(tp, candidate, self._hooks))
        if ok:
            return value, _MATCHED

        key = service_key(tp)
        if self._services is not None and not is_any(key):
            ok, value = self._services(key)
            if ok:
                return value, _MATCHED

        ok, value = self._from_hook(parameter)
        if ok:
            return value, _MATCHED

        if parameter.has_default:
            return parameter.default, _DEFAULT_VALUE

        ok, value = self._context.search(
            lambda candidate: coerce_to_collection(candidate, tp, allow_empty=False, hooks=self._hooks)
        )
        if ok:
            return value, _MATCHED

        return type_default(tp), _TYPE_DEFAULT

    def _from_named(self, name: str, tp: Any) -> tuple[bool, Any]:
        key = name.lower()
        if key not in self._named or key in self._used_keys:
            return False, None

        _, raw = self._named[key]
        if raw is None:
            ok, value = True, type_default(tp)
        else:
            ok, value = match_value(tp, raw, self._hooks)
            if not ok:
                ok, value = coerce_to_collection(raw, tp, allow_empty=True, hooks=self._hooks)

        if ok:
            self._used_keys.add(key)
        return ok, value

    def _from_hook(self, parameter: ParameterInfo) -> tuple[bool, Any]:
        if self._hooks is None:
            return False, None

        self._context.reset()
        arguments = self._context if self._has_positional else None
        event = self._hooks.raise_parameter_matching(parameter, self._services, self._named_source, arguments)
        if event is None or not event.handled:
            return False, None

        value = event.value
        if value is not None and not is_primitive(type(value)):
            # a hook that picked a positional object consumes it; primitives share identity across equal values
            self._context.search(lambda candidate: (candidate is value, candidate))
        return True, value

    def _collect_variadic(self, element_type: Any) -> tuple[Any, ...]:
        extras = []
        for key, (_, raw) in self._named.items():
            if key in self._used_keys or key in self._reserved:
                continue
            ok, value = match_value(element_type, raw, self._hooks)
            if ok:
                extras.append(value)
                self._used_keys.add(key)

        extras.extend(self._context.collect(lambda candidate: match_value(element_type, candidate, self._hooks)))
        return tuple(extras)

    def _collect_keywords(self, value_type: Any) -> dict[str, Any]:
        extras = {}
        for key, (original, raw) in self._named.items():
            if key in self._used_keys or key in self._reserved:
                continue
            ok, value = match_value(value_type, raw, self._hooks)
            if ok:
                extras[original] = value
                self._used_keys.add(key)
        return extras
