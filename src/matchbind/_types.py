from __future__ import annotations

import collections.abc
import inspect
import logging
import types
import typing
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Protocol, TypeVar, Union, cast, get_args, get_origin, get_type_hints


logger = logging.getLogger(__name__)

PRIMITIVE_TYPES: tuple[type, ...] = (bool, int, float, complex, str, bytes, Decimal)

# Iterables that are treated as scalar values rather than element sources.
SCALAR_ITERABLES: tuple[type, ...] = (str, bytes, bytearray)


class CollectionShape(Enum):
    ARRAY = "array"
    LIST = "list"


_LIST_ORIGINS = frozenset(
    {
        list,
        collections.abc.Sequence,
        collections.abc.MutableSequence,
        collections.abc.Collection,
        collections.abc.Iterable,
    }
)

# Builtin containers the object factory constructs directly.
CONTAINER_CLASSES: tuple[type, ...] = (list, set, frozenset, dict)

_UNION_TYPES: tuple[Any, ...] = (Union, types.UnionType)


def is_primitive(tp: Any) -> bool:
    return tp in PRIMITIVE_TYPES


def unwrap_annotated(tp: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, *metadata]`` into ``(T, metadata)``."""
    if get_origin(tp) is Annotated:
        args = get_args(tp)
        return args[0], tuple(args[1:])
    return tp, ()


def is_any(tp: Any) -> bool:
    return tp is Any or tp is object or tp is inspect.Parameter.empty


def is_union(tp: Any) -> bool:
    return get_origin(tp) in _UNION_TYPES


def is_optional(tp: Any) -> bool:
    return is_union(tp) and type(None) in get_args(tp)


def collection_shape(tp: Any) -> tuple[CollectionShape, Any] | None:
    """Return the collection shape and element type of ``tp``, or ``None``.

    ``tuple[T, ...]`` and bare ``tuple`` are arrays; ``list[T]`` and the
    abstract sequence types a list satisfies are lists. Fixed-size tuples and
    ``str`` are not collection shaped.
    """
    tp, _ = unwrap_annotated(tp)
    if tp is tuple:
        return CollectionShape.ARRAY, object
    if tp is list:
        return CollectionShape.LIST, object

    origin = get_origin(tp)
    args = get_args(tp)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:  # noqa: PLR2004
            return CollectionShape.ARRAY, args[0]
        return None
    if origin in _LIST_ORIGINS:
        return CollectionShape.LIST, args[0] if args else object
    if tp in _LIST_ORIGINS:
        return CollectionShape.LIST, object
    return None


def build_collection(values: list[Any], shape: CollectionShape) -> Any:
    if shape is CollectionShape.ARRAY:
        return tuple(values)
    return list(values)


def type_default(tp: Any) -> Any:
    """Return the type-intrinsic default of ``tp``.

    Zero for primitives, an empty tuple/list for collection shapes, otherwise ``None``.
    """
    tp, _ = unwrap_annotated(tp)
    if is_any(tp) or is_optional(tp):
        return None
    shape = collection_shape(tp)
    if shape is not None:
        return build_collection([], shape[0])
    if is_primitive(tp):
        return tp()
    return None


def is_array_class(tp: Any) -> bool:
    """Return whether ``tp`` is ``tuple`` or a parameterized tuple."""
    tp, _ = unwrap_annotated(tp)
    return tp is tuple or get_origin(tp) is tuple


def service_key(tp: Any) -> Any:
    """Return the registration key looked up for a parameter annotated ``tp``.

    ``Annotated`` metadata is dropped and ``Optional[X]`` looks up ``X``.
    """
    tp, _ = unwrap_annotated(tp)
    if is_optional(tp):
        arms = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(arms) == 1:
            tp, _ = unwrap_annotated(arms[0])
    return tp


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: Any) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: Any) -> bool:
        """Detect whether ``tp`` is a ``typing.Protocol`` class (safe)."""
        return inspect.isclass(tp) and bool(getattr(tp, "_is_protocol", False)) and tp is not Protocol


def is_runtime_checkable_protocol(tp: Any) -> bool:
    if not is_protocol(tp):
        return False

    try:
        isinstance(None, tp)
    except TypeError:
        return False
    else:
        return True


def is_instance_of(value: Any, tp: Any) -> bool:  # noqa: C901, PLR0911
    """Return whether ``value`` is assignable to the annotation ``tp``."""
    tp, _ = unwrap_annotated(tp)
    if is_any(tp):
        return True
    if tp is None or tp is type(None):
        return value is None

    if isinstance(tp, TypeVar):
        if tp.__bound__ is not None:
            return is_instance_of(value, tp.__bound__)
        if tp.__constraints__:
            return any(is_instance_of(value, c) for c in tp.__constraints__)
        return True

    origin = get_origin(tp)
    if origin in _UNION_TYPES:
        return any(is_instance_of(value, arg) for arg in get_args(tp))
    if origin is Literal:
        return value in get_args(tp)
    if origin is collections.abc.Callable:
        return callable(value)

    if origin is not None:
        if not inspect.isclass(origin) or not isinstance(value, origin):
            return False
        shape = collection_shape(tp)
        if shape is None or not isinstance(value, collections.abc.Collection) or isinstance(value, SCALAR_ITERABLES):
            # Lazy iterables are accepted unchecked; iterating would consume them.
            return True
        return all(is_instance_of(item, shape[1]) for item in value)

    if not inspect.isclass(tp):
        return False
    if is_protocol(tp) and not is_runtime_checkable_protocol(tp):
        # Non runtime-checkable protocols only support nominal conformance.
        return tp in type(value).__mro__
    try:
        return isinstance(value, tp)
    except TypeError:
        return False


def typevar_map(tp: Any) -> dict[Any, Any]:
    """Map the TypeVars of a generic class to the arguments of alias ``tp``."""
    origin = get_origin(tp)
    params = getattr(origin, "__parameters__", ())
    if not params:
        return {}
    return dict(zip(params, get_args(tp)))


def substitute(tp: Any, typevars: typing.Mapping[Any, Any] | None) -> Any:
    if typevars and isinstance(tp, TypeVar):
        return typevars.get(tp, tp)
    return tp


def load_type_hints(func: Any, owner: str) -> dict[str, Any]:
    """Evaluate the annotations of ``func``, logging rather than failing on bad hints."""
    try:
        hints = get_type_hints(func, include_extras=True)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, owner)
        hints = {}

    return cast("dict[str, Any]", hints)


def type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)
