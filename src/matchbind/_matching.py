from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ._convert import convert, is_convertible
from ._types import SCALAR_ITERABLES, build_collection, collection_shape, is_instance_of, unwrap_annotated


if TYPE_CHECKING:
    from ._hooks import Hooks


def match_value(target: Any, value: Any, hooks: Hooks | None = None) -> tuple[bool, Any]:
    """Decide whether ``value`` can satisfy ``target``.

    Tries assignability, then a primitive conversion, then the value matching
    hook. Returns ``(ok, value)`` and never raises for a failed conversion.
    """
    if is_instance_of(value, target):
        return True, value

    target, _ = unwrap_annotated(target)
    source = type(value)
    if is_convertible(target) and is_convertible(source):
        ok, converted = convert(value, target)
        if ok:
            return True, converted

    if hooks is not None:
        event = hooks.raise_value_matching(target, source, value)
        if event is not None and event.handled:
            return True, event.value

    return False, None


def coerce_to_collection(
    value: Any,
    target: Any,
    *,
    allow_empty: bool,
    hooks: Hooks | None = None,
) -> tuple[bool, Any]:
    """Build the tuple/list ``target`` from a single value or an iterable of values.

    Elements that do not match the element type are dropped.
    """
    shape = collection_shape(target)
    if shape is None:
        return False, None

    kind, element_type = shape
    values = _to_list(value, element_type, hooks)
    if not values and not allow_empty:
        return False, None
    return True, build_collection(values, kind)


def _to_list(value: Any, element_type: Any, hooks: Hooks | None) -> list[Any]:
    ok, matched = match_value(element_type, value, hooks)
    if ok:
        return [matched]

    if not isinstance(value, Iterable) or isinstance(value, SCALAR_ITERABLES):
        return []

    result = []
    for item in value:
        ok, matched = match_value(element_type, item, hooks)
        if ok:
            result.append(matched)
    return result
