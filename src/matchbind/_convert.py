"""Explicit conversions between primitive value types.

Each supported ``(source, target)`` pair has its own converter. A pair that is
not in the table is not convertible; a converter that raises is treated as a
failed conversion by :func:`convert`.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
        msg = f"string {value!r} is not a valid boolean"
        raise ValueError(msg)
    return value != 0


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, (float, Decimal)):
        # round() is banker's rounding, matching the usual numeric conversion rules
        return int(round(value))
    return int(value)


_NUMBERS: tuple[type, ...] = (bool, int, float, Decimal)

_CONVERTERS: dict[tuple[type, type], Callable[[Any], Any]] = {}

for _source in (*_NUMBERS, complex):
    _CONVERTERS[(_source, str)] = str

for _source in (bool, float, Decimal, str):
    _CONVERTERS[(_source, int)] = _to_int

for _source in (bool, int, Decimal, str):
    _CONVERTERS[(_source, float)] = float

for _source in (int, float, Decimal, str):
    _CONVERTERS[(_source, bool)] = _to_bool

_CONVERTERS[(bool, Decimal)] = lambda value: Decimal(int(value))
_CONVERTERS[(int, Decimal)] = Decimal
_CONVERTERS[(float, Decimal)] = lambda value: Decimal(str(value))
_CONVERTERS[(str, Decimal)] = lambda value: Decimal(value.strip())

for _source in (bool, int, float, str):
    _CONVERTERS[(_source, complex)] = complex

CONVERTIBLE_TYPES: frozenset[type] = frozenset(t for pair in _CONVERTERS for t in pair)


def is_convertible(tp: Any) -> bool:
    return tp in CONVERTIBLE_TYPES


def convert(value: Any, target: Any) -> tuple[bool, Any]:
    """Convert ``value`` to ``target`` using the registered converter for the pair.

    Returns ``(ok, converted)``; never raises.
    """
    converter = _CONVERTERS.get((type(value), target))
    if converter is None:
        return False, None

    try:
        return True, converter(value)
    except (ValueError, TypeError, ArithmeticError):
        return False, None
