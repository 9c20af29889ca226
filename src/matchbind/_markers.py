from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, TypeVar


if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")
F = TypeVar("F")

CONSTRUCTOR_ATTR = "__matchbind_constructor__"
OVERLOAD_OF_ATTR = "__matchbind_overload_of__"


class OutMarker:
    """Metadata marking an output-only parameter.

    Output-only parameters never consume an input; they always receive the
    type-intrinsic default of their annotation.
    """

    def __repr__(self) -> str:
        return "OutMarker()"


if TYPE_CHECKING:
    Out = Annotated[T, OutMarker()]
else:

    class Out:
        """Mark an output-only parameter.

        At runtime ``Out[T]`` resolves to ``Annotated[T, OutMarker()]``.

        Example:
          def try_parse(self, text: str, result: Out[int]) -> bool: ...

        """

        def __class_getitem__(cls, item: Any) -> Any:
            # Annotated flattens nesting, so existing metadata is preserved.
            return Annotated[item, OutMarker()]


def is_out_annotation(metadata: tuple[Any, ...]) -> bool:
    return any(isinstance(item, OutMarker) for item in metadata)


def _marked_function(func: Any) -> Any:
    # classmethod/staticmethod objects carry the real function in __func__
    return getattr(func, "__func__", func)


def constructor(func: F) -> F:
    """Mark a classmethod or staticmethod as an alternative constructor.

    The object factory scores it against the class's ``__init__`` and any other
    marked constructor, and calls whichever matches the inputs best.
    """
    setattr(_marked_function(func), CONSTRUCTOR_ATTR, True)
    return func


def overload_of(name: str) -> Callable[[F], F]:
    """Mark a method as an additional overload of the public method ``name``."""

    def decorator(func: F) -> F:
        setattr(_marked_function(func), OVERLOAD_OF_ATTR, name)
        return func

    return decorator


def is_constructor(member: Any) -> bool:
    return bool(getattr(_marked_function(member), CONSTRUCTOR_ATTR, False))


def overloaded_name(member: Any) -> str | None:
    return getattr(_marked_function(member), OVERLOAD_OF_ATTR, None)
