from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ._errors import HookAlreadyHandledError


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ._arguments import DependencyLookup, ParameterInfo
    from ._traverse import ArgumentTraverseContext

    ParameterMatchingHandler = Callable[["ParameterMatchingEvent"], None]
    ValueMatchingHandler = Callable[["ValueMatchingEvent"], None]


class _MatchingEvent:
    def __init__(self) -> None:
        self._handled = False
        self._value: Any = None

    @property
    def handled(self) -> bool:
        return self._handled

    @property
    def value(self) -> Any:
        return self._value

    def set_value(self, value: Any) -> None:
        """Supply the value for this firing. May be called at most once."""
        if self._handled:
            msg = "cannot set value multiple times"
            raise HookAlreadyHandledError(msg)
        self._handled = True
        self._value = value


class ParameterMatchingEvent(_MatchingEvent):
    """Fired for a parameter that no named, positional or dependency value satisfied."""

    def __init__(
        self,
        parameter: ParameterInfo,
        services: DependencyLookup | None,
        named: Mapping[str, Any] | None,
        arguments: ArgumentTraverseContext | None,
    ) -> None:
        super().__init__()
        self.parameter = parameter
        self.services = services
        self.named = named
        self.arguments = arguments

    @property
    def parameter_name(self) -> str:
        return self.parameter.name

    @property
    def parameter_type(self) -> Any:
        return self.parameter.annotation


class ValueMatchingEvent(_MatchingEvent):
    """Fired when a value can neither be assigned nor converted to a target type."""

    def __init__(self, target_type: Any, input_type: type, input_value: Any) -> None:
        super().__init__()
        self.target_type = target_type
        self.input_type = input_type
        self.input_value = input_value


class Hooks:
    """Extensibility hooks owned by one container.

    Handlers run in subscription order; each receives the same event object,
    so a handler should check ``event.handled`` before calling ``set_value``.

    Example:
      hooks = Hooks()

      @hooks.on_value_matching
      def parse_path(event):
          if event.target_type is Path and isinstance(event.input_value, str):
              event.set_value(Path(event.input_value))

    """

    def __init__(self) -> None:
        self._parameter_matching: list[ParameterMatchingHandler] = []
        self._value_matching: list[ValueMatchingHandler] = []

    def on_parameter_matching(self, handler: ParameterMatchingHandler) -> ParameterMatchingHandler:
        self._parameter_matching.append(handler)
        return handler

    def on_value_matching(self, handler: ValueMatchingHandler) -> ValueMatchingHandler:
        self._value_matching.append(handler)
        return handler

    def unsubscribe(self, handler: Callable[..., None]) -> bool:
        """Remove ``handler`` from every event it is subscribed to."""
        removed = False
        for handlers in (self._parameter_matching, self._value_matching):
            while handler in handlers:
                handlers.remove(handler)
                removed = True
        return removed

    def raise_parameter_matching(
        self,
        parameter: ParameterInfo,
        services: DependencyLookup | None,
        named: Mapping[str, Any] | None,
        arguments: ArgumentTraverseContext | None,
    ) -> ParameterMatchingEvent | None:
        if not self._parameter_matching:
            return None

        event = ParameterMatchingEvent(parameter, services, named, arguments)
        for handler in list(self._parameter_matching):
            handler(event)
        if event.handled:
            logger.debug("parameter %s supplied by hook", parameter.name)
        return event

    def raise_value_matching(self, target_type: Any, input_type: type, input_value: Any) -> ValueMatchingEvent | None:
        if not self._value_matching:
            return None

        event = ValueMatchingEvent(target_type, input_type, input_value)
        for handler in list(self._value_matching):
            handler(event)
        return event
