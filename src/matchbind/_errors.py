from __future__ import annotations

from typing import Any


class MatchbindError(Exception):
    """Base class for every failure raised by matchbind.

    Catch this type to handle any container error path without matching each
    concrete exception class individually.
    """


class InvalidRegistrationError(MatchbindError, ValueError):
    """Signal a malformed registration.

    Raised when a descriptor is built with zero or several recipes, when a
    ``None`` descriptor is added to a registry, or when a service type is missing.
    """


class ImplementationMismatchError(InvalidRegistrationError, TypeError):
    """Signal that an implementation type or instance does not conform to its service type."""


class ServiceNotRegisteredError(MatchbindError, KeyError):
    """Signal that no descriptor is registered for a service type."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class ResolutionError(MatchbindError, RuntimeError):
    pass


class NoMatchingCallableError(ResolutionError):
    """Signal that no constructor or method candidate scored above zero."""


class CircularDependencyError(ResolutionError):
    """Signal a registration graph that depends on itself."""

    def __init__(self, chain: tuple[Any, ...]) -> None:
        self.chain = chain
        names = " -> ".join(getattr(t, "__qualname__", repr(t)) for t in chain)
        super().__init__(f"circular dependency detected: {names}")


class UnresolvableTypeError(ResolutionError, TypeError):
    """Signal a target type that can never be instantiated.

    Raised eagerly, before any parameter matching takes place.
    """


class UnresolvableArrayError(UnresolvableTypeError):
    pass


class UnresolvableEnumError(UnresolvableTypeError):
    pass


class UnresolvableAbstractError(UnresolvableTypeError):
    pass


class UnresolvableInterfaceError(UnresolvableTypeError):
    pass


class UnresolvableNonClassError(UnresolvableTypeError):
    pass


class HookAlreadyHandledError(MatchbindError, RuntimeError):
    """Signal that a hook handler tried to supply a value twice for one firing."""


class DisposalError(MatchbindError):
    """Signal that one or more cached instances failed to dispose.

    Every instance is still attempted; ``errors`` holds each failure in order.
    """

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = errors
        super().__init__(f"{len(errors)} instance(s) failed to dispose")
