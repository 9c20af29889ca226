from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ._errors import DisposalError, InvalidRegistrationError
from ._factory import ObjectFactory
from ._types import type_name
from ._validation import validate_implementation, validate_instance


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ._provider import ServiceProvider

    Factory = Callable[[Any], Any]


class Lifetime(Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


@runtime_checkable
class Disposable(Protocol):
    """A service holding resources that must be released when its owner goes away."""

    def dispose(self) -> None: ...


def dispose_instance(instance: Any) -> bool:
    """Release ``instance`` through ``dispose()`` or, failing that, ``close()``.

    Returns whether the instance had a disposal capability at all.
    """
    if isinstance(instance, Disposable):
        instance.dispose()
        return True

    close = getattr(instance, "close", None)
    if callable(close):
        close()
        return True
    return False


def dispose_all(items: Iterable[Any], dispose: Callable[[Any], Any]) -> None:
    """Apply ``dispose`` to every item, then raise the collected failures as one ``DisposalError``."""
    errors: list[BaseException] = []
    for item in items:
        try:
            dispose(item)
        except Exception as exc:
            logger.warning("failed to dispose %r", item, exc_info=True)
            errors.append(exc)

    if errors:
        raise DisposalError(errors)


_default_factory: ObjectFactory | None = None


def _get_default_factory() -> ObjectFactory:
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ObjectFactory()
    return _default_factory


class ServiceDescriptor:
    """A recipe for one service type together with its lifetime.

    Exactly one recipe is given: an implementation type constructed by the
    object factory, a factory callable receiving the resolving provider, or a
    pre-built instance (always a singleton, owned by the caller).

    Example:
      ServiceDescriptor.singleton(Clock)
      ServiceDescriptor.scoped(Repository, SqlRepository)
      ServiceDescriptor.transient(Connection, factory=lambda provider: connect(DSN))
      ServiceDescriptor.from_instance(Settings, settings)

    """

    def __init__(
        self,
        service_type: Any,
        lifetime: Lifetime,
        *,
        implementation_type: type | None = None,
        factory: Factory | None = None,
        instance: Any = None,
        validate: bool = True,
    ) -> None:
        if service_type is None:
            msg = "service_type must be provided"
            raise InvalidRegistrationError(msg)

        recipes = [r for r in (implementation_type, factory, instance) if r is not None]
        if len(recipes) != 1:
            msg = "Provide exactly one of `implementation_type`, `factory` or `instance`."
            raise InvalidRegistrationError(msg)

        if factory is not None and not callable(factory):
            msg = f"factory {factory!r} is not callable"
            raise InvalidRegistrationError(msg)

        if validate:
            if implementation_type is not None:
                validate_implementation(service_type, implementation_type)
            elif instance is not None:
                validate_instance(service_type, instance)

        self.service_type = service_type
        self.lifetime = Lifetime.SINGLETON if instance is not None else lifetime
        self.implementation_type = implementation_type
        self.factory = factory
        self._fixed_instance = instance
        self._validate = validate

        self._cached: Any = None
        self._has_cached = False
        self._lock = threading.RLock()

    @classmethod
    def singleton(
        cls,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> ServiceDescriptor:
        return cls._with_lifetime(service_type, implementation_type, factory, Lifetime.SINGLETON)

    @classmethod
    def scoped(
        cls,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> ServiceDescriptor:
        return cls._with_lifetime(service_type, implementation_type, factory, Lifetime.SCOPED)

    @classmethod
    def transient(
        cls,
        service_type: Any,
        implementation_type: type | None = None,
        *,
        factory: Factory | None = None,
    ) -> ServiceDescriptor:
        return cls._with_lifetime(service_type, implementation_type, factory, Lifetime.TRANSIENT)

    @classmethod
    def from_instance(cls, service_type: Any, instance: Any) -> ServiceDescriptor:
        if instance is None:
            msg = "instance must not be None"
            raise InvalidRegistrationError(msg)
        return cls(service_type, Lifetime.SINGLETON, instance=instance)

    @classmethod
    def _with_lifetime(
        cls,
        service_type: Any,
        implementation_type: type | None,
        factory: Factory | None,
        lifetime: Lifetime,
    ) -> ServiceDescriptor:
        if implementation_type is None and factory is None:
            # the service type doubles as its own implementation
            implementation_type = service_type
        return cls(service_type, lifetime, implementation_type=implementation_type, factory=factory)

    @property
    def implementation_instance(self) -> Any:
        """The registered instance, or the cached one; ``None`` when nothing is cached."""
        if self._fixed_instance is not None:
            return self._fixed_instance
        with self._lock:
            return self._cached

    @property
    def is_instantiated(self) -> bool:
        return self._fixed_instance is not None or self._has_cached

    def create_instance(self, provider: ServiceProvider | None = None) -> Any:
        """Build a new instance from the recipe, ignoring any cached one."""
        if self._fixed_instance is not None:
            return self._fixed_instance

        if self.factory is not None:
            instance = self.factory(provider)
            if self._validate and instance is not None:
                validate_instance(self.service_type, instance)
            return instance

        if provider is not None:
            return provider.create_instance(self.implementation_type)
        return _get_default_factory().create_instance(self.implementation_type)

    def get_instance(self, provider: ServiceProvider | None = None) -> Any:
        """Return an instance according to the lifetime.

        Transient descriptors build every time; singleton and scoped ones
        build once and cache until disposed or the scope exits.
        """
        if self._fixed_instance is not None:
            return self._fixed_instance
        if self.lifetime is Lifetime.TRANSIENT:
            return self.create_instance(provider)

        with self._lock:
            if not self._has_cached:
                self._cached = self.create_instance(provider)
                self._has_cached = True
                logger.debug("cached %s instance of %s", self.lifetime.value, type_name(self.service_type))
            return self._cached

    def enter_scope(self) -> None:
        pass

    def exit_scope(self) -> None:
        """Dispose and forget the cached instance of a scoped descriptor."""
        if self.lifetime is Lifetime.SCOPED:
            self.dispose()

    def dispose(self) -> None:
        """Dispose and forget the container-built cached instance.

        Instances supplied at registration belong to the caller and are left alone.
        """
        with self._lock:
            if not self._has_cached:
                return
            instance = self._cached
            self._cached = None
            self._has_cached = False

        if instance is not None and dispose_instance(instance):
            logger.debug("disposed %s instance of %s", self.lifetime.value, type_name(self.service_type))

    def __repr__(self) -> str:
        if self._fixed_instance is not None:
            recipe = f"instance={self._fixed_instance!r}"
        elif self.factory is not None:
            recipe = f"factory={type_name(self.factory)}"
        else:
            recipe = f"implementation_type={type_name(self.implementation_type)}"
        return f"ServiceDescriptor({type_name(self.service_type)}, {self.lifetime.name}, {recipe})"
