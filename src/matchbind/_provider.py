from __future__ import annotations

import inspect
import logging
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._descriptor import Lifetime, dispose_all, dispose_instance
from ._errors import CircularDependencyError, MatchbindError, ServiceNotRegisteredError
from ._factory import ObjectFactory
from ._types import type_name


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from types import TracebackType

    from ._descriptor import ServiceDescriptor
    from ._hooks import Hooks
    from ._registry import ServiceRegistry

T = TypeVar("T")

# Service types currently being built in this thread or task, outermost first.
_resolution_stack: ContextVar[tuple[Any, ...]] = ContextVar("matchbind_resolution_stack", default=())


@contextmanager
def _resolving(service_type: Any) -> Iterator[None]:
    stack = _resolution_stack.get()
    if service_type in stack:
        raise CircularDependencyError((*stack[stack.index(service_type) :], service_type))

    token = _resolution_stack.set((*stack, service_type))
    try:
        yield
    finally:
        _resolution_stack.reset(token)


class ServiceProvider:
    """Root resolver over a ``ServiceRegistry``.

    - registered types are built by their descriptor, honoring its lifetime
    - constructor and method parameters are matched by the object factory, with
      this provider as the dependency lookup
    - asking for ``ServiceProvider`` yields the provider itself
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        *,
        hooks: Hooks | None = None,
        object_factory: ObjectFactory | None = None,
    ) -> None:
        if hooks is not None and object_factory is not None:
            msg = "Provide either `hooks` or `object_factory`, not both."
            raise ValueError(msg)

        self._registry = registry
        self._object_factory = object_factory if object_factory is not None else ObjectFactory(hooks=hooks)

    @property
    def registry(self) -> ServiceRegistry:
        return self._registry

    @property
    def object_factory(self) -> ObjectFactory:
        return self._object_factory

    @property
    def hooks(self) -> Hooks:
        return self._object_factory.hooks

    @overload
    def get_service(self, service_type: type[T]) -> T | None: ...

    @overload
    def get_service(self, service_type: Any) -> Any: ...

    def get_service(self, service_type: Any) -> Any:
        """Resolve ``service_type``, or return ``None`` when it is not registered."""
        _, instance = self.try_get_service(service_type)
        return instance

    @overload
    def get_required_service(self, service_type: type[T]) -> T: ...

    @overload
    def get_required_service(self, service_type: Any) -> Any: ...

    def get_required_service(self, service_type: Any) -> Any:
        ok, instance = self.try_get_service(service_type)
        if not ok:
            msg = f"No registration found for service type: {type_name(service_type)}"
            raise ServiceNotRegisteredError(msg)
        return instance

    def try_get_service(self, service_type: Any) -> tuple[bool, Any]:
        """Resolve ``service_type`` as ``(ok, instance)``.

        Only a missing registration yields ``(False, None)``; failures while
        building a registered service propagate.
        """
        if service_type is None:
            return False, None
        if self._is_provider_type(service_type):
            return True, self

        ok, descriptor = self._registry.try_get_descriptor(service_type)
        if not ok:
            return False, None

        with _resolving(service_type):
            return True, self._get_instance(descriptor)

    def create_instance(
        self,
        instance_type: Any,
        *positional: Any,
        named: Mapping[str, Any] | None = None,
    ) -> Any:
        """Construct ``instance_type``, filling unmatched parameters from registered services."""
        return self._object_factory.create_instance(
            instance_type, *positional, named=named, services=self.try_get_service
        )

    def try_create_instance(
        self,
        instance_type: Any,
        *positional: Any,
        named: Mapping[str, Any] | None = None,
    ) -> tuple[bool, Any]:
        try:
            return True, self.create_instance(instance_type, *positional, named=named)
        except MatchbindError as exc:
            logger.debug("could not create %s: %s", type_name(instance_type), exc)
            return False, None

    def invoke_method(
        self,
        instance: Any,
        method_name: str,
        *positional: Any,
        named: Mapping[str, Any] | None = None,
    ) -> Any:
        return self._object_factory.invoke_method(
            instance, method_name, *positional, named=named, services=self.try_get_service
        )

    def create_scope(self) -> ServiceScope:
        """Create a scope whose scoped services live until the scope is disposed."""
        return ServiceScope(self)

    def dispose(self) -> None:
        """Dispose every singleton and scoped instance cached by the registry's descriptors."""
        self._registry.dispose()

    def __enter__(self) -> ServiceProvider:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def _is_provider_type(self, service_type: Any) -> bool:
        return inspect.isclass(service_type) and issubclass(service_type, ServiceProvider) and isinstance(
            self, service_type
        )

    def _get_instance(self, descriptor: ServiceDescriptor) -> Any:
        return descriptor.get_instance(self)


class ScopedServiceProvider(ServiceProvider):
    """Resolver for one scope.

    Scoped services are cached per scope and disposed with it; singletons are
    resolved by the root provider so every scope shares them.
    """

    def __init__(self, root: ServiceProvider) -> None:
        super().__init__(root.registry, object_factory=root.object_factory)
        self._root = root
        self._instances: dict[Any, Any] = {}
        self._scope_lock = threading.RLock()

    @property
    def root(self) -> ServiceProvider:
        return self._root

    def create_scope(self) -> ServiceScope:
        return self._root.create_scope()

    def dispose(self) -> None:
        """Dispose the scoped instances built by this scope, most recent first."""
        with self._scope_lock:
            instances = list(self._instances.values())
            self._instances.clear()

        dispose_all(reversed(instances), dispose_instance)

    def _get_instance(self, descriptor: ServiceDescriptor) -> Any:
        if descriptor.lifetime is Lifetime.SINGLETON:
            return descriptor.get_instance(self._root)
        if descriptor.lifetime is Lifetime.TRANSIENT:
            return descriptor.create_instance(self)

        with self._scope_lock:
            key = descriptor.service_type
            if key not in self._instances:
                self._instances[key] = descriptor.create_instance(self)
                logger.debug("cached scoped instance of %s", type_name(key))
            return self._instances[key]


class ServiceScope:
    """A disposable scope; its provider is created on first access."""

    def __init__(self, root: ServiceProvider) -> None:
        self._root = root
        self._provider: ScopedServiceProvider | None = None
        self._lock = threading.RLock()

    @property
    def service_provider(self) -> ScopedServiceProvider:
        with self._lock:
            if self._provider is None:
                self._provider = ScopedServiceProvider(self._root)
            return self._provider

    def dispose(self) -> None:
        with self._lock:
            provider, self._provider = self._provider, None

        if provider is not None:
            provider.dispose()

    def __enter__(self) -> ServiceScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()
