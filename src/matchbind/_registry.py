from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from ._descriptor import dispose_all
from ._errors import InvalidRegistrationError, ServiceNotRegisteredError
from ._provider import ServiceProvider
from ._types import type_name


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ._descriptor import ServiceDescriptor


class ServiceRegistry:
    """Descriptors keyed by service type, at most one per type.

    Example:
      registry = ServiceRegistry()
      registry.add(ServiceDescriptor.singleton(Clock))
      registry.add(ServiceDescriptor.scoped(Repository, SqlRepository))
      provider = registry.build_provider()

    """

    def __init__(self, descriptors: Iterable[ServiceDescriptor] = ()) -> None:
        self._descriptors: dict[Any, ServiceDescriptor] = {}
        self._lock = threading.RLock()
        for descriptor in descriptors:
            self.add(descriptor)

    def add(self, descriptor: ServiceDescriptor, *, replace: bool = False) -> bool:
        """Register ``descriptor``; return ``False`` when its type is taken and ``replace`` is not set."""
        if descriptor is None:
            msg = "descriptor must not be None"
            raise InvalidRegistrationError(msg)

        key = descriptor.service_type
        with self._lock:
            if key in self._descriptors and not replace:
                logger.debug("%s is already registered, keeping the existing descriptor", type_name(key))
                return False
            self._descriptors[key] = descriptor

        logger.debug("registered %r", descriptor)
        return True

    def remove(self, descriptor: ServiceDescriptor) -> bool:
        """Remove ``descriptor`` only if it is the very one registered for its type."""
        if descriptor is None:
            return False

        key = descriptor.service_type
        with self._lock:
            if self._descriptors.get(key) is not descriptor:
                return False
            del self._descriptors[key]

        logger.debug("removed %r", descriptor)
        return True

    def get_descriptor(self, service_type: Any) -> ServiceDescriptor:
        ok, descriptor = self.try_get_descriptor(service_type)
        if not ok:
            msg = f"No registration found for service type: {type_name(service_type)}"
            raise ServiceNotRegisteredError(msg)
        return descriptor

    def try_get_descriptor(self, service_type: Any) -> tuple[bool, ServiceDescriptor | None]:
        if service_type is None:
            return False, None

        with self._lock:
            descriptor = self._descriptors.get(service_type)
        return descriptor is not None, descriptor

    def get_descriptors(self) -> list[ServiceDescriptor]:
        with self._lock:
            return list(self._descriptors.values())

    def enter_scope(self) -> None:
        for descriptor in self.get_descriptors():
            descriptor.enter_scope()

    def exit_scope(self) -> None:
        """Dispose and clear the cached instance of every scoped descriptor."""
        dispose_all(self.get_descriptors(), lambda descriptor: descriptor.exit_scope())

    def dispose(self) -> None:
        """Dispose every container-built cached instance."""
        dispose_all(self.get_descriptors(), lambda descriptor: descriptor.dispose())

    def build_provider(self, **options: Any) -> ServiceProvider:
        """Create a root provider over this registry; ``options`` go to ``ServiceProvider``."""
        return ServiceProvider(self, **options)

    def __contains__(self, service_type: object) -> bool:
        with self._lock:
            return service_type in self._descriptors

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors)

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self.get_descriptors())
