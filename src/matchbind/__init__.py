"""Inversion-of-control container driven by argument matching.

Constructors and methods are called by matching candidate inputs (positional
values, named values, registered services and user hooks) against their
parameters. Each candidate overload is scored and the best fully bound one is
invoked.

Exports:
- `ServiceDescriptor`, `Lifetime`: a recipe for a service and how long its instance lives.
- `ServiceRegistry`: descriptors keyed by service type; builds providers.
- `ServiceProvider`, `ServiceScope`, `ScopedServiceProvider`: resolution, with
  per-scope caching and disposal of scoped services.
- `ObjectFactory`: scored constructor and method overload resolution, usable
  without a container.
- `Hooks`: parameter matching and value matching extension points.
- `Out`, `constructor`, `overload_of`: markers for output-only parameters,
  alternative constructors and extra method overloads.
"""

from ._arguments import ArgumentMatchedResult, ParameterInfo, describe_parameters, match_arguments
from ._convert import convert, is_convertible
from ._descriptor import Disposable, Lifetime, ServiceDescriptor, dispose_instance
from ._errors import (
    CircularDependencyError,
    DisposalError,
    HookAlreadyHandledError,
    ImplementationMismatchError,
    InvalidRegistrationError,
    MatchbindError,
    NoMatchingCallableError,
    ResolutionError,
    ServiceNotRegisteredError,
    UnresolvableAbstractError,
    UnresolvableArrayError,
    UnresolvableEnumError,
    UnresolvableInterfaceError,
    UnresolvableNonClassError,
    UnresolvableTypeError,
)
from ._factory import MethodInvokeContext, ObjectFactory, find_best_match
from ._hooks import Hooks, ParameterMatchingEvent, ValueMatchingEvent
from ._markers import Out, OutMarker, constructor, overload_of
from ._matching import coerce_to_collection, match_value
from ._provider import ScopedServiceProvider, ServiceProvider, ServiceScope
from ._registry import ServiceRegistry
from ._traverse import ArgumentTraverseContext


__all__ = [
    "ArgumentMatchedResult",
    "ArgumentTraverseContext",
    "CircularDependencyError",
    "DisposalError",
    "Disposable",
    "HookAlreadyHandledError",
    "Hooks",
    "ImplementationMismatchError",
    "InvalidRegistrationError",
    "Lifetime",
    "MatchbindError",
    "MethodInvokeContext",
    "NoMatchingCallableError",
    "ObjectFactory",
    "Out",
    "OutMarker",
    "ParameterInfo",
    "ParameterMatchingEvent",
    "ResolutionError",
    "ScopedServiceProvider",
    "ServiceDescriptor",
    "ServiceNotRegisteredError",
    "ServiceProvider",
    "ServiceRegistry",
    "ServiceScope",
    "UnresolvableAbstractError",
    "UnresolvableArrayError",
    "UnresolvableEnumError",
    "UnresolvableInterfaceError",
    "UnresolvableNonClassError",
    "UnresolvableTypeError",
    "ValueMatchingEvent",
    "coerce_to_collection",
    "constructor",
    "convert",
    "describe_parameters",
    "dispose_instance",
    "find_best_match",
    "is_convertible",
    "match_arguments",
    "match_value",
    "overload_of",
]
