from __future__ import annotations

import inspect
from typing import Any

from ._errors import ImplementationMismatchError, InvalidRegistrationError
from ._types import is_protocol, is_runtime_checkable_protocol, load_type_hints, type_name


_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def validate_implementation(service_type: Any, impl: type) -> None:
    """Validate that ``impl`` implements ``service_type``.

    - For normal classes/ABCs: require issubclass(impl, service_type).
    - For Protocols: check nominal conformance via the MRO; otherwise perform
      structural conformance.

    Generic aliases are validated against their origin class; anything that
    is not a class cannot be validated statically and is accepted.
    """
    service_cls = getattr(service_type, "__origin__", service_type)
    if not inspect.isclass(service_cls):
        return
    impl = getattr(impl, "__origin__", impl)
    if not inspect.isclass(impl):
        msg = f"Implementation {impl!r} is not a class"
        raise InvalidRegistrationError(msg)

    if not is_protocol(service_cls):
        if not issubclass(impl, service_cls):
            msg = f"Implementation {impl.__name__} must be a subclass of {service_cls.__name__}"
            raise ImplementationMismatchError(msg)
        return

    _validate_protocol_impl(service_cls, impl)


def validate_instance(service_type: Any, instance: Any) -> None:
    """Validate a pre-built instance; runtime-checkable protocols also get an ``isinstance`` check."""
    validate_implementation(service_type, type(instance))

    service_cls = getattr(service_type, "__origin__", service_type)
    if is_runtime_checkable_protocol(service_cls) and not isinstance(instance, service_cls):
        msg = f"Instance of {type(instance).__name__} does not implement runtime protocol {service_cls.__name__}"
        raise ImplementationMismatchError(msg)


def _validate_protocol_impl(proto_cls: type, impl: type) -> None:
    if proto_cls in impl.__mro__:
        return

    _validate_protocol_structural_conformance(proto_cls, impl)


def _positional_arity(params: list[inspect.Parameter]) -> int:
    return sum(1 for p in params if p.kind in _POSITIONAL and p.default is inspect.Parameter.empty)


def _validate_protocol_structural_conformance(proto_cls: type, impl: type) -> None:  # noqa: C901
    """Best-effort structural conformance: presence + basic callable arity + return type checks."""
    missing: list[str] = []
    signature_mismatches: list[str] = []

    proto_hints = load_type_hints(proto_cls, type_name(proto_cls))

    # attributes required by annotations
    for name in proto_hints:
        if name.startswith("_"):
            continue
        if not hasattr(impl, name):
            missing.append(name)

    for name, proto_attr in proto_cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(proto_attr):
            continue

        if not hasattr(impl, name):
            missing.append(name)
            continue

        impl_attr = getattr(impl, name)
        if not callable(impl_attr):
            signature_mismatches.append(f"{name}: not callable on {impl.__name__}")
            continue

        try:
            proto_sig = inspect.signature(proto_attr)
            impl_sig = inspect.signature(impl_attr)
        except (TypeError, ValueError) as e:
            signature_mismatches.append(f"{name}: unable to compare signatures ({e})")
            continue

        proto_params = [p for p in proto_sig.parameters.values() if p.name != "self"]
        impl_params = [p for p in impl_sig.parameters.values() if p.name != "self"]
        if _positional_arity(impl_params) < _positional_arity(proto_params):
            signature_mismatches.append(
                f"{name}: impl has fewer required positional params "
                f"({_positional_arity(impl_params)}) than protocol "
                f"({_positional_arity(proto_params)})"
            )

        proto_ret = load_type_hints(proto_attr, type_name(proto_attr)).get("return", Any)
        impl_ret = load_type_hints(impl_attr, type_name(impl_attr)).get("return", Any)
        if proto_ret is not Any and impl_ret is not Any and not _is_return_type_compatible(impl_ret, proto_ret):
            signature_mismatches.append(
                f"{name}: return type {impl_ret!r} is not compatible with protocol return type {proto_ret!r}"
            )

    if missing or signature_mismatches:
        msgs = []
        if missing:
            msgs.append(f"missing members: {', '.join(missing)}")
        if signature_mismatches:
            msgs.append(f"signature mismatches: {', '.join(signature_mismatches)}")

        msg = (
            f"Implementation {impl.__name__} does not structurally conform to protocol "
            f"{proto_cls.__name__}: {'; '.join(msgs)}"
        )
        raise ImplementationMismatchError(msg)


def _is_return_type_compatible(impl_ret: object, proto_ret: object) -> bool:
    if impl_ret == proto_ret:
        return True

    # class-based covariance
    if isinstance(impl_ret, type) and isinstance(proto_ret, type):
        return issubclass(impl_ret, proto_ret)

    # Union, Protocol, TypeVar and the like fail conservatively
    return False
