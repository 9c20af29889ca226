from typing import Annotated, Optional

import pytest

from matchbind import (
    CircularDependencyError,
    DisposalError,
    Hooks,
    NoMatchingCallableError,
    ObjectFactory,
    ResolutionError,
    ServiceDescriptor,
    ServiceNotRegisteredError,
    ServiceProvider,
    ServiceRegistry,
)

from fakes import Closable, Exploding, FakeA, IFake, Int, Resource, TakeArguments


class Chicken:
    def __init__(self, egg: "Egg"):
        self.egg = egg


class Egg:
    def __init__(self, chicken: Chicken):
        self.chicken = chicken


@pytest.fixture
def provider():
    registry = ServiceRegistry(
        [
            ServiceDescriptor.singleton(Int, factory=lambda _: Int(10)),
            ServiceDescriptor.singleton(IFake, FakeA),
        ]
    )
    return registry.build_provider()


def test_create_with_positional_values_and_services(provider):
    args = provider.create_instance(TakeArguments, "match", 4, 0)

    assert (args.fake_value, args.int_value, args.match, args.test_int, args.test_b) == (1, 10, "match", 4, 0)


def test_create_falls_back_to_declared_default(provider):
    args = provider.create_instance(TakeArguments, "match", 4)

    assert (args.fake_value, args.int_value, args.match, args.test_int, args.test_b) == (1, 10, "match", 4, 1)


def test_create_with_named_and_positional_values(provider):
    args = provider.create_instance(TakeArguments, 4, 0, named={"match": "test_match"})

    assert (args.fake_value, args.int_value, args.match, args.test_int, args.test_b) == (1, 10, "test_match", 4, 0)


def test_create_with_named_values_only(provider):
    args = provider.create_instance(TakeArguments, named={"match": "test_match", "testb": 10})

    assert (args.fake_value, args.int_value, args.match, args.test_int, args.test_b) == (1, 10, "test_match", 0, 10)


def test_named_values_win_and_positional_fill_the_rest(provider):
    args = provider.create_instance(TakeArguments, "match", 4, 5, named={"match": "test_match", "testb": 10})

    assert (args.fake_value, args.int_value, args.match, args.test_int, args.test_b) == (1, 10, "test_match", 4, 10)


def test_unregistered_service_is_none(provider):
    assert provider.get_service(Resource) is None
    assert provider.try_get_service(Resource) == (False, None)
    assert provider.try_get_service(None) == (False, None)


def test_required_service_raises_key_error(provider):
    with pytest.raises(ServiceNotRegisteredError):
        provider.get_required_service(Resource)


def test_provider_resolves_itself(provider):
    assert provider.get_service(ServiceProvider) is provider
    assert provider.get_required_service(ServiceProvider) is provider


def test_singletons_are_shared(provider):
    assert provider.get_service(IFake) is provider.get_service(IFake)
    assert provider.get_service(Int).value == 10


def test_dependencies_are_resolved_recursively():
    class DB: ...

    class Repo:
        def __init__(self, db: DB):
            self.db = db

    class Service:
        def __init__(self, repo: Repo):
            self.repo = repo

    registry = ServiceRegistry(
        [
            ServiceDescriptor.singleton(DB),
            ServiceDescriptor.transient(Repo),
            ServiceDescriptor.transient(Service),
        ]
    )
    provider = registry.build_provider()

    svc = provider.get_required_service(Service)

    assert isinstance(svc.repo, Repo)
    assert svc.repo.db is provider.get_service(DB)


def test_optional_and_annotated_dependencies_are_injected():
    class DB: ...

    class OptionalRepo:
        def __init__(self, db: Optional[DB] = None):
            self.db = db

    class AnnotatedRepo:
        def __init__(self, db: Annotated[DB, "primary"]):
            self.db = db

    provider = ServiceRegistry([ServiceDescriptor.singleton(DB)]).build_provider()

    assert provider.create_instance(OptionalRepo).db is provider.get_service(DB)
    assert provider.create_instance(AnnotatedRepo).db is provider.get_service(DB)


def test_unregistered_dependency_gets_type_default():
    class DB: ...

    class Repo:
        def __init__(self, db: DB):
            self.db = db

    provider = ServiceRegistry().build_provider()

    assert provider.create_instance(Repo).db is None


def test_factory_receives_provider():
    seen = []

    def make_int(services):
        seen.append(services)
        return Int(services.get_service(IFake).value)

    registry = ServiceRegistry(
        [
            ServiceDescriptor.transient(Int, factory=make_int),
            ServiceDescriptor.singleton(IFake, FakeA),
        ]
    )
    provider = registry.build_provider()

    assert provider.get_service(Int).value == 1
    assert seen == [provider]


def test_circular_dependency_is_detected():
    registry = ServiceRegistry([ServiceDescriptor.transient(Chicken), ServiceDescriptor.transient(Egg)])
    provider = registry.build_provider()

    with pytest.raises(CircularDependencyError) as ctx:
        provider.get_service(Chicken)

    assert ctx.value.chain == (Chicken, Egg, Chicken)
    assert "Chicken -> Egg -> Chicken" in str(ctx.value)
    assert isinstance(ctx.value, ResolutionError)


def test_factory_cycle_is_detected():
    registry = ServiceRegistry([ServiceDescriptor.singleton(Int, factory=lambda services: services.get_service(Int))])
    provider = registry.build_provider()

    with pytest.raises(CircularDependencyError):
        provider.get_service(Int)

    # the failed build leaves nothing behind
    with pytest.raises(CircularDependencyError):
        provider.get_service(Int)


def test_try_create_instance(provider):
    ok, val = provider.try_create_instance(Int, 3)
    assert ok is True
    assert val.value == 3

    assert provider.try_create_instance(IFake) == (False, None)


def test_try_create_instance_does_not_swallow_user_errors(provider):
    class Failing:
        def __init__(self):
            msg = "user error"
            raise LookupError(msg)

    with pytest.raises(LookupError):
        provider.try_create_instance(Failing)


def test_invoke_method_uses_services(provider):
    class Handler:
        def handle(self, fake: IFake, amount: int) -> int:
            return fake.value + amount

    assert provider.invoke_method(Handler(), "handle", 41) == 42


def test_invoke_method_without_match_raises(provider):
    with pytest.raises(NoMatchingCallableError):
        provider.invoke_method(Int(), "missing")


def test_provider_hooks_reach_the_matcher():
    hooks = Hooks()

    @hooks.on_parameter_matching
    def default_port(event):
        if event.parameter_name == "port":
            event.set_value(8080)

    class Server:
        def __init__(self, port: int):
            self.port = port

    provider = ServiceRegistry().build_provider(hooks=hooks)

    assert provider.hooks is hooks
    assert provider.create_instance(Server).port == 8080


def test_hooks_and_object_factory_are_exclusive():
    with pytest.raises(ValueError, match="not both"):
        ServiceProvider(ServiceRegistry(), hooks=Hooks(), object_factory=ObjectFactory())


def test_dispose_releases_singletons_and_keeps_registered_instances():
    owned = Closable()
    registry = ServiceRegistry(
        [
            ServiceDescriptor.singleton(Resource),
            ServiceDescriptor.from_instance(Closable, owned),
        ]
    )

    with registry.build_provider() as provider:
        built = provider.get_service(Resource)
        assert provider.get_service(Closable) is owned

    assert built.disposed is True
    assert owned.closed is False


def test_dispose_reports_every_failure():
    registry = ServiceRegistry([ServiceDescriptor.singleton(Exploding), ServiceDescriptor.singleton(Resource)])
    provider = registry.build_provider()
    provider.get_service(Exploding)
    resource = provider.get_service(Resource)

    with pytest.raises(DisposalError) as ctx:
        provider.dispose()

    assert resource.disposed is True
    assert len(ctx.value.errors) == 1
    assert str(ctx.value) == "1 instance(s) failed to dispose"
