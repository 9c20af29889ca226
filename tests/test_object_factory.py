import unittest
from collections.abc import Callable
from typing import Union

import pytest

from matchbind import (
    ArgumentMatchedResult,
    Hooks,
    NoMatchingCallableError,
    ObjectFactory,
    UnresolvableAbstractError,
    UnresolvableArrayError,
    UnresolvableEnumError,
    UnresolvableInterfaceError,
    UnresolvableNonClassError,
    UnresolvableTypeError,
    find_best_match,
)

from fakes import (
    AbstractObject,
    EnumTest,
    Formatter,
    GenericObject,
    IFake,
    Int,
    MethodTests,
    Point,
    StructObject,
    SupportsValue,
)


class TestCreateInstance(unittest.TestCase):
    factory: ObjectFactory

    def setUp(self):
        self.factory = ObjectFactory()

    def test_create_uses_declared_default(self):
        val = self.factory.create_instance(Int)
        assert val.value == 0

    def test_create_with_positional_value(self):
        assert self.factory.create_instance(Int, 5).value == 5

    def test_create_with_named_value(self):
        assert self.factory.create_instance(Int, named={"Value": "12"}).value == 12

    def test_create_dataclass(self):
        assert self.factory.create_instance(StructObject, 5).value == 5
        assert self.factory.create_instance(StructObject).value == 10

    def test_create_generic_substitutes_type_arguments(self):
        assert self.factory.create_instance(GenericObject[int], 10).value == 10
        assert self.factory.create_instance(GenericObject[int], "10").value == 10

        doubled = self.factory.create_instance(GenericObject[float])
        assert doubled.value == 0.0
        assert isinstance(doubled.value, float)

    def test_create_picks_best_scoring_constructor(self):
        parsed = self.factory.create_instance(Point, "3,4")
        assert (parsed.x, parsed.y, parsed.parsed) == (3, 4, True)

        direct = self.factory.create_instance(Point, 1, 2)
        assert (direct.x, direct.y, direct.parsed) == (1, 2, False)

    def test_constructor_exception_propagates_unwrapped(self):
        class Failing:
            def __init__(self, value: int = 0):
                msg = f"bad value {value}"
                raise ValueError(msg)

        with pytest.raises(ValueError, match="bad value 3"):
            self.factory.create_instance(Failing, 3)

    def test_hooks_are_shared_with_matching(self):
        hooks = Hooks()
        factory = ObjectFactory(hooks=hooks)

        @hooks.on_parameter_matching
        def fill(event):
            if event.parameter_type is IFake:
                event.set_value("from hook")

        class NeedsFake:
            def __init__(self, fake: IFake):
                self.fake = fake

        assert factory.hooks is hooks
        assert factory.create_instance(NeedsFake).fake == "from hook"


class TestRejectedTypes(unittest.TestCase):
    factory: ObjectFactory

    def setUp(self):
        self.factory = ObjectFactory()

    def test_array_types_are_rejected(self):
        for tp in (tuple[int, ...], tuple, tuple[int, str]):
            with pytest.raises(UnresolvableArrayError):
                self.factory.create_instance(tp, 10)

    def test_enum_is_rejected(self):
        with pytest.raises(UnresolvableEnumError):
            self.factory.create_instance(EnumTest)

    def test_protocol_is_rejected(self):
        with pytest.raises(UnresolvableInterfaceError):
            self.factory.create_instance(SupportsValue)

    def test_abstract_classes_are_rejected(self):
        with pytest.raises(UnresolvableAbstractError):
            self.factory.create_instance(AbstractObject)
        with pytest.raises(UnresolvableAbstractError):
            self.factory.create_instance(IFake)

    def test_non_class_types_are_rejected(self):
        with pytest.raises(UnresolvableNonClassError):
            self.factory.create_instance(Union[int, str])
        with pytest.raises(UnresolvableNonClassError):
            self.factory.create_instance(None)

    def test_callable_type_is_unresolvable(self):
        with pytest.raises(UnresolvableTypeError):
            self.factory.create_instance(Callable[[], None])

    def test_rejection_happens_before_matching(self):
        hooks = Hooks()
        events = []
        hooks.on_parameter_matching(events.append)
        hooks.on_value_matching(events.append)

        with pytest.raises(UnresolvableEnumError):
            ObjectFactory(hooks=hooks).create_instance(EnumTest, "A")

        assert events == []

    def test_unresolvable_errors_are_type_errors(self):
        with pytest.raises(TypeError, match="cannot create instance of enum type"):
            self.factory.create_instance(EnumTest)


class TestPrimitiveConstruction(unittest.TestCase):
    factory: ObjectFactory

    def setUp(self):
        self.factory = ObjectFactory()

    def test_positional_exact_type(self):
        assert self.factory.create_instance(int, 5) == 5

    def test_named_value_entry_comes_first(self):
        assert self.factory.create_instance(int, 1, named={"value": 2}) == 2

    def test_exact_type_beats_convertible_value(self):
        assert self.factory.create_instance(int, "7", 8) == 8

    def test_convertible_value_is_converted(self):
        assert self.factory.create_instance(float, "x", 4) == 4.0

    def test_other_named_values_are_the_last_resort(self):
        assert self.factory.create_instance(str, named={"name": 3}) == "3"

    def test_no_usable_value_raises(self):
        with pytest.raises(NoMatchingCallableError):
            self.factory.create_instance(int)
        with pytest.raises(NoMatchingCallableError):
            self.factory.create_instance(int, "abc")


class TestContainerConstruction(unittest.TestCase):
    factory: ObjectFactory

    def setUp(self):
        self.factory = ObjectFactory()

    def test_unmatched_inputs_build_an_empty_container(self):
        assert self.factory.create_instance(list[int], 10) == []
        assert self.factory.create_instance(set) == set()
        assert self.factory.create_instance(dict[str, int], "ab") == {}

    def test_iterable_input_is_copied(self):
        values = (1, 2)

        assert self.factory.create_instance(list[int], values) == [1, 2]
        assert self.factory.create_instance(frozenset, named={"items": [3, 3]}) == frozenset({3})

    def test_mapping_input_is_copied_into_dict(self):
        source = {"a": 1}

        built = self.factory.create_instance(dict, [("x", 0)], source)

        assert built == source
        assert built is not source


class TestInvokeMethod(unittest.TestCase):
    factory: ObjectFactory

    def setUp(self):
        self.factory = ObjectFactory()

    def test_invoke_returns_result_and_mutates_instance(self):
        val = self.factory.create_instance(Int)

        assert self.factory.invoke_method(val, "change", 10) == 10
        assert val.value == 10

    def test_invoke_propagates_callee_exception(self):
        val = Int()

        with pytest.raises(RuntimeError, match="content defined"):
            self.factory.invoke_method(val, "try_throw")

    def test_invoke_variadic_collects_everything(self):
        assert self.factory.invoke_method(Int(), "optional_parameters", "str", 1, 2, 3, 4) == "objects: 5"

    def test_invoke_selects_overload_by_score(self):
        formatter = Formatter()

        assert self.factory.invoke_method(formatter, "render", Point(1, 2)) == "point:1,2"
        assert self.factory.invoke_method(formatter, "render", "7") == "int:7"

    def test_invoke_unknown_or_private_method_raises(self):
        with pytest.raises(NoMatchingCallableError):
            self.factory.invoke_method(Int(), "missing")
        with pytest.raises(NoMatchingCallableError):
            self.factory.invoke_method(Int(), "__init__")

    def test_invoke_on_none_raises(self):
        with pytest.raises(ValueError, match="instance"):
            self.factory.invoke_method(None, "change")


class TestCollectionParameters(unittest.TestCase):
    factory: ObjectFactory
    obj: MethodTests

    def setUp(self):
        self.factory = ObjectFactory()
        self.obj = MethodTests()

    def _invoke(self, name, *positional, named=None):
        return self.factory.invoke_method(self.obj, name, *positional, named=named)

    def test_missing_collection_gets_empty_default(self):
        assert self._invoke("array_size") == 0
        assert self._invoke("array_sum") == 0
        assert self._invoke("list_size") == 0
        assert self._invoke("list_sum") == 0

    def test_positional_collection(self):
        assert self._invoke("array_size", (1, 2, 3)) == 3
        assert self._invoke("array_sum", (1, 2, 3)) == 6
        assert self._invoke("list_size", (1, 2, 3)) == 3
        assert self._invoke("list_sum", (1, 2, 3)) == 6

    def test_named_collection(self):
        named = {"array": [1, 2, 3], "values": [1, 2, 3]}

        assert self._invoke("array_size", named=named) == 3
        assert self._invoke("array_sum", named=named) == 6
        assert self._invoke("list_size", named=named) == 3
        assert self._invoke("list_sum", named=named) == 6

    def test_named_scalar_becomes_single_element(self):
        named = {"array": 10, "values": 10}

        assert self._invoke("array_size", named=named) == 1
        assert self._invoke("array_sum", named=named) == 10
        assert self._invoke("list_size", named=named) == 1
        assert self._invoke("list_sum", named=named) == 10

    def test_named_strings_are_converted_and_invalid_ones_dropped(self):
        named = {"values": ["1", "2", "3", "a"]}

        assert self._invoke("list_size", named=named) == 3
        assert self._invoke("list_sum", named=named) == 6


class TestInvokeContext(unittest.TestCase):
    def test_prepared_call_can_be_invoked_later(self):
        val = Int()
        ctx = ObjectFactory().create_invoke_context(val.change, "5")

        assert ctx.score == 10.0
        assert ctx.arguments == (5,)
        assert val.value == 0
        assert ctx.invoke() == 5
        assert val.value == 5


class TestFindBestMatch(unittest.TestCase):
    @staticmethod
    def _result(score, passed=True):
        return ArgumentMatchedResult(method=print, parameters=(), arguments=(), score=score, passed=passed)

    def test_highest_score_wins(self):
        low, high = self._result(5.0), self._result(7.5)
        assert find_best_match([low, high]) is high

    def test_ties_keep_the_first(self):
        first, second = self._result(10.0), self._result(10.0)
        assert find_best_match([first, second]) is first

    def test_failed_and_zero_scores_never_win(self):
        assert find_best_match([self._result(0.0), self._result(10.0, passed=False)]) is None
        assert find_best_match([]) is None
