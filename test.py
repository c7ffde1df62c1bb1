#!/usr/bin/python
import numbers
import unittest

import understudy
from understudy import (
    Stubber, Stubbing, Double, Call, Rehearsal, ResponsePlan, StubbingRule,
    StubbingRegistry, SpecialArgument, ANYTHING, IS_A, CONTAINS, ARG_THAT,
    StubbingError, RehearsalError, NO_MATCH, REHEARSED, Explanation,
    match_params, match_arg, deep_equal, contains, is_matcher, format_call,
    find_object_name)


class Even(object):
    """Matcher written without inheriting from SpecialArgument."""

    __understudy_matcher__ = True

    def matches(self, actual):
        return actual % 2 == 0


class Point(object):

    def __init__(self, x, y):
        self.x = x
        self.y = y


class IntegrationTest(unittest.TestCase):

    def setUp(self):
        self.stubber = Stubber()
        self.when = self.stubber.when

    def test_then_return(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(3).then_return("bar")
        self.assertEqual(fetch(3), "bar")
        self.assertEqual(fetch(3), "bar")

    def test_unstubbed_call_returns_none(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(3).then_return("bar")
        self.assertEqual(fetch(4), None)
        self.assertEqual(fetch(), None)
        self.assertEqual(fetch(3, 4), None)

    def test_unstubbed_value_is_configurable(self):
        stubber = Stubber(unstubbed="nope")
        fetch = stubber.function("fetch")
        self.assertEqual(fetch(1), "nope")

    def test_exact_arity(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(1, 2).then_return("pair")
        self.assertEqual(fetch(1), None)
        self.assertEqual(fetch(1, 2, 3), None)
        self.assertEqual(fetch(1, 2), "pair")

    def test_anything_needs_the_slot(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(1, ANYTHING).then_return("ok")
        self.assertEqual(fetch(1, None), "ok")
        self.assertEqual(fetch(1, object()), "ok")
        self.assertEqual(fetch(1), None)

    def test_last_stubbing_wins(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(ANYTHING).then_return("first")
        self.when(fetch)(ANYTHING).then_return("second")
        self.assertEqual(fetch(1), "second")

    def test_narrow_override_of_broad_stubbing(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(ANYTHING).then_return("broad")
        self.when(fetch)(42).then_return("narrow")
        self.assertEqual(fetch(42), "narrow")
        self.assertEqual(fetch(41), "broad")

    def test_exhaustion_falls_back_to_older_stubbing(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(IS_A(numbers.Number)).then_return("foo")
        self.when(fetch)(3).then_return("bar", times=2)
        self.assertEqual([fetch(3), fetch(5), fetch(3), fetch(3)],
                         ["bar", "foo", "bar", "foo"])

    def test_exhausted_stubbing_without_fallback(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(3).then_return("bar", times=1)
        self.assertEqual(fetch(3), "bar")
        self.assertEqual(fetch(3), None)

    def test_sequential_values_repeat_the_last(self):
        speak = self.stubber.function("speak")
        self.when(speak)().then_return("quack", "honk", "moo")
        self.assertEqual([speak(), speak(), speak(), speak()],
                         ["quack", "honk", "moo", "moo"])

    def test_sequential_values_with_times(self):
        speak = self.stubber.function("speak")
        self.when(speak)().then_return("quack", "honk", "moo", times=2)
        self.assertEqual([speak(), speak(), speak()],
                         ["quack", "honk", None])

    def test_ignore_extra_args(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(1).then_return("one", ignore_extra_args=True)
        self.assertEqual(fetch(1), "one")
        self.assertEqual(fetch(1, 2, 3), "one")
        self.assertEqual(fetch(1, flag=True), "one")
        self.assertEqual(fetch(2, 1), None)
        self.assertEqual(fetch(), None)

    def test_ignore_extra_args_with_empty_pattern(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)().then_return("always", ignore_extra_args=True)
        self.assertEqual(fetch(), "always")
        self.assertEqual(fetch(1), "always")
        self.assertEqual(fetch(1, 2, x=3), "always")

    def test_booleans_match_only_booleans(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(1).then_return("one")
        self.when(fetch)(False).then_return("no")
        self.assertEqual(fetch(True), None)
        self.assertEqual(fetch(1), "one")
        self.assertEqual(fetch(0), None)
        self.assertEqual(fetch(False), "no")

    def test_keyword_arguments(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(3, mode="fast").then_return("quick")
        self.assertEqual(fetch(3, mode="fast"), "quick")
        self.assertEqual(fetch(3, mode="slow"), None)
        self.assertEqual(fetch(3), None)
        self.assertEqual(fetch(3, mode="fast", retries=1), None)

    def test_deep_equality_of_arguments(self):
        save = self.stubber.function("save")
        self.when(save)({"a": [1, {"b": 2}]}).then_return("saved")
        self.assertEqual(save({"a": [1, {"b": 2}]}), "saved")
        self.assertEqual(save({"a": [1, {"b": 3}]}), None)

    def test_deep_equality_of_plain_objects(self):
        plot = self.stubber.function("plot")
        self.when(plot)(Point(1, 2)).then_return("plotted")
        self.assertEqual(plot(Point(1, 2)), "plotted")
        self.assertEqual(plot(Point(2, 1)), None)

    def test_contains_deep_partial(self):
        brew = self.stubber.function("brew")
        self.when(brew)(CONTAINS({"container": {"size": "S"}})
                        ).then_return("small")
        self.assertEqual(brew({"ingredient": "beans",
                               "container": {"type": "cup", "size": "S"}}),
                         "small")
        self.assertEqual(brew({"ingredient": "beans",
                               "container": {"type": "cup", "size": "L"}}),
                         None)
        self.assertEqual(brew({}), None)

    def test_arg_that(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(ARG_THAT(lambda x: x > 10)).then_return("big")
        self.assertEqual(fetch(11), "big")
        self.assertEqual(fetch(10), None)

    def test_arg_that_exception_propagates(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(ARG_THAT(lambda x: 1 / x)).then_return("ok")
        self.assertEqual(fetch(1), "ok")
        self.assertRaises(ZeroDivisionError, fetch, 0)

    def test_custom_matcher(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(Even()).then_return("even")
        self.assertEqual(fetch(2), "even")
        self.assertEqual(fetch(3), None)

    def test_first_response_after_configuration(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)("a", b=[1]).then_return(1, 2, 3)
        self.assertEqual(fetch("a", b=[1]), 1)

    def test_then_return_returns_the_double(self):
        fetch = self.stubber.function("fetch")
        self.assertTrue(self.when(fetch)(1).then_return(2) is fetch)

    def test_one_shot_construction_and_stubbing(self):
        fetch = self.when(self.stubber.function("fetch"))(1).then_return(2)
        self.assertEqual(fetch(1), 2)

    def test_rehearsal_callable(self):
        fetch = self.stubber.function("fetch")
        self.when(lambda: fetch(3)).then_return("bar")
        self.assertEqual(fetch(3), "bar")

    def test_rehearsal_is_not_recorded(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(3).then_return("bar")
        self.when(lambda: fetch(4)).then_return("baz")
        self.assertEqual(self.stubber.explain(fetch).call_count, 0)

    def test_rehearsal_does_not_consume_stubbings(self):
        fetch = self.stubber.function("fetch")
        self.when(fetch)(3).then_return("first", times=1)
        self.when(fetch)(3).then_return("second", times=1)
        self.assertEqual(fetch(3), "second")
        self.assertEqual(fetch(3), "first")
        self.assertEqual(fetch(3), None)

    def test_doubles_are_independent(self):
        fetch = self.stubber.function("fetch")
        store = self.stubber.function("store")
        self.when(fetch)(1).then_return("fetched")
        self.assertEqual(store(1), None)
        self.assertEqual(fetch(1), "fetched")

    def test_doubles_as_arguments(self):
        fetch = self.stubber.function("fetch")
        callback = self.stubber.function("callback")
        self.when(fetch)(callback).then_return("called back")
        self.assertEqual(fetch(callback), "called back")
        self.assertEqual(fetch(self.stubber.function("callback")), None)


class StubbingErrorTest(unittest.TestCase):

    def setUp(self):
        self.stubber = Stubber()
        self.fetch = self.stubber.function("fetch")

    def test_then_return_without_values(self):
        stubbing = self.stubber.when(self.fetch)(1)
        self.assertRaises(StubbingError, stubbing.then_return)

    def test_zero_times(self):
        stubbing = self.stubber.when(self.fetch)(1)
        self.assertRaises(StubbingError, stubbing.then_return, 1, times=0)

    def test_negative_times(self):
        stubbing = self.stubber.when(self.fetch)(1)
        self.assertRaises(StubbingError, stubbing.then_return, 1, times=-2)

    def test_non_integer_times(self):
        stubbing = self.stubber.when(self.fetch)(1)
        self.assertRaises(StubbingError, stubbing.then_return, 1, times=1.5)
        self.assertRaises(StubbingError, stubbing.then_return, 1, times=True)

    def test_failed_configuration_adds_no_rule(self):
        stubbing = self.stubber.when(self.fetch)(1)
        self.assertRaises(StubbingError, stubbing.then_return, 1, times=0)
        self.assertEqual(self.fetch.__understudy_registry__.get_rules(), [])

    def test_unknown_option(self):
        stubbing = self.stubber.when(self.fetch)(1)
        self.assertRaises(TypeError, stubbing.then_return, 1, timse=1)

    def test_then_return_before_rehearsal(self):
        stubbing = self.stubber.when(self.fetch)
        self.assertRaises(StubbingError, stubbing.then_return, 1)

    def test_rehearsing_twice(self):
        stubbing = self.stubber.when(self.fetch)(1)
        self.assertRaises(StubbingError, stubbing, 2)

    def test_when_with_invalid_target(self):
        self.assertRaises(StubbingError, self.stubber.when, 42)

    def test_when_with_foreign_double(self):
        other = Stubber().function("other")
        self.assertRaises(StubbingError, self.stubber.when, other)

    def test_is_a_fails_at_configuration(self):
        self.assertRaises(TypeError, IS_A, "int")
        self.assertRaises(TypeError, IS_A, 42)

    def test_arg_that_fails_at_configuration(self):
        self.assertRaises(TypeError, ARG_THAT, "not callable")


class StubbingTest(unittest.TestCase):

    def setUp(self):
        self.stubber = Stubber()
        self.fetch = self.stubber.function("fetch")

    def test_when_double_returns_stubbing(self):
        self.assertEqual(type(self.stubber.when(self.fetch)), Stubbing)

    def test_call_returns_rehearsed_stubbing(self):
        stubbing = self.stubber.when(self.fetch)
        rehearsed = stubbing(1, a=2)
        self.assertTrue(rehearsed is not stubbing)
        self.assertEqual(type(rehearsed), Stubbing)

    def test_then_return_adds_rule(self):
        self.stubber.when(self.fetch)(1, a=2).then_return("x", "y", times=3,
                                                          ignore_extra_args=True)
        [rule] = self.fetch.__understudy_registry__.get_rules()
        self.assertEqual(rule.args, (1,))
        self.assertEqual(rule.kwargs, {"a": 2})
        self.assertEqual(rule.plan.values, ("x", "y"))
        self.assertEqual(rule.times, 3)
        self.assertEqual(rule.ignore_extra_args, True)
        self.assertEqual(rule.usage_count, 0)

    def test_then_return_defaults(self):
        self.stubber.when(self.fetch)().then_return("x")
        [rule] = self.fetch.__understudy_registry__.get_rules()
        self.assertEqual(rule.times, None)
        self.assertEqual(rule.ignore_extra_args, False)


class RehearsalTest(unittest.TestCase):

    def setUp(self):
        self.stubber = Stubber()
        self.fetch = self.stubber.function("fetch")

    def tearDown(self):
        self.stubber.reset()

    def test_capture(self):
        self.stubber.begin_rehearsal(self.fetch)
        self.assertTrue(self.stubber.is_rehearsing())
        self.assertTrue(self.fetch(1, a=2) is REHEARSED)
        rehearsal = self.stubber.end_rehearsal()
        self.assertFalse(self.stubber.is_rehearsing())
        self.assertEqual(rehearsal.double, self.fetch)
        self.assertEqual(rehearsal.args, (1,))
        self.assertEqual(rehearsal.kwargs, {"a": 2})

    def test_capture_any_double(self):
        self.stubber.begin_rehearsal()
        self.fetch(1)
        rehearsal = self.stubber.end_rehearsal()
        self.assertTrue(rehearsal.double is self.fetch)

    def test_other_doubles_act_normally(self):
        store = self.stubber.function("store")
        self.stubber.when(store)(1).then_return("stored")
        self.stubber.begin_rehearsal(self.fetch)
        self.assertEqual(store(1), "stored")
        self.fetch(2)
        self.assertEqual(self.stubber.end_rehearsal().args, (2,))

    def test_capture_does_not_record_or_resolve(self):
        self.stubber.when(self.fetch)(1).then_return("x", times=1)
        self.stubber.begin_rehearsal(self.fetch)
        self.fetch(1)
        self.stubber.end_rehearsal()
        [rule] = self.fetch.__understudy_registry__.get_rules()
        self.assertEqual(rule.usage_count, 0)
        self.assertEqual(self.fetch.__understudy_calls__, [])

    def test_nested_rehearsal(self):
        self.stubber.begin_rehearsal(self.fetch)
        self.assertRaises(RehearsalError, self.stubber.begin_rehearsal)

    def test_nested_when(self):
        when = self.stubber.when
        self.assertRaises(RehearsalError, when,
                          lambda: when(lambda: self.fetch(1)))
        self.assertFalse(self.stubber.is_rehearsing())

    def test_end_without_begin(self):
        self.assertRaises(RehearsalError, self.stubber.end_rehearsal)

    def test_end_without_capture(self):
        self.stubber.begin_rehearsal(self.fetch)
        self.assertRaises(RehearsalError, self.stubber.end_rehearsal)
        self.assertFalse(self.stubber.is_rehearsing())

    def test_callable_invoking_no_double(self):
        self.assertRaises(RehearsalError, self.stubber.when, lambda: None)
        self.assertFalse(self.stubber.is_rehearsing())

    def test_callable_invoking_two_doubles(self):
        store = self.stubber.function("store")
        def rehearse():
            self.fetch(1)
            store(2)
        self.assertRaises(RehearsalError, self.stubber.when, rehearse)
        self.assertFalse(self.stubber.is_rehearsing())

    def test_exception_in_callable_clears_rehearsal(self):
        def rehearse():
            raise KeyError("boom")
        self.assertRaises(KeyError, self.stubber.when, rehearse)
        self.assertFalse(self.stubber.is_rehearsing())

    def test_callable_rehearses_double_of_another_stubber(self):
        other = Stubber()
        fetch = other.function("fetch")
        other.when(fetch)(3).then_return("bar", times=1)
        self.stubber.when(lambda: fetch(3)).then_return("baz")
        [rule, _] = fetch.__understudy_registry__.get_rules()
        self.assertEqual(rule.usage_count, 0)
        self.assertEqual(fetch.__understudy_calls__, [])
        self.assertEqual(fetch(3), "baz")

    def test_nested_rehearsal_across_stubbers(self):
        other = Stubber()
        other.begin_rehearsal()
        self.assertTrue(self.stubber.is_rehearsing())
        self.assertRaises(RehearsalError, self.stubber.begin_rehearsal)
        self.assertRaises(RehearsalError, self.stubber.when,
                          lambda: self.fetch(1))
        self.assertTrue(other.is_rehearsing())
        self.assertEqual(self.fetch.__understudy_calls__, [])

    def test_rehearsal_accepts(self):
        store = self.stubber.function("store")
        self.assertTrue(Rehearsal().accepts(self.fetch))
        self.assertTrue(Rehearsal(self.fetch).accepts(self.fetch))
        self.assertFalse(Rehearsal(self.fetch).accepts(store))

    def test_rehearsal_capture_twice(self):
        rehearsal = Rehearsal()
        rehearsal.capture(self.fetch, (1,), {})
        self.assertRaises(RehearsalError, rehearsal.capture,
                          self.fetch, (2,), {})


class DoubleTest(unittest.TestCase):

    def setUp(self):
        self.stubber = Stubber()

    def test_is_double(self):
        self.assertEqual(type(self.stubber.function()), Double)

    def test_records_calls(self):
        fetch = self.stubber.function("fetch")
        fetch(1, a=2)
        fetch()
        self.assertEqual(fetch.__understudy_calls__,
                         [Call((1,), {"a": 2}), Call()])

    def test_notify_invocation(self):
        fetch = self.stubber.function("fetch")
        self.assertTrue(self.stubber.notify_invocation(fetch, (1,), {})
                        is NO_MATCH)
        self.stubber.when(fetch)(1).then_return("one")
        self.assertEqual(self.stubber.notify_invocation(fetch, (1,), {}),
                         "one")

    def test_stubbed_none_is_returned(self):
        stubber = Stubber(unstubbed="unstubbed")
        fetch = stubber.function("fetch")
        stubber.when(fetch)(1).then_return(None)
        self.assertEqual(fetch(1), None)
        self.assertEqual(fetch(2), "unstubbed")

    def test_repr(self):
        self.assertEqual(repr(self.stubber.function("fetch")),
                         "<Double fetch>")
        self.assertEqual(repr(self.stubber.function()),
                         "<Double (unnamed double)>")

    def test_name_guessed_from_local(self):
        fetch = self.stubber.function()
        fetch()
        self.assertEqual(fetch.__understudy_name__, "fetch")

    def test_name_guessed_on_rehearsal(self):
        lookup = self.stubber.function()
        self.stubber.when(lookup)(1).then_return(2)
        self.assertEqual(lookup.__understudy_name__, "lookup")

    def test_name_guessed_from_self(self):
        self.store = self.stubber.function()
        self.store()
        self.assertEqual(self.store.__understudy_name__, "store")

    def test_given_name_is_kept(self):
        fetch = self.stubber.function("loader")
        fetch()
        self.assertEqual(fetch.__understudy_name__, "loader")

    def test_find_object_name(self):
        obj = object()
        self.assertEqual(find_object_name(obj), "obj")
        self.assertEqual(find_object_name(object()), None)

    def test_call_equality(self):
        self.assertEqual(Call((1,), {"a": 2}), Call([1], {"a": 2}))
        self.assertNotEqual(Call((1,)), Call((2,)))
        self.assertNotEqual(Call((1,)), (1,))
        self.assertEqual(repr(Call((1,), {"a": 2})), "Call((1,), {'a': 2})")


class ExplainTest(unittest.TestCase):

    def setUp(self):
        self.stubber = Stubber()

    def test_empty(self):
        fetch = self.stubber.function("fetch")
        explanation = self.stubber.explain(fetch)
        self.assertEqual(type(explanation), Explanation)
        self.assertEqual(explanation.name, "fetch")
        self.assertEqual(explanation.call_count, 0)
        self.assertEqual(explanation.calls, [])
        self.assertEqual(explanation.description,
                         "This double, fetch, has 0 stubbing(s) "
                         "and 0 call(s).")

    def test_stubbings_and_calls(self):
        fetch = self.stubber.function("fetch")
        self.stubber.when(fetch)(3).then_return("bar", times=2)
        self.stubber.when(fetch)(ANYTHING, mode="fast").then_return("a", "b")
        fetch(3)
        explanation = self.stubber.explain(fetch)
        self.assertEqual(explanation.call_count, 1)
        self.assertEqual(explanation.calls, [Call((3,))])
        self.assertEqual(explanation.description, "\n".join([
            "This double, fetch, has 2 stubbing(s) and 1 call(s).",
            "",
            "Stubbings:",
            "  - when called with `fetch(3)`, then return 'bar', "
            "1 of 2 time(s).",
            "  - when called with `fetch(ANYTHING, mode='fast')`, "
            "then return 'a', then 'b'.",
            "",
            "Calls:",
            "  - called with `fetch(3)`.",
        ]))

    def test_ignored_extra_args_are_described(self):
        fetch = self.stubber.function("fetch")
        self.stubber.when(fetch)().then_return(1, ignore_extra_args=True)
        self.assertTrue("(ignoring extra arguments)" in
                        self.stubber.explain(fetch).description)

    def test_guesses_name(self):
        loader = self.stubber.function()
        self.assertEqual(self.stubber.explain(loader).name, "loader")

    def test_format_call(self):
        self.assertEqual(format_call("f", (), {}), "f()")
        self.assertEqual(format_call("f", (1, "a"), {"z": 1, "b": None}),
                         "f(1, 'a', b=None, z=1)")


class ResetTest(unittest.TestCase):

    def setUp(self):
        self.stubber = Stubber()

    def test_reset_forgets_stubbings_and_calls(self):
        fetch = self.stubber.function("fetch")
        self.stubber.when(fetch)(1).then_return("one")
        fetch(1)
        self.stubber.reset()
        self.assertEqual(self.stubber.get_doubles(), [])
        self.assertEqual(fetch.__understudy_calls__, [])
        self.assertEqual(fetch(1), None)

    def test_reset_drops_pending_rehearsal(self):
        self.stubber.begin_rehearsal()
        self.stubber.reset()
        self.assertFalse(self.stubber.is_rehearsing())

    def test_get_doubles(self):
        fetch = self.stubber.function("fetch")
        store = self.stubber.function("store")
        self.assertEqual(self.stubber.get_doubles(), [fetch, store])

    def test_reset_forgets_double_stubbed_after_a_reset(self):
        fetch = self.stubber.function("fetch")
        self.stubber.reset()
        self.stubber.when(fetch)(1).then_return("one")
        self.assertEqual(self.stubber.get_doubles(), [fetch])
        self.stubber.reset()
        self.assertEqual(fetch(1), None)

    def test_reset_forgets_double_called_after_a_reset(self):
        fetch = self.stubber.function("fetch")
        self.stubber.reset()
        fetch(1)
        self.stubber.reset()
        self.assertEqual(fetch.__understudy_calls__, [])

    def test_track_once(self):
        fetch = self.stubber.function("fetch")
        self.stubber.when(fetch)(1).then_return("one")
        fetch(1)
        self.assertEqual(self.stubber.get_doubles(), [fetch])


class ModuleFunctionsTest(unittest.TestCase):

    def tearDown(self):
        understudy.reset()

    def test_default_stubber(self):
        fetch = understudy.function("fetch")
        understudy.when(fetch)(1).then_return("one")
        self.assertEqual(fetch(1), "one")
        self.assertEqual(understudy.explain(fetch).call_count, 1)

    def test_reset(self):
        fetch = understudy.function("fetch")
        understudy.when(fetch)(1).then_return("one")
        understudy.reset()
        self.assertEqual(fetch(1), None)


class ResponsePlanTest(unittest.TestCase):

    def test_single_value(self):
        plan = ResponsePlan(["a"])
        self.assertEqual([plan.value_for(k) for k in (1, 2, 3)],
                         ["a", "a", "a"])

    def test_sequence_repeats_last(self):
        plan = ResponsePlan(("a", "b", "c"))
        self.assertEqual([plan.value_for(k) for k in (1, 2, 3, 4, 5)],
                         ["a", "b", "c", "c", "c"])

    def test_empty(self):
        self.assertRaises(StubbingError, ResponsePlan, ())

    def test_repr(self):
        self.assertEqual(repr(ResponsePlan([1, 2])), "ResponsePlan((1, 2))")


class StubbingRuleTest(unittest.TestCase):

    def test_defaults(self):
        rule = StubbingRule((1,), {}, ResponsePlan(["x"]))
        self.assertEqual(rule.usage_count, 0)
        self.assertEqual(rule.times, None)
        self.assertFalse(rule.ignore_extra_args)
        self.assertFalse(rule.is_exhausted())

    def test_use_advances_plan(self):
        rule = StubbingRule((), {}, ResponsePlan(["x", "y"]))
        self.assertEqual(rule.use(), "x")
        self.assertEqual(rule.use(), "y")
        self.assertEqual(rule.use(), "y")
        self.assertEqual(rule.usage_count, 3)

    def test_exhaustion(self):
        rule = StubbingRule((), {}, ResponsePlan(["x"]), times=2)
        rule.use()
        self.assertFalse(rule.is_exhausted())
        rule.use()
        self.assertTrue(rule.is_exhausted())

    def test_invalid_times(self):
        plan = ResponsePlan(["x"])
        for times in (0, -1, 1.0, "1", False):
            self.assertRaises(StubbingError, StubbingRule, (), {}, plan,
                              times=times)

    def test_matches(self):
        rule = StubbingRule((1, ANYTHING), {"a": 1}, ResponsePlan(["x"]))
        self.assertTrue(rule.matches((1, 2), {"a": 1}))
        self.assertFalse(rule.matches((1, 2), {"a": 2}))
        self.assertFalse(rule.matches((1,), {"a": 1}))

    def test_describe(self):
        rule = StubbingRule((1,), {}, ResponsePlan(["x"]), times=3)
        self.assertEqual(rule.describe("f"),
                         "when called with `f(1)`, then return 'x', "
                         "0 of 3 time(s).")


class StubbingRegistryTest(unittest.TestCase):

    def setUp(self):
        self.registry = StubbingRegistry()

    def test_empty(self):
        self.assertTrue(self.registry.resolve((), {}) is NO_MATCH)

    def test_add_rule(self):
        rule = self.registry.add_rule((1,), {}, False, None, ["x"])
        self.assertEqual(type(rule), StubbingRule)
        self.assertEqual(self.registry.get_rules(), [rule])

    def test_sequence_numbers(self):
        rule1 = self.registry.add_rule((), {}, False, None, ["x"])
        rule2 = self.registry.add_rule((), {}, False, None, ["y"])
        self.assertTrue(rule1.sequence_number < rule2.sequence_number)

    def test_get_rules_is_a_copy(self):
        self.registry.add_rule((), {}, False, None, ["x"])
        self.registry.get_rules().pop()
        self.assertEqual(len(self.registry.get_rules()), 1)

    def test_resolve_most_recent_first(self):
        self.registry.add_rule((ANYTHING,), {}, False, None, ["old"])
        self.registry.add_rule((ANYTHING,), {}, False, None, ["new"])
        self.assertEqual(self.registry.resolve((1,), {}), "new")

    def test_resolve_searches_past_non_matching(self):
        self.registry.add_rule((1,), {}, False, None, ["one"])
        self.registry.add_rule((2,), {}, False, None, ["two"])
        self.registry.add_rule((3,), {}, False, None, ["three"])
        self.assertEqual(self.registry.resolve((1,), {}), "one")

    def test_resolve_increments_only_the_matching_rule(self):
        rule1 = self.registry.add_rule((ANYTHING,), {}, False, None, ["a"])
        rule2 = self.registry.add_rule((ANYTHING,), {}, False, None, ["b"])
        self.registry.resolve((1,), {})
        self.assertEqual(rule1.usage_count, 0)
        self.assertEqual(rule2.usage_count, 1)

    def test_exhausted_rules_are_kept(self):
        rule = self.registry.add_rule((), {}, False, 1, ["x"])
        self.assertEqual(self.registry.resolve((), {}), "x")
        self.assertTrue(self.registry.resolve((), {}) is NO_MATCH)
        self.assertEqual(self.registry.get_rules(), [rule])
        self.assertEqual(rule.usage_count, 1)

    def test_invalid_configuration(self):
        self.assertRaises(StubbingError, self.registry.add_rule,
                          (), {}, False, 0, ["x"])
        self.assertRaises(StubbingError, self.registry.add_rule,
                          (), {}, False, None, [])
        self.assertEqual(self.registry.get_rules(), [])


class MatchParamsTest(unittest.TestCase):

    def true(self, *args):
        self.assertTrue(match_params(*args), repr(args))

    def false(self, *args):
        self.assertFalse(match_params(*args), repr(args))

    def test_normal(self):
        self.true((), {}, (), {})
        self.true((1, 2), {"a": 3}, (1, 2), {"a": 3})
        self.false((1,), {}, (), {})
        self.false((), {}, (1,), {})
        self.false((1, 2), {"a": 3}, (1, 2), {"a": 4})
        self.false((1, 2), {"a": 3}, (1, 3), {"a": 3})
        self.false((1, 2), {"a": 3}, (1, 2), {"b": 3})
        self.false((1, 2), {}, (1, 2), {"a": 3})

    def test_anything(self):
        self.true((1, 2), {"a": ANYTHING}, (1, 2), {"a": 4})
        self.true((1, ANYTHING), {"a": 3}, (1, 3), {"a": 3})
        self.true((ANYTHING,), {}, (None,), {})
        self.false((ANYTHING,), {}, (), {})
        self.false((1, 2), {"a": ANYTHING}, (1, 2), {})

    def test_ignore_extra_args(self):
        self.true((1,), {}, (1, 2, 3), {}, True)
        self.true((1,), {}, (1,), {"b": 2}, True)
        self.true((), {}, (), {}, True)
        self.true((), {}, (1, 2), {"c": 3}, True)
        self.true((1,), {"a": 1}, (1, 2), {"a": 1, "b": 2}, True)
        self.false((1, 2), {}, (1,), {}, True)
        self.false((1,), {"a": 1}, (1, 2), {"b": 2}, True)
        self.false((2,), {}, (1, 2), {}, True)

    def test_deep_equality(self):
        self.true(([1, {"a": (2, 3)}],), {}, ([1, {"a": (2, 3)}],), {})
        self.false(([1, {"a": (2, 3)}],), {}, ([1, {"a": (2, 4)}],), {})

    def test_match_arg(self):
        self.assertTrue(match_arg(1, 1))
        self.assertTrue(match_arg(ANYTHING, 2))
        self.assertTrue(match_arg(Even(), 4))
        self.assertFalse(match_arg(Even(), 5))
        self.assertFalse(match_arg([1], [2]))


class DeepEqualTest(unittest.TestCase):

    def test_primitives(self):
        self.assertTrue(deep_equal(1, 1))
        self.assertTrue(deep_equal("a", "a"))
        self.assertTrue(deep_equal(None, None))
        self.assertFalse(deep_equal(1, 2))
        self.assertFalse(deep_equal("a", "b"))

    def test_mappings(self):
        self.assertTrue(deep_equal({"a": {"b": 1}}, {"a": {"b": 1}}))
        self.assertFalse(deep_equal({"a": {"b": 1}}, {"a": {"b": 2}}))
        self.assertFalse(deep_equal({"a": 1}, {"a": 1, "b": 2}))
        self.assertFalse(deep_equal({"a": 1}, {"b": 1}))

    def test_sequences(self):
        self.assertTrue(deep_equal([1, [2, 3]], [1, [2, 3]]))
        self.assertFalse(deep_equal([1, 2], [2, 1]))
        self.assertFalse(deep_equal([1, 2], [1, 2, 3]))
        self.assertFalse(deep_equal([1, 2], (1, 2)))

    def test_nested_matchers(self):
        self.assertTrue(deep_equal({"a": [ANYTHING, 2]}, {"a": [1, 2]}))
        self.assertTrue(deep_equal({"a": IS_A(str)}, {"a": "x"}))
        self.assertFalse(deep_equal({"a": IS_A(str)}, {"a": 1}))

    def test_plain_objects(self):
        self.assertTrue(deep_equal(Point(1, [2]), Point(1, [2])))
        self.assertFalse(deep_equal(Point(1, [2]), Point(1, [3])))
        self.assertTrue(deep_equal(Point(ANYTHING, 2), Point("x", 2)))

    def test_objects_with_identity(self):
        self.assertFalse(deep_equal(object(), object()))
        self.assertFalse(deep_equal(lambda: 1, lambda: 1))
        stubber = Stubber()
        self.assertFalse(deep_equal(stubber.function("f"),
                                    stubber.function("f")))

    def test_booleans(self):
        self.assertTrue(deep_equal(True, True))
        self.assertFalse(deep_equal(1, True))
        self.assertFalse(deep_equal(True, 1))
        self.assertFalse(deep_equal(0, False))
        self.assertFalse(deep_equal([1], [True]))
        self.assertTrue(deep_equal(1, 1.0))

    def test_cycles(self):
        a = [1]
        a.append(a)
        b = [1]
        b.append(b)
        self.assertTrue(deep_equal(a, b))


class SpecialArgumentTest(unittest.TestCase):

    def test_is_matcher(self):
        self.assertTrue(is_matcher(ANYTHING))
        self.assertTrue(is_matcher(CONTAINS(1)))
        self.assertTrue(is_matcher(Even()))
        self.assertFalse(is_matcher(1))
        self.assertFalse(is_matcher(SpecialArgument))
        self.assertFalse(is_matcher(Stubber().function("f")))

    def test_anything(self):
        self.assertTrue(ANYTHING.matches(None))
        self.assertTrue(ANYTHING.matches(object()))
        self.assertEqual(repr(ANYTHING), "ANYTHING")

    def test_is_a_builtins(self):
        self.assertTrue(IS_A(int).matches(3))
        self.assertTrue(IS_A(str).matches("x"))
        self.assertTrue(IS_A(numbers.Number).matches(3.5))
        self.assertTrue(IS_A((int, str)).matches("x"))
        self.assertFalse(IS_A(int).matches("3"))
        self.assertFalse(IS_A(numbers.Number).matches(None))

    def test_is_a_user_class(self):
        class Sub(Point):
            pass
        self.assertTrue(IS_A(Point).matches(Point(1, 2)))
        self.assertTrue(IS_A(Point).matches(Sub(1, 2)))
        self.assertFalse(IS_A(Sub).matches(Point(1, 2)))

    def test_is_a_repr(self):
        self.assertEqual(repr(IS_A(int)), "IS_A(int)")

    def test_arg_that(self):
        self.assertTrue(ARG_THAT(lambda x: x).matches(1))
        self.assertFalse(ARG_THAT(lambda x: x).matches(0))
        self.assertFalse(ARG_THAT(lambda x: x).matches([]))

    def test_arg_that_propagates_errors(self):
        def check(value):
            raise ValueError(value)
        self.assertRaises(ValueError, ARG_THAT(check).matches, 1)

    def test_arg_that_repr(self):
        def is_even(value):
            return value % 2 == 0
        self.assertEqual(repr(ARG_THAT(is_even)), "ARG_THAT(is_even)")

    def test_contains_repr(self):
        self.assertEqual(repr(CONTAINS("obj")), "CONTAINS('obj')")


class ContainsTest(unittest.TestCase):

    def test_strings(self):
        self.assertTrue(CONTAINS("ell").matches("hello"))
        self.assertTrue(CONTAINS("").matches("hello"))
        self.assertFalse(CONTAINS("elo").matches("hello"))
        self.assertFalse(CONTAINS("1").matches(1))
        self.assertFalse(CONTAINS("ell").matches(b"hello"))
        self.assertTrue(CONTAINS(b"ell").matches(b"hello"))

    def test_sequences_subset(self):
        self.assertTrue(CONTAINS([3, 1]).matches([1, 2, 3]))
        self.assertTrue(CONTAINS([]).matches([1]))
        self.assertTrue(CONTAINS([{"a": 1}]).matches(({"a": 1}, 2)))
        self.assertFalse(CONTAINS([4]).matches([1, 2, 3]))
        self.assertFalse(CONTAINS([1]).matches("1"))
        self.assertFalse(CONTAINS([1]).matches({1: 1}))

    def test_single_element(self):
        self.assertTrue(CONTAINS(1).matches([1]))
        self.assertTrue(CONTAINS(1).matches({1, 2}))
        self.assertFalse(CONTAINS({"a": 1}).matches([{"a": 1}]))
        self.assertFalse(CONTAINS(1).matches([2]))
        self.assertFalse(CONTAINS(1).matches(1))

    def test_mappings(self):
        actual = {"ingredient": "beans",
                  "container": {"type": "cup", "size": "S"}}
        self.assertTrue(CONTAINS({"container": {"size": "S"}}).matches(actual))
        self.assertTrue(CONTAINS({"ingredient": "beans"}).matches(actual))
        self.assertTrue(CONTAINS({}).matches(actual))
        self.assertTrue(CONTAINS({}).matches({}))
        self.assertFalse(CONTAINS({"container": {"size": "L"}})
                         .matches(actual))
        self.assertFalse(CONTAINS({"container": {"size": "S"}}).matches({}))
        self.assertFalse(CONTAINS({"a": 1}).matches([("a", 1)]))

    def test_mapping_values_are_not_substrings(self):
        self.assertFalse(CONTAINS({"a": "be"}).matches({"a": "beans"}))

    def test_mapping_with_nested_sequence(self):
        actual = {"tags": ["a", "b", "c"]}
        self.assertTrue(CONTAINS({"tags": ["c", "a"]}).matches(actual))
        self.assertFalse(CONTAINS({"tags": ["d"]}).matches(actual))

    def test_mapping_with_matchers(self):
        actual = {"id": 7, "name": "x"}
        self.assertTrue(CONTAINS({"id": IS_A(int)}).matches(actual))
        self.assertFalse(CONTAINS({"name": IS_A(int)}).matches(actual))

    def test_function(self):
        self.assertTrue(contains("abc", "b"))
        self.assertFalse(contains(None, {}))


if __name__ == "__main__":
    unittest.main()
