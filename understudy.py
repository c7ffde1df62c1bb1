"""
Understudy

Stubbing engine for function test doubles: doubles are rehearsed with
the arguments they should expect, and answer live calls with the values
configured for the matching rehearsal.
"""
import collections.abc
import itertools
import sys


__all__ = ["Stubber", "function", "when", "explain", "reset",
           "ANYTHING", "IS_A", "CONTAINS", "ARG_THAT",
           "StubbingError", "RehearsalError"]


ERROR_PREFIX = "[Understudy] "


# --------------------------------------------------------------------
# Exceptions

class StubbingError(ValueError):
    """Raised when a stubbing is configured with invalid options."""


class RehearsalError(RuntimeError):
    """Raised when a rehearsal call can't be captured unambiguously."""


# --------------------------------------------------------------------
# Markers.

class Marker(object):

    def __init__(self, name):
        self._name = name

    def __repr__(self):
        return self._name


NO_MATCH = Marker("NO_MATCH")
REHEARSED = Marker("REHEARSED")


# --------------------------------------------------------------------
# Stubber.

class Stubber(object):
    """Controller of function doubles and their stubbings.

    A stubber creates doubles, configures canned responses for them,
    and resolves each call made to a double against those responses.
    Stubbings are configured by rehearsing the call that should be
    answered, and then telling which values it returns::

        stubber = Stubber()
        fetch = stubber.function("fetch")
        stubber.when(fetch)(3).then_return("bar")
        assert fetch(3) == "bar"
        assert fetch(4) is None

    The rehearsal may also be written as a callable which invokes the
    double, in which case whichever double gets called is the one being
    configured::

        stubber.when(lambda: fetch(3)).then_return("bar")

    Calls which match no stubbing return the C{unstubbed} value given
    to the constructor (C{None} by default), and are never an error.
    The module-level L{function}, L{when}, L{explain} and L{reset}
    functions act on a default stubber instance.

    The pending rehearsal is shared by all stubbers, so a rehearsal
    started by one stubber also captures doubles of any other.
    """

    # Pending rehearsal, shared across instances and subclasses.
    _rehearsal = None

    def __init__(self, unstubbed=None):
        self.unstubbed = unstubbed
        self._doubles = []

    def function(self, name=None):
        """Return a new function double.

        @param name: Name for the double, used when describing calls and
                     stubbings.  If not given, it's guessed from the
                     variable the double is bound to when first called.
        """
        double = Double(self, name)
        self._doubles.append(double)
        return double

    def get_doubles(self):
        """Return all doubles used since the last L{reset()}."""
        return self._doubles[:]

    def track(self, double):
        """Make the next L{reset()} clear the given double.

        Doubles are tracked when created, and tracked again when stubbed
        or called after a reset.
        """
        for tracked in self._doubles:
            if tracked is double:
                return
        self._doubles.append(double)

    def when(self, target):
        """Start configuring a stubbing.

        @param target: Either a double, in which case the result must be
                       called with the expected arguments, or a callable
                       which invokes a double with the expected arguments.

        The returned L{Stubbing} has a C{then_return()} method to finish
        the configuration.  Both forms end up the same way::

            when(fetch)(3).then_return("bar")
            when(lambda: fetch(3)).then_return("bar")
        """
        if isinstance(target, Double):
            if target.__understudy__ is not self:
                raise StubbingError(ERROR_PREFIX +
                                    "%s was created by another stubber"
                                    % double_name(target))
            return Stubbing(self, target)
        if callable(target):
            return Stubbing(self, rehearsal=self.rehearse(None, target))
        raise StubbingError(ERROR_PREFIX + "when() needs a double or a "
                            "callable which invokes one, got %r" % (target,))

    def is_rehearsing(self):
        """Return true if a rehearsal is pending."""
        return self._rehearsal is not None

    def begin_rehearsal(self, double=None):
        """Divert the next invocation of C{double} into a rehearsal.

        @param double: Double expected to be invoked.  If None, the
                       first double which gets invoked is captured.

        Only one rehearsal may be pending at any time, across all
        stubbers.
        """
        if self._rehearsal is not None:
            raise RehearsalError(ERROR_PREFIX + "Can't rehearse a call "
                                 "while another rehearsal is pending")
        Stubber._rehearsal = Rehearsal(double)

    def end_rehearsal(self):
        """Close the pending rehearsal and return it.

        The pending slot is always cleared, even if the rehearsal
        captured nothing, in which case RehearsalError is raised.
        """
        rehearsal = self._rehearsal
        Stubber._rehearsal = None
        if rehearsal is None:
            raise RehearsalError(ERROR_PREFIX + "No rehearsal is pending")
        if not rehearsal.captured:
            if rehearsal.expected is None:
                raise RehearsalError(ERROR_PREFIX + "No double was invoked "
                                     "during the rehearsal")
            raise RehearsalError(ERROR_PREFIX + "%s wasn't invoked during "
                                 "the rehearsal"
                                 % double_name(rehearsal.double))
        return rehearsal

    def rehearse(self, double, func, *args, **kwargs):
        """Run C{func(*args, **kwargs)} as a rehearsal of C{double}.

        @return: The closed L{Rehearsal}, holding the captured call.
        """
        self.begin_rehearsal(double)
        try:
            func(*args, **kwargs)
        except BaseException:
            Stubber._rehearsal = None
            raise
        return self.end_rehearsal()

    def notify_invocation(self, double, args, kwargs):
        """This is called by doubles whenever they're invoked.

        During a rehearsal of the double the arguments are captured
        and L{REHEARSED} is returned.  Otherwise the call is recorded
        and resolved against the double's stubbings, returning either
        the response or L{NO_MATCH}.
        """
        rehearsal = self._rehearsal
        if rehearsal is not None and rehearsal.accepts(double):
            rehearsal.capture(double, args, kwargs)
            return REHEARSED
        self.track(double)
        double.__understudy_calls__.append(Call(args, kwargs))
        return double.__understudy_registry__.resolve(args, kwargs)

    def explain(self, double):
        """Return an L{Explanation} of the given double.

        The explanation includes the number of calls seen so far, the
        calls themselves, and a human readable description of the
        stubbings and calls of the double.
        """
        if double.__understudy_name__ is None:
            double.__understudy_name__ = find_object_name(double, 1)
        name = double_name(double)
        calls = double.__understudy_calls__[:]
        rules = double.__understudy_registry__.get_rules()
        lines = ["This double, %s, has %d stubbing(s) and %d call(s)."
                 % (name, len(rules), len(calls))]
        if rules:
            lines.extend(["", "Stubbings:"])
            for rule in rules:
                lines.append("  - " + rule.describe(name))
        if calls:
            lines.extend(["", "Calls:"])
            for call in calls:
                lines.append("  - called with `%s`."
                             % format_call(name, call.args, call.kwargs))
        return Explanation(name, len(calls), calls, "\n".join(lines))

    def reset(self):
        """Forget all doubles, including their stubbings and calls.

        Any pending rehearsal is dropped as well.  Doubles created before
        the reset keep working and answer every call as unstubbed until
        stubbed again, at which point they're tracked once more.
        """
        for double in self._doubles:
            double.__understudy_registry__ = StubbingRegistry()
            del double.__understudy_calls__[:]
        del self._doubles[:]
        Stubber._rehearsal = None


Explanation = collections.namedtuple(
    "Explanation", ["name", "call_count", "calls", "description"])


class Rehearsal(object):
    """Pending slot holding the call made to a double during rehearsal."""

    def __init__(self, double=None):
        self.expected = double
        self.double = double
        self.captured = False
        self.args = ()
        self.kwargs = {}

    def accepts(self, double):
        return self.expected is None or self.expected is double

    def capture(self, double, args, kwargs):
        if self.captured:
            raise RehearsalError(ERROR_PREFIX + "More than one call was made "
                                 "during the rehearsal: %s and %s"
                                 % (format_call(double_name(self.double),
                                                self.args, self.kwargs),
                                    format_call(double_name(double),
                                                args, kwargs)))
        self.double = double
        self.args = tuple(args)
        self.kwargs = dict(kwargs)
        self.captured = True


class Stubbing(object):
    """Helper returned by L{Stubber.when()} to finish a stubbing.

    If created for a double, the stubbing must first be called with
    the expected arguments, which rehearses the double::

        when(fetch)(3, mode="fast").then_return("bar")
    """

    def __init__(self, stubber, double=None, rehearsal=None):
        self._stubber = stubber
        self._double = double
        self._rehearsal = rehearsal

    def __call__(self, *args, **kwargs):
        if self._rehearsal is not None:
            raise StubbingError(ERROR_PREFIX + "The call for this stubbing "
                                "was already rehearsed")
        rehearsal = self._stubber.rehearse(self._double, self._double,
                                           *args, **kwargs)
        return self.__class__(self._stubber, rehearsal=rehearsal)

    def then_return(self, *values, ignore_extra_args=False, times=None):
        """Make the rehearsed call return the given values.

        @param values: One or more values.  Matching calls return them in
                       order, and the last one is repeated once the others
                       were used.
        @param ignore_extra_args: If true, arguments beyond the rehearsed
                                  ones don't prevent a match.
        @param times: Number of calls the stubbing answers before it gets
                      exhausted.  Defaults to no limit.
        @return: The double being stubbed.
        """
        rehearsal = self._rehearsal
        if rehearsal is None:
            raise StubbingError(ERROR_PREFIX + "%s must be called with the "
                                "expected arguments before then_return()"
                                % double_name(self._double))
        double = rehearsal.double
        double.__understudy_registry__.add_rule(
            rehearsal.args, rehearsal.kwargs, ignore_extra_args, times, values)
        double.__understudy__.track(double)
        return double


# --------------------------------------------------------------------
# Double object.

class Double(object):
    """Callable test double.

    Invocations are reported to the stubber which created the double.
    """

    def __init__(self, stubber, name=None):
        self.__understudy__ = stubber
        self.__understudy_name__ = name
        self.__understudy_registry__ = StubbingRegistry()
        self.__understudy_calls__ = []

    def __call__(self, *args, **kwargs):
        if self.__understudy_name__ is None:
            self.__understudy_name__ = find_object_name(self, 1)
        result = self.__understudy__.notify_invocation(self, args, kwargs)
        if result is NO_MATCH:
            return self.__understudy__.unstubbed
        return result

    def __repr__(self):
        return "<Double %s>" % double_name(self)


class Call(object):
    """Arguments of one recorded invocation."""

    def __init__(self, args=(), kwargs=None):
        self.args = tuple(args)
        self.kwargs = dict(kwargs or {})

    def __repr__(self):
        return "Call(%r, %r)" % (self.args, self.kwargs)

    def __eq__(self, other):
        return (type(other) is type(self) and
                self.args == other.args and
                self.kwargs == other.kwargs)

    def __ne__(self, other):
        return not self.__eq__(other)


def double_name(double):
    return double.__understudy_name__ or "(unnamed double)"


def find_object_name(obj, depth=0):
    """Try to detect how the object is named on a previous scope.

    Frames running code from this module are skipped, so the name is
    looked up where the caller of the library has the object.
    """
    try:
        frame = sys._getframe(depth+1)
    except ValueError:
        return None
    while frame is not None and frame.f_globals.get("__name__") == __name__:
        frame = frame.f_back
    if frame is None:
        return None
    for name, frame_obj in frame.f_locals.items():
        if frame_obj is obj:
            return name
    self = frame.f_locals.get("self")
    if self is not None:
        for name, self_obj in getattr(self, "__dict__", {}).items():
            if self_obj is obj and not name.startswith("_"):
                return name
    return None


def format_call(name, args, kwargs):
    """Format a call in a nice string such as fetch(3, mode='fast')."""
    params = [repr(x) for x in args]
    for pair in sorted(kwargs.items()):
        params.append("%s=%r" % pair)
    return "%s(%s)" % (name, ", ".join(params))


# --------------------------------------------------------------------
# Stubbing rules and registry.

class ResponsePlan(object):
    """Values returned by a stubbing, in order, repeating the last one."""

    def __init__(self, values):
        if not values:
            raise StubbingError(ERROR_PREFIX + "At least one value must be "
                                "given for the stubbing to return")
        self.values = tuple(values)

    def value_for(self, count):
        """Return the value for the C{count}-th matching call (1-indexed)."""
        return self.values[min(count, len(self.values)) - 1]

    def __repr__(self):
        return "ResponsePlan(%r)" % (self.values,)


class StubbingRule(object):
    """One configured stubbing: expected call shape and its responses.

    The usage count of the rule is also the cursor on its response plan.
    Once C{times} is set and reached, the rule is exhausted and is
    skipped by the registry, without being removed from it.
    """

    def __init__(self, args, kwargs, plan, ignore_extra_args=False,
                 times=None, sequence_number=0):
        if times is not None and (type(times) is not int or times < 1):
            raise StubbingError(ERROR_PREFIX + "times must be a positive "
                                "integer, got %r" % (times,))
        self.args = tuple(args)
        self.kwargs = dict(kwargs)
        self.plan = plan
        self.ignore_extra_args = bool(ignore_extra_args)
        self.times = times
        self.sequence_number = sequence_number
        self.usage_count = 0

    def is_exhausted(self):
        return self.times is not None and self.usage_count >= self.times

    def matches(self, args, kwargs):
        return match_params(self.args, self.kwargs, args, kwargs,
                            self.ignore_extra_args)

    def use(self):
        """Consume one response from the plan and return it."""
        self.usage_count += 1
        return self.plan.value_for(self.usage_count)

    def describe(self, name):
        """Describe the rule in a sentence, using C{name} for the double."""
        values = self.plan.values
        text = "when called with `%s`" % format_call(name, self.args,
                                                     self.kwargs)
        if self.ignore_extra_args:
            text += " (ignoring extra arguments)"
        text += ", then return %r" % (values[0],)
        for value in values[1:]:
            text += ", then %r" % (value,)
        if self.times is not None:
            text += ", %d of %d time(s)" % (self.usage_count, self.times)
        return text + "."

    def __repr__(self):
        return "<StubbingRule #%d %s>" % (self.sequence_number,
                                           self.describe("double"))


class StubbingRegistry(object):
    """Ordered stubbing rules of one double.

    Rules are resolved from the most recently added to the oldest, so
    a narrow stubbing configured after a broad one overrides it.  When
    the narrow one is exhausted, the broad one answers again.
    """

    def __init__(self):
        self._rules = []
        self._sequence = itertools.count(1)

    def get_rules(self):
        """Return all rules, oldest first."""
        return self._rules[:]

    def add_rule(self, args, kwargs, ignore_extra_args, times, values):
        """Add a rule as the most recent one, and return it."""
        rule = StubbingRule(args, kwargs, ResponsePlan(values),
                            ignore_extra_args, times, next(self._sequence))
        self._rules.append(rule)
        return rule

    def resolve(self, args, kwargs):
        """Return the response for the given call, or L{NO_MATCH}."""
        for rule in reversed(self._rules):
            if not rule.is_exhausted() and rule.matches(args, kwargs):
                return rule.use()
        return NO_MATCH


# --------------------------------------------------------------------
# Argument matching.

class SpecialArgument(object):
    """Base for special arguments for matching parameters.

    Any object whose class sets C{__understudy_matcher__} to true and
    implements C{matches(actual)} is accepted as a matcher, so custom
    matchers don't need to inherit from this class.
    """

    __understudy_matcher__ = True

    def __init__(self, object=None):
        self.object = object

    def __repr__(self):
        if self.object is None:
            return self.__class__.__name__
        else:
            return "%s(%r)" % (self.__class__.__name__, self.object)

    def matches(self, other):
        return True


class ANYTHING(SpecialArgument):
    """Matches any single argument."""

ANYTHING = ANYTHING()


class IS_A(SpecialArgument):
    """Matches arguments which are instances of the given class(es)."""

    def __init__(self, object):
        try:
            isinstance(None, object)
        except TypeError:
            raise TypeError(ERROR_PREFIX + "IS_A() needs a class or a tuple "
                            "of classes, got %r" % (object,))
        super(IS_A, self).__init__(object)

    def __repr__(self):
        return "IS_A(%s)" % getattr(self.object, "__name__", repr(self.object))

    def matches(self, other):
        return isinstance(other, self.object)


class CONTAINS(SpecialArgument):
    """Matches arguments which contain the given partial value.

    Strings contain their substrings, sequences contain any subset of
    their elements, and mappings contain any subset of their keys whose
    values are themselves contained in the mapping's values.
    """

    def matches(self, other):
        return contains(other, self.object)


class ARG_THAT(SpecialArgument):
    """Matches arguments for which the given predicate returns true."""

    def __init__(self, object):
        if not callable(object):
            raise TypeError(ERROR_PREFIX + "ARG_THAT() needs a callable, "
                            "got %r" % (object,))
        super(ARG_THAT, self).__init__(object)

    def __repr__(self):
        return "ARG_THAT(%s)" % getattr(self.object, "__name__",
                                        repr(self.object))

    def matches(self, other):
        return bool(self.object(other))


def is_matcher(value):
    return bool(getattr(type(value), "__understudy_matcher__", False))


def _is_sequence(value):
    return isinstance(value, (list, tuple))


def contains(actual, partial):
    """Return true if C{actual} contains C{partial}, see L{CONTAINS}."""
    if isinstance(partial, (str, bytes)):
        return isinstance(actual, type(partial)) and partial in actual
    if isinstance(partial, collections.abc.Mapping):
        if not isinstance(actual, collections.abc.Mapping):
            return False
        for key, value in partial.items():
            if key not in actual:
                return False
            if isinstance(value, collections.abc.Mapping) or _is_sequence(value):
                if not contains(actual[key], value):
                    return False
            elif not deep_equal(value, actual[key]):
                return False
        return True
    if _is_sequence(partial):
        if not _is_sequence(actual):
            return False
        for expected in partial:
            if not any(deep_equal(expected, item) for item in actual):
                return False
        return True
    if _is_sequence(actual) or isinstance(actual, (set, frozenset)):
        return any(deep_equal(partial, item) for item in actual)
    return False


def deep_equal(expected, actual):
    """Compare two values structurally, honoring matchers in C{expected}.

    Mappings, lists and tuples are compared member by member, as are
    instances of user classes which don't define their own equality.
    A list never equals a tuple, even with the same members.  Booleans
    only equal booleans, so C{True} doesn't match C{1}.  Other values
    are compared with C{==}.
    """
    return _deep_equal(expected, actual, set())


def _deep_equal(expected, actual, seen):
    if is_matcher(expected):
        return expected.matches(actual)
    if expected is actual:
        return True
    key = (id(expected), id(actual))
    if key in seen:
        return True
    if (isinstance(expected, collections.abc.Mapping) and
        isinstance(actual, collections.abc.Mapping)):
        if len(expected) != len(actual):
            return False
        seen.add(key)
        for name, value in expected.items():
            if name not in actual:
                return False
            if not _deep_equal(value, actual[name], seen):
                return False
        return True
    if _is_sequence(expected) and _is_sequence(actual):
        if type(expected) is not type(actual) or len(expected) != len(actual):
            return False
        seen.add(key)
        for value, other in zip(expected, actual):
            if not _deep_equal(value, other, seen):
                return False
        return True
    cls = type(expected)
    if (cls is type(actual) and cls.__eq__ is object.__eq__ and
        cls.__module__ != "builtins" and not callable(expected) and
        hasattr(expected, "__dict__")):
        seen.add(key)
        return _deep_equal(vars(expected), vars(actual), seen)
    if isinstance(expected, bool) or isinstance(actual, bool):
        return type(expected) is type(actual) and expected == actual
    return expected == actual


def match_arg(expected, actual):
    """Match a single argument, which may be a matcher."""
    if is_matcher(expected):
        return expected.matches(actual)
    return deep_equal(expected, actual)


def match_params(args1, kwargs1, args2, kwargs2, ignore_extra_args=False):
    """Match the expected parameters 1 against actual parameters 2.

    Both positional and keyword arguments must match one-on-one, unless
    C{ignore_extra_args} is set, in which case positional arguments
    beyond the expected ones and unexpected keywords are disregarded.
    """
    if ignore_extra_args:
        if len(args2) < len(args1):
            return False
    elif len(args1) != len(args2) or len(kwargs1) != len(kwargs2):
        return False

    for key, arg1 in kwargs1.items():
        if key not in kwargs2:
            return False
        if not match_arg(arg1, kwargs2[key]):
            return False

    for arg1, arg2 in zip(args1, args2):
        if not match_arg(arg1, arg2):
            return False
    return True


# Default stubber, used by module-level functions.
_stubber = Stubber()

function = _stubber.function
when = _stubber.when
explain = _stubber.explain
reset = _stubber.reset
