r"""
Bowline parsers: the combinator protocol.

Overview
- Protocol
  • Every parser answers eval(state) -> value (or raises a ParseFault) and meta() -> Meta.
  • Parsers are immutable; every modifier returns a new parser wrapping the old one.

- Composition (fluent, on every Parser)
  • many() / some(message) / optional(): repetition and optionality, with .catch().
  • parse(function) / map(function) / guard(check, message): value post-processing.
  • fallback(value) / fallback_with(function): defaults for missing input.
  • or_else(other), a | b: alternatives resolved by depth, success and position.
  • hide() / hide_usage() / group_help(text): help and usage decorations.
  • adjacent() / anywhere(): scope narrowing.
  • to_options(...): wrap into a runnable OptionParser.

- Free-standing
  • pure(value), pure_with(function), fail(message): parsers that consume nothing.
  • construct(...): run parsers in sequence and build a tuple, a dict or an object.
  • alt(...): left fold of or_else.

Failure handling
- MissingError is swallowed by optional/many only when nothing was consumed, and by
  fallback always; the pool is restored on swallow.
- MessageError is swallowed only when recoverable (fallback) or under catch().
- TerminationSignal is never swallowed.

Quick example:
    >>> from bowline import long, short, positional, construct
    >>> verbose = short("v").long("verbose").switch()
    >>> speed = long("speed").argument("SPEED").parse(float).fallback(1.0)
    >>> files = positional("FILE").many()
    >>> parser = construct(verbose=verbose, speed=speed, files=files)
"""
import functools
import operator
import re
import sys

from .faults import MessageError, MissingError, MissingItem, ParseFault, TerminationSignal, combine
from .meta import And, Anywhere, Decorated, Flag, HideUsage, Leaf, Many, MultiArg, Optional, Positional, Required, Skip
from .state import Resolution, State
from .utils import *


class ParserType(type):
    """
    Metaclass for every parser class.

    Responsibilities
    - Derive __typename__ from the class name ("ParseOrElse" -> "parse-or-else") for
      messages and reprs.
    - Expose the names listed in __introspectable__ as read-only properties mirroring
      the private "_name" attributes.
    - Provide stable __repr__/__rich_repr__ implementations.
    - Seal classes declared with sealed=True against subclassing.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        if options.get("sealed", False):
            @rename("__init_subclass__")
            def __init_subclass__(cls, **options):  # NOQA: F-841
                raise TypeError(f"type {self.__name__!r} is not an acceptable base type")
            self.__init_subclass__ = classmethod(__init_subclass__)

        return self


def _attempt(parser, state, /):
    """
    Run parser against state; return (value, None) or (Unset, fault).
    """
    try:
        return parser.eval(state), None
    except ParseFault as fault:
        return Unset, fault


def _check_parser(cls, parser, /):
    if not isinstance(parser, Parser):
        raise TypeError(f"{cls.__typename__} expects a parser, got {type(parser).__name__}")
    return parser


def _check_message(cls, message, /):
    if not isinstance(message, str):
        raise TypeError(f"{cls.__typename__} 'message' must be a string")
    elif not (message := message.strip()):
        raise ValueError(f"{cls.__typename__} 'message' cannot be empty")
    return message


class Parser(metaclass=ParserType):
    """
    Base of every parser. Subclasses implement eval() and meta().
    """

    def eval(self, state, /):
        raise NotImplementedError(f"{type(self).__typename__} does not implement eval()")

    def meta(self):
        raise NotImplementedError(f"{type(self).__typename__} does not implement meta()")

    def many(self):
        """
        Zero or more values, stops at the first clean failure or zero-consumption success.
        """
        return ParseMany(self)

    def some(self, message, /):
        """
        One or more values; zero results fail with a recoverable message.
        """
        return ParseSome(self, message)

    def optional(self):
        return ParseOptional(self)

    def parse(self, function, /):
        """
        Convert the value with a function that may raise; failures are reported at the
        token the value came from.
        """
        return ParseWith(self, function)

    def map(self, function, /):
        return ParseMap(self, function)

    def guard(self, check, message, /):
        return ParseGuard(self, check, message)

    def fallback(self, value, /):
        return ParseFallback(self, value)

    def fallback_with(self, function, /):
        return ParseFallbackWith(self, function)

    def or_else(self, other, /):
        return ParseOrElse(self, other)

    def __or__(self, other, /):
        if not isinstance(other, Parser):
            return NotImplemented
        return ParseOrElse(self, other)

    def hide(self):
        return ParseHide(self)

    def hide_usage(self):
        return ParseHideUsage(self)

    def group_help(self, message, /):
        return ParseGroupHelp(self, message)

    def adjacent(self):
        return ParseAdjacent(self)

    def anywhere(self):
        return ParseAnywhere(self)

    def to_options(self, **options):
        """
        Wrap into an OptionParser; keyword options are forwarded to its builder methods
        (descr, header, footer, usage, version) and to configure() (shell, fancy, colorful).
        """
        from .options import OptionParser
        return OptionParser(self, **options)


def _parse_option(parser, state, catch, /):
    """
    Evaluate parser on a speculative clone and commit on success.

    Returns (True, value) on success and (False, None) when the failure was swallowed;
    any other failure propagates with the pool untouched.
    """
    attempt = state.clone()
    try:
        value = parser.eval(attempt)
    except TerminationSignal:
        raise
    except MessageError:
        if catch:
            return False, None
        raise
    except MissingError:
        if attempt.len() == state.len():
            return False, None
        raise
    state.swap(attempt)
    return True, value


class ParseMany(Parser, sealed=True):
    __introspectable__ = ("inner", "catches")

    def __init__(self, inner, catches=False, /):
        self._inner = _check_parser(type(self), inner)
        self._catches = bool(catches)

    def catch(self):
        """
        Treat any failure of the inner parser as the end of the repetition.
        """
        return type(self)(self._inner, True)

    def eval(self, state, /):
        results = []
        length = state.len()
        while True:
            found, value = _parse_option(self._inner, state, self._catches)
            # keep going only while input is being consumed
            if not found or (state.len() >= length and results):
                break
            length = state.len()
            results.append(value)
        return results

    def meta(self):
        return Many(Optional(self._inner.meta()))


class ParseSome(Parser, sealed=True):
    __introspectable__ = ("inner", "message", "catches")

    def __init__(self, inner, message, catches=False, /):
        self._inner = _check_parser(type(self), inner)
        self._message = _check_message(type(self), message)
        self._catches = bool(catches)

    def catch(self):
        return type(self)(self._inner, self._message, True)

    def eval(self, state, /):
        results = []
        length = state.len()
        while True:
            found, value = _parse_option(self._inner, state, self._catches)
            if not found or (state.len() >= length and results):
                break
            length = state.len()
            results.append(value)
        if not results:
            raise MessageError(self._message, True)
        return results

    def meta(self):
        return Many(Required(self._inner.meta()))


class ParseOptional(Parser, sealed=True):
    __introspectable__ = ("inner", "catches")

    def __init__(self, inner, catches=False, /):
        self._inner = _check_parser(type(self), inner)
        self._catches = bool(catches)

    def catch(self):
        return type(self)(self._inner, True)

    def eval(self, state, /):
        return _parse_option(self._inner, state, self._catches)[1]

    def meta(self):
        return Optional(self._inner.meta())


class ParseWith(Parser, sealed=True):
    __introspectable__ = ("inner", "function")

    def __init__(self, inner, function, /):
        if not callable(function):
            raise TypeError(f"{type(self).__typename__} 'function' must be callable")
        self._inner = _check_parser(type(self), inner)
        self._function = function

    def eval(self, state, /):
        value = self._inner.eval(state)
        try:
            return self._function(value)
        except ParseFault:
            raise
        except Exception as exception:
            raise state.word_parse_error(str(exception) or type(exception).__name__) from exception

    def meta(self):
        return self._inner.meta()


class ParseMap(Parser, sealed=True):
    __introspectable__ = ("inner", "function")

    def __init__(self, inner, function, /):
        if not callable(function):
            raise TypeError(f"{type(self).__typename__} 'function' must be callable")
        self._inner = _check_parser(type(self), inner)
        self._function = function

    def eval(self, state, /):
        return self._function(self._inner.eval(state))

    def meta(self):
        return self._inner.meta()


class ParseGuard(Parser, sealed=True):
    __introspectable__ = ("inner", "check", "message")

    def __init__(self, inner, check, message, /):
        if not callable(check):
            raise TypeError(f"{type(self).__typename__} 'check' must be callable")
        self._inner = _check_parser(type(self), inner)
        self._check = check
        self._message = _check_message(type(self), message)

    def eval(self, state, /):
        value = self._inner.eval(state)
        if not self._check(value):
            raise state.word_validate_error(self._message)
        return value

    def meta(self):
        return self._inner.meta()


class ParseFallback(Parser, sealed=True):
    """
    Substitute a value when the inner parser finds nothing (or fails recoverably).
    """
    __introspectable__ = ("inner", "value", "display")

    def __init__(self, inner, value, display="", /):
        self._inner = _check_parser(type(self), inner)
        self._value = value
        self._display = display

    def display_fallback(self):
        """
        Show the fallback in help as "[default: value]" using str().
        """
        return type(self)(self._inner, self._value, "[default: %s]" % (self._value,))

    def debug_fallback(self):
        """
        Show the fallback in help as "[default: value]" using repr().
        """
        return type(self)(self._inner, self._value, "[default: %r]" % (self._value,))

    def eval(self, state, /):
        attempt = state.clone()
        try:
            value = self._inner.eval(attempt)
        except MissingError:
            return self._value
        except MessageError as fault:
            if fault.recoverable:
                return self._value
            raise
        state.swap(attempt)
        return value

    def meta(self):
        meta = Optional(self._inner.meta())
        if not self._display:
            return meta
        return Decorated(meta, self._display, "suffix")


class ParseFallbackWith(Parser, sealed=True):
    __introspectable__ = ("inner", "function")

    def __init__(self, inner, function, /):
        if not callable(function):
            raise TypeError(f"{type(self).__typename__} 'function' must be callable")
        self._inner = _check_parser(type(self), inner)
        self._function = function

    def _fallback(self):
        try:
            return self._function()
        except ParseFault:
            raise
        except Exception as exception:
            raise MessageError(str(exception) or type(exception).__name__, False) from exception

    def eval(self, state, /):
        attempt = state.clone()
        try:
            value = self._inner.eval(attempt)
        except MissingError:
            return self._fallback()
        except MessageError as fault:
            if fault.recoverable:
                return self._fallback()
            raise
        state.swap(attempt)
        return value

    def meta(self):
        return Optional(self._inner.meta())


class ParseOrElse(Parser, sealed=True):
    """
    Two alternatives evaluated on separate clones of the pool.

    Resolution
    - both branches always run, so a later leftover check can point at the flag that
      lost ("`-b` cannot be used at the same time as `-a`").
    - the deeper branch (more commands entered) wins outright, failing or not.
    - at equal depth a success beats a failure; between two successes the branch that
      consumed the leftmost token wins (ties go to the first branch).
    - two failures are merged with combine().
    """
    __introspectable__ = ("this", "that")

    def __init__(self, this, that, /):
        self._this = _check_parser(type(self), this)
        self._that = _check_parser(type(self), that)

    def eval(self, state, /):
        head = state.head

        first = state.clone()
        first.head = sys.maxsize
        value_a, fault_a = _attempt(self._this, first)

        second = state.clone()
        second.head = sys.maxsize
        value_b, fault_b = _attempt(self._that, second)

        if first.depth != second.depth:
            winner, fault, value = (first, fault_a, value_a) if first.depth > second.depth else (second, fault_b, value_b)
            state.swap(winner)
            state.head = min(head, state.head)
            if fault is not None:
                raise fault
            return value

        match fault_a, fault_b:
            case None, None:
                picks_first = first.head <= second.head
            case None, _:
                picks_first = True
            case _, None:
                picks_first = False
            case _:
                raise combine(fault_a, fault_b)

        if picks_first:
            winner, loser, value = first, second, value_a
            meta, other, succeeded = self._this.meta, self._that.meta, fault_b is None
        else:
            winner, loser, value = second, first, value_b
            meta, other, succeeded = self._that.meta, self._this.meta, fault_a is None

        state.swap(winner)
        if succeeded:
            _remember_conflict(state, meta(), loser, other())
        else:
            _remember_winner(state, meta())
        state.head = min(head, state.head)
        return value

    def meta(self):
        return self._this.meta().or_(self._that.meta())


def _remember_winner(state, meta, /):
    if state.head != sys.maxsize:
        state.conflicts.setdefault(state.head, Resolution(meta))


def _remember_conflict(state, winner, loser, meta, /):
    """
    Record that both branches succeeded: keep the winner's meta at its head and the
    pair at the loser's head, and mark tokens only the loser consumed as conflicts.
    """
    if state.head != sys.maxsize:
        winner = state.conflicts.setdefault(state.head, Resolution(winner)).winner
    if (previous := loser.conflicts.get(loser.head)) is not None:
        meta = previous.winner
    if loser.head != sys.maxsize:
        state.conflicts.setdefault(loser.head, Resolution(winner, meta))
    state.save_conflicts(loser, state.head)


class ParseHide(Parser, sealed=True):
    __introspectable__ = ("inner",)

    def __init__(self, inner, /):
        self._inner = _check_parser(type(self), inner)

    def eval(self, state, /):
        try:
            return self._inner.eval(state)
        except MissingError as fault:
            raise MissingError((), **fault.options) from None

    def meta(self):
        return Skip()


class ParseHideUsage(Parser, sealed=True):
    __introspectable__ = ("inner",)

    def __init__(self, inner, /):
        self._inner = _check_parser(type(self), inner)

    def eval(self, state, /):
        return self._inner.eval(state)

    def meta(self):
        return HideUsage(self._inner.meta())


class ParseGroupHelp(Parser, sealed=True):
    __introspectable__ = ("inner", "message")

    def __init__(self, inner, message, /):
        self._inner = _check_parser(type(self), inner)
        self._message = _check_message(type(self), message)

    def eval(self, state, /):
        return self._inner.eval(state)

    def meta(self):
        return Decorated(self._inner.meta(), self._message, "header")


class ParseAdjacent(Parser, sealed=True):
    """
    Restrict the inner parser to one contiguous block of tokens.

    The block is found by fixed-point refinement: evaluate on the whole pool, narrow the
    guess to the first block the evaluation consumed, re-evaluate on that block only,
    and repeat until the block stops changing. Tokens on both sides of the final block
    keep the statuses they had before.
    """
    __introspectable__ = ("inner",)

    def __init__(self, inner, /):
        self._inner = _check_parser(type(self), inner)

    def eval(self, state, /):
        size = len(state.tokens)
        guess = range(size)
        scratch = state.clone()
        value, fault = _attempt(self._inner, scratch)
        while True:
            refined = scratch.refine_range(state, guess)
            if refined is not None:
                guess = refined
            scratch = state.clone()
            scratch.restrict_to_range(guess)
            value, fault = _attempt(self._inner, scratch)
            if refined is None:
                break

        if guess.start > 0:
            scratch.copy_usage_from(state, range(0, guess.start))
        if guess.stop < size:
            scratch.copy_usage_from(state, range(guess.stop, size))
        state.swap(scratch)
        if fault is not None:
            raise fault
        return value

    def meta(self):
        return self._inner.meta()


class ParseAnywhere(Parser, sealed=True):
    """
    Match the inner parser starting at any position, leftmost success wins.

    For every present start position the inner parser is first probed on that single
    token; positions where it consumes nothing cannot start a match and are skipped.
    Otherwise it runs on the pool from that start to the end of the scope.
    """
    __introspectable__ = ("inner", "catches")

    def __init__(self, inner, catches=False, /):
        self._inner = _check_parser(type(self), inner)
        self._catches = bool(catches)

    def catch(self):
        """
        Keep scanning past positions where the inner parser consumed input and then
        failed with a message.
        """
        return type(self)(self._inner, True)

    def eval(self, state, /):
        best_missing = [
            MissingItem(item, state.scope.start, state.scope)
            for item in self._inner.meta().first_items()
        ]
        best_consumed = 0

        for start, attempt in state.ranges():
            probe = attempt.clone()
            probe.restrict_to_range(range(start, start + 1))
            before = probe.len()
            if before == 0:
                break
            _attempt(self._inner, probe)
            if probe.len() == before:
                continue

            length = attempt.len()
            try:
                value = self._inner.eval(attempt)
            except TerminationSignal:
                self._commit(state, attempt, start)
                raise
            except MissingError as fault:
                consumed = length - attempt.len()
                if consumed >= best_consumed:
                    best_missing = list(fault.items)
                    best_consumed = consumed
            except MessageError:
                if length - attempt.len() > 0 and not self._catches:
                    self._commit(state, attempt, start)
                    raise
            else:
                self._commit(state, attempt, start)
                return value

        value, fault = _attempt(self._inner, State())
        if fault is None:
            return value
        raise MissingError(best_missing)

    @staticmethod
    def _commit(state, attempt, start, /):
        # the attempt ran on a narrowed scope; widen it back before it goes live
        attempt.set_scope(state.scope)
        attempt.copy_usage_from(state, range(state.scope.start, start))
        state.swap(attempt)

    def meta(self):
        return _classify_anywhere(self._inner.meta())


def _classify_anywhere(meta, /):
    """
    Describe "a flag followed by positionals" as a single multi-value item; anything
    else is wrapped as Anywhere.
    """
    match meta:
        case And(members=(Leaf(item=Flag(name=name, help=text)), *rest)) if all(
            isinstance(member, Leaf) and isinstance(member.item, Positional) for member in rest
        ):
            fields = tuple((member.item.metavar, member.item.help) for member in rest)
            return Leaf(MultiArg(name, text, fields))
    return Anywhere(meta)


class ParsePure(Parser, sealed=True):
    __introspectable__ = ("value",)

    def __init__(self, value, /):
        self._value = value

    def eval(self, state, /):
        state.current = None
        return self._value

    def meta(self):
        return Skip()


class ParsePureWith(Parser, sealed=True):
    __introspectable__ = ("function",)

    def __init__(self, function, /):
        if not callable(function):
            raise TypeError(f"{type(self).__typename__} 'function' must be callable")
        self._function = function

    def eval(self, state, /):
        try:
            return self._function()
        except ParseFault:
            raise
        except Exception as exception:
            raise MessageError(str(exception) or type(exception).__name__, True) from exception

    def meta(self):
        return Skip()


class ParseFail(Parser, sealed=True):
    __introspectable__ = ("message",)

    def __init__(self, message, /):
        self._message = _check_message(type(self), message)

    def eval(self, state, /):
        state.current = None
        raise MessageError(self._message, True)

    def meta(self):
        return Skip()


class ParseConstruct(Parser, sealed=True):
    """
    Run parsers left to right, stop at the first failure, build the result from all
    values.
    """
    __introspectable__ = ("parsers",)

    def __init__(self, parsers, build, /):
        self._parsers = tuple(parsers)
        self._build = build

    def eval(self, state, /):
        values = [parser.eval(state) for _, parser in self._parsers]
        state.current = None
        return self._build(dict(zip((key for key, _ in self._parsers), values)), values)

    def meta(self):
        return And(*(parser.meta() for _, parser in self._parsers))


def pure(value, /):
    """
    A parser that consumes nothing and returns value.
    """
    return ParsePure(value)


def pure_with(function, /):
    """
    A parser that consumes nothing and returns function(); exceptions become a
    recoverable failure.
    """
    return ParsePureWith(function)


def fail(message, /):
    """
    A parser that consumes nothing and fails with a recoverable message.
    """
    return ParseFail(message)


def construct(*parsers, **named):
    """
    Combine parsers into one that runs them in order.

    Forms
    - construct(a, b, c)             -> (a, b, c)
    - construct(x=a, y=b)            -> {"x": a, "y": b}
    - construct(cls, a, b)           -> cls(a, b)
    - construct(cls, x=a, y=b)       -> cls(x=a, y=b)
    """
    factory = Unset
    if parsers and not isinstance(parsers[0], Parser):
        factory, *parsers = parsers
        if not callable(factory):
            raise TypeError("construct() first argument must be a parser or a callable")
    if parsers and named:
        raise TypeError("construct() takes either positional or keyword parsers, not both")
    if not parsers and not named:
        raise TypeError("construct() requires at least one parser")

    for parser in (*parsers, *named.values()):
        _check_parser(ParseConstruct, parser)

    if named:
        pairs = tuple(named.items())
        if factory is Unset:
            build = lambda mapping, values: mapping  # NOQA: E-731
        else:
            build = lambda mapping, values: factory(**mapping)  # NOQA: E-731
    else:
        pairs = tuple(enumerate(parsers))
        if factory is Unset:
            build = lambda mapping, values: tuple(values)  # NOQA: E-731
        else:
            build = lambda mapping, values: factory(*values)  # NOQA: E-731
    return ParseConstruct(pairs, build)


def alt(*parsers):
    """
    First of several alternatives per or_else(): alt(a, b, c) == a | b | c.
    """
    if not parsers:
        raise TypeError("alt() requires at least one parser")
    for parser in parsers:
        _check_parser(ParseOrElse, parser)
    return functools.reduce(ParseOrElse, parsers)


__all__ = (
    "ParserType",
    "Parser",
    "ParseMany",
    "ParseSome",
    "ParseOptional",
    "ParseWith",
    "ParseMap",
    "ParseGuard",
    "ParseFallback",
    "ParseFallbackWith",
    "ParseOrElse",
    "ParseHide",
    "ParseHideUsage",
    "ParseGroupHelp",
    "ParseAdjacent",
    "ParseAnywhere",
    "ParsePure",
    "ParsePureWith",
    "ParseFail",
    "ParseConstruct",
    "pure",
    "pure_with",
    "fail",
    "construct",
    "alt",
)
