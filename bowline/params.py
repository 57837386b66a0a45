r"""
Bowline params: the leaves every parser is built from.

Overview
- Named
  • short("v"), long("verbose"), env("VERBOSE") start a NamedArg builder;
    .short()/.long()/.env()/.help() extend it (each call returns a new builder).
  • NamedArg.switch()            -> bool, absent is False.
  • NamedArg.flag(present, absent) -> present or absent.
  • NamedArg.req_flag(present)   -> present, absent is a missing-input failure.
  • NamedArg.argument(metavar)   -> the value string; .adjacent() accepts only the
    attached forms ("-sVALUE", "-s=VALUE", "--speed=VALUE").
  • The environment variable is consulted when the flag or argument is absent.

- Positional
  • positional("FILE") takes the first unconsumed word; .strict() only accepts words
    after "--"; .help() documents it.
  • positional_if("NAME", check) takes the first word only when check(word) holds.

- Commands and helpers
  • command("build", parser) matches a leading word and runs parser on the rest of the
    line; .short(alias) and .help(text) decorate it.
  • cargo_helper("tool", parser) drops an optional leading "tool" word.
  • literal("word") consumes a fixed word.

Metadata (sanitized on construction)
- short names are single letters or digits; long names must match
  r"[^\W\d_](-?[^\W_]+)*" (no leading dashes, no underscores).
- env names are non-empty strings without whitespace.
- help and metavar strings are trimmed; empty strings are rejected.

Quick example:
    >>> from bowline.params import short, long, positional
    >>> verbose = short("v").long("verbose").help("print more").switch()
    >>> output = short("o").long("output").argument("FILE")
    >>> source = positional("SOURCE")
"""
import os
import re

from rich.text import Text

from .faults import FaultCode, MessageError, MissingError, MissingItem
from .meta import Argument, Command, Flag, Leaf, Named, Optional, Positional
from .parsers import Parser, ParserType, construct
from .tokens import LongFlag, PositionalWord, ShortFlag, Word
from .utils import *


def _sanitize_text(cls, label, value, /):
    if not isinstance(value, str | Text | Unset):
        raise TypeError(f"{cls.__typename__} {label!r} must be a string")
    elif isinstance(value, str) and not (value := value.strip()):
        raise ValueError(f"{cls.__typename__} {label!r} cannot be empty")
    return coalesce(value)


def _sanitize_short(cls, letter, /):
    if not isinstance(letter, str):
        raise TypeError(f"{cls.__typename__} short names must be strings")
    elif not re.fullmatch(r"[^\W_]", letter):
        raise ValueError(f"{cls.__typename__} short names must be a single letter or digit, got {letter!r}")
    return letter


def _sanitize_long(cls, name, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} long names must be strings")
    elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", name):
        raise ValueError(f"{cls.__typename__} long names must be valid shell-style names (without dashes), got {name!r}")
    return name


def _sanitize_env(cls, variable, /):
    if not isinstance(variable, str):
        raise TypeError(f"{cls.__typename__} env names must be strings")
    elif not variable or re.search(r"\s|=", variable):
        raise ValueError(f"{cls.__typename__} env names must be non-empty and contain no whitespace or '='")
    return variable


def _missing(state, item, /):
    return MissingError([MissingItem(item, state.scope.start, state.scope)])


class NamedArg(metaclass=ParserType, sealed=True):
    """
    Builder for named items: names, an optional env variable and a help message.
    """
    __introspectable__ = ("shorts", "longs", "variable", "descr")

    def __init__(self, shorts=(), longs=(), variable=None, descr=None, /):
        self._shorts = tuple(shorts)
        self._longs = tuple(longs)
        self._variable = variable
        self._descr = descr

    def short(self, letter, /):
        letter = _sanitize_short(type(self), letter)
        if letter in self._shorts:
            raise ValueError(f"{type(self).__typename__} short name {letter!r} is already in use")
        return type(self)((*self._shorts, letter), self._longs, self._variable, self._descr)

    def long(self, name, /):
        name = _sanitize_long(type(self), name)
        if name in self._longs:
            raise ValueError(f"{type(self).__typename__} long name {name!r} is already in use")
        return type(self)(self._shorts, (*self._longs, name), self._variable, self._descr)

    def env(self, variable, /):
        variable = _sanitize_env(type(self), variable)
        return type(self)(self._shorts, self._longs, variable, self._descr)

    def help(self, descr, /):
        descr = _sanitize_text(type(self), "help", descr)
        return type(self)(self._shorts, self._longs, self._variable, descr)

    def named(self):
        return Named(self._shorts, self._longs, self._variable)

    def matches(self, token, adjacent=False, /):
        """
        Whether token is one of these names; in adjacent mode only tokens carrying an
        attached value match.
        """
        match token:
            case ShortFlag(letter=letter, attached=attached):
                return letter in self._shorts and (attached or not adjacent)
            case LongFlag(name=name, attached=attached):
                return name in self._longs and (attached or not adjacent)
        return False

    def environ(self):
        """
        Return the env variable's value, or None when unset or not configured.
        """
        if self._variable is None:
            return None
        return os.environ.get(self._variable)

    def switch(self):
        return ParseFlag(self, True, False)

    def flag(self, present, absent, /):
        return ParseFlag(self, present, absent)

    def req_flag(self, present, /):
        return ParseFlag(self, present, Unset)

    def argument(self, metavar, /):
        return ParseArgument(self, _sanitize_text(ParseArgument, "metavar", metavar))


def short(letter, /):
    return NamedArg().short(letter)


def long(name, /):
    return NamedArg().long(name)


def env(variable, /):
    return NamedArg().env(variable)


class ParseFlag(Parser, sealed=True):
    """
    Presence-only item: present/absent values, absent Unset means required.
    """
    __introspectable__ = ("named", "present", "absent")

    def __init__(self, named, present, absent, /):
        if not named.shorts and not named.longs and named.variable is None:
            raise TypeError(f"{type(self).__typename__} must specify at least one name")
        self._named = named
        self._present = present
        self._absent = absent

    def _item(self):
        return Flag(self._named.named(), self._named.descr)

    def eval(self, state, /):
        if state.take_flag(self._named):
            return self._present
        if self._named.environ() is not None:
            return self._present
        if self._absent is Unset:
            raise _missing(state, self._item())
        return self._absent

    def meta(self):
        if self._absent is Unset:
            return Leaf(self._item())
        return Optional(Leaf(self._item()))


class ParseArgument(Parser, sealed=True):
    """
    Named item with a value.
    """
    __introspectable__ = ("named", "metavar", "attached")

    def __init__(self, named, metavar, attached=False, /):
        if not named.shorts and not named.longs and named.variable is None:
            raise TypeError(f"{type(self).__typename__} must specify at least one name")
        self._named = named
        self._metavar = metavar
        self._attached = bool(attached)

    def adjacent(self):
        """
        Accept only values attached to the name ("-sVALUE", "-s=VALUE", "--speed=VALUE").
        """
        return type(self)(self._named, self._metavar, True)

    def _item(self):
        return Argument(self._named.named(), self._metavar, self._named.descr)

    def eval(self, state, /):
        value = state.take_arg(self._named, self._attached)
        if value is not None:
            return value
        if (value := self._named.environ()) is not None:
            return value
        raise _missing(state, self._item())

    def meta(self):
        return Leaf(self._item())


class ParsePositional(Parser, sealed=True):
    __introspectable__ = ("metavar", "descr", "strictly")

    def __init__(self, metavar, descr=None, strictly=False, /):
        self._metavar = metavar
        self._descr = descr
        self._strictly = bool(strictly)

    def help(self, descr, /):
        return type(self)(self._metavar, _sanitize_text(type(self), "help", descr), self._strictly)

    def strict(self):
        """
        Only accept words that come after "--".
        """
        return type(self)(self._metavar, self._descr, True)

    def _item(self):
        return Positional(self._metavar, self._descr, self._strictly)

    def eval(self, state, /):
        taken = state.take_positional_word(self._metavar)
        if taken is None:
            raise _missing(state, self._item())
        strict, value = taken
        if self._strictly and not strict:
            raise MessageError(
                "expected `%s` to be on the right side of `--`" % self._metavar,
                True,
                code=FaultCode.STRICT_POSITIONAL,
                position=state.current,
                hint="put `--` before %r" % value,
            )
        return value

    def meta(self):
        return Leaf(self._item())


def positional(metavar, /):
    return ParsePositional(_sanitize_text(ParsePositional, "metavar", metavar))


class ParsePositionalIf(Parser, sealed=True):
    """
    Take the first word only when check(word) holds; otherwise consume nothing, give None.
    """
    __introspectable__ = ("metavar", "check", "descr")

    def __init__(self, metavar, check, descr=None, /):
        if not callable(check):
            raise TypeError(f"{type(self).__typename__} 'check' must be callable")
        self._metavar = metavar
        self._check = check
        self._descr = descr

    def help(self, descr, /):
        return type(self)(self._metavar, self._check, _sanitize_text(type(self), "help", descr))

    def eval(self, state, /):
        for index, token in state.items():
            if isinstance(token, Word | PositionalWord) and self._check(token.value):
                state.remove(index)
                return token.value
            break
        return None

    def meta(self):
        return Optional(Leaf(Positional(self._metavar, self._descr, False)))


def positional_if(metavar, check, /):
    return ParsePositionalIf(_sanitize_text(ParsePositionalIf, "metavar", metavar), check)


class ParseCommand(Parser, sealed=True):
    """
    A subcommand: a leading word followed by everything its own OptionParser accepts.

    On a match the command name is appended to the pool path (so alternatives prefer
    the branch that entered it) and the sub-parser runs on the tokens right of the word.
    """
    __introspectable__ = ("name", "subparser", "aliases", "descr")

    def __init__(self, name, subparser, aliases=(), descr=None, /):
        from .options import OptionParser
        if isinstance(subparser, Parser) and not isinstance(subparser, OptionParser):
            subparser = OptionParser(subparser)
        if not isinstance(subparser, OptionParser):
            raise TypeError(f"{type(self).__typename__} expects a parser, got {type(subparser).__name__}")
        self._name = name
        self._subparser = subparser
        self._aliases = tuple(aliases)
        self._descr = descr

    def short(self, alias, /):
        """
        Add an alternative spelling for the command word.
        """
        alias = _sanitize_text(type(self), "short", alias)
        if alias == self._name or alias in self._aliases:
            raise ValueError(f"{type(self).__typename__} alias {alias!r} is already in use")
        return type(self)(self._name, self._subparser, (*self._aliases, alias), self._descr)

    def help(self, descr, /):
        return type(self)(self._name, self._subparser, self._aliases, _sanitize_text(type(self), "help", descr))

    def _item(self):
        return Command(
            self._name,
            self._aliases[0] if self._aliases else None,
            self._descr or self._subparser.description,
            self._subparser.meta(),
        )

    def eval(self, state, /):
        if not any(state.take_cmd(word) for word in (self._name, *self._aliases)):
            raise _missing(state, self._item())

        state.path.append(self._name)
        outer = state.scope
        state.set_scope(range(state.current + 1, outer.stop))
        try:
            return self._subparser.run_subparser(state)
        finally:
            state.set_scope(outer)

    def meta(self):
        return Leaf(self._item())


def command(name, subparser, /):
    if not isinstance(name, str):
        raise TypeError("command() 'name' must be a string")
    elif not re.fullmatch(r"[^\W_](-?[^\W_]+)*", name):
        raise ValueError(f"command() 'name' must be a valid shell-style word, got {name!r}")
    return ParseCommand(name, subparser)


class ParseLiteral(Parser, sealed=True):
    """
    Consume the first unconsumed token spelled exactly as word.
    """
    __introspectable__ = ("word", "descr")

    def __init__(self, word, descr=None, /):
        self._word = word
        self._descr = descr

    def help(self, descr, /):
        return type(self)(self._word, _sanitize_text(type(self), "help", descr))

    def eval(self, state, /):
        for index, token in state.items():
            match token:
                case Word(value=value) | PositionalWord(value=value) if value == self._word:
                    state.remove(index)
                    return self._word
                case ShortFlag(attached=False, raw=raw) | LongFlag(attached=False, raw=raw) if raw == self._word:
                    state.remove(index)
                    return self._word
        raise _missing(state, Positional(self._word, self._descr, False))

    def meta(self):
        return Leaf(Positional(self._word, self._descr, False))


def literal(word, /):
    if not isinstance(word, str):
        raise TypeError("literal() argument must be a string")
    elif not word:
        raise ValueError("literal() argument cannot be empty")
    return ParseLiteral(word)


def cargo_helper(name, parser, /):
    """
    Accept and drop an optional leading word, as when a tool runs as "cargo tool ...".
    """
    skip = positional_if(name, lambda word: word == name).hide()
    return construct(skip, parser).map(lambda pair: pair[1])


__all__ = (
    "NamedArg",
    "ParseFlag",
    "ParseArgument",
    "ParsePositional",
    "ParsePositionalIf",
    "ParseCommand",
    "ParseLiteral",
    "short",
    "long",
    "env",
    "positional",
    "positional_if",
    "command",
    "literal",
    "cargo_helper",
)
