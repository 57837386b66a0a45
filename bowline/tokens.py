"""
Bowline tokens: classify raw command-line strings once, up front.

Token variants
- ShortFlag(letter, attached, raw): "-v", or "-s" when a value was glued to it ("-s=12", "-s12").
- LongFlag(name, attached, raw): "--speed", or "--speed" from "--speed=12".
- Word(value): anything unclassified, including values split off a flag.
- PositionalWord(value): anything after the "--" marker (the marker itself included).

Short bundles
- "-abc" is ambiguous: three flags, or "-a" with the value "bc". tokenize() resolves it
  against the caller-supplied sets of short flag letters and short argument letters:

      can be flags | can be arg | result
      -------------+------------+----------------------------------------
      yes          | yes        | AmbiguityError, tokenizing stops
      yes          | no         | ShortFlag per letter
      no           | yes        | ShortFlag(first, attached) + Word(rest)
      no           | no         | Word (a strange positional)

Classification happens once; tokens are never re-tokenized later, so values such as
"-s=-12" keep "-12" as a plain Word.
"""
from collections import namedtuple

from .faults import AmbiguityError


class ShortFlag(namedtuple("ShortFlag", ("letter", "attached", "raw"))):
    __slots__ = ()

    @property
    def name(self):
        return self.letter

    def __str__(self):
        return "-" + self.letter


class LongFlag(namedtuple("LongFlag", ("name", "attached", "raw"))):
    __slots__ = ()

    def __str__(self):
        return "--" + self.name


class Word(namedtuple("Word", ("value",))):
    __slots__ = ()

    def __str__(self):
        return self.value


class PositionalWord(namedtuple("PositionalWord", ("value",))):
    __slots__ = ()

    def __str__(self):
        return self.value


def isflag(token, /):
    """
    Return True for ShortFlag/LongFlag tokens.
    """
    return isinstance(token, ShortFlag | LongFlag)


def split_argument(raw, /):
    """
    Split one raw string into ("short" | "long", name, value-or-None).

    Returns None when the string is not a flag at all: plain words, "-" (stdin by
    convention) and the "--" marker. A short form only carries an "=value" tail when
    exactly one letter precedes the "=" ("-s=12"); "-ab=12" is left to the caller as a
    bundle body "ab=12".
    """
    if not isinstance(raw, str):
        raise TypeError("split_argument() argument must be a string")

    if raw.startswith("--"):
        body = raw[2:]
        if not body:
            return None
        name, equals, value = body.partition("=")
        if not name:
            return None
        return "long", name, value if equals else None

    if raw.startswith("-") and len(raw) > 1:
        body = raw[1:]
        if len(body) > 1 and body[1] == "=":
            return "short", body[0], body[2:]
        return "short", body, None

    return None


def tokenize(argv, /, flags=(), args=()):
    """
    Classify raw strings into tokens.

    Parameters
    - argv: Iterable[str], the raw arguments (program name excluded).
    - flags: Iterable[str], short letters known to be presence-only flags.
    - args: Iterable[str], short letters known to take a value.

    Returns
    - (tokens, fault, marker): the token tuple, an AmbiguityError or None, and the index of
      the "--" marker token or None.

    Notes
    - On ambiguity the offending bundle is kept as a Word and the remaining input is not
      classified at all (fail fast).
    """
    flags = frozenset(flags)
    args = frozenset(args)

    tokens = []
    fault = None
    marker = None
    positional = False

    for raw in argv:
        if not isinstance(raw, str):
            raise TypeError("tokenize() arguments must be strings")

        if positional:
            tokens.append(PositionalWord(raw))
            continue

        match split_argument(raw):
            case ("short", body, None) if len(body) == 1:
                tokens.append(ShortFlag(body, False, raw))
            case ("short", body, None):
                bundle = all(letter in flags for letter in body)
                argument = body[0] in args
                match bundle, argument:
                    case True, True:
                        fault = AmbiguityError(len(tokens), raw)
                        tokens.append(Word(raw))
                        break
                    case True, False:
                        # only the first letter keeps the raw spelling
                        tokens.extend(ShortFlag(letter, False, raw if not index else "") for index, letter in enumerate(body))
                    case False, True:
                        tokens.append(ShortFlag(body[0], True, raw))
                        tokens.append(Word(body[1:]))
                    case _:
                        tokens.append(Word(raw))
            case ("short", letter, value):
                tokens.append(ShortFlag(letter, True, raw))
                tokens.append(Word(value))
            case ("long", name, None):
                tokens.append(LongFlag(name, False, raw))
            case ("long", name, value):
                tokens.append(LongFlag(name, True, raw))
                tokens.append(Word(value))
            case None if raw == "--":
                marker = len(tokens)
                positional = True
                tokens.append(PositionalWord(raw))
            case None:
                tokens.append(Word(raw))

    return tuple(tokens), fault, marker


__all__ = (
    "ShortFlag",
    "LongFlag",
    "Word",
    "PositionalWord",
    "isflag",
    "split_argument",
    "tokenize",
)
