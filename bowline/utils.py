"""
Bowline utilities shared by the token pool, the combinators and the runner.

- Unset: "not provided" sentinel, distinct from None (a parser may legitimately
  produce None, and builders accept None as "no help text").
- coalesce(value, default): resolve Unset only.
- rename(callable, name) / @rename(name): stable names for generated methods.
- mirror(name): read-only property over "_name", handing out container copies.
- ordinal(number): "first", "second", ..., "11th" for position-first messages.

    >>> coalesce(Unset, 3), coalesce(None, 3)
    (3, None)
    >>> ordinal(2), ordinal(22)
    ('second', '22nd')
"""
import builtins
import functools
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Falsey singleton type; usable on either side of a PEP 604 union.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


Unset = UnsetType()


def coalesce(object, default=None, /):
    return default if object is Unset else object


def _renamed(callable, name, /):
    if not builtins.callable(callable):
        raise TypeError("rename() target must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        callable.__name__ = callable.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() target does not accept a new name") from None
    return callable


def rename(*parameters):
    """
    rename(callable, name) renames in place; rename(name) returns a decorator.
    """
    match parameters:
        case (callable, name):
            return _renamed(callable, name)
        case (name,):
            if not isinstance(name, str):
                raise TypeError("rename() name must be a string")
            return _renamed(lambda callable: _renamed(callable, name), "rename")
    raise TypeError("rename() takes 1 or 2 arguments but %d were given" % len(parameters))


def _detach(object):
    # tuples (tokens, names, ranges of the pool) are immutable already
    match object:
        case tuple() | str() | range():
            return object
        case Mapping():
            return {key: _detach(value) for key, value in object.items()}
        case Set():
            return set(map(_detach, object))
        case Sequence():
            return list(map(_detach, object))
    return object


def mirror(name, /):
    """
    Read-only property returning a detached copy of self._<name>.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    attribute = "_" + name

    @rename(name)
    def getter(self):
        return _detach(getattr(self, attribute))

    return property(getter)


_WORDS = ("first", "second", "third", "fourth", "fifth", "sixth", "seventh", "eighth", "ninth", "tenth")


@functools.cache
def ordinal(number, /):
    if 1 <= number <= len(_WORDS):
        return _WORDS[number - 1]
    if 10 < number % 100 < 20:
        return "%dth" % number
    return "%d%s" % (number, {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th"))


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "rename",
    "mirror",
    "ordinal",
)
