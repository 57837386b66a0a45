"""
Bowline meta: a structural description of what a parser accepts.

Every parser answers meta() with a small tree built from the variants below. The tree is
never used to drive parsing itself; it feeds
- the runner, which collects short letters to disambiguate "-abc" bundles,
- missing-input messages ("expected `-v` or `FILE`"),
- help and usage rendering,
- anywhere(), which needs the leading items of its inner parser.

Items (leaves)
- Positional(metavar, help, strict)
- Command(name, short, help)
- Flag(name, help)
- Argument(name, metavar, help)
- MultiArg(name, help, fields)

Nodes
- And, Or, Optional, Required, Many, Decorated, HideUsage, Anywhere, Leaf, Skip
"""
from collections import namedtuple


class Named(namedtuple("Named", ("shorts", "longs", "env"))):
    """
    The names a named item answers to: short letters, long names and an env variable.
    """
    __slots__ = ()

    def __str__(self):
        if self.shorts:
            return "-" + self.shorts[0]
        if self.longs:
            return "--" + self.longs[0]
        return "$" + (self.env or "")

    def spellings(self):
        """
        All command-line spellings, shorts first ("-v", "--verbose").
        """
        return tuple("-" + short for short in self.shorts) + tuple("--" + long for long in self.longs)


class Positional(namedtuple("Positional", ("metavar", "help", "strict"))):
    __slots__ = ()

    def __str__(self):
        return "-- " + self.metavar if self.strict else self.metavar


class Command(namedtuple("Command", ("name", "short", "help", "meta"), defaults=(None,))):
    """
    A subcommand word; meta describes what the subcommand accepts.
    """
    __slots__ = ()

    def __str__(self):
        return self.name


class Flag(namedtuple("Flag", ("name", "help"))):
    __slots__ = ()

    def __str__(self):
        return str(self.name)


class Argument(namedtuple("Argument", ("name", "metavar", "help"))):
    __slots__ = ()

    def __str__(self):
        if self.name.shorts or not self.name.longs:
            return "%s %s" % (self.name, self.metavar)
        return "%s=%s" % (self.name, self.metavar)


class MultiArg(namedtuple("MultiArg", ("name", "help", "fields"))):
    __slots__ = ()

    def __str__(self):
        return " ".join((str(self.name), *(metavar for metavar, _ in self.fields)))


class Meta:
    """
    Base node. Subclasses are plain value objects compared structurally.
    """
    __slots__ = ()

    def __eq__(self, other):
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self):
        return hash((type(self), self._key()))

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join(map(repr, self._key())))

    def __str__(self):
        return _render(self.normalized(), False)

    def _key(self):
        return ()

    def children(self):
        return ()

    def or_(self, other, /):
        """
        Build an alternative, flattening nested alternatives on either side.
        """
        left = self.members if isinstance(self, Or) else (self,)
        right = other.members if isinstance(other, Or) else (other,)
        return Or(*left, *right)

    def items(self):
        """
        Yield every leaf item, depth first, including ones hidden from usage.
        """
        if isinstance(self, Leaf):
            yield self.item
        for child in self.children():
            yield from child.items()

    def first_items(self):
        """
        Items that can start a match: the head of a sequence, every branch of an
        alternative.
        """
        match self:
            case And(members=()):
                return []
            case And(members=(head, *_)):
                return head.first_items()
            case Or(members=members):
                return [item for member in members for item in member.first_items()]
            case Leaf(item=item):
                return [item]
            case Skip() | HideUsage():
                return []
            case _:
                return self.children()[0].first_items()

    def collect_shorts(self):
        """
        Return (flags, args): short letters of presence-only flags and of value-taking
        arguments, used to resolve "-abc" bundles.
        """
        flags = set()
        args = set()
        for item in self.items():
            match item:
                case Flag(name=name) | MultiArg(name=name):
                    flags.update(name.shorts)
                case Argument(name=name):
                    args.update(name.shorts)
                case Command(meta=Meta() as meta):
                    nested = meta.collect_shorts()
                    flags |= nested[0]
                    args |= nested[1]
        return flags, args

    def normalized(self):
        """
        Drop Skip nodes and collapse trivial wrappers so usage lines stay short.
        """
        return self


class Skip(Meta):
    __slots__ = ()


class Leaf(Meta):
    __slots__ = ("item",)

    def __init__(self, item, /):
        self.item = item

    def _key(self):
        return (self.item,)


class _Group(Meta):
    __slots__ = ("members",)

    def __init__(self, *members):
        self.members = tuple(members)

    def _key(self):
        return self.members

    def children(self):
        return self.members

    def normalized(self):
        members = []
        for member in map(Meta.normalized, self.members):
            if isinstance(member, Skip):
                continue
            # flatten same-kind groups: (a b) c -> a b c
            members.extend(member.members if type(member) is type(self) else (member,))
        match members:
            case []:
                return Skip()
            case [member]:
                return member
            case _:
                return type(self)(*members)


class And(_Group):
    __slots__ = ()


class Or(_Group):
    __slots__ = ()


class _Wrapper(Meta):
    __slots__ = ("inner",)

    def __init__(self, inner, /):
        self.inner = inner

    def _key(self):
        return (self.inner,)

    def children(self):
        return (self.inner,)

    def normalized(self):
        inner = self.inner.normalized()
        if isinstance(inner, Skip):
            return inner
        return type(self)(inner)


class Optional(_Wrapper):
    __slots__ = ()

    def normalized(self):
        inner = self.inner.normalized()
        if isinstance(inner, Skip | Optional):
            return inner
        if isinstance(inner, Many) and isinstance(inner.inner, Optional):
            return inner
        return Optional(inner)


class Required(_Wrapper):
    __slots__ = ()

    def normalized(self):
        return self.inner.normalized()


class Many(_Wrapper):
    __slots__ = ()


class HideUsage(_Wrapper):
    __slots__ = ()


class Anywhere(_Wrapper):
    __slots__ = ()


class Decorated(_Wrapper):
    """
    Inner meta plus a help decoration: a group header or a "[default: x]" suffix.
    """
    __slots__ = ("text", "place")

    def __init__(self, inner, text, place="header", /):
        super().__init__(inner)
        self.text = text
        self.place = place

    def _key(self):
        return (self.inner, self.text, self.place)

    def normalized(self):
        inner = self.inner.normalized()
        if isinstance(inner, Skip):
            return inner
        return Decorated(inner, self.text, self.place)


def _render(meta, nested):
    """
    Render a normalized meta as a usage fragment.

    - nested: True when the fragment sits inside a sequence or repetition and an
      alternative must be parenthesized.
    """
    match meta:
        case Skip() | HideUsage():
            return ""
        case Leaf(item=item):
            return str(item)
        case And(members=members):
            text = " ".join(filter(None, (_render(member, True) for member in members)))
            return text
        case Or(members=members):
            text = " | ".join(filter(None, (_render(member, False) for member in members)))
            return "(%s)" % text if nested else text
        case Optional(inner=inner):
            return "[%s]" % _render(inner, False)
        case Many(inner=Optional(inner=inner)):
            return "[%s]..." % _render(inner, False)
        case Many(inner=inner):
            fragment = _render(inner, True)
            if isinstance(inner, And):
                fragment = "(%s)" % fragment
            return fragment + "..."
        case Required(inner=inner) | Anywhere(inner=inner) | Decorated(inner=inner):
            return _render(inner, nested)
    raise TypeError("unexpected meta node %r" % (meta,))


__all__ = (
    "Named",
    "Positional",
    "Command",
    "Flag",
    "Argument",
    "MultiArg",
    "Meta",
    "Skip",
    "Leaf",
    "And",
    "Or",
    "Optional",
    "Required",
    "Many",
    "HideUsage",
    "Anywhere",
    "Decorated",
)
