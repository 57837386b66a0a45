"""
Bowline faults (parse failures, termination signals) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing failure.
- ParseFault: base exception carrying a message + options, able to render itself with rich.
- MissingError / MessageError / AmbiguityError / TerminationSignal: the taxonomy every
  primitive and combinator raises and catches.
- combine(): merge the failures of two competing alternatives into one.
- trigger(): raise a fault, or print it and exit when running as a shell command.

Taxonomy
- MissingError: nothing matched. Recoverable by optional/many/fallback and by losing
  cleanly inside an alternative. Carries MissingItem records (item, position, scope).
- MessageError: something matched but was invalid, or no input satisfied a mandatory
  constraint. Recoverable only when created with recoverable=True.
- AmbiguityError: tokenizer-only MessageError for "-abc" bundles that could be read both
  as flags and as a flag with a value. Never recoverable.
- TerminationSignal: help/version request. Not a failure of parsing; it bypasses every
  recovery path and always wins when combined.

UX goals
- Position-first messages: faults anchored at a token say where ("at second position").
- Short lowercase titles, one-sentence bodies, a single clear hint.
- Styling configurable via __styles__ in __main__, codes remappable via __codes__.
"""
import copy
import sys
from collections import defaultdict, namedtuple
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, ordinal

console = Console(stderr=True)
stdout = Console()


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    codes by parsing stage
    - tokenizing (211xx): AMBIGUOUS_BUNDLE
    - missing input (212xx): MISSING_ITEM
    - invalid input (213xx): NO_ARGUMENT, PARSE_FAILED, VALIDATION_FAILED, CUSTOM_FAILURE,
      STRICT_POSITIONAL
    - leftovers (214xx): UNEXPECTED_ITEM, CONFLICTING_ITEMS
    - termination (221xx): HELP_REQUESTED, VERSION_REQUESTED
    """
    # --- tokenizing errors (211xx) ---
    AMBIGUOUS_BUNDLE    = 21101

    # --- missing input (212xx) ---
    MISSING_ITEM        = 21201

    # --- invalid input (213xx) ---
    NO_ARGUMENT         = 21301
    PARSE_FAILED        = 21302
    VALIDATION_FAILED   = 21303
    CUSTOM_FAILURE      = 21304
    STRICT_POSITIONAL   = 21305

    # --- leftovers (214xx) ---
    UNEXPECTED_ITEM     = 21401
    CONFLICTING_ITEMS   = 21402

    # --- termination (221xx) ---
    HELP_REQUESTED      = 22101
    VERSION_REQUESTED   = 22102

    def normalize(self):
        """
        the code as shown to the user.

        the host application can provide a __codes__ mapping in __main__ to override
        numeric ids with friendlier labels; otherwise the numeric value is used.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class MissingItem(namedtuple("MissingItem", ("item", "position", "scope"))):
    """
    One thing a parser expected but did not find.

    - item: the meta Item describing what was expected (rendered in messages).
    - position: token index where it was expected.
    - scope: range of token indices that was searched.
    """
    __slots__ = ()


class ParseFault(Exception):
    """
    base type for everything a parser can raise instead of returning a value.

    options
    - the renderer reads tool/shell/fancy/colorful/title/code/hint from options; every key
      has a sensible default so a bare fault still renders.
    """
    code = FaultCode.CUSTOM_FAILURE
    title = "parse failure"
    recoverable = False

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Text | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def position(self):
        return self.options.get("position")

    def __str__(self):
        return str(self.message) if self.message is not Unset else self.title

    def __rich__(self):
        main = __import__("__main__")
        options = self.options
        colorful = options.get("colorful", True)
        fancy = options.get("fancy", False)

        styles = defaultdict(str, {
            # "prog: CODE Title" line
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",

            # message and hint lines
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        try:
            name = options["tool"].name
        except (KeyError, AttributeError):
            name = "program"
        prog = text(getattr(main, "__prog__", name), styler("prog-name"))

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(options.get("code", self.code).normalize(), styler("code")),
            " | ",
            text(options.get("title", self.title).title(), styler("error-title")),
            " ]"
        )
        message = text(str(self), styler("error-message"))
        renders = [message]
        if hint := options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if fancy:
            width = console.width - 4
            try:
                width = int(width * options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(*self._payload(), **{**self.options, **overrides})

    def _payload(self):
        return (self.message,)


class MissingError(ParseFault):
    """
    nothing matched: a list of MissingItem records, possibly empty (hidden parsers).

    recoverable by optional/many/fallback; two of them combine into one listing both.
    """
    code = FaultCode.MISSING_ITEM
    title = "missing input"
    recoverable = True

    def __init__(self, items=(), /, **options):
        self.items = tuple(items)
        super().__init__(Unset, **options)
        self.message = self._describe()

    def _describe(self):
        names = []
        for missing in self.items:
            if (name := str(missing.item)) and name not in names:
                names.append(name)
        match names:
            case []:
                expected = "expected more input"
            case [name]:
                expected = "expected %s" % _quote(name)
            case [first, second]:
                expected = "expected %s or %s" % (_quote(first), _quote(second))
            case [*head, last]:
                expected = "expected %s, or %s" % (", ".join(map(_quote, head)), _quote(last))
        if (got := self.options.get("got")) is not None:
            expected += ", got %s" % _quote(got)
        return expected

    @property
    def position(self):
        try:
            return min(missing.position for missing in self.items)
        except ValueError:
            return self.options.get("position")

    def _payload(self):
        return (self.items,)


class MessageError(ParseFault):
    """
    something matched syntactically but was rejected, or a mandatory constraint failed.

    fatal unless created with recoverable=True (then optional/fallback may swallow it).
    """
    title = "invalid input"

    def __init__(self, message=Unset, /, recoverable=False, **options):
        super().__init__(message, **options)
        self.recoverable = bool(recoverable)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, self.recoverable, **{**self.options, **overrides})


class AmbiguityError(MessageError):
    """
    a short bundle such as "-abc" reads both as flags and as a flag with a value.
    """
    code = FaultCode.AMBIGUOUS_BUNDLE
    title = "ambiguous argument"

    def __init__(self, index, text, /, **options):
        self.index = index
        self.text = text
        letters = text[1:]
        options.setdefault("position", index)
        options.setdefault("hint", "use %r to pass a value or %r for separate flags" % (
            "-%s=%s" % (letters[0], letters[1:]),
            " ".join("-" + letter for letter in letters),
        ))
        super().__init__(
            "argument %r at %s position is ambiguous: it can be a set of flags or a flag with a value" % (
                text, ordinal(index + 1)
            ),
            False,
            **options
        )

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.index, self.text, **{**self.options, **overrides})


class TerminationSignal(ParseFault):
    """
    help or version was requested; parsing stops and the output is shown instead.

    - output: str | rich renderable to show.
    - stdout: True to print to stdout (exit status 0), False for stderr (exit status 1).
    """
    code = FaultCode.HELP_REQUESTED
    title = "help requested"

    def __init__(self, output, /, stdout=True, **options):
        self.output = output
        self.stdout = bool(stdout)
        super().__init__(output if isinstance(output, str | Text) else Unset, **options)

    def __rich__(self):
        return self.output

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        (stdout if self.stdout else console).print(self.output)
        sys.exit(0 if self.stdout else 1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.output, self.stdout, **{**self.options, **overrides})


def _quote(name):
    return "`%s`" % name


def combine(first, second, /):
    """
    merge the failures of two competing branches into one.

    precedence
    - a termination signal (help/version) always wins.
    - two missing errors merge their items ("expected `-a` or `-b`").
    - a message error is more specific than a missing one.
    - otherwise the first failure is kept.
    """
    if isinstance(first, TerminationSignal):
        return first
    if isinstance(second, TerminationSignal):
        return second
    if isinstance(first, MissingError) and isinstance(second, MissingError):
        return MissingError(first.items + second.items, **first.options)
    if isinstance(first, MissingError):
        return second
    return first


def trigger(fault, /, **options):
    """
    apply runtime options to a fault, then raise or print it.

    contract
    - fault must provide __trigger__ and __replace__ methods (see ParseFault).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via the rich console; otherwise the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "MissingItem",
    "ParseFault",
    "MissingError",
    "MessageError",
    "AmbiguityError",
    "TerminationSignal",
    "combine",
    "trigger",
)
