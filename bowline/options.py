r"""
Bowline options: the runnable top of a parser tree.

Overview
- OptionParser wraps any parser with program information and runs it.
  • descr(text) / header(text) / footer(text): help page paragraphs.
  • usage(text): replaces the generated usage line.
  • version(text): enables -V/--version.
  • configure(shell=..., fancy=..., colorful=...): runtime rendering switches.
  Every builder returns a new OptionParser; the original is left untouched.

Running
- run(prompt=Unset)
  • Unset: read sys.argv[1:]; str: shell-like string split with shlex; Iterable[str]:
    pre-split items (trimmed, empty items dropped).
  • shell=False (default): faults are raised (ParseFault subclasses).
  • shell=True: faults are printed with rich; help and version go to stdout and exit
    with status 0, errors go to stderr and exit with status 1.
- run_inner(argv): tokenize with the short letters the parser declares (plus -h/-V),
  evaluate, then check the built-ins and the leftovers.
- run_subparser(state): the same on a live pool, used by command().

Built-ins and leftovers
- -h/--help anywhere the parser did not consume it renders the help page.
- -V/--version does the same with the version line (only when a version is set).
- A token nobody consumed fails with "`x` is not expected in this context", or with
  "`-b` cannot be used at the same time as `-a`" when a losing alternative had taken it.

Help page layout
- usage line, header, description, item sections (positionals, options, commands and
  group_help() groups), footer; wrapped in a panel when fancy=True.
- Palette overridable through __styles__ in __main__; program name through __prog__.
"""
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .faults import FaultCode, MessageError, MissingError, ParseFault, TerminationSignal, trigger
from .meta import Argument, Command, Decorated, Flag, HideUsage, Leaf, MultiArg, Named, Positional, Skip
from .params import NamedArg
from .parsers import Parser, _check_parser
from .state import State
from .utils import *

_HELP = NamedArg().short("h").long("help")
_VERSION = NamedArg().short("V").long("version")


def _sanitize_text(cls, label, value, /):
    if not isinstance(value, str | Text | Unset):
        raise TypeError(f"{cls.__typename__} {label!r} must be a string")
    elif isinstance(value, str) and not (value := value.strip()):
        raise ValueError(f"{cls.__typename__} {label!r} cannot be empty")
    return coalesce(value)


class OptionParser(Parser, sealed=True):
    """
    A parser with program information, able to run against raw arguments.
    """
    __introspectable__ = ("inner", "description", "heading", "epilog", "synopsis", "release", "shell", "fancy", "colorful")

    def __init__(
        self,
        inner,
        /,
        descr=Unset,
        header=Unset,
        footer=Unset,
        usage=Unset,
        version=Unset,
        shell=False,
        fancy=False,
        colorful=True,
    ):
        self._inner = _check_parser(type(self), inner)
        self._description = _sanitize_text(type(self), "descr", descr)
        self._heading = _sanitize_text(type(self), "header", header)
        self._epilog = _sanitize_text(type(self), "footer", footer)
        self._synopsis = _sanitize_text(type(self), "usage", usage)
        self._release = _sanitize_text(type(self), "version", version)

        for name, value in (("shell", shell), ("fancy", fancy), ("colorful", colorful)):
            if not isinstance(value, bool):
                raise TypeError(f"{type(self).__typename__} {name!r} must be a boolean")
        self._shell = shell
        self._fancy = fancy
        self._colorful = colorful

    def _derive(self, **overrides):
        options = {
            "descr": self._description,
            "header": self._heading,
            "footer": self._epilog,
            "usage": self._synopsis,
            "version": self._release,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
        }
        return type(self)(self._inner, **{
            name: Unset if value is None else value for name, value in options.items()
        } | overrides)

    def descr(self, text, /):
        return self._derive(descr=text)

    def header(self, text, /):
        return self._derive(header=text)

    def footer(self, text, /):
        return self._derive(footer=text)

    def usage(self, text, /):
        return self._derive(usage=text)

    def version(self, text, /):
        return self._derive(version=text)

    def configure(self, shell=Unset, fancy=Unset, colorful=Unset):
        """
        Change runtime switches; Unset keeps the current value.
        """
        return self._derive(
            shell=coalesce(shell, self._shell),
            fancy=coalesce(fancy, self._fancy),
            colorful=coalesce(colorful, self._colorful),
        )

    @property
    def name(self):
        return getattr(__import__("__main__"), "__prog__", Path(sys.argv[0]).name or "program")

    # --- parser protocol ---

    def eval(self, state, /):
        return self.run_subparser(state)

    def meta(self):
        return self._inner.meta()

    # --- running ---

    def run(self, prompt=Unset):
        """
        Parse prompt (see the module overview for accepted forms) and return the value.
        """
        if prompt is Unset:
            argv = sys.argv[1:]
        elif isinstance(prompt, str):
            argv = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            def _sanitized(iterable):
                for item in iterable:
                    if not isinstance(item, str):
                        raise TypeError("run() argument must be a string or an iterable of strings")
                    if item := item.strip():
                        yield item
            argv = list(_sanitized(prompt))
        else:
            raise TypeError("run() argument must be a string or an iterable of strings")

        try:
            return self.run_inner(argv)
        except ParseFault as fault:
            trigger(fault, tool=self, shell=self._shell, fancy=self._fancy, colorful=self._colorful)

    def run_inner(self, argv, /):
        """
        Tokenize argv and run; faults are raised, never printed.
        """
        flags, args = self.meta().collect_shorts()
        flags |= {"h", "V"} if self._release is not None else {"h"}
        state, fault = State.construct(argv, flags, args)
        if fault is not None:
            raise fault
        return self.run_subparser(state)

    def run_subparser(self, state, /):
        """
        Run on a live pool: evaluate, then check the built-ins and the leftovers.
        """
        before = state.clone()
        try:
            value = self._inner.eval(state)
        except TerminationSignal:
            raise
        except ParseFault as fault:
            self._check_builtins(before)
            if isinstance(fault, MissingError) and (token := state.peek()) is not None:
                raise MissingError(fault.items, **fault.options | {"got": str(token)}) from None
            raise
        self._check_builtins(state)
        self._check_leftovers(state)
        return value

    def _check_builtins(self, state, /):
        route = (self.name, *state.path)
        if state.take_flag(_HELP):
            raise TerminationSignal(self.render_help(route), code=FaultCode.HELP_REQUESTED, title="help requested")
        if self._release is not None and state.take_flag(_VERSION):
            raise TerminationSignal(
                self.render_version(), code=FaultCode.VERSION_REQUESTED, title="version requested"
            )

    def _check_leftovers(self, state, /):
        if (conflict := state.conflict()) is not None:
            index, winner = conflict
            resolution = state.conflicts.get(index)
            if resolution is not None and resolution.loser is not None:
                loser, winner = str(resolution.loser), str(resolution.winner)
            else:
                loser, winner = str(state.tokens[index]), str(state.tokens[winner])
            raise MessageError(
                "`%s` cannot be used at the same time as `%s`" % (loser, winner),
                False,
                code=FaultCode.CONFLICTING_ITEMS,
                title="conflicting input",
                position=index,
                hint="pass only one of them",
            )
        for index, token in state.items():
            raise MessageError(
                "`%s` is not expected in this context" % (token,),
                False,
                code=FaultCode.UNEXPECTED_ITEM,
                title="unexpected input",
                position=index,
                hint="pass `--help` for usage information",
            )

    # --- rendering ---

    def _palette(self):
        styles = defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "usage-section": "bold #36C5F0",
            "header-section": "bold #FFFFFF",
            "description-section": "italic #A3A3A3",
            "footer-section": "#737373",
            "group-label": "bold #FFFFFF",
            "item-name": "bold #00E6FF",
            "command-name": "bold #36C5F0",
            "metavar": "bold #FFD600",
            "item-description": "#9CA3AF",
            "default": "#737373 italic",
            "program-version": "bold #00E6FF",
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self._colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self._colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        return styler, text

    def render_usage(self, route=Unset):
        """
        Return the usage line as rich Text.
        """
        styler, text = self._palette()
        route = coalesce(route, (self.name,))
        usage = Text()
        usage.append(text("usage", styler("usage-label"))).append(": ")
        if self._synopsis is not None:
            return usage.append(text(self._synopsis, styler("usage-section")))
        usage.append(text(" ".join(route), styler("program-name")))
        if synopsis := str(self.meta()):
            usage.append(" ").append(text(synopsis, styler("usage-section")))
        return usage

    def render_help(self, route=Unset):
        """
        Return the help page as a rich renderable.
        """
        styler, text = self._palette()
        renders = [self.render_usage(route)]

        if self._heading is not None:
            renders.append(text(self._heading, styler("header-section")))
        if self._description is not None:
            renders.append(text(self._description, styler("description-section")))

        def label(item):
            match item:
                case Positional(metavar=metavar, strict=strict):
                    return Text.assemble(text("-- " if strict else "", ""), text(metavar, styler("metavar")))
                case Flag(name=name) | MultiArg(name=name):
                    names = Text(", ").join(text(spelling, styler("item-name")) for spelling in name.spellings())
                    if isinstance(item, MultiArg):
                        for metavar, _ in item.fields:
                            names.append(" ").append(text(metavar, styler("metavar")))
                    return names
                case Argument(name=name, metavar=metavar):
                    names = Text(", ").join(text(spelling, styler("item-name")) for spelling in name.spellings())
                    return names.append("=").append(text(metavar, styler("metavar")))
                case Command(name=name, short=alias):
                    return Text(", ").join(text(word, styler("command-name")) for word in filter(None, (name, alias)))
            return text(str(item))

        def describe(item, suffix):
            descr = text(item.help, styler("item-description")).copy()
            if isinstance(item, Flag | Argument | MultiArg) and item.name.env:
                descr.append(" [env:%s]" % item.name.env, styler("default"))
            if suffix:
                descr.append((" " if descr else "") + suffix, styler("default"))
            return descr

        sections = {}
        for title, item, suffix in _walk(self.meta()):
            if title is None:
                match item:
                    case Positional():
                        title = "available positional items"
                    case Command():
                        title = "available commands"
                    case _:
                        title = "available options"
            sections.setdefault(title, []).append((item, suffix))

        extras = [(Flag(Named(("h",), ("help",), None), "print help information"), "")]
        if self._release is not None:
            extras.append((Flag(Named(("V",), ("version",), None), "print version information"), ""))
        sections.setdefault("available options", []).extend(extras)

        for title, rows in sections.items():
            table = Table.grid(padding=(0, 2))
            table.add_column(no_wrap=True)
            table.add_column()
            for item, suffix in rows:
                table.add_row(Text("  ") + label(item), describe(item, suffix))
            renders.append(Group(Text.assemble(text(title, styler("group-label")), ":"), table))

        if self._epilog is not None:
            renders.append(text(self._epilog, styler("footer-section")))

        renderable = Group(*(
            Group(render, Text("")) if index < len(renders) - 1 else render
            for index, render in enumerate(renders)
        ))
        if self._fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[ ", f"{self.name} help".upper(), " ]", style=styler("panel-title")),
                title_align="left",
            )
        return renderable

    def render_version(self):
        styler, text = self._palette()
        return Text.assemble(
            text(self.name, styler("program-name")), " ", text(self._release, styler("program-version"))
        )


def _walk(meta, title=None, suffix="", /):
    """
    Yield (group title or None, item, default suffix) for every item shown in help.
    """
    match meta:
        case Skip():
            return
        case Leaf(item=item):
            yield title, item, suffix
        case Decorated(inner=inner, text=text, place="header"):
            yield from _walk(inner, text, suffix)
        case Decorated(inner=inner, text=text):
            yield from _walk(inner, title, text)
        case HideUsage(inner=inner):
            yield from _walk(inner, title, suffix)
        case _:
            for child in meta.children():
                yield from _walk(child, title, suffix)


__all__ = (
    "OptionParser",
)
