# python
"""
OptionParser behavioral tests.

Scope
- Validate run() prompt forms (sys.argv, shell-like string, iterable) and the shell
  switch (raise versus print-and-exit).
- Validate the built-ins (-h/--help, -V/--version) and ambiguity reporting.
- Validate usage/help/version rendering and builder immutability.

Conventions
- Test method names follow CamelCase per project convention.
- Rendered output is captured with a rich Console writing to a StringIO.
"""

from __future__ import annotations

import io
import sys
import unittest
from unittest import TestCase, mock

from rich.console import Console

from bowline import (
    AmbiguityError,
    FaultCode,
    MessageError,
    OptionParser,
    TerminationSignal,
    command,
    construct,
    long,
    positional,
    short,
)


def render(renderable):
    console = Console(file=io.StringIO(), width=100, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


class TestRun(TestCase):

    def setUp(self):
        self.inner = construct(short("v").long("verbose").help("print more").switch(), positional("FILE").help("input"))
        self.parser = self.inner.to_options(descr="process a file")

    def testShellLikeString(self):
        self.assertEqual(self.parser.run("-v 'my file'"), (True, "my file"))

    def testIterableIsTrimmed(self):
        self.assertEqual(self.parser.run([" f ", "", "-v"]), (True, "f"))

    def testSysArgv(self):
        with mock.patch.object(sys, "argv", ["prog", "f"]):
            self.assertEqual(self.parser.run(), (False, "f"))

    def testBadPrompt(self):
        with self.assertRaises(TypeError):
            self.parser.run(42)
        with self.assertRaises(TypeError):
            self.parser.run(["ok", 1])

    def testLeftoverFlag(self):
        for argv, leftover in ((["f", "-x"], "-x"), (["f", "--extra"], "--extra"), (["f", "g"], "g")):
            with self.subTest(argv=argv):
                with self.assertRaises(MessageError) as cm:
                    self.parser.run(argv)
                self.assertEqual(str(cm.exception), "`%s` is not expected in this context" % leftover)
                self.assertEqual(cm.exception.options["code"], FaultCode.UNEXPECTED_ITEM)
                self.assertEqual(cm.exception.position, 1)

    def testShellModeExits(self):
        parser = self.parser.configure(shell=True)
        with mock.patch("bowline.faults.console.print"):
            with self.assertRaises(SystemExit) as cm:
                parser.run(["a", "b"])
        self.assertEqual(cm.exception.code, 1)

    def testShellModeHelpExitsCleanly(self):
        parser = self.parser.configure(shell=True)
        with mock.patch("bowline.faults.stdout.print"):
            with self.assertRaises(SystemExit) as cm:
                parser.run(["--help"])
        self.assertEqual(cm.exception.code, 0)

    def testAmbiguousBundle(self):
        parser = construct(short("a").switch(), short("b").switch(), short("a").long("alpha").argument("A").optional())
        with self.assertRaises(AmbiguityError) as cm:
            parser.to_options().run(["-ab"])
        self.assertEqual(cm.exception.code, FaultCode.AMBIGUOUS_BUNDLE)
        self.assertEqual(cm.exception.position, 0)


class TestBuiltins(TestCase):

    def setUp(self):
        self.parser = construct(short("v").switch(), positional("FILE")).to_options(version="1.2.3")

    def testHelp(self):
        for flag in ("-h", "--help"):
            with self.subTest(flag=flag):
                with self.assertRaises(TerminationSignal) as cm:
                    self.parser.run([flag])
                self.assertEqual(cm.exception.options["code"], FaultCode.HELP_REQUESTED)

    def testHelpAfterOtherInput(self):
        with self.assertRaises(TerminationSignal):
            self.parser.run(["f", "-v", "--help"])

    def testVersion(self):
        with self.assertRaises(TerminationSignal) as cm:
            self.parser.run(["f", "-V"])
        self.assertEqual(cm.exception.options["code"], FaultCode.VERSION_REQUESTED)
        self.assertTrue(str(cm.exception.output).endswith(" 1.2.3"))

    def testVersionNeedsRelease(self):
        parser = construct(short("v").switch(), positional("FILE")).to_options()
        with self.assertRaises(MessageError) as cm:
            parser.run(["f", "-V"])
        self.assertEqual(str(cm.exception), "`-V` is not expected in this context")

    def testHelpInsideCommand(self):
        parser = command("go", short("x").switch().to_options(descr="go somewhere")).to_options()
        with self.assertRaises(TerminationSignal) as cm:
            parser.run(["go", "--help"])
        self.assertIn("go somewhere", render(cm.exception.output))


class TestRendering(TestCase):

    def setUp(self):
        self.parser = OptionParser(
            construct(
                short("v").long("verbose").help("print more").switch(),
                long("jobs").env("JOBS").help("parallel jobs").argument("N").fallback("1").display_fallback(),
                positional("FILE").help("input file"),
            ),
            descr="process a file",
            footer="see the docs",
            colorful=False,
        )

    def testUsage(self):
        self.assertEqual(self.parser.render_usage(("prog",)).plain, "usage: prog [-v] [--jobs=N] FILE")

    def testCustomUsage(self):
        self.assertEqual(self.parser.usage("prog [stuff]").render_usage().plain, "usage: prog [stuff]")

    def testHelpSections(self):
        output = render(self.parser.render_help(("prog",)))
        for fragment in (
            "usage: prog",
            "process a file",
            "available positional items:",
            "FILE",
            "input file",
            "available options:",
            "-v, --verbose",
            "--jobs=N",
            "parallel jobs",
            "[env:JOBS]",
            "[default: 1]",
            "-h, --help",
            "see the docs",
        ):
            self.assertIn(fragment, output)
        self.assertNotIn("--version", output)

    def testGroupHelp(self):
        parser = construct(short("a").switch(), short("b").switch()).group_help("switches").to_options()
        self.assertIn("switches:", render(parser.render_help(("prog",))))

    def testFancyPanel(self):
        output = render(self.parser.configure(fancy=True).render_help(("prog",)))
        self.assertIn("HELP", output)

    def testVersionLine(self):
        self.assertTrue(self.parser.version("2.0").render_version().plain.endswith(" 2.0"))


class TestBuilders(TestCase):

    def testImmutable(self):
        base = positional("FILE").to_options()
        derived = base.descr("x").header("h").footer("f")
        self.assertIsNone(base.description)
        self.assertEqual(derived.description, "x")
        self.assertEqual(derived.heading, "h")
        self.assertEqual(derived.epilog, "f")

    def testConfigure(self):
        parser = positional("FILE").to_options().configure(fancy=True)
        self.assertTrue(parser.fancy)
        self.assertFalse(parser.shell)
        self.assertTrue(parser.colorful)

    def testSwitchesMustBeBooleans(self):
        with self.assertRaises(TypeError):
            OptionParser(positional("FILE"), shell="yes")

    def testEmptyTextRejected(self):
        with self.assertRaises(ValueError):
            positional("FILE").to_options(descr="  ")


if __name__ == "__main__":
    unittest.main()
