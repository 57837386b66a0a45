# python
"""
Tokenizer behavioral tests.

Scope
- Validate the short-bundle truth table (flags x argument letters).
- Validate attached values ("-s=12", "--speed=12", "-s=-12") and the "--" marker.
- Validate split_argument() on the raw forms it recognizes and refuses.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from bowline import AmbiguityError
from bowline.tokens import LongFlag, PositionalWord, ShortFlag, Word, isflag, split_argument, tokenize


class TestBundles(TestCase):
    """The four outcomes of "-abc"."""

    def testAmbiguousWhenBothReadingsFit(self):
        tokens, fault, marker = tokenize(["-abc"], "abc", "a")
        self.assertIsInstance(fault, AmbiguityError)
        self.assertEqual(fault.index, 0)
        self.assertEqual(tokens, (Word("-abc"),))
        self.assertIsNone(marker)

    def testFlagsOnlySplitsPerLetter(self):
        tokens, fault, _ = tokenize(["-abc"], "abc", "")
        self.assertIsNone(fault)
        self.assertEqual([token.letter for token in tokens], ["a", "b", "c"])
        self.assertTrue(all(isinstance(token, ShortFlag) and not token.attached for token in tokens))

    def testArgumentOnlyAttachesRest(self):
        tokens, fault, _ = tokenize(["-abc"], "", "a")
        self.assertIsNone(fault)
        self.assertEqual(tokens, (ShortFlag("a", True, "-abc"), Word("bc")))

    def testNeitherIsAWord(self):
        tokens, fault, _ = tokenize(["-abc"])
        self.assertIsNone(fault)
        self.assertEqual(tokens, (Word("-abc"),))

    def testAmbiguityStopsTokenizing(self):
        tokens, fault, _ = tokenize(["x", "-abc", "y", "z"], "abc", "a")
        self.assertIsInstance(fault, AmbiguityError)
        self.assertEqual(fault.index, 1)
        self.assertEqual(tokens, (Word("x"), Word("-abc")))

    def testAmbiguityMessageNamesPosition(self):
        _, fault, _ = tokenize(["x", "-ab"], "ab", "a")
        self.assertIn("'-ab'", str(fault))
        self.assertIn("second position", str(fault))


class TestAttachedValues(TestCase):

    def testShortEqualsValue(self):
        tokens, _, _ = tokenize(["-s=12"])
        self.assertEqual(tokens, (ShortFlag("s", True, "-s=12"), Word("12")))

    def testShortEqualsDashValueIsNotRetokenized(self):
        tokens, _, _ = tokenize(["-s=-12"])
        self.assertEqual(tokens, (ShortFlag("s", True, "-s=-12"), Word("-12")))

    def testLongEqualsValue(self):
        tokens, _, _ = tokenize(["--speed=12"])
        self.assertEqual(tokens, (LongFlag("speed", True, "--speed=12"), Word("12")))

    def testLongWithoutValue(self):
        tokens, _, _ = tokenize(["--speed", "12"])
        self.assertEqual(tokens, (LongFlag("speed", False, "--speed"), Word("12")))

    def testLongEmptyValueIsKept(self):
        tokens, _, _ = tokenize(["--name="])
        self.assertEqual(tokens, (LongFlag("name", True, "--name="), Word("")))


class TestMarker(TestCase):

    def testEverythingAfterMarkerIsPositional(self):
        tokens, _, marker = tokenize(["-v", "--", "-x", "--long", "--"], "v", "")
        self.assertEqual(marker, 1)
        self.assertEqual(tokens, (
            ShortFlag("v", False, "-v"),
            PositionalWord("--"),
            PositionalWord("-x"),
            PositionalWord("--long"),
            PositionalWord("--"),
        ))

    def testSingleDashIsAWord(self):
        tokens, _, _ = tokenize(["-"])
        self.assertEqual(tokens, (Word("-"),))

    def testDigitIsAShortFlag(self):
        tokens, _, _ = tokenize(["-1"])
        self.assertEqual(tokens, (ShortFlag("1", False, "-1"),))

    def testNonStringRejected(self):
        with self.assertRaises(TypeError):
            tokenize(["ok", 3])


class TestSplitArgument(TestCase):

    def testForms(self):
        self.assertEqual(split_argument("--speed"), ("long", "speed", None))
        self.assertEqual(split_argument("--speed=1"), ("long", "speed", "1"))
        self.assertEqual(split_argument("-v"), ("short", "v", None))
        self.assertEqual(split_argument("-vx"), ("short", "vx", None))
        self.assertEqual(split_argument("-s=1"), ("short", "s", "1"))

    def testNonFlags(self):
        for raw in ("word", "-", "--", "--=x", ""):
            with self.subTest(raw=raw):
                self.assertIsNone(split_argument(raw))

    def testIsFlag(self):
        self.assertTrue(isflag(ShortFlag("v", False, "-v")))
        self.assertTrue(isflag(LongFlag("verbose", False, "--verbose")))
        self.assertFalse(isflag(Word("v")))
        self.assertFalse(isflag(PositionalWord("-v")))


if __name__ == "__main__":
    unittest.main()
