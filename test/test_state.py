# python
"""
Token pool behavioral tests.

Scope
- Validate the primitive consumers (take_flag, take_arg, take_positional_word, take_cmd)
  on the literal scenarios they are meant to handle.
- Validate pool bookkeeping: remove/remaining, scope, clone/swap isolation.
- Validate the helpers used by alternatives and scope narrowing (pick_winner,
  save_conflicts, conflict, refine_range, restrict_to_range, ranges).

Conventions
- Test method names follow CamelCase per project convention.
- Pools are built with State.from_args() so tokenizing rules apply as in a real run.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from bowline import AmbiguityError, FaultCode, MessageError, MissingError, State, long, short
from bowline.state import Conflict, Status
from bowline.tokens import Word


class TestScenarios(TestCase):
    """Literal end-to-end uses of the primitives."""

    def testLongArgumentWithSeparateValue(self):
        state = State.from_args("--speed", "12")
        self.assertEqual(state.take_arg(long("speed")), "12")
        self.assertTrue(state.is_empty())

    def testShortArgumentWithAttachedDashValue(self):
        state = State.from_args("-s=-12")
        self.assertEqual(state.take_arg(short("s"), True), "-12")
        self.assertTrue(state.is_empty())

    def testBundleOfFlagsTakenInAnyOrder(self):
        state = State.from_args("-abc", flags="abc")
        for letter in "cab":
            self.assertTrue(state.take_flag(short(letter)))
        self.assertFalse(state.take_flag(short("a")))
        self.assertTrue(state.is_empty())

    def testBundleAsArgument(self):
        state = State.from_args("-abc", args="a")
        self.assertEqual(state.take_arg(short("a")), "bc")
        self.assertTrue(state.is_empty())

    def testBundleAmbiguity(self):
        state, fault = State.construct(["-abc"], "abc", "a")
        self.assertIsInstance(fault, AmbiguityError)
        with self.assertRaises(AmbiguityError):
            State.from_args("-abc", flags="abc", args="a")

    def testMarkerKeepsFlagLookingWords(self):
        state = State.from_args("-v", "--", "-x", flags="v")
        self.assertTrue(state.take_flag(short("v")))
        self.assertEqual(state.take_positional_word("X"), (True, "-x"))
        self.assertTrue(state.is_empty())


class TestPrimitives(TestCase):

    def testTakeArgWithoutValue(self):
        for argv in (("--speed",), ("--speed", "--fast")):
            with self.subTest(argv=argv):
                state = State.from_args(*argv)
                with self.assertRaises(MessageError) as cm:
                    state.take_arg(long("speed"))
                self.assertFalse(cm.exception.recoverable)
                self.assertEqual(cm.exception.options["code"], FaultCode.NO_ARGUMENT)
                self.assertEqual(cm.exception.position, 0)
                self.assertEqual(str(cm.exception), "`--speed` requires an argument")

    def testTakeArgAbsent(self):
        state = State.from_args("x")
        self.assertIsNone(state.take_arg(long("speed")))
        self.assertEqual(state.len(), 1)

    def testTakeArgAdjacentRejectsSeparateValue(self):
        state = State.from_args("-s", "12")
        self.assertIsNone(state.take_arg(short("s"), True))
        self.assertEqual(state.len(), 2)

    def testTakeArgRemovesTwoTokens(self):
        state = State.from_args("a", "--speed", "12", "b")
        self.assertEqual(state.take_arg(long("speed")), "12")
        self.assertEqual(state.len(), 2)
        self.assertFalse(state.present(1))
        self.assertFalse(state.present(2))
        self.assertEqual(state.current, 2)

    def testPositionalBehindFlagIsMissing(self):
        state = State.from_args("-v", "x")
        with self.assertRaises(MissingError) as cm:
            state.take_positional_word("FILE")
        self.assertEqual(cm.exception.position, 0)
        self.assertEqual(str(cm.exception), "expected `FILE`")
        self.assertEqual(state.len(), 2)

    def testPositionalOnEmptyPool(self):
        self.assertIsNone(State().take_positional_word("FILE"))

    def testPlainPositionalIsNotStrict(self):
        state = State.from_args("x")
        self.assertEqual(state.take_positional_word("FILE"), (False, "x"))

    def testTakeCmdOnlyLooksAtFirstToken(self):
        state = State.from_args("build", "test")
        self.assertFalse(state.take_cmd("test"))
        self.assertIsNone(state.current)
        self.assertTrue(state.take_cmd("build"))
        self.assertEqual(state.current, 0)
        self.assertTrue(state.take_cmd("test"))


class TestBookkeeping(TestCase):

    def testRemoveIsIdempotent(self):
        state = State.from_args("a", "b")
        state.remove(1)
        state.remove(1)
        self.assertEqual(state.len(), 1)
        self.assertEqual(state.head, 1)
        state.remove(0)
        self.assertEqual(state.head, 0)
        self.assertIs(state.status(0), Status.PARSED)

    def testScopeHidesOutsideTokens(self):
        state = State.from_args("a", "b", "c")
        state.set_scope(range(1, 3))
        self.assertEqual(state.len(), 2)
        self.assertFalse(state.present(0))
        self.assertIsNone(state.get(0))
        self.assertEqual(state.peek(), Word("b"))
        state.set_scope(range(0, 3))
        self.assertEqual(state.len(), 3)

    def testScopeMustFitThePool(self):
        state = State.from_args("a")
        with self.assertRaises(ValueError):
            state.set_scope(range(0, 2))
        with self.assertRaises(TypeError):
            state.set_scope((0, 1))

    def testCloneIsIndependent(self):
        state = State.from_args("a", "b")
        clone = state.clone()
        clone.remove(0)
        clone.path.append("cmd")
        self.assertEqual(state.len(), 2)
        self.assertEqual(state.depth, 0)
        self.assertEqual(clone.depth, 1)
        self.assertIs(clone.tokens, state.tokens)

    def testSwapCommits(self):
        state = State.from_args("a", "b")
        clone = state.clone()
        clone.remove(1)
        state.swap(clone)
        self.assertEqual(state.len(), 1)
        self.assertEqual(clone.len(), 2)

    def testMarkerIsConsumedUpFront(self):
        state = State.from_args("--", "x")
        self.assertEqual(state.len(), 1)
        self.assertFalse(state.present(0))


class TestAlternativeHelpers(TestCase):

    def testPickWinner(self):
        state = State.from_args("x", "y")
        other = state.clone()
        self.assertEqual(state.pick_winner(other), (True, None))
        other.remove(1)
        self.assertEqual(state.pick_winner(other), (False, 1))
        state.remove(0)
        self.assertEqual(state.pick_winner(other), (True, 0))

    def testSaveConflicts(self):
        state = State.from_args("-a", "-b", flags="ab")
        loser = state.clone()
        loser.remove(1)
        state.save_conflicts(loser, 0)
        self.assertEqual(state.status(1), Conflict(0))
        self.assertTrue(state.present(1))
        self.assertIsNone(state.conflict())
        state.remove(0)
        self.assertEqual(state.conflict(), (1, 0))


class TestRangeHelpers(TestCase):

    def testRefineRangeFindsFirstConsumedBlock(self):
        original = State.from_args("a", "b", "c", "d")
        scratch = original.clone()
        scratch.remove(1)
        scratch.remove(2)
        self.assertEqual(scratch.refine_range(original, range(4)), range(1, 3))
        self.assertIsNone(scratch.refine_range(original, range(1, 3)))

    def testRefineRangeWithoutConsumption(self):
        original = State.from_args("a", "b")
        self.assertIsNone(original.clone().refine_range(original, range(2)))

    def testRestrictToRange(self):
        state = State.from_args("a", "b", "c")
        state.restrict_to_range(range(1, 2))
        self.assertEqual(state.len(), 1)
        self.assertEqual(state.peek(), Word("b"))

    def testCopyUsageFrom(self):
        original = State.from_args("a", "b", "c")
        scratch = original.clone()
        scratch.restrict_to_range(range(1, 2))
        scratch.copy_usage_from(original, range(2, 3))
        self.assertEqual(scratch.len(), 2)
        self.assertFalse(scratch.present(0))
        self.assertTrue(scratch.present(2))

    def testRangesSkipConsumedStarts(self):
        state = State.from_args("a", "b", "c")
        state.remove(1)
        starts = [(start, clone.scope) for start, clone in state.ranges()]
        self.assertEqual(starts, [(0, range(0, 3)), (2, range(2, 3))])


class TestErrorHelpers(TestCase):

    def testWordParseErrorAnchorsAtCurrent(self):
        state = State.from_args("x")
        state.take_positional_word("N")
        fault = state.word_parse_error("bad number")
        self.assertEqual(str(fault), "couldn't parse `x`: bad number")
        self.assertEqual(fault.position, 0)
        self.assertFalse(fault.recoverable)

    def testWordValidateErrorWithoutAnchor(self):
        fault = State().word_validate_error("too small")
        self.assertEqual(str(fault), "too small")
        self.assertIsNone(fault.position)


if __name__ == "__main__":
    unittest.main()
