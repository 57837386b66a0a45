"""
Bowline state: the token pool every parser consumes from.

Scope
- Status / Conflict: per-token consumption status.
- State: shared token tuple plus per-clone status list, active scope, cursor and
  bookkeeping used by alternatives, scope narrowing and diagnostics.
- Primitive consumers: take_flag, take_arg, take_positional_word, take_cmd.

Invariants
- len(statuses) == len(tokens), always.
- scope is a sub-range of range(len(tokens)).
- remaining == number of present tokens inside scope.
- primitives only observe and mutate tokens inside scope.
- clone() shares the token tuple; only statuses, scope, cursor, path and conflicts
  are duplicated, so speculative evaluation stays cheap.

Lifecycle
- A pool is built once per run (State.construct), then cloned before every speculative
  evaluation; exactly one clone is swapped back into the live pool (State.swap).
"""
import sys
from collections import namedtuple
from enum import Enum

from .faults import FaultCode, MessageError, MissingError, MissingItem
from .meta import Positional
from .tokens import LongFlag, PositionalWord, ShortFlag, Word, tokenize


class Status(Enum):
    UNPARSED = "unparsed"
    PARSED = "parsed"

    def __repr__(self):
        return "Status.%s" % self.name


class Conflict(namedtuple("Conflict", ("winner",))):
    """
    Consumed by a losing alternative; still present, remembers the winner's head index.
    """
    __slots__ = ()


class Resolution(namedtuple("Resolution", ("winner", "loser"), defaults=(None,))):
    """
    Which alternative won at a pool position (meta of the winner, and of the loser when
    both branches succeeded).
    """
    __slots__ = ()


def present(status, /):
    return status is not Status.PARSED


def parsed(status, /):
    return status is Status.PARSED


class State:
    """
    A transactional pool of tokens.

    Attributes
    - current: index of the most recently consumed token, or None (error anchoring).
    - head: smallest index consumed since the last reset (sys.maxsize when none);
      alternatives reset it to find the leftmost branch.
    - path: names of the commands entered so far; depth is its length.
    - conflicts: head index -> Resolution, diagnostics only.
    """
    __slots__ = ("_tokens", "_statuses", "_remaining", "_scope", "current", "head", "path", "conflicts")

    def __init__(self, tokens=(), /, marker=None):
        self._tokens = tuple(tokens)
        self._statuses = [Status.UNPARSED] * len(self._tokens)
        if marker is not None:
            self._statuses[marker] = Status.PARSED
        self._scope = range(len(self._tokens))
        self._remaining = sum(map(present, self._statuses))
        self.current = None
        self.head = sys.maxsize
        self.path = []
        self.conflicts = {}

    @classmethod
    def construct(cls, argv, /, flags=(), args=()):
        """
        Tokenize argv and build a pool.

        Returns (state, fault) where fault is an AmbiguityError or None; on ambiguity the
        pool holds the tokens classified up to and including the offending bundle.
        """
        tokens, fault, marker = tokenize(argv, flags, args)
        return cls(tokens, marker), fault

    @classmethod
    def from_args(cls, *argv, flags=(), args=()):
        state, fault = cls.construct(argv, flags, args)
        if fault is not None:
            raise fault
        return state

    def __repr__(self):
        return "State(%s)" % ", ".join(
            "%s%s" % (token, "" if present(status) else "✓")
            for token, status in zip(self._tokens, self._statuses)
        )

    @property
    def tokens(self):
        return self._tokens

    @property
    def depth(self):
        return len(self.path)

    @property
    def scope(self):
        return self._scope

    def status(self, index, /):
        return self._statuses[index]

    def clone(self):
        other = object.__new__(type(self))
        other._tokens = self._tokens
        other._statuses = self._statuses.copy()
        other._remaining = self._remaining
        other._scope = self._scope
        other.current = self.current
        other.head = self.head
        other.path = self.path.copy()
        other.conflicts = self.conflicts.copy()
        return other

    def swap(self, other, /):
        """
        Exchange the whole state with other (commit a speculative clone).
        """
        for name in State.__slots__:
            mine = getattr(self, name)
            setattr(self, name, getattr(other, name))
            setattr(other, name, mine)

    def present(self, index, /):
        return index in self._scope and present(self._statuses[index])

    def remove(self, index, /):
        if not self.present(index):
            return
        self._statuses[index] = Status.PARSED
        self._remaining -= 1
        self.current = index
        self.head = min(self.head, index)

    def get(self, index, /):
        if self.present(index):
            return self._tokens[index]
        return None

    def items(self):
        """
        Yield (index, token) for every present token inside the scope.
        """
        for index in self._scope:
            if present(self._statuses[index]):
                yield index, self._tokens[index]

    def peek(self):
        for _, token in self.items():
            return token
        return None

    def is_empty(self):
        return self._remaining == 0

    def len(self):
        return self._remaining

    def set_scope(self, scope, /):
        if not isinstance(scope, range) or scope.step != 1:
            raise TypeError("set_scope() argument must be a contiguous range")
        if scope.start < 0 or scope.stop > len(self._tokens) or scope.start > scope.stop:
            raise ValueError("scope %r is outside of the pool" % (scope,))
        self._scope = scope
        self._recount()

    def _recount(self):
        self._remaining = sum(1 for index in self._scope if present(self._statuses[index]))

    # --- alternatives ---

    def pick_winner(self, other, /):
        """
        Return (this_wins, index): the first index where exactly one pool consumed the
        token decides; (True, None) when both consumed the same tokens.
        """
        for index, (mine, theirs) in enumerate(zip(self._statuses, other._statuses)):
            if parsed(mine) != parsed(theirs):
                return parsed(mine), index
        return True, None

    def save_conflicts(self, loser, winner, /):
        """
        Mark tokens still present here but consumed by the losing pool as Conflict(winner).
        """
        for index, (mine, theirs) in enumerate(zip(self._statuses, loser._statuses)):
            if present(mine) and parsed(theirs):
                self._statuses[index] = Conflict(winner)

    def conflict(self):
        """
        Return (index, winner) when the first present token is a recorded conflict.
        """
        for index, _ in self.items():
            status = self._statuses[index]
            if isinstance(status, Conflict):
                return index, status.winner
            return None
        return None

    # --- scope narrowing ---

    def ranges(self):
        """
        Yield (start, clone) for each present start inside the scope, the clone scoped
        from that start to the end of the current scope.
        """
        for start in self._scope:
            if not present(self._statuses[start]):
                continue
            clone = self.clone()
            clone.set_scope(range(start, self._scope.stop))
            yield start, clone

    def restrict_to_range(self, block, /):
        """
        Hide everything outside block by marking it consumed.
        """
        for index in range(len(self._tokens)):
            if index not in block:
                self._statuses[index] = Status.PARSED
        self._recount()

    def refine_range(self, original, guess, /):
        """
        Find the first contiguous block inside guess that this pool consumed while
        original still has it present; return the new range, or None when it is
        unchanged or nothing was consumed.
        """
        def touched(index):
            return parsed(self._statuses[index]) and present(original._statuses[index])

        for start in guess:
            if touched(start):
                break
        else:
            return None
        end = start
        while end < guess.stop and touched(end):
            end += 1
        refined = range(start, end)
        return None if refined == guess else refined

    def copy_usage_from(self, other, block, /):
        """
        Copy statuses for indices in block from other (outer tokens keep their state).
        """
        for index in block:
            self._statuses[index] = other._statuses[index]
        self._recount()

    # --- primitive consumers ---

    def take_flag(self, named, /):
        """
        Consume the first token matching named; False when there is none.
        """
        for index, token in self.items():
            if named.matches(token, False):
                self.remove(index)
                return True
        return False

    def take_arg(self, named, adjacent=False, /):
        """
        Consume a matching flag and the Word right after it; return the value or None.

        Raises a non-recoverable MessageError when the flag is present but the next
        token is not a plain word.
        """
        for index, token in self.items():
            if named.matches(token, adjacent):
                break
        else:
            return None

        value = self.get(index + 1)
        if not isinstance(value, Word):
            raise MessageError(
                "`%s` requires an argument" % (token,),
                False,
                code=FaultCode.NO_ARGUMENT,
                position=index,
                hint="pass a value right after `%s`, like `%s VALUE` or `%s=VALUE`" % ((token,) * 3),
            )
        self.remove(index)
        self.remove(index + 1)
        return value.value

    def take_positional_word(self, metavar, /):
        """
        Consume the first present token when it is a word; return (strict, value) or None.

        strict is True for words found after "--". A flag in front raises a
        MissingError anchored at that flag.
        """
        for index, token in self.items():
            match token:
                case PositionalWord(value=value):
                    self.remove(index)
                    return True, value
                case Word(value=value):
                    self.remove(index)
                    return False, value
                case ShortFlag() | LongFlag():
                    raise MissingError([MissingItem(Positional(metavar, None, False), index, range(index, index + 1))])
        return None

    def take_cmd(self, word, /):
        """
        Consume the first present token if it is exactly the plain word given.
        """
        for index, token in self.items():
            if isinstance(token, Word) and token.value == word:
                self.remove(index)
                return True
            break
        self.current = None
        return False

    # --- error helpers ---

    def _anchor(self):
        if self.current is None or self.current >= len(self._tokens):
            return None, {}
        return str(self._tokens[self.current]), {"position": self.current}

    def word_parse_error(self, text, /):
        """
        Build a non-recoverable failure for a value that could not be converted.
        """
        word, anchor = self._anchor()
        message = "couldn't parse `%s`: %s" % (word, text) if word is not None else text
        return MessageError(message, False, code=FaultCode.PARSE_FAILED, **anchor)

    def word_validate_error(self, text, /):
        """
        Build a non-recoverable failure for a value rejected by a check.
        """
        word, anchor = self._anchor()
        message = "`%s`: %s" % (word, text) if word is not None else text
        return MessageError(message, False, code=FaultCode.VALIDATION_FAILED, **anchor)


__all__ = (
    "Status",
    "Conflict",
    "Resolution",
    "present",
    "parsed",
    "State",
)
