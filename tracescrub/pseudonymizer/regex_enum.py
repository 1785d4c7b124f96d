"""Enumerate the language of a regular expression.

A pattern is parsed once into a small tree of nodes. Every node knows how
many distinct strings it can produce (its cardinality) and how to turn an
index in ``range(cardinality)`` into one of those strings. Deterministic
generation hashes an input into an index; random generation draws the index
from a seeded PRNG. Both share the same decoder.

Supported syntax:
    literals and escaped punctuation, ``.``, character classes and ranges
    (``[a-z0-9_]``, ``[^...]``), ``\\d \\w \\s`` and their negations,
    groups ``(...)``, ``(?:...)``, ``(?P<name>...)``, alternation ``|``,
    quantifiers ``? * + {n} {n,} {n,m}`` (lazy variants accepted),
    anchors ``^ $ \\A \\Z`` (ignored).

Negated classes and ``.`` draw from printable ASCII. Unbounded quantifiers
are capped at MAX_UNBOUNDED_REPEAT extra repetitions.
"""

from __future__ import annotations

import random
import re
import string
from dataclasses import dataclass

from tracescrub.config import MAX_UNBOUNDED_REPEAT
from tracescrub.core.errors import PatternSyntaxError

PRINTABLE: str = "".join(chr(c) for c in range(32, 127))

_CLASS_ESCAPES: dict[str, str] = {
    "d": string.digits,
    "w": string.ascii_letters + string.digits + "_",
    "s": " \t",
}

_CHAR_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_ZERO_WIDTH_ESCAPES = frozenset("AZ")


# =============================================================================
# Nodes
# =============================================================================


class Node:
    """A piece of a pattern that can enumerate its own strings."""

    cardinality: int = 1

    def decode(self, index: int) -> str:
        raise NotImplementedError


class Literal(Node):
    def __init__(self, text: str) -> None:
        self.text = text
        self.cardinality = 1

    def decode(self, index: int) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Literal({self.text!r})"


class CharSet(Node):
    def __init__(self, chars: str) -> None:
        # Sorted and de-duplicated so decode order is stable
        self.chars = "".join(sorted(set(chars)))
        self.cardinality = len(self.chars)

    def decode(self, index: int) -> str:
        return self.chars[index]

    def __repr__(self) -> str:
        return f"CharSet({self.chars!r})"


class Concat(Node):
    def __init__(self, parts: list[Node]) -> None:
        self.parts = parts
        total = 1
        for part in parts:
            total *= part.cardinality
        self.cardinality = total

    def decode(self, index: int) -> str:
        # Mixed radix, last part varies fastest
        pieces: list[str] = []
        for part in reversed(self.parts):
            index, digit = divmod(index, part.cardinality)
            pieces.append(part.decode(digit))
        return "".join(reversed(pieces))

    def __repr__(self) -> str:
        return f"Concat({self.parts!r})"


class Alternation(Node):
    def __init__(self, options: list[Node]) -> None:
        self.options = options
        self.cardinality = sum(option.cardinality for option in options)

    def decode(self, index: int) -> str:
        for option in self.options:
            if index < option.cardinality:
                return option.decode(index)
            index -= option.cardinality
        raise IndexError(index)

    def __repr__(self) -> str:
        return f"Alternation({self.options!r})"


class Repeat(Node):
    def __init__(self, node: Node, min_count: int, max_count: int) -> None:
        self.node = node
        self.min_count = min_count
        self.max_count = max_count
        self._blocks = [
            node.cardinality**k for k in range(min_count, max_count + 1)
        ]
        self.cardinality = sum(self._blocks)

    def decode(self, index: int) -> str:
        for offset, block in enumerate(self._blocks):
            if index < block:
                count = self.min_count + offset
                pieces: list[str] = []
                for _ in range(count):
                    index, digit = divmod(index, self.node.cardinality)
                    pieces.append(self.node.decode(digit))
                return "".join(reversed(pieces))
            index -= block
        raise IndexError(index)

    def __repr__(self) -> str:
        return f"Repeat({self.node!r}, {self.min_count}, {self.max_count})"


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    """Recursive-descent parser producing a Node tree."""

    def __init__(self, source: str, name: str) -> None:
        self.source = source
        self.name = name
        self.pos = 0

    def error(self, reason: str, position: int | None = None) -> PatternSyntaxError:
        return PatternSyntaxError(
            self.name,
            self.source,
            reason,
            self.pos if position is None else position,
        )

    def peek(self) -> str | None:
        if self.pos < len(self.source):
            return self.source[self.pos]
        return None

    def take(self) -> str:
        char = self.source[self.pos]
        self.pos += 1
        return char

    def parse(self) -> Node:
        node = self.parse_alternation()
        if self.pos < len(self.source):
            # Only an unmatched ')' can stop the top-level alternation early
            raise self.error("unbalanced parenthesis")
        return node

    def parse_alternation(self) -> Node:
        options = [self.parse_sequence()]
        while self.peek() == "|":
            self.take()
            options.append(self.parse_sequence())
        if len(options) == 1:
            return options[0]
        return Alternation(options)

    def parse_sequence(self) -> Node:
        parts: list[Node] = []
        while True:
            char = self.peek()
            if char is None or char in "|)":
                break
            atom = self.parse_atom()
            if atom is None:
                continue
            parts.append(self.parse_quantifier(atom))
        return _concat(parts)

    def parse_atom(self) -> Node | None:
        start = self.pos
        char = self.take()
        if char == "(":
            return self.parse_group(start)
        if char == "[":
            return self.parse_class(start)
        if char == ".":
            return CharSet(PRINTABLE)
        if char in "^$":
            return None
        if char == "\\":
            return self.parse_escape(start, in_class=False)
        if char in "*+?":
            raise self.error("nothing to repeat", start)
        if char == "{" and self._quantifier_ahead(start):
            raise self.error("nothing to repeat", start)
        return Literal(char)

    def parse_group(self, start: int) -> Node:
        if self.peek() == "?":
            self.take()
            kind = self.peek()
            if kind == ":":
                self.take()
            elif kind == "P" and self.source.startswith("P<", self.pos):
                end = self.source.find(">", self.pos)
                if end == -1:
                    raise self.error("unterminated group name", start)
                self.pos = end + 1
            else:
                raise self.error("unsupported group construct", start)
        node = self.parse_alternation()
        if self.peek() != ")":
            raise self.error("missing ), unterminated subpattern", start)
        self.take()
        return node

    def parse_class(self, start: int) -> Node:
        negate = False
        if self.peek() == "^":
            self.take()
            negate = True
        chars: set[str] = set()
        first = True
        while True:
            char = self.peek()
            if char is None:
                raise self.error("unterminated character set", start)
            if char == "]" and not first:
                self.take()
                break
            first = False
            item_start = self.pos
            low = self._class_item()
            if len(low) > 1:
                chars.update(low)
                continue
            if self.peek() == "-" and self.source[self.pos + 1 : self.pos + 2] not in ("]", ""):
                self.take()
                high = self._class_item()
                if len(high) > 1:
                    raise self.error("bad character range", item_start)
                if ord(high) < ord(low):
                    raise self.error("bad character range", item_start)
                chars.update(chr(c) for c in range(ord(low), ord(high) + 1))
            else:
                chars.update(low)
        if negate:
            chars = set(PRINTABLE) - chars
        if not chars:
            raise self.error("character set matches nothing", start)
        return CharSet("".join(chars))

    def _class_item(self) -> str:
        """Return one char, or a multi-char set for class escapes like \\d."""
        start = self.pos
        char = self.take()
        if char != "\\":
            return char
        node = self.parse_escape(start, in_class=True)
        if isinstance(node, CharSet):
            return node.chars
        if isinstance(node, Literal):
            return node.text
        raise self.error("bad escape in character class", start)

    def parse_escape(self, start: int, in_class: bool) -> Node | None:
        if self.peek() is None:
            raise self.error("bad escape (end of pattern)", start)
        char = self.take()
        if char in _CLASS_ESCAPES:
            return CharSet(_CLASS_ESCAPES[char])
        if char.lower() in _CLASS_ESCAPES:
            return CharSet("".join(set(PRINTABLE) - set(_CLASS_ESCAPES[char.lower()])))
        if char in _CHAR_ESCAPES:
            return Literal(_CHAR_ESCAPES[char])
        if char == "x":
            return Literal(self._hex_escape(start, 2))
        if char == "u":
            return Literal(self._hex_escape(start, 4))
        if char in _ZERO_WIDTH_ESCAPES and not in_class:
            return None
        if char.isalnum():
            raise self.error(f"unsupported escape \\{char}", start)
        return Literal(char)

    def _hex_escape(self, start: int, width: int) -> str:
        digits = self.source[self.pos : self.pos + width]
        if len(digits) != width or any(d not in string.hexdigits for d in digits):
            raise self.error("incomplete hex escape", start)
        self.pos += width
        return chr(int(digits, 16))

    def parse_quantifier(self, atom: Node) -> Node:
        start = self.pos
        char = self.peek()
        if char == "?":
            self.take()
            bounds = (0, 1)
        elif char == "*":
            self.take()
            bounds = (0, MAX_UNBOUNDED_REPEAT)
        elif char == "+":
            self.take()
            bounds = (1, 1 + MAX_UNBOUNDED_REPEAT)
        elif char == "{" and self._quantifier_ahead(self.pos):
            bounds = self._braces()
        else:
            return atom
        # Lazy suffix changes matching, not the language
        if self.peek() == "?":
            self.take()
        nxt = self.peek()
        if nxt is not None and (nxt in "*+?" or (nxt == "{" and self._quantifier_ahead(self.pos))):
            raise self.error("multiple repeat", start)
        low, high = bounds
        if low == high == 1:
            return atom
        return Repeat(atom, low, high)

    def _quantifier_ahead(self, at: int) -> bool:
        match = _BRACES.match(self.source, at)
        # "{}" is a literal, "{,n}" and "{n,}" are quantifiers
        return match is not None and bool(match.group(1) or match.group(2))

    def _braces(self) -> tuple[int, int]:
        start = self.pos
        match = _BRACES.match(self.source, self.pos)
        if match is None:
            raise self.error("bad repeat bounds", start)
        self.pos = match.end()
        low_text, comma, high_text = match.group(1), match.group(2), match.group(3)
        low = int(low_text) if low_text else 0
        if not comma:
            high = low
        elif high_text:
            high = int(high_text)
        else:
            high = low + MAX_UNBOUNDED_REPEAT
        if high < low:
            raise self.error("min repeat greater than max repeat", start)
        return low, high


_BRACES = re.compile(r"\{(\d*)(,?)(\d*)\}")


def _concat(parts: list[Node]) -> Node:
    """Build a Concat, folding adjacent literals together."""
    merged: list[Node] = []
    for part in parts:
        if isinstance(part, Literal) and merged and isinstance(merged[-1], Literal):
            merged[-1] = Literal(merged[-1].text + part.text)
        else:
            merged.append(part)
    if len(merged) == 1:
        return merged[0]
    return Concat(merged)


# =============================================================================
# Public API
# =============================================================================


@dataclass(frozen=True)
class CompiledPattern:
    """A pattern's language as a {cardinality, decode} pair."""

    source: str
    root: Node

    @property
    def cardinality(self) -> int:
        return self.root.cardinality

    def decode(self, index: int) -> str:
        """Return the string at ``index``; indices wrap around the cardinality."""
        return self.root.decode(index % self.root.cardinality)

    def sample(self, rng: random.Random) -> str:
        """Draw a uniformly chosen string from the language."""
        return self.root.decode(rng.randrange(self.root.cardinality))


def compile_pattern(pattern: str, name: str = "<pattern>") -> CompiledPattern:
    """Parse ``pattern`` into an enumerable language.

    Args:
        pattern: Regular expression source (placeholders already resolved)
        name: Pattern name used in error messages

    Returns:
        CompiledPattern for the expression

    Raises:
        PatternSyntaxError: If the expression is malformed or uses a
            construct that cannot be enumerated (backreferences, lookaround)
    """
    try:
        re.compile(pattern)
    except re.error as exc:
        raise PatternSyntaxError(name, pattern, exc.msg, exc.pos) from exc
    return CompiledPattern(source=pattern, root=_Parser(pattern, name).parse())
