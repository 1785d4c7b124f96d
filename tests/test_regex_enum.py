"""Tests for the regex enumeration compiler.

Verifies cardinality counting, index decoding order and that every decoded
string is matched by the pattern it came from.
"""

from __future__ import annotations

import random
import re

import pytest

from tracescrub.config import MAX_UNBOUNDED_REPEAT
from tracescrub.core.errors import ConfigError, PatternSyntaxError
from tracescrub.pseudonymizer.regex_enum import PRINTABLE, compile_pattern


class TestCardinality:
    """Tests for counting the strings a pattern can produce."""

    def test_literal_has_one_string(self) -> None:
        """A plain literal produces exactly itself."""
        compiled = compile_pattern("abc")

        assert compiled.cardinality == 1
        assert compiled.decode(0) == "abc"

    def test_character_class(self) -> None:
        """A range counts each character once."""
        assert compile_pattern("[a-c]").cardinality == 3
        assert compile_pattern("[aabbc]").cardinality == 3

    def test_concatenation_multiplies(self) -> None:
        """Independent parts multiply."""
        assert compile_pattern("[a-c][0-1]").cardinality == 6

    def test_alternation_sums(self) -> None:
        """Alternatives add up."""
        assert compile_pattern("a|bc|[de]").cardinality == 4

    def test_optional(self) -> None:
        """'x?' is the empty string or x."""
        compiled = compile_pattern("x?")

        assert compiled.cardinality == 2
        assert {compiled.decode(0), compiled.decode(1)} == {"", "x"}

    def test_bounded_repeat(self) -> None:
        """{1,2} over two chars is 2 + 4 strings."""
        assert compile_pattern("[ab]{2}").cardinality == 4
        assert compile_pattern("[ab]{1,2}").cardinality == 6

    def test_unbounded_repeat_is_capped(self) -> None:
        """'*' allows zero up to the cap."""
        assert compile_pattern("a*").cardinality == MAX_UNBOUNDED_REPEAT + 1
        assert compile_pattern("a+").cardinality == MAX_UNBOUNDED_REPEAT + 1

    def test_digit_escape(self) -> None:
        """\\d is the ten ASCII digits."""
        assert compile_pattern(r"\d").cardinality == 10

    def test_dot_is_printable_ascii(self) -> None:
        """'.' draws from printable ASCII only."""
        assert compile_pattern(".").cardinality == len(PRINTABLE)

    def test_negated_class(self) -> None:
        """A negated class is printable ASCII minus its members."""
        assert compile_pattern("[^a-z]").cardinality == len(PRINTABLE) - 26

    def test_anchors_are_ignored(self) -> None:
        """^ and $ contribute nothing."""
        compiled = compile_pattern("^abc$")

        assert compiled.cardinality == 1
        assert compiled.decode(0) == "abc"

    def test_empty_braces_are_literal(self) -> None:
        """'{}' is not a quantifier."""
        compiled = compile_pattern("a{}")

        assert compiled.cardinality == 1
        assert compiled.decode(0) == "a{}"


class TestDecode:
    """Tests for turning indices into strings."""

    def test_last_part_varies_fastest(self) -> None:
        """Decoding is mixed radix with the rightmost part as low digit."""
        compiled = compile_pattern("[a-c][0-1]")

        assert [compiled.decode(i) for i in range(4)] == ["a0", "a1", "b0", "b1"]

    def test_all_indices_distinct(self) -> None:
        """Every index in range decodes to a different string."""
        compiled = compile_pattern("[a-c]{1,3}")

        decoded = {compiled.decode(i) for i in range(compiled.cardinality)}

        assert len(decoded) == compiled.cardinality

    def test_index_wraps(self) -> None:
        """Indices beyond the cardinality wrap around."""
        compiled = compile_pattern("[a-c]")

        assert compiled.decode(3) == compiled.decode(0)
        assert compiled.decode(7) == compiled.decode(1)

    def test_sample_is_reproducible(self) -> None:
        """Same seeded PRNG gives the same samples."""
        compiled = compile_pattern("[a-z]{6}")

        first = [compiled.sample(random.Random(5)) for _ in range(3)]
        second = [compiled.sample(random.Random(5)) for _ in range(3)]

        assert first == second


class TestConformance:
    """Every generated string is matched by its own pattern."""

    @pytest.mark.parametrize(
        "pattern",
        [
            r"[a-z]{2}-\d{2}",
            r"(?:srv|db)-[0-9]{1,3}",
            r"user_\w{1,3}",
            r"10\.0\.[0-9]{1,3}\.[0-9]{1,3}",
            r"[A-F0-9]{4}(?:-[A-F0-9]{4})?",
            r"^host[0-9]+$",
            r"(?P<team>ops|dev)/[^/\s]{2}",
            r"\x41B[.]",
        ],
    )
    def test_decoded_strings_match(self, pattern: str) -> None:
        """Decoded strings fully match the source regex."""
        compiled = compile_pattern(pattern)
        regex = re.compile(pattern)
        step = max(1, compiled.cardinality // 500)

        for index in range(0, compiled.cardinality, step):
            value = compiled.decode(index)
            assert regex.fullmatch(value), f"{value!r} does not match {pattern!r}"


class TestErrors:
    """Malformed or non-enumerable patterns fail at compile time."""

    def test_unbalanced_group(self) -> None:
        """An unclosed group is rejected with a position."""
        with pytest.raises(PatternSyntaxError) as exc_info:
            compile_pattern("(abc", name="hosts")

        assert exc_info.value.pattern_name == "hosts"
        assert exc_info.value.position is not None

    def test_lookahead_rejected(self) -> None:
        """Lookarounds cannot be enumerated."""
        with pytest.raises(PatternSyntaxError, match="unsupported group"):
            compile_pattern("(?=a)b")

    def test_backreference_rejected(self) -> None:
        """Backreferences cannot be enumerated."""
        with pytest.raises(PatternSyntaxError, match="unsupported escape"):
            compile_pattern(r"(a)\1")

    def test_word_boundary_rejected(self) -> None:
        r"""\b has no enumerable meaning."""
        with pytest.raises(PatternSyntaxError):
            compile_pattern(r"\bfoo")

    def test_empty_class_rejected(self) -> None:
        """A class that matches nothing printable is rejected."""
        with pytest.raises(PatternSyntaxError, match="matches nothing"):
            compile_pattern("[^ -~]")

    def test_is_a_config_error(self) -> None:
        """Pattern errors are configuration errors."""
        with pytest.raises(ConfigError):
            compile_pattern("a**")
