"""Tests for PatternBasedGenerator.

Verifies deterministic generation, random generation, placeholder
resolution and the behavior of low-cardinality patterns.
"""

from __future__ import annotations

import logging
import re

import pytest

from tracescrub.config import FIRST_NAMES
from tracescrub.core.errors import PatternSyntaxError
from tracescrub.pseudonymizer.pattern_generator import (
    PatternBasedGenerator,
    resolve_placeholders,
)

IP_PATTERN = r"10\.0\.[0-9]{1,3}\.[0-9]{1,3}"


@pytest.fixture
def generator() -> PatternBasedGenerator:
    """Generator with a few typical patterns."""
    return PatternBasedGenerator(
        {
            "ip": IP_PATTERN,
            "hosts": r"srv-[a-z]{3}[0-9]{2}",
            "users": "{users}",
        },
        seed=7,
    )


class TestGenerate:
    """Tests for consistent, cached generation."""

    def test_same_input_same_output(self, generator: PatternBasedGenerator) -> None:
        """Repeated calls return the same value."""
        first = generator.generate("hosts", "db1.internal")
        second = generator.generate("hosts", "db1.internal")

        assert first == second

    def test_same_seed_same_output_across_instances(self) -> None:
        """Two generators with the same seed agree."""
        patterns = {"hosts": r"srv-[a-z]{3}[0-9]{2}"}
        gen1 = PatternBasedGenerator(patterns, seed=11)
        gen2 = PatternBasedGenerator(patterns, seed=11)

        assert gen1.generate("hosts", "web-01") == gen2.generate("hosts", "web-01")

    def test_different_inputs_differ(self, generator: PatternBasedGenerator) -> None:
        """Distinct originals get distinct replacements at moderate cardinality."""
        values = {generator.generate("hosts", f"host-{i}") for i in range(50)}

        assert len(values) == 50

    def test_output_matches_pattern(self, generator: PatternBasedGenerator) -> None:
        """Generated values match the registered regex."""
        for i in range(20):
            value = generator.generate("ip", f"192.168.1.{i}")
            assert value is not None
            assert re.fullmatch(IP_PATTERN, value)

    def test_never_returns_original(self) -> None:
        """The original is skipped even if it is in the pattern's language."""
        gen = PatternBasedGenerator({"bits": "[ab]"}, seed=1)

        assert gen.generate("bits", "a") == "b"

    def test_unknown_pattern_returns_none(self, generator: PatternBasedGenerator) -> None:
        """An unregistered name is a lookup miss, not an error."""
        assert generator.generate("missing", "value") is None

    def test_none_original_returns_none(self, generator: PatternBasedGenerator) -> None:
        """None passes through."""
        assert generator.generate("hosts", None) is None


class TestGenerateRandom:
    """Tests for uncached random draws."""

    def test_random_values_vary_and_match(self) -> None:
        """Ten draws from an IP pattern give at least five distinct values."""
        gen = PatternBasedGenerator({"ip": IP_PATTERN}, seed=42)

        values = [gen.generate_random("ip") for _ in range(10)]

        assert len(set(values)) >= 5
        for value in values:
            assert value is not None
            assert re.fullmatch(r"10\.0\.\d{1,3}\.\d{1,3}", value)

    def test_random_unknown_pattern(self, generator: PatternBasedGenerator) -> None:
        """Unknown pattern names return None."""
        assert generator.generate_random("missing") is None

    def test_random_does_not_touch_cache(self, generator: PatternBasedGenerator) -> None:
        """Random draws leave consistent mappings alone."""
        before = generator.generate("hosts", "db1")
        for _ in range(5):
            generator.generate_random("hosts")

        assert generator.generate("hosts", "db1") == before


class TestPlaceholders:
    """Tests for {users}, {names} and {emails}."""

    def test_users_placeholder(self, generator: PatternBasedGenerator) -> None:
        """{users} expands to the first-name pool."""
        value = generator.generate("users", "jdoe")

        assert value in FIRST_NAMES

    def test_resolved_pattern_matches_generated(self) -> None:
        """Values match the placeholder-resolved regex."""
        pattern = "{emails}"
        gen = PatternBasedGenerator({"emails": pattern}, seed=3)
        resolved = re.compile(resolve_placeholders(pattern))

        for i in range(10):
            value = gen.generate("emails", f"person{i}@corp.example")
            assert value is not None
            assert resolved.fullmatch(value)

    def test_names_placeholder_shape(self) -> None:
        """{names} is first.last."""
        gen = PatternBasedGenerator({"names": "{names}"}, seed=3)

        value = gen.generate("names", "John Doe")

        assert value is not None
        first, _, last = value.partition(".")
        assert first in FIRST_NAMES
        assert last

    def test_unknown_braces_left_alone(self) -> None:
        """Only the three known placeholders are replaced."""
        assert resolve_placeholders("x{2}") == "x{2}"


class TestLowCardinality:
    """Tests for patterns with few possible strings."""

    def test_warns_at_construction(self, caplog: pytest.LogCaptureFixture) -> None:
        """Fewer than 100 strings logs a warning."""
        with caplog.at_level(logging.WARNING):
            PatternBasedGenerator({"tiny": "[ab]"})

        assert "low cardinality" in caplog.text

    def test_exhaustion_cycles_without_error(self, caplog: pytest.LogCaptureFixture) -> None:
        """Running out of strings reuses values and warns once."""
        gen = PatternBasedGenerator({"tiny": "[ab]"}, seed=1)

        with caplog.at_level(logging.WARNING):
            results = [gen.generate("tiny", f"value-{i}") for i in range(6)]

        assert set(results[:2]) == {"a", "b"}
        assert all(r in ("a", "b") for r in results)
        assert caplog.text.count("exhausted") == 1

    def test_exhaustion_keeps_earlier_mappings(self) -> None:
        """Cycling never changes an existing mapping."""
        gen = PatternBasedGenerator({"tiny": "[ab]"}, seed=1)
        first = gen.generate("tiny", "value-0")
        for i in range(1, 5):
            gen.generate("tiny", f"value-{i}")

        assert gen.generate("tiny", "value-0") == first


class TestIntrospection:
    """Tests for pattern lookup helpers and cache clearing."""

    def test_pattern_names(self, generator: PatternBasedGenerator) -> None:
        """Names are returned in registration order."""
        assert generator.get_pattern_names() == ["ip", "hosts", "users"]
        assert generator.has_pattern("ip")
        assert not generator.has_pattern("missing")

    def test_get_pattern_is_unresolved(self, generator: PatternBasedGenerator) -> None:
        """get_pattern returns the registered text."""
        assert generator.get_pattern("users") == "{users}"
        assert generator.get_pattern("missing") is None

    def test_cardinality(self, generator: PatternBasedGenerator) -> None:
        """Cardinality of srv-[a-z]{3}[0-9]{2} is 26^3 * 10^2."""
        assert generator.get_cardinality("hosts") == 26**3 * 100
        assert generator.get_cardinality("missing") is None

    def test_clear_pattern_cache_restores_fresh_state(self) -> None:
        """After clearing, generation matches a new instance."""
        patterns = {"hosts": r"srv-[a-z]{3}[0-9]{2}"}
        gen = PatternBasedGenerator(patterns, seed=5)
        for i in range(10):
            gen.generate("hosts", f"h{i}")

        gen.clear_pattern_cache("hosts")

        fresh = PatternBasedGenerator(patterns, seed=5)
        assert gen.generate("hosts", "h9") == fresh.generate("hosts", "h9")

    def test_clear_all_caches(self) -> None:
        """Exhaustion state is forgotten too."""
        gen = PatternBasedGenerator({"tiny": "[ab]"}, seed=1)
        for i in range(4):
            gen.generate("tiny", f"v{i}")

        gen.clear_all_caches()

        assert {gen.generate("tiny", "x"), gen.generate("tiny", "y")} == {"a", "b"}


class TestConstruction:
    """Tests for eager pattern validation."""

    def test_malformed_pattern_fails_fast(self) -> None:
        """A broken regex raises at construction, naming the pattern."""
        with pytest.raises(PatternSyntaxError) as exc_info:
            PatternBasedGenerator({"good": "[a-z]{4}", "bad": "srv-[a-z"})

        assert exc_info.value.pattern_name == "bad"
