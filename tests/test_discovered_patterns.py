"""Tests for DiscoveredPatterns.

Verifies normalization, occurrence counting, thresholds, allowlisting and
merging of independently accumulated shards.
"""

from __future__ import annotations

from tracescrub.discovery.patterns import DiscoveredPatterns, DiscoveredValue, PatternType


class TestAddValue:
    """Tests for recording sightings."""

    def test_case_insensitive_dedup(self) -> None:
        """'Bob' and 'bob' are one value seen twice."""
        patterns = DiscoveredPatterns(False, [])

        patterns.add_value("Bob", PatternType.USERNAME)
        patterns.add_value("bob", PatternType.USERNAME)

        assert patterns.get_total_count() == 1
        value = patterns.get("bob")
        assert value is not None
        assert value.occurrences == 2
        assert value.value == "Bob"

    def test_case_sensitive_keeps_both(self) -> None:
        """With case sensitivity the spellings are separate."""
        patterns = DiscoveredPatterns(case_sensitive=True)

        patterns.add_value("Bob", PatternType.USERNAME)
        patterns.add_value("bob", PatternType.USERNAME)

        assert patterns.get_total_count() == 2

    def test_ignores_none_empty_and_allowlisted(self) -> None:
        """None, '' and allowlisted values are not recorded."""
        patterns = DiscoveredPatterns(allowlist=["root"])

        patterns.add_value(None, PatternType.USERNAME)
        patterns.add_value("", PatternType.USERNAME)
        patterns.add_value("ROOT", PatternType.USERNAME)

        assert len(patterns) == 0

    def test_add_with_count(self) -> None:
        """A count records several sightings at once."""
        patterns = DiscoveredPatterns()

        patterns.add_value("host1", PatternType.HOSTNAME, count=3)
        patterns.add_value("host1", PatternType.HOSTNAME)

        value = patterns.get("host1")
        assert value is not None
        assert value.occurrences == 4


class TestQueries:
    """Tests for reading values back."""

    def test_min_occurrences_filter(self) -> None:
        """Values below the threshold are left out."""
        patterns = DiscoveredPatterns()
        patterns.add_value("once", PatternType.USERNAME)
        patterns.add_value("twice", PatternType.USERNAME)
        patterns.add_value("twice", PatternType.USERNAME)

        assert [v.value for v in patterns.get_values(2)] == ["twice"]
        assert len(patterns.get_values()) == 2
        assert patterns.get_total_count(min_occurrences=2) == 1

    def test_contains(self) -> None:
        """contains follows the normalization."""
        patterns = DiscoveredPatterns()
        patterns.add_value("Alice", PatternType.USERNAME)

        assert patterns.contains("ALICE")
        assert not patterns.contains("bob")

    def test_count_by_type(self) -> None:
        """Counts are grouped by pattern type."""
        patterns = DiscoveredPatterns()
        patterns.add_value("alice", PatternType.USERNAME)
        patterns.add_value("bob", PatternType.USERNAME)
        patterns.add_value("db1", PatternType.HOSTNAME)

        assert patterns.get_count_by_type() == {
            PatternType.USERNAME: 2,
            PatternType.HOSTNAME: 1,
        }

    def test_value_str(self) -> None:
        """CUSTOM values show their rule name."""
        value = DiscoveredValue("x1", PatternType.CUSTOM, "ticket", 3)

        assert str(value) == "x1 (ticket, 3 occurrences)"
        assert str(DiscoveredValue("bob", PatternType.USERNAME)) == "bob (USERNAME, 1 occurrences)"

    def test_pattern_type_from_string(self) -> None:
        """Type names parse case-insensitively, unknown names give None."""
        assert PatternType.from_string("hostname") is PatternType.HOSTNAME
        assert PatternType.from_string("nonsense") is None


class TestMerge:
    """Tests for combining shards."""

    def test_merge_sums_occurrences(self) -> None:
        """Shared keys add up, new keys are copied."""
        left = DiscoveredPatterns()
        right = DiscoveredPatterns()
        left.add_value("alice", PatternType.USERNAME)
        right.add_value("Alice", PatternType.USERNAME)
        right.add_value("Alice", PatternType.USERNAME)
        right.add_value("db1", PatternType.HOSTNAME)

        left.merge(right)

        alice = left.get("alice")
        assert alice is not None
        assert alice.occurrences == 3
        assert alice.value == "alice"
        assert left.contains("db1")

    def test_merge_leaves_other_untouched(self) -> None:
        """The merged-in shard is not modified or aliased."""
        left = DiscoveredPatterns()
        right = DiscoveredPatterns()
        right.add_value("db1", PatternType.HOSTNAME)

        left.merge(right)
        left.add_value("db1", PatternType.HOSTNAME)

        db1 = right.get("db1")
        assert db1 is not None
        assert db1.occurrences == 1

    def test_merge_respects_receiver_allowlist(self) -> None:
        """Values on the receiver's allowlist are skipped."""
        left = DiscoveredPatterns(allowlist=["shared"])
        right = DiscoveredPatterns()
        right.add_value("Shared", PatternType.USERNAME)

        left.merge(right)

        assert len(left) == 0

    def test_merge_order_independent_counts(self) -> None:
        """Merging a into b or b into a gives the same counts."""
        def shard(*values: str) -> DiscoveredPatterns:
            patterns = DiscoveredPatterns()
            for value in values:
                patterns.add_value(value, PatternType.USERNAME)
            return patterns

        ab = shard("x", "y")
        ab.merge(shard("y", "z"))
        ba = shard("y", "z")
        ba.merge(shard("x", "y"))

        counts_ab = {v.value: v.occurrences for v in ab.get_all_values()}
        counts_ba = {v.value: v.occurrences for v in ba.get_all_values()}
        assert counts_ab == counts_ba == {"x": 1, "y": 2, "z": 1}
