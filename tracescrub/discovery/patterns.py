"""Accumulator for values discovered as sensitive during a scan.

One DiscoveredPatterns per pass or shard: populated while scanning,
optionally merged with its siblings once they are finished, then read
during redaction. Nothing here is synchronized; never merge into an
instance that another worker is still adding to.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from tracescrub.discovery.allowlist import Allowlist


class PatternType(Enum):
    """What kind of value was discovered."""

    USERNAME = "USERNAME"
    HOSTNAME = "HOSTNAME"
    EMAIL_LOCAL_PART = "EMAIL_LOCAL_PART"
    CUSTOM = "CUSTOM"

    @classmethod
    def from_string(cls, name: str | None) -> PatternType | None:
        """Parse a type name case-insensitively; None if unknown."""
        if not name:
            return None
        try:
            return cls(name.strip().upper())
        except ValueError:
            return None


@dataclass
class DiscoveredValue:
    """A discovered value with its first-seen casing and occurrence count."""

    value: str
    type: PatternType
    custom_type_name: str | None = None
    occurrences: int = 1

    def increment(self, count: int = 1) -> None:
        self.occurrences += count

    def __str__(self) -> str:
        label = self.type.value
        if self.type is PatternType.CUSTOM and self.custom_type_name:
            label = self.custom_type_name
        return f"{self.value} ({label}, {self.occurrences} occurrences)"


class DiscoveredPatterns:
    """Normalized value → DiscoveredValue, plus case sensitivity and allowlist.

    Keys are lower-cased unless the instance is case-sensitive. The first
    casing seen for a key is the one reported; later spellings only bump
    the occurrence count.
    """

    def __init__(self, case_sensitive: bool = False, allowlist: Iterable[str] = ()) -> None:
        self._case_sensitive = case_sensitive
        self._allowlist = Allowlist.of(allowlist, case_sensitive=case_sensitive)
        self._values: dict[str, DiscoveredValue] = {}

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    @property
    def allowlist(self) -> Allowlist:
        return self._allowlist

    def normalize(self, value: str) -> str:
        return value if self._case_sensitive else value.lower()

    def add_value(
        self,
        value: str | None,
        type: PatternType,
        custom_type_name: str | None = None,
        count: int = 1,
    ) -> None:
        """Record ``count`` sightings of ``value``; None, "" and allowlisted values are ignored."""
        if not value or count < 1 or self._allowlist.is_allowed(value):
            return

        key = self.normalize(value)
        existing = self._values.get(key)
        if existing is not None:
            existing.increment(count)
        else:
            self._values[key] = DiscoveredValue(value, type, custom_type_name, count)

    def get_values(self, min_occurrences: int = 1) -> list[DiscoveredValue]:
        """Values seen at least ``min_occurrences`` times, in discovery order."""
        return [v for v in self._values.values() if v.occurrences >= min_occurrences]

    def get_all_values(self) -> list[DiscoveredValue]:
        return list(self._values.values())

    def contains(self, value: str) -> bool:
        return self.normalize(value) in self._values

    def get(self, value: str) -> DiscoveredValue | None:
        return self._values.get(self.normalize(value))

    def get_count_by_type(self, min_occurrences: int = 1) -> dict[PatternType, int]:
        counts = Counter(v.type for v in self.get_values(min_occurrences))
        return dict(counts)

    def get_total_count(self, min_occurrences: int | None = None) -> int:
        """Number of distinct values, optionally only those meeting the threshold."""
        if min_occurrences is None:
            return len(self._values)
        return len(self.get_values(min_occurrences))

    def merge(self, other: DiscoveredPatterns) -> None:
        """Fold a finished shard into this one.

        Occurrence counts are summed for keys present in both; keys that
        are new here keep the other shard's first-seen casing. Keys on this
        instance's allowlist are skipped. ``other`` is left untouched.
        """
        for value in other.get_all_values():
            if self._allowlist.is_allowed(value.value):
                continue
            key = self.normalize(value.value)
            existing = self._values.get(key)
            if existing is not None:
                existing.increment(value.occurrences)
            else:
                self._values[key] = DiscoveredValue(
                    value.value,
                    value.type,
                    value.custom_type_name,
                    value.occurrences,
                )

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return (
            f"DiscoveredPatterns(values={len(self._values)}, "
            f"case_sensitive={self._case_sensitive}, allowlist={len(self._allowlist)})"
        )
