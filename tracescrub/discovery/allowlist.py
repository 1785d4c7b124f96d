"""Allowlist for suppressing false positive discoveries.

Extraction rules are greedy: a rule for home directories also matches
/Users/Shared, a host rule also matches localhost. Values on the allowlist
are never recorded, so they are never redacted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from tracescrub.config import COMMON_ACCOUNT_NAMES

__all__ = ["COMMON_ACCOUNT_NAMES", "Allowlist"]


@dataclass(frozen=True)
class Allowlist:
    """Normalized set of values that are never treated as sensitive.

    Normalization is lower-casing unless ``case_sensitive`` is set, so the
    allowlist always agrees with the DiscoveredPatterns that owns it.
    """

    terms: frozenset[str] = field(default_factory=frozenset)
    case_sensitive: bool = False

    @classmethod
    def of(cls, values: Iterable[str], case_sensitive: bool = False) -> Allowlist:
        """Build an allowlist, normalizing every value once."""
        normalize = (lambda v: v) if case_sensitive else str.lower
        return cls(
            terms=frozenset(normalize(v) for v in values if v),
            case_sensitive=case_sensitive,
        )

    def normalize(self, value: str) -> str:
        return value if self.case_sensitive else value.lower()

    def is_allowed(self, value: str) -> bool:
        """Check if value is on the allowlist (respecting case sensitivity)."""
        return self.normalize(value) in self.terms

    def filter(self, values: Iterable[str]) -> list[str]:
        """Drop allowlisted values, keeping order."""
        return [v for v in values if not self.is_allowed(v)]

    def __len__(self) -> int:
        return len(self.terms)
