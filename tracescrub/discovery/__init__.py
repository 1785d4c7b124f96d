"""Discovery of sensitive values from context.

Extraction rules find values (user names in home directories, hosts after
a Host: label, ...) that are then redacted everywhere they occur.
"""

from __future__ import annotations

from tracescrub.discovery.allowlist import COMMON_ACCOUNT_NAMES, Allowlist
from tracescrub.discovery.engine import PatternDiscoveryEngine
from tracescrub.discovery.patterns import DiscoveredPatterns, DiscoveredValue, PatternType
from tracescrub.discovery.session import (
    DiscoveredValueRedactor,
    DiscoverySession,
    SessionPhase,
    SessionStats,
)

__all__ = [
    "COMMON_ACCOUNT_NAMES",
    "Allowlist",
    "DiscoveredPatterns",
    "DiscoveredValue",
    "DiscoveredValueRedactor",
    "DiscoverySession",
    "PatternDiscoveryEngine",
    "PatternType",
    "SessionPhase",
    "SessionStats",
]
