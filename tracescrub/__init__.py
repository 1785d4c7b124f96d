"""tracescrub: consistent pseudonymization and discovery-driven redaction.

Replaces sensitive values (user names, hosts, e-mail addresses, paths,
ports) with stable stand-ins so that relationships between records survive
while the values themselves do not. Values that are only recognizable from
context are found by the discovery engine and redacted everywhere.
"""

from __future__ import annotations

from tracescrub.core.errors import ConfigError, DiscoveryStateError, PatternSyntaxError, ScrubError
from tracescrub.discovery import (
    DiscoveredPatterns,
    DiscoveredValue,
    DiscoveredValueRedactor,
    DiscoverySession,
    PatternDiscoveryEngine,
    PatternType,
)
from tracescrub.models import DiscoveryConfig, DiscoveryMode, PseudonymizationConfig, load_config
from tracescrub.pseudonymizer import (
    PatternBasedGenerator,
    PseudonymizationFormat,
    PseudonymizationMode,
    PseudonymizationScope,
    Pseudonymizer,
    RealisticDataGenerator,
)

__all__ = [
    "ConfigError",
    "DiscoveredPatterns",
    "DiscoveredValue",
    "DiscoveredValueRedactor",
    "DiscoveryConfig",
    "DiscoveryMode",
    "DiscoverySession",
    "DiscoveryStateError",
    "PatternBasedGenerator",
    "PatternDiscoveryEngine",
    "PatternSyntaxError",
    "PatternType",
    "PseudonymizationConfig",
    "PseudonymizationFormat",
    "PseudonymizationMode",
    "PseudonymizationScope",
    "Pseudonymizer",
    "RealisticDataGenerator",
    "ScrubError",
    "load_config",
]
