"""Configuration models loaded from YAML."""

from __future__ import annotations

from tracescrub.models.config import (
    DEFAULT_EXTRACTIONS,
    CustomExtractionConfig,
    DiscoveryConfig,
    DiscoveryMode,
    PropertyExtractionConfig,
    PseudonymizationConfig,
    ScopeConfig,
    load_config,
)

__all__ = [
    "DEFAULT_EXTRACTIONS",
    "CustomExtractionConfig",
    "DiscoveryConfig",
    "DiscoveryMode",
    "PropertyExtractionConfig",
    "PseudonymizationConfig",
    "ScopeConfig",
    "load_config",
]
