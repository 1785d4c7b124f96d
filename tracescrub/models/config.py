"""Configuration sections for pseudonymization and discovery.

Each dataclass mirrors one section of the YAML config file. Preset and
parent inheritance live with the config loader of the embedding tool;
only the map merge for replacements/pattern generators is provided here.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import yaml

from tracescrub.config import (
    COMMON_ACCOUNT_NAMES,
    DEFAULT_CUSTOM_PREFIX,
    DEFAULT_CUSTOM_SUFFIX,
    DEFAULT_HASH_ALGORITHM,
    DEFAULT_HASH_LENGTH,
    DEFAULT_SEED,
)
from tracescrub.core.errors import ConfigError
from tracescrub.pseudonymizer.pseudonymizer import (
    PseudonymizationFormat,
    PseudonymizationMode,
    PseudonymizationScope,
    Pseudonymizer,
)


class DiscoveryMode(Enum):
    """How many times the source is read to find sensitive values.

    NONE     -> one pass, only statically configured patterns are redacted
    FAST     -> one pass, values redacted from their first discovery onward
    TWO_PASS -> discovery pass, then redaction pass with the complete set
    """

    NONE = "none"
    FAST = "fast"
    TWO_PASS = "default"

    @classmethod
    def from_string(cls, mode: str | None) -> DiscoveryMode:
        if mode is None:
            return cls.TWO_PASS
        key = mode.strip().lower().replace("-", "_")
        if key in ("default", "two_pass"):
            return cls.TWO_PASS
        try:
            return cls(key)
        except ValueError:
            raise ConfigError("discovery.mode", f"unknown mode {mode!r}") from None


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


# Annotation (as written on the dataclasses below) -> accepted YAML value
_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "bool": lambda v: isinstance(v, bool),
    "int": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "str": lambda v: isinstance(v, str),
    "str | None": lambda v: v is None or isinstance(v, str),
    "list[str]": _is_str_list,
    "dict[str, str]": lambda v: isinstance(v, dict),
    "list[CustomExtractionConfig]": lambda v: isinstance(v, list),
    "list[PropertyExtractionConfig]": lambda v: isinstance(v, list),
    "DiscoveryMode": lambda v: isinstance(v, str),
}


def _from_dict(cls: type, section: str, data: dict[str, Any] | None) -> dict[str, Any]:
    """Validate ``data`` against the dataclass fields and return the usable keys.

    Keys set to null fall back to the field default.

    Raises:
        ConfigError: On unknown keys, missing required keys or a value of
            the wrong type
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(section, f"expected a mapping, got {type(data).__name__}")
    fields = {f.name: f for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - set(fields))
    if unknown:
        raise ConfigError(section, f"unknown keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for name, f in fields.items():
        required = f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        value = data.get(name)
        if value is None:
            if required:
                raise ConfigError(f"{section}.{name}", "is required")
            continue
        check = _TYPE_CHECKS.get(str(f.type))
        if check is not None and not check(value):
            raise ConfigError(f"{section}.{name}", f"expected {f.type}, got {type(value).__name__}")
        values[name] = value
    return values


# =============================================================================
# Pseudonymization
# =============================================================================


@dataclass
class ScopeConfig:
    """Field categories to pseudonymize."""

    properties: bool = True
    strings: bool = True
    network: bool = True
    paths: bool = True
    ports: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ScopeConfig:
        return cls(**_from_dict(cls, "pseudonymization.scope", data))

    def to_scope(self) -> PseudonymizationScope:
        return PseudonymizationScope(
            properties=self.properties,
            strings=self.strings,
            network=self.network,
            paths=self.paths,
            ports=self.ports,
        )


@dataclass
class PseudonymizationConfig:
    """The ``pseudonymization`` section."""

    enabled: bool = False
    mode: str = "hash"
    format: str = "redacted"
    custom_prefix: str = DEFAULT_CUSTOM_PREFIX
    custom_suffix: str = DEFAULT_CUSTOM_SUFFIX
    hash_length: int = DEFAULT_HASH_LENGTH
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    scope: ScopeConfig = field(default_factory=ScopeConfig)
    replacements: dict[str, str] = field(default_factory=dict)
    pattern_generators: dict[str, str] = field(default_factory=dict)
    seed: int = DEFAULT_SEED

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PseudonymizationConfig:
        values = _from_dict(cls, "pseudonymization", data)
        if "scope" in values:
            values["scope"] = ScopeConfig.from_dict(values["scope"])
        for key in ("replacements", "pattern_generators"):
            if key in values:
                values[key] = {str(k): str(v) for k, v in (values[key] or {}).items()}
        return cls(**values)

    def merge_with(self, parent: PseudonymizationConfig | None) -> None:
        """Inherit the parent's replacement and pattern maps; own keys win."""
        if parent is None:
            return
        self.replacements = {**parent.replacements, **self.replacements}
        self.pattern_generators = {**parent.pattern_generators, **self.pattern_generators}

    def build(self) -> Pseudonymizer:
        """Create the Pseudonymizer this section describes.

        Raises:
            PatternSyntaxError: If a pattern generator regex is malformed
        """
        return (
            Pseudonymizer.builder()
            .enabled(self.enabled)
            .mode(PseudonymizationMode.from_string(self.mode))
            .format(PseudonymizationFormat.from_string(self.format))
            .custom_prefix(self.custom_prefix)
            .custom_suffix(self.custom_suffix)
            .hash_length(self.hash_length)
            .hash_algorithm(self.hash_algorithm)
            .scope(self.scope.to_scope())
            .custom_replacements(self.replacements)
            .pattern_generators(self.pattern_generators)
            .seed(self.seed)
            .build()
        )


# =============================================================================
# Discovery
# =============================================================================


@dataclass
class CustomExtractionConfig:
    """A regex rule: every match (or capture group) is a discovered value."""

    name: str
    pattern: str
    capture_group: int = 0
    type: str = "CUSTOM"
    case_sensitive: bool = False
    min_occurrences: int = 1
    whitelist: list[str] = field(default_factory=list)
    ignore: list[str] = field(default_factory=list)  # full-match regexes
    enabled: bool = True
    description: str | None = None

    def __post_init__(self) -> None:
        self.min_occurrences = max(1, self.min_occurrences)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomExtractionConfig:
        return cls(**_from_dict(cls, "discovery.custom_extractions", data))


@dataclass
class PropertyExtractionConfig:
    """A rule over record fields.

    Direct mode: a field whose name matches ``key_pattern`` holds the value.
    Key/value mode: ``record[key_property]`` matches ``key_pattern`` and
    ``record[value_property]`` matches ``value_pattern``.
    """

    name: str
    key_pattern: str
    key_property: str = "key"
    value_pattern: str = ".*"
    value_property: str = "value"
    event_type_filter: str | None = None
    type: str = "CUSTOM"
    case_sensitive: bool = False
    min_occurrences: int = 1
    whitelist: list[str] = field(default_factory=list)
    enabled: bool = True
    description: str | None = None

    def __post_init__(self) -> None:
        self.min_occurrences = max(1, self.min_occurrences)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PropertyExtractionConfig:
        return cls(**_from_dict(cls, "discovery.property_extractions", data))


# Built-in rules for the usual suspects in profiling recordings and logs
DEFAULT_EXTRACTIONS: tuple[CustomExtractionConfig, ...] = (
    CustomExtractionConfig(
        name="home_directory",
        pattern=r"/(?:home|Users)/([^/\s:;\"']+)",
        capture_group=1,
        type="USERNAME",
        whitelist=sorted(COMMON_ACCOUNT_NAMES),
        description="User names from Unix and macOS home directories",
    ),
    CustomExtractionConfig(
        name="windows_home_directory",
        pattern=r"[A-Za-z]:\\Users\\([^\\\s:;\"']+)",
        capture_group=1,
        type="USERNAME",
        whitelist=sorted(COMMON_ACCOUNT_NAMES),
        description="User names from Windows profile directories",
    ),
    CustomExtractionConfig(
        name="email",
        pattern=r"([a-zA-Z0-9._%+-]+)@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
        capture_group=1,
        type="EMAIL_LOCAL_PART",
        description="Local part of e-mail addresses",
    ),
    CustomExtractionConfig(
        name="host_label",
        pattern=r"(?i)\bhost(?:name)?\s*[:=]\s*([A-Za-z0-9][A-Za-z0-9.-]*)",
        capture_group=1,
        type="HOSTNAME",
        whitelist=["localhost"],
        description="Host names following a Host: or hostname= label",
    ),
)


@dataclass
class DiscoveryConfig:
    """The ``discovery`` section."""

    mode: DiscoveryMode = DiscoveryMode.TWO_PASS
    custom_extractions: list[CustomExtractionConfig] = field(default_factory=list)
    property_extractions: list[PropertyExtractionConfig] = field(default_factory=list)

    @classmethod
    def with_defaults(cls, mode: DiscoveryMode = DiscoveryMode.TWO_PASS) -> DiscoveryConfig:
        """Config using the built-in extraction rules."""
        return cls(
            mode=mode,
            custom_extractions=[
                dataclasses.replace(rule, whitelist=list(rule.whitelist), ignore=list(rule.ignore))
                for rule in DEFAULT_EXTRACTIONS
            ],
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DiscoveryConfig:
        values = _from_dict(cls, "discovery", data)
        return cls(
            mode=DiscoveryMode.from_string(values.get("mode")),
            custom_extractions=[
                CustomExtractionConfig.from_dict(item)
                for item in values.get("custom_extractions") or []
            ],
            property_extractions=[
                PropertyExtractionConfig.from_dict(item)
                for item in values.get("property_extractions") or []
            ],
        )

    @property
    def enabled(self) -> bool:
        return self.mode is not DiscoveryMode.NONE

    def set_min_occurrences(self, min_occurrences: int) -> None:
        for rule in [*self.custom_extractions, *self.property_extractions]:
            rule.min_occurrences = max(1, min_occurrences)

    def set_case_sensitive(self, case_sensitive: bool) -> None:
        for rule in [*self.custom_extractions, *self.property_extractions]:
            rule.case_sensitive = case_sensitive


def load_config(path: str | Path) -> tuple[PseudonymizationConfig, DiscoveryConfig]:
    """Read the pseudonymization and discovery sections from a YAML file.

    Missing sections get their defaults.

    Raises:
        ConfigError: If the file is not a mapping or a section is malformed
    """
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    return (
        PseudonymizationConfig.from_dict(data.get("pseudonymization")),
        DiscoveryConfig.from_dict(data.get("discovery")),
    )
