"""Pattern discovery engine.

Runs the configured extraction rules over text lines and structured
records, accumulating every extracted value in a per-rule
DiscoveredPatterns. Each rule keeps its own case sensitivity, whitelist
and occurrence threshold; get_discovered_patterns() applies the
thresholds and folds everything into one set for the redactor.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from tracescrub.core.errors import PatternSyntaxError
from tracescrub.discovery.patterns import DiscoveredPatterns, DiscoveredValue, PatternType
from tracescrub.models.config import (
    CustomExtractionConfig,
    DiscoveryConfig,
    PropertyExtractionConfig,
)

logger = logging.getLogger(__name__)


def _compile(rule_name: str, pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise PatternSyntaxError(rule_name, pattern, exc.msg, exc.pos) from exc


def _pattern_type(rule_name: str, type_name: str) -> PatternType:
    pattern_type = PatternType.from_string(type_name)
    if pattern_type is None:
        logger.warning("Invalid type '%s' for extraction '%s', using CUSTOM", type_name, rule_name)
        return PatternType.CUSTOM
    return pattern_type


def _collect(accepted: list[DiscoveredValue], value: DiscoveredValue | None) -> None:
    if value is not None:
        accepted.append(value)


@dataclass
class _Extractor:
    """State shared by both rule kinds."""

    name: str
    type: PatternType
    min_occurrences: int
    discovered: DiscoveredPatterns

    def add(self, value: str) -> DiscoveredValue | None:
        """Record one sighting; returns the value when it just reached the threshold."""
        custom_name = self.name if self.type is PatternType.CUSTOM else None
        self.discovered.add_value(value, self.type, custom_name)
        recorded = self.discovered.get(value)
        if recorded is not None and recorded.occurrences == self.min_occurrences:
            return recorded
        return None

    def accepted_values(self) -> list[DiscoveredValue]:
        return self.discovered.get_values(self.min_occurrences)


@dataclass
class _RegexExtractor(_Extractor):
    pattern: re.Pattern[str]
    capture_group: int = 0
    ignore: list[re.Pattern[str]] = field(default_factory=list)

    def extract(self, line: str) -> list[DiscoveredValue]:
        accepted: list[DiscoveredValue] = []
        groups = self.pattern.groups
        for match in self.pattern.finditer(line):
            if self.capture_group == 0 or groups == 0:
                extracted = match.group(0)
            elif groups >= self.capture_group:
                extracted = match.group(self.capture_group)
            else:
                continue

            if not extracted:
                continue
            if any(ignore.fullmatch(extracted) for ignore in self.ignore):
                continue
            _collect(accepted, self.add(extracted))
        return accepted


@dataclass
class _PropertyExtractor(_Extractor):
    key_pattern: re.Pattern[str]
    value_pattern: re.Pattern[str]
    key_property: str = "key"
    value_property: str = "value"
    event_type_filter: re.Pattern[str] | None = None

    def applies_to(self, event_type: str | None) -> bool:
        if self.event_type_filter is None:
            return True
        return event_type is not None and self.event_type_filter.fullmatch(event_type) is not None

    def extract(self, record: Mapping[str, Any]) -> list[DiscoveredValue]:
        accepted: list[DiscoveredValue] = []
        # Direct fields: record["userName"] = "john"
        for field_name, value in record.items():
            if isinstance(value, str) and value and self.key_pattern.fullmatch(str(field_name)):
                _collect(accepted, self.add(value))

        # Key/value pairs: record["key"] = "user.name", record["value"] = "john"
        key = record.get(self.key_property)
        value = record.get(self.value_property)
        if not isinstance(key, str) or not isinstance(value, str) or not value:
            return accepted
        if self.key_pattern.fullmatch(key) and self.value_pattern.fullmatch(value):
            _collect(accepted, self.add(value))
        return accepted


class PatternDiscoveryEngine:
    """Extracts sensitive values from lines and records.

    Args:
        config: Discovery section; disabled rules and rules without a
            pattern are skipped

    Raises:
        PatternSyntaxError: If a rule's regex does not compile
    """

    def __init__(self, config: DiscoveryConfig) -> None:
        self._config = config
        self._extractors: list[_RegexExtractor] = []
        self._property_extractors: list[_PropertyExtractor] = []
        self._accepted: list[DiscoveredValue] = []

        for prop in config.property_extractions:
            if prop.enabled and prop.key_pattern:
                self._property_extractors.append(self._compile_property(prop))

        for rule in config.custom_extractions:
            if rule.enabled and rule.pattern:
                self._extractors.append(self._compile_custom(rule))

        logger.info(
            "Compiled %d extraction patterns and %d property extractors",
            len(self._extractors),
            len(self._property_extractors),
        )

    @property
    def config(self) -> DiscoveryConfig:
        return self._config

    @property
    def version(self) -> int:
        """Number of values that have reached their rule's threshold so far.

        Unchanged between two calls means get_discovered_patterns() holds
        the same values; accepted_since(version) lists what was added.
        """
        return len(self._accepted)

    def accepted_since(self, version: int) -> list[DiscoveredValue]:
        """Values that reached their threshold after ``version``, oldest first."""
        return self._accepted[version:]

    def _compile_custom(self, rule: CustomExtractionConfig) -> _RegexExtractor:
        pattern_type = _pattern_type(rule.name, rule.type)
        extractor = _RegexExtractor(
            name=rule.name,
            type=pattern_type,
            min_occurrences=rule.min_occurrences,
            discovered=DiscoveredPatterns(rule.case_sensitive, rule.whitelist),
            pattern=_compile(rule.name, rule.pattern),
            capture_group=rule.capture_group,
            ignore=[_compile(f"{rule.name}.ignore", regex) for regex in rule.ignore],
        )
        logger.debug(
            "Compiled extraction '%s' (type=%s, capture_group=%d, min_occurrences=%d, case_sensitive=%s)",
            rule.name,
            pattern_type.value,
            rule.capture_group,
            rule.min_occurrences,
            rule.case_sensitive,
        )
        return extractor

    def _compile_property(self, prop: PropertyExtractionConfig) -> _PropertyExtractor:
        pattern_type = _pattern_type(prop.name, prop.type)
        event_filter = None
        if prop.event_type_filter:
            event_filter = _compile(f"{prop.name}.event_type_filter", prop.event_type_filter)
        extractor = _PropertyExtractor(
            name=prop.name,
            type=pattern_type,
            min_occurrences=prop.min_occurrences,
            discovered=DiscoveredPatterns(prop.case_sensitive, prop.whitelist),
            key_pattern=_compile(prop.name, prop.key_pattern),
            key_property=prop.key_property or "key",
            value_pattern=_compile(f"{prop.name}.value_pattern", prop.value_pattern or ".*"),
            value_property=prop.value_property or "value",
            event_type_filter=event_filter,
        )
        logger.debug(
            "Compiled property extraction '%s' (type=%s, kv=%s/%s, event_filter=%s)",
            prop.name,
            pattern_type.value,
            extractor.key_property,
            extractor.value_property,
            prop.event_type_filter,
        )
        return extractor

    def analyze_line(self, line: str | None) -> None:
        """Run every regex rule over one line of text."""
        if not line:
            return
        for extractor in self._extractors:
            self._accepted.extend(extractor.extract(line))

    def analyze_record(self, record: Mapping[str, Any], event_type: str | None = None) -> None:
        """Run property rules on ``record``, then every nested string through analyze_line.

        Args:
            record: Field name to value mapping; values may be nested
                mappings or lists
            event_type: Record type name matched against event type filters
        """
        for extractor in self._property_extractors:
            if extractor.applies_to(event_type):
                self._accepted.extend(extractor.extract(record))
        self._analyze_value(record)

    def _analyze_value(self, value: Any) -> None:
        if isinstance(value, str):
            self.analyze_line(value)
        elif isinstance(value, Mapping):
            for item in value.values():
                self._analyze_value(item)
        elif isinstance(value, (list, tuple)):
            for item in value:
                self._analyze_value(item)

    def _all_extractors(self) -> list[_Extractor]:
        return [*self._extractors, *self._property_extractors]

    def get_discovered_patterns(self) -> DiscoveredPatterns:
        """Values that met their rule's threshold, in one case-insensitive set."""
        combined = DiscoveredPatterns(case_sensitive=False)
        for extractor in self._all_extractors():
            for value in extractor.accepted_values():
                combined.add_value(value.value, value.type, value.custom_type_name, value.occurrences)
        return combined

    def get_statistics(self) -> str:
        lines = ["Discovery Statistics:"]
        total = 0
        for extractor in self._all_extractors():
            count = len(extractor.accepted_values())
            if count == 0:
                continue
            total += count
            kind = " [property]" if isinstance(extractor, _PropertyExtractor) else ""
            lines.append(
                f"  {extractor.name}{kind} ({extractor.type.value}): {count} values "
                f"(min occurrences: {extractor.min_occurrences})"
            )
        lines.append(f"  Total discovered values: {total}")
        return "\n".join(lines)
