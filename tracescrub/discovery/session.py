"""Discovery protocol: when discovered values are known, and when they are redacted.

Modes (see DiscoveryMode):
- NONE: one pass, static redaction only
- FAST: one pass; a value is redacted from its first discovery onward,
  earlier occurrences in the same pass stay as they were
- TWO_PASS: the source is read once for discovery only, then again for
  redaction with the complete set, so every occurrence is redacted

The session never performs I/O. The caller supplies the values, either as
a zero-argument callable returning a fresh iterable (run) or step by step
(discover / begin_redaction / process / finish).

Example:
    session = DiscoverySession(DiscoveryMode.TWO_PASS, engine, redactor)
    redacted = list(session.run(lambda: open(path).read().splitlines()))
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator

from tracescrub.config import DEFAULT_REDACTION_TEXT
from tracescrub.core.errors import ConfigError, DiscoveryStateError
from tracescrub.discovery.engine import PatternDiscoveryEngine
from tracescrub.discovery.patterns import DiscoveredPatterns, DiscoveredValue
from tracescrub.models.config import DiscoveryMode
from tracescrub.pseudonymizer.pseudonymizer import Pseudonymizer

logger = logging.getLogger(__name__)

PROGRESS_LOG_INTERVAL = 1000


class SessionPhase(Enum):
    READY = "ready"
    DISCOVERING = "discovering"
    REDACTING = "redacting"
    DONE = "done"


@dataclass
class SessionStats:
    """Counters for one session."""

    values_discovered: int = 0  # distinct values loaded into the redactor
    values_analyzed: int = 0  # values seen by the discovery pass
    values_processed: int = 0
    values_changed: int = 0
    static_redactions: int = 0
    discovered_redactions: int = 0
    redactor_updates: int = 0  # times new discovered values reached the redactor


class DiscoveredValueRedactor:
    """Replaces discovered values wherever they occur inside a string.

    Longer values win over their prefixes ("johnsmith" before "john").
    Matching is case-insensitive unless the loaded DiscoveredPatterns is
    case-sensitive. Every spelling of a value gets the pseudonym of its
    first-seen casing, so all occurrences stay linked.

    Values are held in compiled alternation groups. add_values() puts new
    values in a small group and merges groups of similar size, so a
    stream that keeps discovering values recompiles each value only a
    logarithmic number of times.
    """

    def __init__(
        self,
        pseudonymizer: Pseudonymizer | None = None,
        redaction_text: str = DEFAULT_REDACTION_TEXT,
    ) -> None:
        self._pseudonymizer = pseudonymizer or Pseudonymizer.disabled()
        self._redaction_text = redaction_text
        self._patterns: DiscoveredPatterns | None = None
        self._flags = re.IGNORECASE
        self._groups: list[tuple[list[str], re.Pattern[str]]] = []

    @property
    def discovered_patterns(self) -> DiscoveredPatterns | None:
        return self._patterns

    @property
    def group_count(self) -> int:
        """Number of compiled alternation groups currently held."""
        return len(self._groups)

    def set_discovered_patterns(self, patterns: DiscoveredPatterns | None) -> int:
        """Load the values to redact, replacing earlier ones; returns how many were loaded."""
        self._patterns = patterns
        self._groups = []
        if patterns is None:
            return 0
        self._flags = 0 if patterns.case_sensitive else re.IGNORECASE
        values = [v.value for v in patterns.get_values()]
        if values:
            self._groups.append(self._compile_group(values))
        return len(values)

    def add_values(self, values: Iterable[DiscoveredValue]) -> int:
        """Add values on top of the loaded ones; returns the total loaded."""
        if self._patterns is None:
            self._patterns = DiscoveredPatterns(case_sensitive=False)
            self._flags = re.IGNORECASE
        fresh: list[str] = []
        for value in values:
            if self._patterns.contains(value.value):
                continue
            self._patterns.add_value(value.value, value.type, value.custom_type_name, value.occurrences)
            if self._patterns.contains(value.value):
                fresh.append(value.value)
        if not fresh:
            return len(self._patterns)

        self._groups.append(self._compile_group(fresh))
        while len(self._groups) > 1 and len(self._groups[-2][0]) <= len(self._groups[-1][0]):
            newer, _ = self._groups.pop()
            older, _ = self._groups.pop()
            self._groups.append(self._compile_group(older + newer))
        return len(self._patterns)

    def redact(self, text: str | None) -> str | None:
        if not text or not self._groups:
            return text
        if len(self._groups) == 1:
            return self._groups[0][1].sub(self._replace, text)
        return self._redact_across_groups(text)

    def _compile_group(self, values: list[str]) -> tuple[list[str], re.Pattern[str]]:
        ordered = sorted(values, key=len, reverse=True)
        return values, re.compile("|".join(re.escape(v) for v in ordered), self._flags)

    def _redact_across_groups(self, text: str) -> str:
        # Leftmost match wins; at the same position the longest one does
        regexes = [regex for _, regex in self._groups]
        pending = [regex.search(text) for regex in regexes]
        parts: list[str] = []
        pos = 0
        while True:
            best: re.Match[str] | None = None
            for i, regex in enumerate(regexes):
                match = pending[i]
                if match is not None and match.start() < pos:
                    match = pending[i] = regex.search(text, pos)
                if match is None:
                    continue
                if best is None or (match.start(), -match.end()) < (best.start(), -best.end()):
                    best = match
            if best is None:
                break
            parts.append(text[pos : best.start()])
            parts.append(self._replace(best))
            pos = best.end()
        parts.append(text[pos:])
        return "".join(parts)

    def _replace(self, match: re.Match[str]) -> str:
        discovered = self._patterns.get(match.group(0)) if self._patterns is not None else None
        original = discovered.value if discovered is not None else match.group(0)
        return self._pseudonymizer.pseudonymize(original, self._redaction_text)


class DiscoverySession:
    """Drives one source through the configured discovery mode.

    Args:
        mode: Discovery mode
        engine: Extraction rules; may be None only for NONE mode
        redactor: Applies discovered values
        static_redact: Caller's statically configured redaction; when it
            changes a value, discovered values are not applied to it
        refresh_interval: FAST mode checks the engine for new values after
            this many values; only newly accepted values are handed to the
            redactor

    Raises:
        DiscoveryStateError: When steps are called out of order
    """

    def __init__(
        self,
        mode: DiscoveryMode,
        engine: PatternDiscoveryEngine | None,
        redactor: DiscoveredValueRedactor,
        static_redact: Callable[[str], str] | None = None,
        refresh_interval: int = 1,
    ) -> None:
        if engine is None and mode is not DiscoveryMode.NONE:
            raise ConfigError("discovery.mode", f"{mode.name} needs a discovery engine")
        self._mode = mode
        self._engine = engine
        self._redactor = redactor
        self._static_redact = static_redact
        self._refresh_interval = max(1, refresh_interval)
        self._phase = SessionPhase.READY
        self._since_refresh = 0
        self._engine_version = 0
        self.stats = SessionStats()

    @property
    def mode(self) -> DiscoveryMode:
        return self._mode

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    def run(self, source: Callable[[], Iterable[str]]) -> Iterator[str]:
        """Redact every value from ``source`` according to the mode.

        ``source`` is called once for NONE and FAST and twice for TWO_PASS;
        each call must yield the same values in the same order.
        """
        if self._mode is DiscoveryMode.TWO_PASS:
            self.discover(source())
        self.begin_redaction()
        for value in source():
            yield self.process(value)
        self.finish()

    def discover(self, values: Iterable[str]) -> int:
        """TWO_PASS discovery pass; returns the number of distinct values found."""
        if self._mode is not DiscoveryMode.TWO_PASS:
            raise DiscoveryStateError(self._phase.value, f"run a discovery pass in {self._mode.name} mode")
        if self._phase is not SessionPhase.READY:
            raise DiscoveryStateError(self._phase.value, "start discovery")
        engine = self._require_engine()

        self._phase = SessionPhase.DISCOVERING
        logger.info("Discovery pass: analyzing values for sensitive patterns")
        for value in values:
            engine.analyze_line(value)
            self.stats.values_analyzed += 1
            if self.stats.values_analyzed % PROGRESS_LOG_INTERVAL == 0:
                logger.info("Discovery: analyzed %d values", self.stats.values_analyzed)

        logger.info("Discovery pass complete: analyzed %d values", self.stats.values_analyzed)
        logger.info("%s", engine.get_statistics())
        return self._load_discovered(engine)

    def begin_redaction(self) -> None:
        expected = SessionPhase.DISCOVERING if self._mode is DiscoveryMode.TWO_PASS else SessionPhase.READY
        if self._phase is not expected:
            raise DiscoveryStateError(self._phase.value, "begin redaction")
        self._phase = SessionPhase.REDACTING
        self._since_refresh = 0
        logger.info("Redaction pass started (mode=%s)", self._mode.name)

    def process(self, value: str) -> str:
        """Redact one value; in FAST mode it is analyzed first."""
        if self._phase is not SessionPhase.REDACTING:
            raise DiscoveryStateError(self._phase.value, "process a value")

        if self._mode is DiscoveryMode.FAST:
            engine = self._require_engine()
            engine.analyze_line(value)
            self._since_refresh += 1
            if self._since_refresh >= self._refresh_interval:
                self._refresh(engine)
                self._since_refresh = 0

        result = value
        if self._static_redact is not None:
            result = self._static_redact(value)
            if result != value:
                self.stats.static_redactions += 1

        if result == value and self._mode is not DiscoveryMode.NONE:
            result = self._redactor.redact(value)
            if result != value:
                self.stats.discovered_redactions += 1

        self.stats.values_processed += 1
        if result != value:
            self.stats.values_changed += 1
        if self.stats.values_processed % PROGRESS_LOG_INTERVAL == 0:
            logger.info(
                "Processed %d values (%d redacted)",
                self.stats.values_processed,
                self.stats.values_changed,
            )
        return result

    def finish(self) -> SessionStats:
        if self._phase is not SessionPhase.REDACTING:
            raise DiscoveryStateError(self._phase.value, "finish")
        if self._mode is DiscoveryMode.FAST:
            engine = self._require_engine()
            self._refresh(engine)
            logger.info("%s", engine.get_statistics())
        self._phase = SessionPhase.DONE
        logger.info(
            "Redaction complete: %d values processed, %d contained redactions",
            self.stats.values_processed,
            self.stats.values_changed,
        )
        return self.stats

    def _require_engine(self) -> PatternDiscoveryEngine:
        if self._engine is None:
            raise ConfigError("discovery.mode", f"{self._mode.name} needs a discovery engine")
        return self._engine

    def _load_discovered(self, engine: PatternDiscoveryEngine) -> int:
        count = self._redactor.set_discovered_patterns(engine.get_discovered_patterns())
        self._engine_version = engine.version
        self.stats.values_discovered = count
        self.stats.redactor_updates += 1
        logger.debug("Loaded %d discovered values for redaction", count)
        return count

    def _refresh(self, engine: PatternDiscoveryEngine) -> None:
        if engine.version == self._engine_version:
            return
        added = engine.accepted_since(self._engine_version)
        self._engine_version = engine.version
        self.stats.values_discovered = self._redactor.add_values(added)
        self.stats.redactor_updates += 1
        logger.debug("Added %d discovered values (%d total)", len(added), self.stats.values_discovered)
