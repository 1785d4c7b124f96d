"""Pseudonymizer: one sensitive value in, one consistent replacement out.

When enabled, the same input value always maps to the same output within
the lifetime of the instance, preserving relationships between events
while hiding the value itself.

Example:
    p = Pseudonymizer.with_defaults()
    p.pseudonymize("user@example.com", "***")  # "<redacted:" + 8 hex chars + ">", consistently

Precedence for a value:
1. disabled or None → the caller's fallback text
2. exact custom replacement → the mapped value
3. configured mode (HASH / COUNTER / REALISTIC), cached per value
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from tracescrub.config import (
    COUNTER_START,
    DEFAULT_CUSTOM_PREFIX,
    DEFAULT_CUSTOM_SUFFIX,
    DEFAULT_HASH_ALGORITHM,
    DEFAULT_HASH_LENGTH,
    DEFAULT_SEED,
    MAX_HASH_LENGTH,
    MIN_HASH_LENGTH,
    PORT_COUNTER_START,
)
from tracescrub.pseudonymizer.pattern_generator import PatternBasedGenerator
from tracescrub.pseudonymizer.realistic import RealisticDataGenerator

logger = logging.getLogger(__name__)


class PseudonymizationMode(Enum):
    """How a replacement body is produced."""

    HASH = "hash"  # truncated digest, stateless
    COUNTER = "counter"  # 1, 2, 3... per first-seen value
    REALISTIC = "realistic"  # plausible fake values, unwrapped

    @classmethod
    def from_string(cls, mode: str | None) -> PseudonymizationMode:
        """Parse a mode name, falling back to HASH for unknown or None."""
        if mode is None:
            return cls.HASH
        try:
            return cls(mode.strip().lower())
        except ValueError:
            return cls.HASH


class PseudonymizationFormat(Enum):
    """How HASH and COUNTER bodies are wrapped."""

    REDACTED = "redacted"  # <redacted:BODY>
    HASH = "hash"  # <hash:BODY>
    CUSTOM = "custom"  # custom_prefix + BODY + custom_suffix

    @classmethod
    def from_string(cls, fmt: str | None) -> PseudonymizationFormat:
        """Parse a format name, falling back to REDACTED for unknown or None."""
        if fmt is None:
            return cls.REDACTED
        try:
            return cls(fmt.strip().lower())
        except ValueError:
            return cls.REDACTED


@dataclass(frozen=True)
class PseudonymizationScope:
    """Which field categories the caller should pseudonymize at all.

    The pseudonymizer only consults ``ports`` itself (in pseudonymize_port);
    the other flags are read by the caller before it asks for a replacement.
    """

    properties: bool = True
    strings: bool = True
    network: bool = True
    paths: bool = True
    ports: bool = True


_HASH_ALGORITHMS: dict[str, str] = {
    "sha256": "sha256",
    "sha1": "sha1",
    "md5": "md5",
}


def _resolve_algorithm(name: str | None) -> str:
    key = (name or DEFAULT_HASH_ALGORITHM).replace("-", "").replace("_", "").lower()
    algorithm = _HASH_ALGORITHMS.get(key)
    if algorithm is None:
        logger.warning("Unknown hash algorithm '%s', using SHA-256", name)
        return "sha256"
    return algorithm


def _shape_of(value: str) -> str:
    """Name of the pattern generator that fits the value's shape."""
    if "@" in value:
        return "emails"
    if "/" in value or "\\" in value:
        return "paths"
    return "usernames"


class Pseudonymizer:
    """Deterministic mapping of sensitive values to pseudonyms.

    Owns a value cache (original → replacement), a counter for COUNTER mode
    and an independent port counter/cache. All of it is reset together by
    clear_cache(). No internal locking: confine an instance to one worker.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        mode: PseudonymizationMode = PseudonymizationMode.HASH,
        format: PseudonymizationFormat = PseudonymizationFormat.REDACTED,
        custom_prefix: str = DEFAULT_CUSTOM_PREFIX,
        custom_suffix: str = DEFAULT_CUSTOM_SUFFIX,
        hash_length: int = DEFAULT_HASH_LENGTH,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
        scope: PseudonymizationScope | None = None,
        custom_replacements: Mapping[str, str] | None = None,
        pattern_generators: Mapping[str, str] | None = None,
        seed: int = DEFAULT_SEED,
    ) -> None:
        """Initialize the pseudonymizer. Prefer builder() or the factories.

        Raises:
            PatternSyntaxError: If a pattern generator regex is malformed
        """
        self._enabled = enabled
        self._mode = mode or PseudonymizationMode.HASH
        self._format = format or PseudonymizationFormat.REDACTED
        self._custom_prefix = custom_prefix if custom_prefix is not None else DEFAULT_CUSTOM_PREFIX
        self._custom_suffix = custom_suffix if custom_suffix is not None else DEFAULT_CUSTOM_SUFFIX
        self._hash_length = max(MIN_HASH_LENGTH, min(MAX_HASH_LENGTH, hash_length))
        self._hash_algorithm = _resolve_algorithm(hash_algorithm)
        self._scope = scope or PseudonymizationScope()
        self._custom_replacements: dict[str, str] = dict(custom_replacements or {})

        self._cache: dict[str, str] = {}
        self._counter = COUNTER_START
        self._port_cache: dict[int, int] = {}
        self._port_counter = PORT_COUNTER_START

        self._realistic = RealisticDataGenerator(seed)
        self._pattern_generator: PatternBasedGenerator | None = None
        if pattern_generators:
            self._pattern_generator = PatternBasedGenerator(pattern_generators, seed)

        logger.debug(
            "pseudonymizer_init enabled=%s mode=%s format=%s custom_replacements=%d pattern_generators=%d",
            enabled,
            self._mode.value,
            self._format.value,
            len(self._custom_replacements),
            len(pattern_generators or {}),
        )

    @classmethod
    def builder(cls) -> PseudonymizerBuilder:
        return PseudonymizerBuilder()

    @classmethod
    def with_defaults(cls) -> Pseudonymizer:
        """HASH mode, <redacted:...> format, enabled."""
        return cls.builder().build()

    @classmethod
    def disabled(cls) -> Pseudonymizer:
        """A pseudonymizer that always hands back the caller's fallback."""
        return cls.builder().enabled(False).build()

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def scope(self) -> PseudonymizationScope:
        return self._scope

    @property
    def mode(self) -> PseudonymizationMode:
        return self._mode

    @property
    def format(self) -> PseudonymizationFormat:
        return self._format

    @property
    def pattern_generator(self) -> PatternBasedGenerator | None:
        """Access the named pattern generators for inspection."""
        return self._pattern_generator

    def pseudonymize(self, value: str | None, fallback: str) -> str:
        """Return the pseudonym for ``value``.

        Args:
            value: The original sensitive value
            fallback: Text to return when pseudonymization is disabled

        Returns:
            The cached or newly generated pseudonym, or ``fallback``
        """
        if not self._enabled or value is None:
            return fallback
        if value == "":
            return value

        replacement = self._custom_replacement(value)
        if replacement is not None:
            return replacement

        cached = self._cache.get(value)
        if cached is not None:
            return cached

        pseudonym = self._generate(value)
        self._cache[value] = pseudonym
        logger.debug(
            "Generated pseudonym for value (length=%d) mode=%s cache_size=%d",
            len(value),
            self._mode.value,
            len(self._cache),
        )
        return pseudonym

    def pseudonymize_with_pattern(self, value: str | None, pattern_name: str, fallback: str) -> str:
        """Pseudonymize using a specific named pattern generator.

        Falls back to pseudonymize() when the pattern is not registered.
        """
        if not self._enabled or value is None:
            return fallback
        if value == "":
            return value

        replacement = self._custom_replacement(value)
        if replacement is not None:
            return replacement

        if self._pattern_generator is not None and self._pattern_generator.has_pattern(pattern_name):
            cached = self._cache.get(value)
            if cached is not None:
                return cached
            generated = self._pattern_generator.generate(pattern_name, value)
            if generated is not None:
                self._cache[value] = generated
                return generated

        return self.pseudonymize(value, fallback)

    def pseudonymize_port(self, port: int) -> int:
        """Map a port into the 1000+ range, counter style, whatever the mode.

        Example: 8080 -> 1000, 443 -> 1001, 8080 -> 1000
        """
        if not self._enabled or not self._scope.ports:
            return port

        cached = self._port_cache.get(port)
        if cached is not None:
            return cached

        pseudo_port = self._port_counter
        self._port_counter += 1
        self._port_cache[port] = pseudo_port
        logger.debug("Pseudonymized port %d -> %d", port, pseudo_port)
        return pseudo_port

    def clear_cache(self) -> None:
        """Empty the value and port caches and restart both counters."""
        value_entries = len(self._cache)
        port_entries = len(self._port_cache)
        self._cache.clear()
        self._port_cache.clear()
        self._counter = COUNTER_START
        self._port_counter = PORT_COUNTER_START
        logger.debug(
            "Cleared pseudonymization cache: %d value entries, %d port entries",
            value_entries,
            port_entries,
        )

    @property
    def cache_size(self) -> int:
        """Number of cached value pseudonyms (ports are not counted)."""
        return len(self._cache)

    def get_cache_size(self) -> int:
        return self.cache_size

    def get_stats(self) -> str:
        state = "enabled" if self._enabled else "disabled"
        return f"Pseudonymization: {state}, Cache size: {len(self._cache)} unique values"

    def _custom_replacement(self, value: str) -> str | None:
        replacement = self._custom_replacements.get(value)
        if replacement is not None:
            self._cache[value] = replacement
        return replacement

    def _generate(self, value: str) -> str:
        if self._mode is PseudonymizationMode.REALISTIC:
            shape = _shape_of(value)
            generated: str | None = None
            if self._pattern_generator is not None and self._pattern_generator.has_pattern(shape):
                generated = self._pattern_generator.generate(shape, value)
            if generated is None:
                generated = self._realistic.generate_replacement(value)
            if generated is not None:
                return generated

        if self._mode is PseudonymizationMode.COUNTER:
            body = str(self._counter)
            self._counter += 1
            return self._wrap(body)

        return self._wrap(self._digest(value)[: self._hash_length])

    def _wrap(self, body: str) -> str:
        if self._format is PseudonymizationFormat.HASH:
            return f"<hash:{body}>"
        if self._format is PseudonymizationFormat.CUSTOM:
            return f"{self._custom_prefix}{body}{self._custom_suffix}"
        return f"<redacted:{body}>"

    def _digest(self, value: str) -> str:
        digest = hashlib.new(self._hash_algorithm, usedforsecurity=False)
        digest.update(value.encode("utf-8"))
        return digest.hexdigest()


class PseudonymizerBuilder:
    """Fluent configuration for Pseudonymizer.

    Example:
        p = (
            Pseudonymizer.builder()
            .mode(PseudonymizationMode.COUNTER)
            .add_replacement("prod-db-01", "database")
            .build()
        )
    """

    def __init__(self) -> None:
        self._enabled = True
        self._mode = PseudonymizationMode.HASH
        self._format = PseudonymizationFormat.REDACTED
        self._custom_prefix = DEFAULT_CUSTOM_PREFIX
        self._custom_suffix = DEFAULT_CUSTOM_SUFFIX
        self._hash_length = DEFAULT_HASH_LENGTH
        self._hash_algorithm = DEFAULT_HASH_ALGORITHM
        self._scope = PseudonymizationScope()
        self._custom_replacements: dict[str, str] = {}
        self._pattern_generators: dict[str, str] = {}
        self._seed = DEFAULT_SEED

    def enabled(self, enabled: bool) -> PseudonymizerBuilder:
        self._enabled = enabled
        return self

    def mode(self, mode: PseudonymizationMode) -> PseudonymizerBuilder:
        self._mode = mode
        return self

    def format(self, fmt: PseudonymizationFormat) -> PseudonymizerBuilder:
        self._format = fmt
        return self

    def custom_prefix(self, prefix: str) -> PseudonymizerBuilder:
        self._custom_prefix = prefix
        return self

    def custom_suffix(self, suffix: str) -> PseudonymizerBuilder:
        self._custom_suffix = suffix
        return self

    def hash_length(self, length: int) -> PseudonymizerBuilder:
        self._hash_length = length
        return self

    def hash_algorithm(self, algorithm: str) -> PseudonymizerBuilder:
        self._hash_algorithm = algorithm
        return self

    def scope(self, scope: PseudonymizationScope) -> PseudonymizerBuilder:
        self._scope = scope
        return self

    def custom_replacements(self, replacements: Mapping[str, str]) -> PseudonymizerBuilder:
        self._custom_replacements = dict(replacements)
        return self

    def add_replacement(self, original: str, replacement: str) -> PseudonymizerBuilder:
        self._custom_replacements[original] = replacement
        return self

    def pattern_generators(self, patterns: Mapping[str, str]) -> PseudonymizerBuilder:
        self._pattern_generators = dict(patterns)
        return self

    def add_pattern_generator(self, pattern_name: str, regex: str) -> PseudonymizerBuilder:
        self._pattern_generators[pattern_name] = regex
        return self

    def seed(self, seed: int) -> PseudonymizerBuilder:
        self._seed = seed
        return self

    def build(self) -> Pseudonymizer:
        return Pseudonymizer(
            enabled=self._enabled,
            mode=self._mode,
            format=self._format,
            custom_prefix=self._custom_prefix,
            custom_suffix=self._custom_suffix,
            hash_length=self._hash_length,
            hash_algorithm=self._hash_algorithm,
            scope=self._scope,
            custom_replacements=self._custom_replacements,
            pattern_generators=self._pattern_generators,
            seed=self._seed,
        )
