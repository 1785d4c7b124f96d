"""Replacement values drawn from a named regular expression.

Two ways to draw:
1. generate(): deterministic. A seeded hash of (pattern name, original)
   picks an index into the pattern's language. Cached per pattern, so the
   same original always maps to the same replacement.
2. generate_random(): a fresh draw from the instance PRNG on every call,
   for plain redaction where relationships need not be preserved.

Placeholders resolved before compilation:
    {users}  -> a realistic first name ("alice")
    {names}  -> first.last ("alice.smith")
    {emails} -> first.last@company.tld ("alice.smith@example.com")

Example:
    gen = PatternBasedGenerator({"hosts": r"srv-[a-z]{3}[0-9]{2}"}, seed=7)
    gen.generate("hosts", "db1.internal")  # e.g. "srv-kqa41", same on every call
    gen.generate_random("hosts")           # a new value each call
"""

from __future__ import annotations

import hashlib
import logging
import random
import re
from typing import Mapping

from tracescrub.config import (
    COMPANIES,
    DEFAULT_SEED,
    FIRST_NAMES,
    LAST_NAMES,
    MIN_RECOMMENDED_CARDINALITY,
    TLDS,
)
from tracescrub.pseudonymizer.regex_enum import CompiledPattern, compile_pattern

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{(users|emails|names)\}")

_USERS = "(?:" + "|".join(FIRST_NAMES) + ")"
_NAMES = _USERS + r"\." + "(?:" + "|".join(LAST_NAMES) + ")"
_EMAILS = _NAMES + "@(?:" + "|".join(COMPANIES[:4]) + r")\.(?:" + "|".join(TLDS) + ")"

PLACEHOLDER_REGEXES: dict[str, str] = {
    "users": _USERS,
    "names": _NAMES,
    "emails": _EMAILS,
}

# Upper bound on linear probing for an unused string
_MAX_PROBES = 10_000


def resolve_placeholders(pattern: str) -> str:
    """Replace every {users}/{emails}/{names} token with its pool regex."""
    return PLACEHOLDER_PATTERN.sub(lambda m: PLACEHOLDER_REGEXES[m.group(1)], pattern)


class PatternBasedGenerator:
    """Generate strings matching registered regular expressions.

    All patterns are compiled in the constructor; a malformed pattern raises
    PatternSyntaxError there and never mid-stream.

    Not thread-safe: caches are plain dicts owned by the instance.
    """

    def __init__(self, patterns: Mapping[str, str], seed: int = DEFAULT_SEED) -> None:
        """Compile every pattern.

        Args:
            patterns: Pattern name -> regular expression
            seed: Seed for both the deterministic hash and the random draws

        Raises:
            PatternSyntaxError: If any pattern cannot be compiled
        """
        self._definitions: dict[str, str] = dict(patterns)
        self._seed = seed
        self._random = random.Random(seed)
        self._compiled: dict[str, CompiledPattern] = {}
        self._value_cache: dict[str, dict[str, str]] = {}
        self._emitted: dict[str, set[str]] = {}
        self._exhausted: set[str] = set()

        for name, regex in self._definitions.items():
            compiled = compile_pattern(resolve_placeholders(regex), name)
            self._compiled[name] = compiled
            self._value_cache[name] = {}
            self._emitted[name] = set()
            self._check_cardinality(name, compiled)

    def generate(self, pattern_name: str, original: str | None) -> str | None:
        """Return the consistent replacement for ``original``.

        Args:
            pattern_name: Registered pattern name (e.g. "hosts")
            original: The value being replaced

        Returns:
            A string matching the pattern, or None if the pattern is unknown
        """
        if pattern_name not in self._compiled or original is None:
            return None

        cache = self._value_cache[pattern_name]
        cached = cache.get(original)
        if cached is not None:
            return cached

        compiled = self._compiled[pattern_name]
        emitted = self._emitted[pattern_name]
        start = self._index_for(pattern_name, original, compiled.cardinality)

        generated: str | None = None
        if len(emitted) < compiled.cardinality:
            for step in range(min(compiled.cardinality, _MAX_PROBES)):
                candidate = compiled.decode(start + step)
                if candidate not in emitted and candidate != original:
                    generated = candidate
                    break

        if generated is None:
            # Every string is taken: reuse one, keeping earlier keys stable
            generated = compiled.decode(start)
            if pattern_name not in self._exhausted:
                self._exhausted.add(pattern_name)
                logger.warning(
                    "Pattern '%s' exhausted after %d distinct values, cycling. "
                    "Different originals may now share a replacement.",
                    pattern_name,
                    len(emitted),
                )

        emitted.add(generated)
        cache[original] = generated
        return generated

    def generate_random(self, pattern_name: str) -> str | None:
        """Draw an uncached value from the pattern, or None if unknown."""
        compiled = self._compiled.get(pattern_name)
        if compiled is None:
            return None
        return compiled.sample(self._random)

    def has_pattern(self, pattern_name: str) -> bool:
        return pattern_name in self._definitions

    def get_pattern_names(self) -> list[str]:
        return list(self._definitions)

    def get_pattern(self, pattern_name: str) -> str | None:
        """Return the pattern as registered (placeholders unresolved)."""
        return self._definitions.get(pattern_name)

    def get_cardinality(self, pattern_name: str) -> int | None:
        compiled = self._compiled.get(pattern_name)
        return compiled.cardinality if compiled else None

    def clear_pattern_cache(self, pattern_name: str) -> None:
        """Forget the mappings for one pattern.

        The set of handed-out strings is forgotten too, so a cleared pattern
        behaves exactly like a freshly constructed one.
        """
        if pattern_name in self._value_cache:
            self._value_cache[pattern_name].clear()
            self._emitted[pattern_name].clear()
            self._exhausted.discard(pattern_name)

    def clear_all_caches(self) -> None:
        for pattern_name in self._value_cache:
            self.clear_pattern_cache(pattern_name)

    def _index_for(self, pattern_name: str, original: str, cardinality: int) -> int:
        key = f"{self._seed}\x00{pattern_name}\x00{original}".encode("utf-8")
        digest = hashlib.sha256(key).digest()
        return int.from_bytes(digest, "big") % cardinality

    @staticmethod
    def _check_cardinality(pattern_name: str, compiled: CompiledPattern) -> None:
        cardinality = compiled.cardinality
        if cardinality < MIN_RECOMMENDED_CARDINALITY:
            logger.warning(
                "Pattern '%s' has low cardinality (%d possible values). "
                "Consistent replacements will repeat after that many originals. "
                "Recommended minimum: %d.",
                pattern_name,
                cardinality,
                MIN_RECOMMENDED_CARDINALITY,
            )
        else:
            logger.debug("Pattern '%s' cardinality: %d possible values", pattern_name, cardinality)
