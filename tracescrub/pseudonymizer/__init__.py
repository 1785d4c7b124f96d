"""Replacement generation: hashing, counters, realistic and pattern-based values."""

from __future__ import annotations

from tracescrub.pseudonymizer.pattern_generator import PatternBasedGenerator, resolve_placeholders
from tracescrub.pseudonymizer.pseudonymizer import (
    PseudonymizationFormat,
    PseudonymizationMode,
    PseudonymizationScope,
    Pseudonymizer,
    PseudonymizerBuilder,
)
from tracescrub.pseudonymizer.realistic import RealisticDataGenerator
from tracescrub.pseudonymizer.regex_enum import CompiledPattern, compile_pattern

__all__ = [
    "CompiledPattern",
    "PatternBasedGenerator",
    "PseudonymizationFormat",
    "PseudonymizationMode",
    "PseudonymizationScope",
    "Pseudonymizer",
    "PseudonymizerBuilder",
    "RealisticDataGenerator",
    "compile_pattern",
    "resolve_placeholders",
]
