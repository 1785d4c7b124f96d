"""Error hierarchy for tracescrub.

Configuration problems are fatal and raised eagerly at construction time,
never discovered halfway through a stream. Lookup misses and exhausted
patterns are not errors (they return None or cycle with a warning).
"""

from __future__ import annotations


class ScrubError(Exception):
    """Base error for tracescrub.

    All tracescrub-specific errors inherit from this.
    """

    pass


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(ScrubError):
    """Invalid configuration value.

    Attributes:
        setting: Name of the offending setting
        reason: Human-readable error description

    Retry: Never retryable - fix the configuration.
    """

    def __init__(self, setting: str, reason: str) -> None:
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting {setting}: {reason}")


class PatternSyntaxError(ConfigError):
    """A generation or extraction pattern could not be compiled.

    Attributes:
        pattern_name: Registered name of the pattern
        pattern: The regular expression source
        reason: What the parser rejected
        position: Offset into the (placeholder-resolved) pattern, if known

    Retry: Never retryable - fix the pattern.
    """

    def __init__(
        self,
        pattern_name: str,
        pattern: str,
        reason: str,
        position: int | None = None,
    ) -> None:
        self.pattern_name = pattern_name
        self.pattern = pattern
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(
            setting=f"pattern '{pattern_name}'",
            reason=f"{reason}{where} in {pattern!r}",
        )
        # ConfigError.__init__ rewrites reason, keep the bare one
        self.reason = reason


# =============================================================================
# Discovery Errors
# =============================================================================


class DiscoveryStateError(ScrubError):
    """Discovery session driven out of order.

    Attributes:
        phase: The phase the session was in
        operation: The operation that was attempted

    Retry: Never retryable - fix the calling sequence.
    """

    def __init__(self, phase: str, operation: str) -> None:
        self.phase = phase
        self.operation = operation
        super().__init__(f"Cannot {operation} while session is {phase}")
