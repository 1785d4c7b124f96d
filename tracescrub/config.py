"""Pseudonymization and discovery constants.

These values are shared by the generators, the pseudonymizer and the
discovery engine so that every component agrees on defaults.
"""

from __future__ import annotations

# Seed used when the caller does not supply one
DEFAULT_SEED: int = 42

# Hash mode: digest is truncated to hash_length hex chars, clamped to this range
DEFAULT_HASH_LENGTH: int = 8
MIN_HASH_LENGTH: int = 6
MAX_HASH_LENGTH: int = 32
DEFAULT_HASH_ALGORITHM: str = "SHA-256"

# Counter mode starts at 1, port pseudonymization at 1000
COUNTER_START: int = 1
PORT_COUNTER_START: int = 1000

# Replacement used when pseudonymization is disabled
DEFAULT_REDACTION_TEXT: str = "***"

DEFAULT_CUSTOM_PREFIX: str = "<redacted:"
DEFAULT_CUSTOM_SUFFIX: str = ">"

# Patterns with fewer strings than this get a warning at construction
MIN_RECOMMENDED_CARDINALITY: int = 100

# Unbounded quantifiers (*, +, {n,}) repeat at most this many extra times
MAX_UNBOUNDED_REPEAT: int = 8

FIRST_NAMES: tuple[str, ...] = (
    "alice", "bob", "charlie", "diana", "eve", "frank", "grace", "henry",
    "iris", "jack", "kate", "leo", "mary", "nathan", "olivia", "peter",
    "quinn", "rachel", "sam", "tina", "uma", "victor", "wendy", "xavier",
    "yara", "zoe",
)

LAST_NAMES: tuple[str, ...] = (
    "smith", "johnson", "williams", "brown", "jones", "garcia", "miller",
    "davis", "rodriguez", "martinez", "hernandez", "lopez", "gonzalez",
    "wilson", "anderson", "thomas", "taylor", "moore", "jackson", "martin",
    "lee", "perez", "thompson",
)

COMPANIES: tuple[str, ...] = (
    "example", "test", "demo", "sample", "acme", "techcorp", "datagroup",
    "systems", "solutions", "industries", "services", "global",
)

TLDS: tuple[str, ...] = ("com", "org", "net", "io")

# Directory names under /home, /Users and C:\Users that are not people
COMMON_ACCOUNT_NAMES: frozenset[str] = frozenset({
    "shared", "public", "default", "default user", "all users", "guest",
    "root", "admin", "administrator", "nobody", "user", "runner", "ubuntu",
})
