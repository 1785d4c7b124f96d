"""Tests for the allowlist module.

Verifies that known false positives are filtered out while real
discoveries are preserved.
"""

from __future__ import annotations

from tracescrub.discovery.allowlist import COMMON_ACCOUNT_NAMES, Allowlist


class TestAllowlist:
    """Tests for the Allowlist class."""

    def test_case_insensitive_by_default(self) -> None:
        """'Shared' and 'SHARED' both match 'shared'."""
        allowlist = Allowlist.of(["shared"])

        assert allowlist.is_allowed("Shared")
        assert allowlist.is_allowed("SHARED")

    def test_case_sensitive(self) -> None:
        """With case sensitivity only the exact spelling matches."""
        allowlist = Allowlist.of(["Shared"], case_sensitive=True)

        assert allowlist.is_allowed("Shared")
        assert not allowlist.is_allowed("shared")

    def test_real_names_not_allowed(self) -> None:
        """Values not on the list are kept."""
        allowlist = Allowlist.of(COMMON_ACCOUNT_NAMES)

        assert not allowlist.is_allowed("johndoe")

    def test_filter_keeps_order(self) -> None:
        """filter drops allowlisted values and keeps the rest in order."""
        allowlist = Allowlist.of(["root", "guest"])

        assert allowlist.filter(["alice", "Root", "bob", "guest"]) == ["alice", "bob"]

    def test_empty_entries_ignored(self) -> None:
        """Empty strings never become terms."""
        allowlist = Allowlist.of(["", "admin"])

        assert len(allowlist) == 1
        assert not allowlist.is_allowed("")

    def test_common_account_names(self) -> None:
        """Shared system directories are on the default list."""
        allowlist = Allowlist.of(COMMON_ACCOUNT_NAMES)

        for name in ("Shared", "Public", "Default User", "root"):
            assert allowlist.is_allowed(name)
