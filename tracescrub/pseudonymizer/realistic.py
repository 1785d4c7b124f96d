"""Realistic, format-preserving replacements for usernames, e-mails and paths.

Same original → same replacement for the lifetime of the generator, so a
user name that shows up in a home directory, an e-mail address and a log
line keeps pointing at the same fake identity.
"""

from __future__ import annotations

import logging
import random
import re
from typing import Callable

from faker import Faker

from tracescrub.config import COMPANIES, DEFAULT_SEED, FIRST_NAMES, TLDS

logger = logging.getLogger(__name__)

_UNIX_HOME_PREFIXES = ("/home/", "/Users/")
_WINDOWS_HOME = re.compile(r"^[cC]:\\[uU][sS][eE][rR][sS]\\")
_SEPARATORS = re.compile(r"[._]")
_NON_LETTERS = re.compile(r"[^a-z]")

# Attempts at a fresh value before falling back to a numeric suffix
_MAX_ATTEMPTS = 32


class RealisticDataGenerator:
    """Generate consistent, plausible stand-ins for identifying strings.

    Uses a seeded Faker instance for first/last names and a seeded PRNG for
    the order in which home-directory names are handed out, so two
    generators built with the same seed produce the same replacements for
    the same sequence of inputs.

    Not thread-safe: confine an instance to one worker.

    Example:
        gen = RealisticDataGenerator(seed=42)
        gen.generate_path("/home/johndoe/documents")  # "/home/<name>/documents"
        gen.generate_email("john.doe@corp.org")        # "<first>.<last>@<company>.org"
    """

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        """Initialize with a seed for reproducibility.

        Args:
            seed: Random seed. Same seed = same replacements.
        """
        self._seed = seed
        self._faker = Faker()
        self._faker.seed_instance(seed)
        self._random = random.Random(seed)

        # Home-directory names are assigned in a seed-derived order
        pool = list(FIRST_NAMES)
        self._random.shuffle(pool)
        self._folder_pool = tuple(pool)
        self._folder_order = pool

        self._username_cache: dict[str, str] = {}
        self._email_cache: dict[str, str] = {}
        self._path_cache: dict[str, str] = {}
        self._folder_cache: dict[str, str] = {}
        self._used_usernames: set[str] = set()
        self._used_emails: set[str] = set()
        self._used_folders: set[str] = set()
        self._folder_index = 0
        self._counter = 1

    def generate_user_folder(self, original: str | None) -> str | None:
        """Return a first-name style folder name for a home directory owner.

        Hands out pool names first; once the pool is exhausted, new
        originals get two pool names glued together ("alicebob"). The
        original's own name is never handed back to it.
        """
        if not original:
            return original
        return self._folder_for(original)

    def _folder_for(self, original: str) -> str:
        cached = self._folder_cache.get(original)
        if cached is not None:
            return cached

        lowered = original.lower()
        generated = self._next_pool_name(lowered)
        if generated is None:
            generated = self._unique(self._used_folders, self._combined_name, avoid=lowered)

        self._used_folders.add(generated)
        self._folder_cache[original] = generated
        return generated

    def generate_username(self, original: str | None) -> str | None:
        """Return a handle, keeping the original's "." or "_" separator."""
        if not original:
            return original

        cached = self._username_cache.get(original)
        if cached is not None:
            return cached

        separator = _first_separator(original)
        lowered = original.lower()

        def candidate() -> str:
            first, last = self._first_name(), self._last_name()
            if separator:
                return f"{first}{separator}{last}"
            return f"{first[0]}{last}"

        generated = self._unique(self._used_usernames, candidate, avoid=lowered)
        self._used_usernames.add(generated)
        self._username_cache[original] = generated
        return generated

    def generate_email(self, original: str | None) -> str | None:
        """Return a fake address; strings without "@" pass through unchanged."""
        if original is None or "@" not in original:
            return original

        cached = self._email_cache.get(original)
        if cached is not None:
            return cached

        local, _, domain = original.rpartition("@")
        separator = _first_separator(local)
        tld = domain.rsplit(".", 1)[-1].lower() if "." in domain else ""
        if tld not in TLDS:
            tld = "com"

        def candidate() -> str:
            if separator:
                new_local = f"{self._first_name()}{separator}{self._last_name()}"
            else:
                new_local = f"{self._first_name()}{self._random.randrange(10, 100)}"
            company = self._random.choice(COMPANIES)
            return f"{new_local}@{company}.{tld}"

        generated = self._unique(self._used_emails, candidate, avoid=original.lower())
        self._used_emails.add(generated)
        self._email_cache[original] = generated
        return generated

    def generate_path(self, original: str | None) -> str | None:
        """Replace the user segment of a home-directory path.

        Recognizes ``/home/<user>``, ``/Users/<user>`` and
        ``C:\\Users\\<user>``. Prefix and trailing path are kept verbatim.
        Other paths are returned unchanged.
        """
        if not original:
            return original

        cached = self._path_cache.get(original)
        if cached is not None:
            return cached

        generated = original
        for prefix in _UNIX_HOME_PREFIXES:
            if original.startswith(prefix):
                generated = self._replace_segment(original, len(prefix), "/", capitalize=False)
                break
        else:
            match = _WINDOWS_HOME.match(original)
            if match:
                generated = self._replace_segment(original, match.end(), "\\", capitalize=True)

        self._path_cache[original] = generated
        return generated

    def generate_replacement(self, original: str | None) -> str | None:
        """Pick a generator by the shape of the value.

        "@" → e-mail, path separator → path, anything else → username.
        """
        if not original:
            return original
        if "@" in original:
            return self.generate_email(original)
        if "/" in original or "\\" in original:
            return self.generate_path(original)
        return self.generate_username(original)

    def clear_cache(self) -> None:
        """Forget all assignments and restart the name pool.

        Values returned earlier are plain strings and stay as they are.
        """
        self._username_cache.clear()
        self._email_cache.clear()
        self._path_cache.clear()
        self._folder_cache.clear()
        self._used_usernames.clear()
        self._used_emails.clear()
        self._used_folders.clear()
        self._folder_order = list(self._folder_pool)
        self._folder_index = 0
        self._counter = 1

    @property
    def cache_size(self) -> int:
        """Number of cached replacements across all categories."""
        return (
            len(self._username_cache)
            + len(self._email_cache)
            + len(self._path_cache)
            + len(self._folder_cache)
        )

    def _replace_segment(self, original: str, start: int, separator: str, capitalize: bool) -> str:
        end = original.find(separator, start)
        if end == -1:
            end = len(original)
        username = original[start:end]
        if not username:
            return original
        folder = self._folder_for(username)
        if capitalize:
            folder = folder[:1].upper() + folder[1:]
        return original[:start] + folder + original[end:]

    def _next_pool_name(self, avoid: str) -> str | None:
        """Take the next pool name, swapping past ``avoid`` when it comes up."""
        index = self._folder_index
        order = self._folder_order
        if index >= len(order):
            return None
        if order[index] == avoid:
            if index + 1 == len(order):
                return None
            order[index], order[index + 1] = order[index + 1], order[index]
        self._folder_index += 1
        return order[index]

    def _combined_name(self) -> str:
        return self._random.choice(FIRST_NAMES) + self._random.choice(FIRST_NAMES)

    def _first_name(self) -> str:
        return _letters(self._faker.first_name()) or self._random.choice(FIRST_NAMES)

    def _last_name(self) -> str:
        return _letters(self._faker.last_name()) or "smith"

    def _unique(self, used: set[str], candidate: Callable[[], str], avoid: str | None = None) -> str:
        """Draw candidates until one is unused, then fall back to a numbered one."""
        for _ in range(_MAX_ATTEMPTS):
            value = candidate()
            if value not in used and value != avoid:
                return value
        base = candidate()
        logger.debug("Name pool crowded after %d attempts, adding suffix", _MAX_ATTEMPTS)
        while True:
            local, at, domain = base.partition("@")
            value = f"{local}{self._counter:02d}{at}{domain}"
            self._counter += 1
            if value not in used and value != avoid:
                return value


def _first_separator(value: str) -> str:
    match = _SEPARATORS.search(value)
    return match.group(0) if match else ""


def _letters(name: str) -> str:
    return _NON_LETTERS.sub("", name.lower())
