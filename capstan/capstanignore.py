"""Patterns deciding which files are left out of a unikernel image."""

from __future__ import annotations

import re
from pathlib import Path

CAPSTANIGNORE_ALWAYS = (
    "/meta/*",
    "/mpm-pkg",
    "/.git",
    "/.capstanignore",
    "/.gitignore",
    "/volumes",
)


class CapstanignoreError(ValueError):
    """Raised when a .capstanignore file cannot be loaded."""


class Capstanignore:
    """A list of ignore patterns and their compiled regular expressions.

    When a folder is ignored, only the folder itself matches; it is up to
    the caller to skip everything beneath it as well.
    """

    def __init__(self) -> None:
        self.patterns: list[str] = []
        self._compiled: list[re.Pattern[str]] = []

    def load_file(self, path: str | Path) -> None:
        """Add every pattern listed in the file, skipping blanks and comments."""
        with open(path, encoding="utf-8") as handle:
            for raw in handle:
                line = raw.strip()
                if not line or line.startswith("#"):
                    continue
                self.add_pattern(line)

    def add_pattern(self, pattern: str) -> None:
        """Add a single pattern to be ignored."""
        # Ignoring the whole /meta folder would silently drop runscript files.
        if pattern == "/meta":
            raise ValueError("please remove '/meta' from .capstanignore")
        compiled = re.compile(transform_to_regex(pattern))
        self.patterns.append(pattern)
        self._compiled.append(compiled)

    def print_patterns(self) -> None:
        """Print every pattern on its own line."""
        for pattern in self.patterns:
            print(pattern)

    def is_ignored(self, path: str) -> bool:
        """Return True if the path matches any of the patterns."""
        return any(compiled.search(path) for compiled in self._compiled)


def capstanignore_init(path: str | Path = "") -> Capstanignore:
    """Create a Capstanignore, loading the file at ``path`` if one is given.

    The common paths in CAPSTANIGNORE_ALWAYS are always ignored.
    """
    ignore = Capstanignore()
    if path:
        try:
            ignore.load_file(path)
        except (OSError, ValueError, re.error) as err:
            raise CapstanignoreError(f"failed to parse .capstanignore: {err}") from err
    for pattern in CAPSTANIGNORE_ALWAYS:
        ignore.add_pattern(pattern)
    return ignore


def transform_to_regex(pattern: str) -> str:
    """Turn capstanignore syntax into a regular expression."""
    pattern = pattern.replace("/**/", "{two-stars}")
    if pattern.endswith("/*"):
        pattern = pattern[: -len("/*")] + "{all-beneath}"

    if not pattern.startswith("^"):
        pattern = "^" + pattern
    # A single star spans only one folder level.
    pattern = pattern.replace("*", "[^/]*")
    pattern = pattern.replace(".", "\\.")
    # /**/ spans any number of folder levels.
    pattern = pattern.replace("{two-stars}", ".*")
    # A trailing /* also covers all subfolders.
    pattern = pattern.replace("{all-beneath}", "/.*", 1)
    if not pattern.endswith("$"):
        pattern = pattern + "$"
    return pattern