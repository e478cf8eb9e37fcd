"""A persistent map of file paths to content hashes."""

from __future__ import annotations

import errno
import os
from pathlib import Path

import yaml


class HashCache(dict):
    """Map of file path to hash, stored as YAML."""

    def write_to_file(self, path: str | Path) -> None:
        """Write the cache to ``path`` as YAML."""
        data = yaml.safe_dump(dict(self), default_flow_style=False)
        Path(path).write_text(data, encoding="utf-8")


def parse_hash_cache(cache_path: str | Path) -> HashCache:
    """Read a HashCache from ``cache_path``.

    Raises FileNotFoundError if the file is missing and ValueError if it does
    not hold a mapping.
    """
    path = Path(cache_path)
    if not path.exists():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(cache_path))
    doc = yaml.load(path.read_bytes(), Loader=yaml.BaseLoader)
    if doc is None or doc == "":
        return HashCache()
    if not isinstance(doc, dict):
        raise ValueError(f"{cache_path}: hash cache must be a mapping")
    cache = HashCache()
    for key, value in doc.items():
        if not isinstance(value, str):
            raise ValueError(f"{cache_path}: value for '{key}' must be a string")
        cache[key] = value
    return cache