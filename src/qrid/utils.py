"""Shared helpers: hashing, timestamps, wording."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def plural(count: int, word: str) -> str:
    """``plural(1, "row") == "1 row"``, ``plural(2, "row") == "2 rows"``."""
    return f"{count} {word}" if count == 1 else f"{count} {word}s"
