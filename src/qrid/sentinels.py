"""Placeholder values for fields that are blank but still meaningful."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

_NON_ALNUM_RE = re.compile(r"[^0-9a-z]+")


def normalize_field_name(name: object) -> str:
    """Lower-case *name* and drop everything that is not a letter or digit."""
    return _NON_ALNUM_RE.sub("", str(name).lower())


@dataclass(frozen=True)
class SentinelRule:
    field_name: str
    replacement: str

    def __post_init__(self) -> None:
        if not normalize_field_name(self.field_name):
            raise ValueError("sentinel field_name must contain letters or digits")
        if not self.replacement.strip():
            raise ValueError("sentinel replacement must not be empty")

    def matches(self, field_name: str) -> bool:
        return normalize_field_name(field_name) == normalize_field_name(self.field_name)


class SentinelTable:
    """Ordered sentinel rules; the first rule matching a field name wins."""

    def __init__(self, rules: Iterable[SentinelRule] = ()) -> None:
        self.rules: tuple[SentinelRule, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __repr__(self) -> str:
        return f"SentinelTable({list(self.rules)!r})"

    def extended(self, rules: Iterable[SentinelRule]) -> SentinelTable:
        return SentinelTable((*self.rules, *rules))

    def replacement_for(self, field_name: str) -> str | None:
        for rule in self.rules:
            if rule.matches(field_name):
                return rule.replacement
        return None

    def apply(self, field_name: str, value: str) -> str | None:
        """Return the value to store for *field_name*, or ``None`` to omit it."""
        if value:
            return value
        return self.replacement_for(field_name)


DEFAULT_SENTINELS = SentinelTable([SentinelRule("Original Cost", "No Original Cost")])


def parse_sentinel(raw: str) -> SentinelRule:
    """Parse a ``Field Name=Replacement`` string."""
    if "=" not in raw:
        raise ValueError(f"Invalid sentinel: {raw!r}  (expected Field Name=Replacement)")
    name, replacement = raw.split("=", 1)
    name, replacement = name.strip(), replacement.strip()
    if not name or not replacement:
        raise ValueError(
            "Sentinel entries must have a non-empty field name and replacement "
            "(Field Name=Replacement)"
        )
    return SentinelRule(name, replacement)


def load_sentinel_profile(profile: Path | None) -> list[SentinelRule]:
    """Return the sentinel rules listed in a profile file, in file order."""
    if not profile:
        return []
    profile = Path(profile)
    if not profile.exists():
        raise ValueError(
            f"Sentinel profile not found: {profile} "
            "(expected lines like Original Cost=No Original Cost)"
        )
    if profile.is_dir():
        raise ValueError(f"Sentinel profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read sentinel profile {profile}: {exc}") from exc

    rules: list[SentinelRule] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        rules.append(parse_sentinel(stripped))
    return rules
