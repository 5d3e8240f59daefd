"""Record codec: records to viewer locators and back.

A locator is ``<base_url><field>=<value>; <field>=<value>...``. The legacy
format applies no escaping, so a value containing ``;`` cannot be recovered
on decode. ``escape=True`` percent-encodes names and values on both sides
and keeps such values intact; it is not readable by viewers that only know
the legacy format.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import quote, unquote, urlsplit

from qrid import PAIR_SEPARATOR
from qrid.models import LocatorItem, Record

Pair = tuple[str, str]


def encode(base_url: str, record: Mapping[str, str], *, escape: bool = False) -> str:
    """Append *record*'s ``field=value`` pairs to *base_url* in record order."""
    if escape:
        parts = (f"{quote(k, safe='')}={quote(v, safe='')}" for k, v in record.items())
    else:
        parts = (f"{k}={v}" for k, v in record.items())
    return base_url + PAIR_SEPARATOR.join(parts)


def _split_pair(segment: str) -> Pair | None:
    name, sep, value = segment.partition("=")
    if not sep or not name:
        return None
    return name, value


def decode(path: str, *, escape: bool = False) -> list[Pair]:
    """Decode a locator path into ``(field, value)`` pairs.

    Never raises: anything without a recognisable ``field=value`` segment
    decodes to an empty list. Only the first ``=`` of a segment splits.
    """
    if not isinstance(path, str):
        return []
    raw = path[1:] if path.startswith("/") else path

    pairs: list[Pair] = []
    if escape:
        for segment in raw.split(";"):
            pair = _split_pair(segment.strip())
            if pair is None:
                continue
            name = unquote(pair[0]).strip()
            if name:
                pairs.append((name, unquote(pair[1]).strip()))
        return pairs

    decoded = unquote(raw).strip()
    for segment in decoded.split(";"):
        segment = segment.strip()
        if not segment:
            continue
        pair = _split_pair(segment)
        if pair is not None:
            pairs.append(pair)
    return pairs


def locator_path(locator: str, base_url: str | None = None) -> str:
    """Return the part of *locator* after its base URL or host.

    Query and fragment markers are kept, since legacy locators never escape
    ``?`` or ``#`` inside values.
    """
    if base_url and locator.startswith(base_url):
        return locator[len(base_url):]
    parts = urlsplit(locator)
    if not (parts.scheme and parts.netloc):
        return locator
    head = f"{parts.scheme}://{parts.netloc}"
    return locator[len(head):] if locator.startswith(head) else parts.path


def decode_locator(
    locator: str, base_url: str | None = None, *, escape: bool = False
) -> list[Pair]:
    return decode(locator_path(locator, base_url), escape=escape)


def to_mapping(pairs: Iterable[Pair]) -> Record:
    """Collapse decoded pairs into a record; a repeated field keeps the last value."""
    record: Record = {}
    for name, value in pairs:
        record[name] = value
    return record


def build_locators(
    base_url: str,
    records: Iterable[Record],
    *,
    escape: bool = False,
    id_prefix: str = "qr",
) -> list[LocatorItem]:
    """Encode every record, numbering items ``<id_prefix>-1``, ``-2``, ..."""
    return [
        LocatorItem(
            id=f"{id_prefix}-{index}",
            data=encode(base_url, record, escape=escape),
            row_data=dict(record),
        )
        for index, record in enumerate(records, start=1)
    ]
