#!/usr/bin/env python3
"""
Version helpers for fix resolution.

Two operations are exposed:

1. ``parse_version_change_string`` turns the interval notation used by the
   scanner for fixed versions into a single exact version, or ``""`` when the
   interval does not pin one.
2. ``get_minimal_fix_version`` picks the smallest candidate fix that is
   strictly newer than the installed version.

Ordering uses ``packaging.version.Version``. A release without a pre-release
tag sorts after every pre-release of the same numbers (``1.2.0rc1 < 1.2.0``),
build metadata after ``+`` is ignored, and qualifiers ``packaging`` cannot
read (``2.5-jre``, ``1.0.0.RELEASE``, ``3.1-SNAPSHOT``) are compared on their
leading numeric release, just below the plain release of the same numbers.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from packaging.version import InvalidVersion, Version

logger = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"^[^0-9]+")
_RELEASE_RE = re.compile(r"^(\d+(?:\.\d+)*)")


def strip_version_prefix(raw: str | None) -> str:
    """Drop a non-numeric tag in front of a version.

    Examples:
    - "v1.6.2"   -> "1.6.2"
    - " 2.0.0 "  -> "2.0.0"
    - "release-3" -> "3"
    """
    if not raw:
        return ""
    return _PREFIX_RE.sub("", raw.strip())


def parse_version_change_string(version_change: str | None) -> str:
    """Return the exact version an interval pins, or ``""``.

    1.0         --> 1.0
    [1.0]       --> 1.0
    [1.0, 2.0]  --> 1.0 (closed lower bound)
    (,1.0]      --> ""  (x <= 1.0)
    (,1.0)      --> ""  (x < 1.0)
    (1.0,)      --> ""  (1.0 < x)
    (1.0, 2.0)  --> ""  (1.0 < x < 2.0)
    """
    if not version_change:
        return ""
    value = version_change.strip()
    if not value or value.startswith("(") or value.endswith(")"):
        return ""
    if value.startswith("["):
        if not value.endswith("]"):
            return ""
        lower = value[1:-1].split(",", 1)[0].strip()
        return lower
    if any(ch in value for ch in ",[]"):
        return ""
    return value


def comparable_version(raw: str | None) -> Version | None:
    """Return a ``Version`` usable for ordering, or ``None`` if not comparable."""
    cleaned = strip_version_prefix(raw).split("+", 1)[0]
    if not cleaned:
        return None
    try:
        return Version(cleaned)
    except InvalidVersion:
        pass
    match = _RELEASE_RE.match(cleaned)
    if not match:
        return None
    # Unknown qualifier: rank just below the plain release
    return Version(f"{match.group(1)}.dev0")


def get_minimal_fix_version(impacted_version: str | None, fix_versions: Iterable[str]) -> str:
    """Return the smallest fix version strictly greater than ``impacted_version``.

    Prefixes such as ``v`` are stripped from every input before comparison and
    the returned candidate is the stripped form. Returns ``""`` when no
    candidate qualifies. An empty impacted version (unknown installed
    version) accepts the smallest comparable candidate.
    """
    current: Version | None = None
    if strip_version_prefix(impacted_version):
        current = comparable_version(impacted_version)
        if current is None:
            logger.debug("Cannot compare impacted version %r; no fix resolved", impacted_version)
            return ""

    best: Version | None = None
    best_raw = ""
    for candidate in fix_versions:
        cleaned = strip_version_prefix(candidate)
        parsed = comparable_version(cleaned)
        if parsed is None:
            logger.debug("Ignoring fix version %r that cannot be compared", candidate)
            continue
        if current is not None and parsed <= current:
            continue
        if best is None or parsed < best:
            best, best_raw = parsed, cleaned
    return best_raw


def min_fix_version(first: str, second: str) -> str:
    """Return the lower of two suggested fix versions, ignoring empty ones."""
    if not first:
        return second
    if not second:
        return first
    first_v = comparable_version(first)
    second_v = comparable_version(second)
    if first_v is None:
        return second
    if second_v is None:
        return first
    if second_v < first_v:
        return second
    if first_v < second_v:
        return first
    # Equal ordering (e.g. "1.0" vs "1.0.0"): keep the lexically smaller string
    return min(first, second)
