"""
layout/identity.py

Derive a human-facing spot label from a diagram element identifier.

Authors name spots inconsistently (``F1-A-12``, ``A-12``, ``spot-12``,
``parking_12``, ...).  The patterns below are tried in order and the first
match wins; an identifier matching none of them is used verbatim.
"""

from __future__ import annotations

import re
from typing import List, Pattern, Tuple


# (pattern, capture group holding the label)
_LABEL_PATTERNS: List[Tuple[Pattern[str], int]] = [
    # Optional floor prefix, section letters, spot digits: F1-A-12, A-12
    (re.compile(r"(?:F\d+-)?([A-Z]+)-(\d+)", re.IGNORECASE), 2),
    # spot-12, spot_12, parking12
    (re.compile(r"(?:spot|parking)[-_]?(\d+)", re.IGNORECASE), 1),
    # First run of digits anywhere
    (re.compile(r"(\d+)"), 1),
]

_FLOOR_PREFIX_RE = re.compile(r"^F\d+-", re.IGNORECASE)


def resolve_label(raw_id: str) -> str:
    """Return the spot label for a raw element id.

    Args:
        raw_id: The element's ``id`` attribute.

    Returns:
        The spot digits when a known pattern matches, otherwise *raw_id*.
    """
    raw_id = raw_id or ""
    for pattern, group in _LABEL_PATTERNS:
        m = pattern.search(raw_id)
        if m:
            return m.group(group)
    return raw_id


def strip_floor_prefix(raw_id: str) -> str:
    """Remove a leading ``F<digits>-`` floor prefix (``F2-B-1`` -> ``B-1``)."""
    return _FLOOR_PREFIX_RE.sub("", raw_id or "", count=1)
