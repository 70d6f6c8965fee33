"""
utils.py

Number parsing, hashing and color helpers.
"""

from __future__ import annotations

import hashlib
import re
from typing import Optional

from PyQt6.QtGui import QColor


_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def parse_float(value: Optional[str], default: Optional[float] = None) -> Optional[float]:
    """
    Parse the leading number of an SVG attribute value.

    Handles unit suffixes ("12px"), and lists ("10 20" -> 10).
    Percentages are rejected since they depend on the viewport.

    Args:
        value: Raw attribute string, possibly None
        default: Returned when no number can be read

    Returns:
        The parsed float or ``default``
    """
    if value is None:
        return default
    s = str(value).strip()
    if not s or s.endswith("%"):
        return default
    m = _NUMBER_RE.match(s)
    if not m:
        return default
    try:
        return float(m.group(0))
    except ValueError:
        return default


def content_hash(text: str) -> str:
    """Return a stable SHA-1 hex digest of a document's text."""
    return hashlib.sha1((text or "").encode("utf-8")).hexdigest()


def hex_to_qcolor(s: str, fallback: QColor) -> QColor:
    """
    Parse a hex string to a QColor.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Color to return if parsing fails

    Returns:
        Parsed QColor or fallback
    """
    if not s:
        return QColor(fallback)
    s = s.strip()
    if s.startswith("#"):
        s = s[1:]
    try:
        if len(s) == 6:
            return QColor(int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
        if len(s) == 8:
            return QColor(int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16), int(s[6:8], 16))
    except ValueError:
        pass
    return QColor(fallback)
