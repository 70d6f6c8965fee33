"""
layout/cache.py

Explicit cache of parsed layouts, keyed by layout id and document hash.

A diagram is parsed once per (layout id, content) pair; re-rendering,
zooming and resizing reuse the cached spot regions.  Manual refresh
invalidates the layout's entries so the next load re-parses from scratch.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from models import ParsedLayout
from utils import content_hash

log = logging.getLogger(__name__)


class LayoutCache:
    """In-memory parse cache.

    Args:
        max_entries: Oldest entries are evicted beyond this count.
    """

    def __init__(self, max_entries: int = 8):
        self.max_entries = max_entries
        self._entries: Dict[Tuple[int, str], ParsedLayout] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, layout_id: int, document: str) -> Optional[ParsedLayout]:
        return self._entries.get((layout_id, content_hash(document)))

    def put(self, layout_id: int, document: str, parsed: ParsedLayout) -> None:
        key = (layout_id, content_hash(document))
        self._entries.pop(key, None)
        self._entries[key] = parsed
        while len(self._entries) > self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def invalidate(self, layout_id: int) -> int:
        """Drop every entry for *layout_id*; returns how many were removed."""
        stale = [k for k in self._entries if k[0] == layout_id]
        for k in stale:
            del self._entries[k]
        if stale:
            log.debug("Invalidated %d cached parse(s) for layout %s", len(stale), layout_id)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
