"""
layout package

Diagram parsing, spot identity, viewport projection and parse caching.
"""

from layout.identity import resolve_label, strip_floor_prefix
from layout.parser import load_vector_document, parse_layout, parse_spot_regions
from layout.projector import compute_viewport, hit_test, project
from layout.cache import LayoutCache

__all__ = [
    "resolve_label",
    "strip_floor_prefix",
    "load_vector_document",
    "parse_layout",
    "parse_spot_regions",
    "compute_viewport",
    "hit_test",
    "project",
    "LayoutCache",
]
