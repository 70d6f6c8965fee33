"""
tests/test_spot_identity.py

Label derivation from hand-authored element ids.
"""

from __future__ import annotations

import pytest

from layout.identity import resolve_label, strip_floor_prefix


# ─────────────────────────────────────────────────────────
# Ground truth: raw id -> label
# ─────────────────────────────────────────────────────────

LABELS = [
    ("F1-A-12", "12"),
    ("F2-BB-3", "3"),
    ("A-12", "12"),
    ("a-7", "7"),
    ("spot-12", "12"),
    ("spot_4", "4"),
    ("parking_12", "12"),
    ("Parking7", "7"),
    ("slot12x", "12"),
    ("zone", "zone"),
    ("", ""),
]


@pytest.mark.parametrize("raw_id,label", LABELS)
def test_resolve_label(raw_id, label):
    assert resolve_label(raw_id) == label


def test_section_pattern_wins_over_first_digits():
    # The floor digit comes first, but the section pattern has priority
    assert resolve_label("F3-C-21") == "21"


def test_none_is_tolerated():
    assert resolve_label(None) == ""


@pytest.mark.parametrize("raw_id,stripped", [
    ("F2-B-1", "B-1"),
    ("f10-C-3", "C-3"),
    ("B-1", "B-1"),
    ("XF1-A-1", "XF1-A-1"),
])
def test_strip_floor_prefix(raw_id, stripped):
    assert strip_floor_prefix(raw_id) == stripped
