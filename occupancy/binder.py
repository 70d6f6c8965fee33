"""
occupancy/binder.py

Match occupancy records to projected regions and choose their presentation.

Matching per region, first hit wins:

1. the region's raw id;
2. its resolved label;
3. its raw id with a leading ``F<n>-`` floor prefix stripped.

Records are indexed by spot number (``key``) and by backend id
(``record_id``); a key entry is never displaced by an id entry.

Presentation priority: owned by the current user, occupied, reserved,
available, unknown.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from layout.identity import strip_floor_prefix
from models import (
    OccupancyRecord,
    PresentationState,
    ProjectedRegion,
    SpotPresentation,
    SpotStatus,
    records_by_key,
)
from settings import ColorSettings, get_settings


_STATE_LABELS = {
    PresentationState.OWNED: "Your booking",
    PresentationState.OCCUPIED: "Occupied",
    PresentationState.RESERVED: "Reserved",
    PresentationState.AVAILABLE: "Available",
    PresentationState.UNKNOWN: "No status",
}


def index_records(records: Sequence[OccupancyRecord]) -> Dict[str, OccupancyRecord]:
    """Index records by key, then by record id where that slot is still free."""
    index = records_by_key(list(records))
    for rec in records:
        if rec.record_id:
            index.setdefault(rec.record_id, rec)
    return index


def match_record(region: ProjectedRegion, index: Dict[str, OccupancyRecord]) -> Optional[OccupancyRecord]:
    """Find the record for *region* using id, label, then floor-stripped id."""
    for key in (region.id, region.label, strip_floor_prefix(region.id)):
        if key and key in index:
            return index[key]
    return None


def presentation_state(record: Optional[OccupancyRecord]) -> str:
    if record is None:
        return PresentationState.UNKNOWN
    if record.owned_by_current_user:
        return PresentationState.OWNED
    status = SpotStatus.normalize(record.status)
    if status == SpotStatus.OCCUPIED:
        return PresentationState.OCCUPIED
    if status == SpotStatus.RESERVED:
        return PresentationState.RESERVED
    if status == SpotStatus.AVAILABLE:
        return PresentationState.AVAILABLE
    return PresentationState.UNKNOWN


def bind(
    projected: Sequence[ProjectedRegion],
    records: Sequence[OccupancyRecord],
    colors: Optional[ColorSettings] = None,
) -> List[SpotPresentation]:
    """Produce one presentation per projected region, in input order.

    Args:
        projected: Regions in pixel space.
        records: Current occupancy records (may be empty).
        colors: Color settings; defaults to the global settings.
    """
    colors = colors or get_settings().settings.colors
    index = index_records(records)

    out: List[SpotPresentation] = []
    for region in projected:
        record = match_record(region, index)
        state = presentation_state(record)
        fill, border = colors.pair(state)
        out.append(SpotPresentation(
            projected=region,
            record=record,
            state=state,
            fill_color=fill,
            border_color=border,
            emphasized=state == PresentationState.OWNED,
        ))
    return out


def _statuses_by_identity(records: Sequence[OccupancyRecord]) -> Dict[Tuple[str, str], List[str]]:
    # spot numbers repeat across sections, so the backend id disambiguates
    out: Dict[Tuple[str, str], List[str]] = {}
    for rec in records:
        identity = (rec.record_id or rec.key, rec.key)
        out.setdefault(identity, []).append(SpotStatus.normalize(rec.status))
    for statuses in out.values():
        statuses.sort()
    return out


def records_changed(old: Optional[Sequence[OccupancyRecord]], new: Sequence[OccupancyRecord]) -> bool:
    """True when *new* differs from *old* in count, identities or any status.

    Records are identified by ``(record_id or key, key)``; order does not
    matter. Ownership and metadata changes alone do not count.
    """
    if old is None or len(old) != len(new):
        return True
    return _statuses_by_identity(old) != _statuses_by_identity(new)


def describe_spot(presentation: SpotPresentation) -> str:
    """Multi-line detail text for a tapped spot."""
    region = presentation.projected
    record = presentation.record
    lines = [f"Spot: {region.label}"]
    if record is None:
        lines.append("Status: No status data")
        return "\n".join(lines)

    lines.append(f"Status: {SpotStatus.normalize(record.status).capitalize()}")
    if record.spot_type:
        lines.append(f"Type: {record.spot_type}")
    if record.section_name:
        lines.append(f"Section: {record.section_name}")
    if record.owned_by_current_user:
        lines.append("Your Booked Spot")
    return "\n".join(lines)


def summarize(presentations: Sequence[SpotPresentation]) -> Dict[str, int]:
    """Count presentations per state, plus ``total``."""
    counts = {state: 0 for state in PresentationState.ORDER}
    for p in presentations:
        counts[p.state] = counts.get(p.state, 0) + 1
    counts["total"] = len(presentations)
    return counts


def legend_entries(colors: Optional[ColorSettings] = None) -> List[Tuple[str, str, str, str]]:
    """``(state, label, fill, border)`` for each state, in priority order."""
    colors = colors or get_settings().settings.colors
    return [(state, _STATE_LABELS[state]) + colors.pair(state) for state in PresentationState.ORDER]
