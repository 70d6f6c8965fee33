"""
models.py

Data models and constants for the ParkView layout engine.

Everything here is a plain value object: the parser, projector and binder
produce new instances instead of mutating existing ones.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# ----------------------------
# Geometry
# ----------------------------

@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle in diagram (viewBox) units."""
    x: float
    y: float
    w: float
    h: float

    @property
    def area(self) -> float:
        return self.w * self.h

    def is_valid(self) -> bool:
        """True when both sides are finite and strictly positive."""
        values = (self.x, self.y, self.w, self.h)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
            return False
        return self.w > 0 and self.h > 0

    def translated(self, dx: float, dy: float) -> "Box":
        return Box(self.x + dx, self.y + dy, self.w, self.h)


@dataclass(frozen=True)
class ViewBox:
    """The diagram's declared coordinate system."""
    x: float = 0.0
    y: float = 0.0
    width: float = 276.0
    height: float = 322.0


# ----------------------------
# Diagram documents and regions
# ----------------------------

class RegionKind:
    """Element kinds that can become spot regions."""
    RECT = "rect"
    CIRCLE = "circle"
    GROUP = "group"


@dataclass(frozen=True)
class VectorDocument:
    """A loaded layout diagram.

    Attributes:
        text: The raw SVG markup.
        view_box: Resolved viewBox (declared, or a fallback).
        intrinsic_width: Root ``width`` attribute when it parses as a positive number.
        intrinsic_height: Root ``height`` attribute when it parses as a positive number.
        parse_error: Parser message when the markup is not well-formed XML.
    """
    text: str
    view_box: ViewBox
    intrinsic_width: Optional[float] = None
    intrinsic_height: Optional[float] = None
    parse_error: Optional[str] = None


@dataclass(frozen=True)
class CandidateRegion:
    """A diagram element believed to be a parking spot, before labelling."""
    raw_id: str
    kind: str
    local_box: Box
    offset_x: float = 0.0
    offset_y: float = 0.0

    @property
    def box(self) -> Box:
        """The element's box in viewBox space (local box plus ancestor offsets)."""
        return self.local_box.translated(self.offset_x, self.offset_y)


@dataclass(frozen=True)
class SpotRegion:
    """A labelled spot in diagram space. ``box`` is always valid."""
    id: str
    label: str
    box: Box


@dataclass(frozen=True)
class ParsedLayout:
    """Result of one parse pass over a :class:`VectorDocument`."""
    document: VectorDocument
    spots: List[SpotRegion] = field(default_factory=list)

    @property
    def view_box(self) -> ViewBox:
        return self.document.view_box


# ----------------------------
# Projection
# ----------------------------

@dataclass(frozen=True)
class RenderViewport:
    """Container size, diagram viewBox and zoom, with "contain" fit derived on demand."""
    container_w: float
    container_h: float
    view_box_x: float
    view_box_y: float
    view_box_w: float
    view_box_h: float
    zoom: float = 1.0

    def is_valid(self) -> bool:
        values = (self.container_w, self.container_h, self.view_box_w, self.view_box_h, self.zoom)
        if not all(math.isfinite(v) for v in values):
            return False
        return all(v > 0 for v in values)

    @property
    def rendered_w(self) -> float:
        if self.view_box_w / self.view_box_h > self.container_w / self.container_h:
            return self.container_w
        return self.container_h * (self.view_box_w / self.view_box_h)

    @property
    def rendered_h(self) -> float:
        if self.view_box_w / self.view_box_h > self.container_w / self.container_h:
            return self.container_w / (self.view_box_w / self.view_box_h)
        return self.container_h

    @property
    def offset_x(self) -> float:
        return (self.container_w - self.rendered_w) / 2

    @property
    def offset_y(self) -> float:
        return (self.container_h - self.rendered_h) / 2

    @property
    def scale_x(self) -> float:
        return self.rendered_w / self.view_box_w

    @property
    def scale_y(self) -> float:
        return self.rendered_h / self.view_box_h


@dataclass(frozen=True)
class ProjectedRegion:
    """A spot mapped into container pixels."""
    id: str
    label: str
    left: float
    top: float
    width: float
    height: float

    def contains(self, x: float, y: float) -> bool:
        return (self.left <= x <= self.left + self.width
                and self.top <= y <= self.top + self.height)


# ----------------------------
# Occupancy
# ----------------------------

class SpotStatus:
    """Occupancy status values reported by the backend."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    UNKNOWN = "unknown"

    ALL = (AVAILABLE, OCCUPIED, RESERVED, UNKNOWN)

    @classmethod
    def normalize(cls, value: Any) -> str:
        """Map any backend status string onto one of the known values."""
        s = str(value or "").strip().lower()
        return s if s in cls.ALL else cls.UNKNOWN


class PresentationState:
    """Presentation buckets, in priority order."""
    OWNED = "owned"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    AVAILABLE = "available"
    UNKNOWN = "unknown"

    ORDER = (OWNED, OCCUPIED, RESERVED, AVAILABLE, UNKNOWN)


@dataclass(frozen=True)
class OccupancyRecord:
    """One live status entry for a spot.

    ``key`` is the spot number/label; ``record_id`` the backend's numeric id
    in string form. Both are usable as match keys.
    """
    key: str
    status: str = SpotStatus.UNKNOWN
    owned_by_current_user: bool = False
    record_id: Optional[str] = None
    spot_type: str = ""
    section_name: str = ""


@dataclass(frozen=True)
class SpotPresentation:
    """Everything the host view needs to draw and report one spot."""
    projected: ProjectedRegion
    record: Optional[OccupancyRecord]
    state: str
    fill_color: str
    border_color: str
    emphasized: bool = False

    @property
    def status(self) -> str:
        return self.record.status if self.record is not None else SpotStatus.UNKNOWN


# ----------------------------
# Collaborator payloads and session states
# ----------------------------

@dataclass(frozen=True)
class LayoutPayload:
    """What ``fetch_layout(area_id)`` returns."""
    has_layout: bool
    layout_id: int = 0
    document: str = ""
    layout_name: str = ""
    area_name: str = ""
    floor: int = 1


class SessionState:
    """Layout Session Controller states."""
    INACTIVE = "inactive"
    LOADING = "loading"
    READY = "ready"
    POLLING = "polling"


def records_by_key(records: List[OccupancyRecord]) -> Dict[str, OccupancyRecord]:
    """Index records by ``key``, first occurrence wins."""
    out: Dict[str, OccupancyRecord] = {}
    for rec in records:
        out.setdefault(rec.key, rec)
    return out
