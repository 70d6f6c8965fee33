"""
layout/parser.py

Parse a hand-authored parking layout SVG into spot regions.

The parser walks an ElementTree of the document and applies a set of
matching rules tuned for inconsistently authored diagrams:

* every ``rect``, ``circle`` or ``g`` carrying an ``id`` is a candidate;
* ids/classes containing ``element`` (scaffolding) or ``road`` (roadway
  geometry) are skipped, and so is anything under a ``road`` group or a
  non-rendered container (``defs``, ``symbol``, ``clipPath`` ...);
* ``translate()`` transforms on ancestors are accumulated into the
  candidate's offset;
* a group resolves to its largest descendant rect, else the bounding box of
  its paths, else (when the group itself is translated) a default-sized box;
* purely numeric ``<text>`` elements then relabel the nearest spot whose
  top-left corner lies within tolerance, or become small spots themselves.

Parsing never raises.  A document that is not well-formed XML yields a
:class:`~models.VectorDocument` with ``parse_error`` set and no spots.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Tuple

from layout.identity import resolve_label
from models import (
    Box,
    CandidateRegion,
    ParsedLayout,
    RegionKind,
    SpotRegion,
    VectorDocument,
    ViewBox,
)
from settings import ParserSettings, get_settings
from utils import parse_float

log = logging.getLogger(__name__)


_SVG_NS = "http://www.w3.org/2000/svg"

# Tags that may become spot regions, mapped to region kinds
_SHAPE_KINDS: Dict[str, str] = {
    "rect": RegionKind.RECT,
    "circle": RegionKind.CIRCLE,
    "g": RegionKind.GROUP,
}

# Id/class tokens that mark non-spot geometry
_EXCLUDED_TOKENS = ("element", "road")
_ROAD_TOKEN = "road"

# Containers whose children are never rendered directly
_NON_RENDERED = {"defs", "clipPath", "mask", "pattern", "symbol", "marker"}

_TRANSLATE_RE = re.compile(r"translate\(\s*([^)]*)\)")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_DIGITS_RE = re.compile(r"[0-9]+")

# Fallback regexes for documents ElementTree rejects
_ROOT_TAG_RE = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)


# ─────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────


def load_vector_document(svg_text: str, options: Optional[ParserSettings] = None) -> VectorDocument:
    """Read the viewBox and intrinsic size of an SVG document.

    Args:
        svg_text: Raw SVG markup.
        options: Parser settings; defaults to the global settings.

    Returns:
        A :class:`VectorDocument`.  Never raises.
    """
    document, _root = _load(svg_text, options or get_settings().settings.parser)
    return document


def parse_layout(svg_text: str, options: Optional[ParserSettings] = None) -> ParsedLayout:
    """Parse an SVG layout into its document metadata and spot regions.

    Args:
        svg_text: Raw SVG markup.
        options: Parser settings; defaults to the global settings.

    Returns:
        :class:`ParsedLayout` whose ``spots`` may be empty ("no spots found").
    """
    opts = options or get_settings().settings.parser
    document, root = _load(svg_text, opts)
    if root is None:
        return ParsedLayout(document=document, spots=[])

    parent_map = {child: parent for parent in root.iter() for child in parent}
    spots = _scan_shapes(root, parent_map, document.view_box, opts)
    spots = _apply_text_labels(root, parent_map, spots, opts)

    valid = [s for s in spots if s.box.is_valid()]
    if len(valid) != len(spots):
        log.debug("Dropped %d spot(s) with invalid geometry", len(spots) - len(valid))
    log.debug("Parsed %d spot region(s)", len(valid))
    return ParsedLayout(document=document, spots=valid)


def parse_spot_regions(svg_text: str, options: Optional[ParserSettings] = None) -> List[SpotRegion]:
    """Return only the spot regions of :func:`parse_layout`."""
    return parse_layout(svg_text, options).spots


# ─────────────────────────────────────────────────────────
# Document loading
# ─────────────────────────────────────────────────────────


def _load(svg_text: str, opts: ParserSettings) -> Tuple[VectorDocument, Optional[ET.Element]]:
    text = svg_text or ""
    try:
        root = ET.fromstring(text)
    except (ET.ParseError, ValueError) as e:
        log.warning("Layout document is not well-formed XML: %s", e)
        attrs = _root_attrs_from_text(text)
        view_box, iw, ih = _resolve_view_box(attrs, opts)
        return VectorDocument(text=text, view_box=view_box, intrinsic_width=iw,
                              intrinsic_height=ih, parse_error=str(e)), None

    view_box, iw, ih = _resolve_view_box(dict(root.attrib), opts)
    return VectorDocument(text=text, view_box=view_box, intrinsic_width=iw, intrinsic_height=ih), root


def _root_attrs_from_text(text: str) -> Dict[str, str]:
    """Pull ``viewBox``/``width``/``height`` out of the root tag with regexes."""
    m = _ROOT_TAG_RE.search(text)
    if not m:
        return {}
    tag = m.group(0)
    attrs: Dict[str, str] = {}
    for name in ("viewBox", "width", "height"):
        am = re.search(r"\s%s\s*=\s*[\"']([^\"']*)[\"']" % name, tag)
        if am:
            attrs[name] = am.group(1)
    return attrs


def _resolve_view_box(attrs: Dict[str, str], opts: ParserSettings) -> Tuple[ViewBox, Optional[float], Optional[float]]:
    """Resolve the viewBox: declared, else declared width/height, else the default."""
    width = parse_float(attrs.get("width"))
    height = parse_float(attrs.get("height"))
    iw = width if width is not None and width > 0 else None
    ih = height if height is not None and height > 0 else None

    parts = [float(p) for p in _NUMBER_RE.findall(attrs.get("viewBox", ""))]
    if len(parts) >= 4 and parts[2] > 0 and parts[3] > 0:
        return ViewBox(parts[0], parts[1], parts[2], parts[3]), iw, ih

    if iw is not None and ih is not None:
        return ViewBox(0.0, 0.0, iw, ih), iw, ih

    dx, dy, dw, dh = opts.default_viewbox
    return ViewBox(dx, dy, dw, dh), iw, ih


# ─────────────────────────────────────────────────────────
# Shared helpers
# ─────────────────────────────────────────────────────────


def _local_tag(tag: object) -> str:
    """Tag name without its ``{namespace}`` prefix ("" for comments/PIs)."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _parse_translate(transform: Optional[str]) -> Tuple[float, float]:
    """Sum every ``translate(tx[, ty])`` in a transform attribute.

    Other transform functions are ignored.
    """
    tx = ty = 0.0
    for m in _TRANSLATE_RE.finditer(transform or ""):
        nums = [float(n) for n in _NUMBER_RE.findall(m.group(1))]
        if nums:
            tx += nums[0]
            ty += nums[1] if len(nums) > 1 else 0.0
    return tx, ty


def _has_translate(el: ET.Element) -> bool:
    return bool(_TRANSLATE_RE.search(el.get("transform", "") or ""))


def _mentions(el: ET.Element, token: str) -> bool:
    """True when the element's id or class contains *token* (case-insensitive)."""
    ident = (el.get("id") or "").lower()
    cls = (el.get("class") or "").lower()
    return token in ident or token in cls


def _walk_ancestors(
    el: ET.Element, parent_map: Dict[ET.Element, ET.Element]
) -> Tuple[Optional[str], float, float]:
    """Walk ancestors outward from *el*.

    Returns:
        ``(skip_reason, offset_x, offset_y)``.  *skip_reason* is ``"road"``
        under a road group, ``"not rendered"`` under defs, symbol, clipPath,
        mask, pattern or marker, else None with all ancestor translates summed.
    """
    ox = oy = 0.0
    parent = parent_map.get(el)
    while parent is not None:
        tag = _local_tag(parent.tag)
        if tag in _NON_RENDERED:
            return "not rendered", ox, oy
        if tag == "g" and _mentions(parent, _ROAD_TOKEN):
            return "road", ox, oy
        tx, ty = _parse_translate(parent.get("transform"))
        ox += tx
        oy += ty
        parent = parent_map.get(parent)
    return False, ox, oy


def _iter_rendered(group: ET.Element) -> Iterator[Tuple[ET.Element, float, float]]:
    """Yield descendants of *group* in document order with their inherited offset.

    The offset includes translates of intermediate containers but not the
    element's own transform, nor that of *group* itself.
    """
    stack: List[Tuple[ET.Element, float, float]] = [(c, 0.0, 0.0) for c in reversed(list(group))]
    while stack:
        el, ox, oy = stack.pop()
        tag = _local_tag(el.tag)
        if not tag or tag in _NON_RENDERED:
            continue
        yield el, ox, oy
        children = list(el)
        if children:
            tx, ty = _parse_translate(el.get("transform"))
            stack.extend((c, ox + tx, oy + ty) for c in reversed(children))


# ─────────────────────────────────────────────────────────
# Shape resolution
# ─────────────────────────────────────────────────────────


def _rect_box(el: ET.Element, fallback_size: Optional[float]) -> Optional[Box]:
    """Box of a ``rect`` in its own coordinate frame.

    With *fallback_size* set, a missing width/height takes that value;
    otherwise a rect without positive width and height yields None.
    """
    x = parse_float(el.get("x"), 0.0)
    y = parse_float(el.get("y"), 0.0)
    w = parse_float(el.get("width"), fallback_size)
    h = parse_float(el.get("height"), fallback_size)
    if w is None or h is None:
        return None
    return Box(x, y, w, h)


def _circle_box(el: ET.Element) -> Box:
    cx = parse_float(el.get("cx"), 0.0)
    cy = parse_float(el.get("cy"), 0.0)
    r = parse_float(el.get("r"), 0.0)
    return Box(cx - r, cy - r, 2 * r, 2 * r)


def _largest_rect(group: ET.Element) -> Optional[Box]:
    """Largest-area rect under *group*, in the group's coordinate frame.

    Ties keep the first rect in document order.
    """
    best: Optional[Box] = None
    for el, ox, oy in _iter_rendered(group):
        if _local_tag(el.tag) != "rect":
            continue
        box = _rect_box(el, None)
        if box is None or not box.is_valid():
            continue
        tx, ty = _parse_translate(el.get("transform"))
        box = box.translated(ox + tx, oy + ty)
        if best is None or box.area > best.area:
            best = box
    return best


def _outline_bbox(group: ET.Element) -> Optional[Box]:
    """Union bounding box of the paths (and polygons) under *group*."""
    xs: List[float] = []
    ys: List[float] = []
    for el, ox, oy in _iter_rendered(group):
        tag = _local_tag(el.tag)
        if tag == "path":
            points = _path_points(el.get("d", ""))
        elif tag in ("polygon", "polyline"):
            nums = [float(n) for n in _NUMBER_RE.findall(el.get("points", ""))]
            points = list(zip(nums[0::2], nums[1::2]))
        else:
            continue
        tx, ty = _parse_translate(el.get("transform"))
        for px, py in points:
            xs.append(px + ox + tx)
            ys.append(py + oy + ty)
    if not xs:
        return None
    return Box(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


_PATH_TOKEN_RE = re.compile(r"[MmLlHhVvCcSsQqTtAaZz]|[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_PATH_ARITY = {"M": 2, "L": 2, "H": 1, "V": 1, "C": 6, "S": 4, "Q": 4, "T": 2, "A": 7, "Z": 0}


def _path_points(d: str) -> List[Tuple[float, float]]:
    """Absolute points (end and control points) visited by an SVG path.

    Handles absolute and relative commands and implicit command repetition.
    Parsing stops quietly at the first malformed segment.
    """
    tokens = _PATH_TOKEN_RE.findall(d or "")
    points: List[Tuple[float, float]] = []
    cx = cy = sx = sy = 0.0
    cmd: Optional[str] = None
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.isalpha():
            cmd = tok
            i += 1
            if cmd in "Zz":
                cx, cy = sx, sy
            continue
        if cmd is None or cmd in "Zz":
            i += 1
            continue

        upper = cmd.upper()
        arity = _PATH_ARITY[upper]
        args = tokens[i:i + arity]
        if len(args) < arity or any(a.isalpha() for a in args):
            break
        vals = [float(a) for a in args]
        i += arity
        rel = cmd.islower()

        if upper == "H":
            cx = vals[0] + (cx if rel else 0.0)
            points.append((cx, cy))
        elif upper == "V":
            cy = vals[0] + (cy if rel else 0.0)
            points.append((cx, cy))
        elif upper == "A":
            cx, cy = (vals[5] + cx, vals[6] + cy) if rel else (vals[5], vals[6])
            points.append((cx, cy))
        else:
            base_x, base_y = (cx, cy) if rel else (0.0, 0.0)
            for k in range(0, arity, 2):
                points.append((vals[k] + base_x, vals[k + 1] + base_y))
            cx, cy = points[-1]

        if upper == "M":
            sx, sy = cx, cy
            # Extra coordinate pairs after a moveto are linetos
            cmd = "l" if rel else "L"
    return points


def _resolve_candidate(
    el: ET.Element,
    raw_id: str,
    kind: str,
    offset_x: float,
    offset_y: float,
    view_box: ViewBox,
    opts: ParserSettings,
) -> Optional[CandidateRegion]:
    """Resolve one id-bearing element to a candidate region, or None."""
    tx, ty = _parse_translate(el.get("transform"))
    ox, oy = offset_x + tx, offset_y + ty

    if kind == RegionKind.RECT:
        box = _rect_box(el, opts.fallback_rect_size)
        if box is None:
            return None
        return CandidateRegion(raw_id, kind, box, ox, oy)

    if kind == RegionKind.CIRCLE:
        return CandidateRegion(raw_id, kind, _circle_box(el), ox, oy)

    box = _largest_rect(el)
    if box is None:
        box = _outline_bbox(el)
    if box is None:
        if not _has_translate(el):
            log.debug("Group %r has no rects, paths or translate; skipped", raw_id)
            return None
        box = Box(0.0, 0.0,
                  view_box.width / opts.fallback_width_divisor,
                  view_box.height / opts.fallback_height_divisor)
        log.debug("Group %r has no geometry; using a default box at its translate", raw_id)
    return CandidateRegion(raw_id, kind, box, ox, oy)


def _scan_shapes(
    root: ET.Element,
    parent_map: Dict[ET.Element, ET.Element],
    view_box: ViewBox,
    opts: ParserSettings,
) -> List[SpotRegion]:
    spots: List[SpotRegion] = []
    for el in root.iter():
        raw_id = el.get("id")
        kind = _SHAPE_KINDS.get(_local_tag(el.tag))
        if not raw_id or kind is None:
            continue
        if any(_mentions(el, token) for token in _EXCLUDED_TOKENS):
            log.debug("Skipping %r: scaffolding or road", raw_id)
            continue
        skip_reason, ox, oy = _walk_ancestors(el, parent_map)
        if skip_reason:
            log.debug("Skipping %r: %s", raw_id, skip_reason)
            continue

        try:
            candidate = _resolve_candidate(el, raw_id, kind, ox, oy, view_box, opts)
        except (ValueError, ZeroDivisionError, OverflowError) as e:
            log.debug("Skipping %r: %s", raw_id, e)
            continue
        if candidate is None:
            continue

        box = candidate.box
        if not box.is_valid():
            log.debug("Skipping %r: invalid dimensions %s", raw_id, box)
            continue
        spots.append(SpotRegion(id=raw_id, label=resolve_label(raw_id), box=box))
    return spots


# ─────────────────────────────────────────────────────────
# Text label supplement
# ─────────────────────────────────────────────────────────


def _text_anchor(el: ET.Element) -> Optional[Tuple[float, float]]:
    """Anchor of a ``<text>`` in its parent frame: x/y (or first tspan's) plus own translate."""
    x = parse_float(el.get("x"))
    y = parse_float(el.get("y"))
    if x is None or y is None:
        for child in el:
            if _local_tag(child.tag) == "tspan":
                x = parse_float(child.get("x"), x)
                y = parse_float(child.get("y"), y)
                break
    has_translate = _has_translate(el)
    if (x is None or y is None) and not has_translate:
        return None
    tx, ty = _parse_translate(el.get("transform"))
    return (x or 0.0) + tx, (y or 0.0) + ty


def _nearest_spot(spots: List[SpotRegion], ax: float, ay: float, tolerance: float) -> Optional[int]:
    """Index of the spot whose top-left is nearest (ax, ay) within tolerance on both axes."""
    best_idx: Optional[int] = None
    best_dist = math.inf
    for idx, spot in enumerate(spots):
        dx = abs(spot.box.x - ax)
        dy = abs(spot.box.y - ay)
        if dx >= tolerance or dy >= tolerance:
            continue
        dist = math.hypot(dx, dy)
        if dist < best_dist:
            best_idx, best_dist = idx, dist
    return best_idx


def _apply_text_labels(
    root: ET.Element,
    parent_map: Dict[ET.Element, ET.Element],
    spots: List[SpotRegion],
    opts: ParserSettings,
) -> List[SpotRegion]:
    out = list(spots)
    for el in root.iter():
        if _local_tag(el.tag) != "text":
            continue
        content = "".join(el.itertext()).strip()
        if not _DIGITS_RE.fullmatch(content):
            continue
        skip_reason, ox, oy = _walk_ancestors(el, parent_map)
        if skip_reason:
            continue
        anchor = _text_anchor(el)
        if anchor is None:
            continue
        ax, ay = anchor[0] + ox, anchor[1] + oy

        idx = _nearest_spot(out, ax, ay, opts.text_match_tolerance)
        if idx is not None:
            log.debug("Text %r relabels spot %r", content, out[idx].id)
            out[idx] = replace(out[idx], label=content)
            continue

        w, h = opts.text_spot_width, opts.text_spot_height
        out.append(SpotRegion(
            id=f"text-spot-{content}",
            label=content,
            box=Box(ax - w / 2, ay - h / 2, w, h),
        ))
        log.debug("Text %r has no nearby spot; added a text spot", content)
    return out
