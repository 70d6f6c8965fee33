"""
layout/projector.py

Map spot regions from diagram (viewBox) space into container pixels.

The rendering surface draws the diagram with "contain" semantics: uniform
scale, centered on the unfilled axis.  Projection reproduces exactly the
same fit so that overlays and hit-testing line up with what is drawn.
Zoom multiplies all four output values; bounding it is the caller's job.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, TypeVar, Union

from models import ProjectedRegion, RenderViewport, SpotPresentation, SpotRegion, ViewBox

_Hit = TypeVar("_Hit", ProjectedRegion, SpotPresentation)


def compute_viewport(container_w: float, container_h: float, view_box: ViewBox,
                     zoom: float = 1.0) -> RenderViewport:
    """Build a :class:`RenderViewport` for a container and a diagram viewBox."""
    return RenderViewport(
        container_w=float(container_w),
        container_h=float(container_h),
        view_box_x=float(view_box.x),
        view_box_y=float(view_box.y),
        view_box_w=float(view_box.width),
        view_box_h=float(view_box.height),
        zoom=float(zoom),
    )


def project(regions: Sequence[SpotRegion], viewport: RenderViewport) -> List[ProjectedRegion]:
    """Project spot regions into pixel space.

    Args:
        regions: Spot regions in diagram units.
        viewport: Container, viewBox and zoom.

    Returns:
        Projected regions in input order.  Regions whose projected size is
        non-positive or non-finite are dropped; an unusable viewport (zero
        or non-finite sizes) projects to an empty list.
    """
    if not viewport.is_valid():
        return []

    sx, sy = viewport.scale_x, viewport.scale_y
    ox, oy = viewport.offset_x, viewport.offset_y
    z = viewport.zoom

    out: List[ProjectedRegion] = []
    for region in regions:
        b = region.box
        left = ((b.x - viewport.view_box_x) * sx + ox) * z
        top = ((b.y - viewport.view_box_y) * sy + oy) * z
        width = b.w * sx * z
        height = b.h * sy * z
        values = (left, top, width, height)
        if not all(math.isfinite(v) for v in values) or width <= 0 or height <= 0:
            continue
        out.append(ProjectedRegion(region.id, region.label, left, top, width, height))
    return out


def hit_test(items: Sequence[_Hit], x: float, y: float) -> Optional[_Hit]:
    """Return the topmost item containing (x, y), or None.

    Items later in the sequence are drawn on top, so the last match wins.
    Accepts projected regions or presentations.
    """
    for item in reversed(items):
        region: Union[ProjectedRegion, SpotPresentation] = item
        if isinstance(region, SpotPresentation):
            region = region.projected
        if region.contains(x, y):
            return item
    return None
