"""
tests/test_viewport_projector.py

"Contain" fit, projection and hit-testing in container pixels.
"""

from __future__ import annotations

import math

import pytest

from layout.projector import compute_viewport, hit_test, project
from models import Box, ProjectedRegion, SpotPresentation, SpotRegion, ViewBox


def _region(x, y, w, h, rid="A-1", label="1"):
    return SpotRegion(id=rid, label=label, box=Box(x, y, w, h))


# ─────────────────────────────────────────────────────────
# Viewport fit
# ─────────────────────────────────────────────────────────

class TestViewport:

    def test_matching_aspect_has_no_offsets(self):
        vp = compute_viewport(552, 644, ViewBox(0, 0, 276, 322))
        assert vp.scale_x == pytest.approx(2.0)
        assert vp.scale_y == pytest.approx(2.0)
        assert vp.offset_x == pytest.approx(0.0, abs=1e-9)
        assert vp.offset_y == pytest.approx(0.0, abs=1e-9)

    def test_wide_diagram_fits_width(self):
        vp = compute_viewport(300, 300, ViewBox(0, 0, 200, 100))
        assert (vp.rendered_w, vp.rendered_h) == pytest.approx((300, 150))
        assert (vp.offset_x, vp.offset_y) == pytest.approx((0, 75))

    def test_tall_diagram_fits_height(self):
        vp = compute_viewport(300, 300, ViewBox(0, 0, 100, 200))
        assert (vp.rendered_w, vp.rendered_h) == pytest.approx((150, 300))
        assert (vp.offset_x, vp.offset_y) == pytest.approx((75, 0))

    @pytest.mark.parametrize("w,h,zoom", [(0, 100, 1), (100, 0, 1), (100, 100, 0), (math.nan, 100, 1)])
    def test_invalid_viewport(self, w, h, zoom):
        vp = compute_viewport(w, h, ViewBox(0, 0, 100, 100), zoom)
        assert not vp.is_valid()
        assert project([_region(0, 0, 10, 10)], vp) == []


# ─────────────────────────────────────────────────────────
# Projection
# ─────────────────────────────────────────────────────────

class TestProject:

    def test_reference_scenario(self):
        vp = compute_viewport(300, 350, ViewBox(0, 0, 276, 322))
        (p,) = project([_region(10, 10, 40, 20)], vp)
        assert p.label == "1"
        assert p.left == pytest.approx(10.87, abs=0.01)
        assert p.top == pytest.approx(10.87, abs=0.01)
        assert p.width == pytest.approx(43.48, abs=0.01)
        assert p.height == pytest.approx(21.74, abs=0.01)

    def test_centering_offset_applied(self):
        vp = compute_viewport(300, 300, ViewBox(0, 0, 200, 100))
        (p,) = project([_region(0, 0, 10, 10)], vp)
        assert (p.left, p.top, p.width, p.height) == pytest.approx((0, 75, 15, 15))

    def test_zoom_multiplies_all_values(self):
        vp = compute_viewport(300, 300, ViewBox(0, 0, 200, 100), zoom=2.0)
        (p,) = project([_region(0, 0, 10, 10)], vp)
        assert (p.left, p.top, p.width, p.height) == pytest.approx((0, 150, 30, 30))

    def test_zoom_not_clamped_by_projector(self):
        vp = compute_viewport(100, 100, ViewBox(0, 0, 100, 100), zoom=20.0)
        (p,) = project([_region(1, 1, 1, 1)], vp)
        assert p.width == pytest.approx(20.0)

    def test_viewbox_origin_subtracted(self):
        vp = compute_viewport(100, 100, ViewBox(100, 50, 100, 100))
        (p,) = project([_region(100, 50, 10, 10)], vp)
        assert (p.left, p.top, p.width, p.height) == pytest.approx((0, 0, 10, 10))

    def test_degenerate_regions_dropped(self):
        vp = compute_viewport(100, 100, ViewBox(0, 0, 100, 100))
        regions = [
            _region(0, 0, 0, 10, rid="zero"),
            _region(0, 0, 10, -1, rid="neg"),
            _region(math.nan, 0, 10, 10, rid="nan"),
            _region(0, 0, math.inf, 10, rid="inf"),
            _region(0, 0, 10, 10, rid="ok"),
        ]
        assert [p.id for p in project(regions, vp)] == ["ok"]

    def test_pure_function(self):
        vp = compute_viewport(320, 480, ViewBox(0, 0, 276, 322), zoom=1.5)
        regions = [_region(i * 20, i * 10, 15, 8, rid=f"A-{i}", label=str(i)) for i in range(10)]
        assert project(regions, vp) == project(regions, vp)
        assert [p.id for p in project(regions, vp)] == [r.id for r in regions]


# ─────────────────────────────────────────────────────────
# Hit testing
# ─────────────────────────────────────────────────────────

class TestHitTest:

    def test_topmost_wins(self):
        under = ProjectedRegion("under", "1", 0, 0, 100, 100)
        over = ProjectedRegion("over", "2", 40, 40, 20, 20)
        assert hit_test([under, over], 50, 50) is over
        assert hit_test([under, over], 10, 10) is under

    def test_miss(self):
        assert hit_test([ProjectedRegion("a", "1", 0, 0, 10, 10)], 11, 5) is None
        assert hit_test([], 0, 0) is None

    def test_edges_inclusive(self):
        r = ProjectedRegion("a", "1", 10, 10, 10, 10)
        assert hit_test([r], 10, 10) is r
        assert hit_test([r], 20, 20) is r

    def test_presentations(self):
        pres = SpotPresentation(
            projected=ProjectedRegion("a", "1", 0, 0, 10, 10),
            record=None, state="unknown", fill_color="#00000000", border_color="#00000000",
        )
        assert hit_test([pres], 5, 5) is pres
