"""
tests/test_layout_view.py

LayoutView wiring: resize feeds the session, clicks become taps, keys and
the wheel zoom, and the "no layout" message retries on click.

Runs offscreen (QT_QPA_PLATFORM=offscreen, set in conftest).
"""
from __future__ import annotations

import pytest
from PyQt6.QtCore import QPoint, Qt
from PyQt6.QtTest import QTest

from canvas.view import LayoutView
from session.controller import LayoutSessionController
from settings import AppSettings
from tests.fakes import FakeBackend, SyncRunner


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def view(qapp, backend):
    controller = LayoutSessionController(
        backend.fetch_layout, backend.fetch_occupancy,
        settings=AppSettings(), runner=SyncRunner(),
    )
    v = LayoutView(controller)
    v.resize(300, 350)
    v.show()
    qapp.processEvents()
    yield v
    controller.deactivate()
    v.close()


def test_resize_sets_container(view):
    view.controller.activate(1)
    vp = view.controller.viewport()
    assert (vp.container_w, vp.container_h) == (300, 350)
    assert view.has_renderer()


def test_click_taps_spot(view):
    view.controller.activate(1)
    tapped = []
    view.controller.spot_tapped.connect(tapped.append)

    QTest.mouseClick(view, Qt.MouseButton.LeftButton, pos=QPoint(20, 20))
    assert [p.projected.id for p in tapped] == ["F1-A-1"]

    QTest.mouseClick(view, Qt.MouseButton.LeftButton, pos=QPoint(250, 300))
    assert len(tapped) == 1


def test_keys_zoom_within_bounds(view):
    view.controller.activate(1)
    QTest.keyClick(view, Qt.Key.Key_Plus)
    assert view.controller.zoom == pytest.approx(1.15)
    QTest.keyClick(view, Qt.Key.Key_0)
    assert view.controller.zoom == 1.0
    for _ in range(30):
        QTest.keyClick(view, Qt.Key.Key_Minus)
    assert view.controller.zoom == 0.5


def test_click_retries_missing_layout(view, backend):
    backend.has_layout = False
    view.controller.activate(1)
    assert view.controller.layout_error

    backend.has_layout = True
    QTest.mouseClick(view, Qt.MouseButton.LeftButton, pos=QPoint(150, 175))
    assert backend.layout_calls == 2
    assert view.controller.layout is not None


def test_paints_without_error(view):
    view.controller.activate(1)
    image = view.grab()
    assert not image.isNull()
