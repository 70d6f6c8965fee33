"""
canvas/view.py

Widget hosting one layout session: renders the diagram, draws spot
overlays, and turns clicks, wheel steps and pinches into session calls.
"""

from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import QByteArray, QEvent, QPointF, QRectF, Qt
from PyQt6.QtGui import QColor, QFont, QPainter, QPen
from PyQt6.QtSvg import QSvgRenderer
from PyQt6.QtWidgets import QSizePolicy, QWidget

from models import ParsedLayout, SessionState
from session.controller import LayoutSessionController
from settings import get_settings
from utils import hex_to_qcolor

# Pointer travel (px) before a press becomes a pan instead of a tap
_DRAG_THRESHOLD = 4


class LayoutView(QWidget):
    """
    Draws a :class:`LayoutSessionController`'s layout and presentations.

    Interaction:
    - Click inside a spot emits the controller's ``spot_tapped``
    - Click on the "no layout" message retries the load
    - Mouse wheel / pinch zooms within the configured bounds
    - Left-drag pans while zoomed in
    - Keys: ``+``/``-`` zoom, ``0`` resets
    """

    def __init__(self, controller: LayoutSessionController, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMinimumSize(200, 200)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.grabGesture(Qt.GestureType.PinchGesture)

        self._renderer: Optional[QSvgRenderer] = None
        self._pan = QPointF(0.0, 0.0)
        self._press_pos: Optional[QPointF] = None
        self._press_pan = QPointF(0.0, 0.0)
        self._dragging = False

        controller.layout_ready.connect(self._on_layout_ready)
        controller.state_changed.connect(self._on_state_changed)
        controller.presentations_changed.connect(lambda _p: self.update())
        controller.layout_unavailable.connect(lambda _m: self.update())

    # ---- controller hooks ----

    def _on_layout_ready(self, parsed: ParsedLayout):
        renderer = QSvgRenderer(QByteArray(parsed.document.text.encode("utf-8")))
        if renderer.isValid():
            vb = parsed.view_box
            renderer.setViewBox(QRectF(vb.x, vb.y, vb.width, vb.height))
            self._renderer = renderer
        else:
            self._renderer = None
        self.update()

    def _on_state_changed(self, state: str):
        if state in (SessionState.LOADING, SessionState.INACTIVE):
            self._renderer = None
            self._pan = QPointF(0.0, 0.0)
        self.update()

    def has_renderer(self) -> bool:
        return self._renderer is not None

    # ---- geometry ----

    def content_point(self, pos: QPointF) -> QPointF:
        """Map a widget position to container coordinates (undoing the pan)."""
        return QPointF(pos.x() - self._pan.x(), pos.y() - self._pan.y())

    def _clamp_pan(self):
        z = self.controller.zoom
        w, h = float(self.width()), float(self.height())

        def clamp(value: float, size: float) -> float:
            extent = size * z
            if extent <= size:
                return (size - extent) / 2
            return max(size - extent, min(0.0, value))

        self._pan = QPointF(clamp(self._pan.x(), w), clamp(self._pan.y(), h))

    def _zoom_at(self, factor: float, anchor: QPointF):
        """Zoom by *factor* keeping the content under *anchor* still."""
        old = self.controller.zoom
        new = self.controller.zoom_by(factor)
        if new != old:
            ratio = new / old
            self._pan = QPointF(anchor.x() - (anchor.x() - self._pan.x()) * ratio,
                                anchor.y() - (anchor.y() - self._pan.y()) * ratio)
            self._clamp_pan()
            self.update()

    def zoom_in(self):
        """Zoom in by the configured factor."""
        self._zoom_at(get_settings().settings.session.wheel_factor, QPointF(self.width() / 2, self.height() / 2))

    def zoom_out(self):
        """Zoom out by the configured factor."""
        self._zoom_at(1 / get_settings().settings.session.wheel_factor, QPointF(self.width() / 2, self.height() / 2))

    def zoom_reset(self):
        """Reset zoom to 100%."""
        self.controller.set_zoom(1.0)
        self._clamp_pan()
        self.update()

    # ---- Qt events ----

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.controller.set_container_size(self.width(), self.height())
        self._clamp_pan()

    def paintEvent(self, event):
        p = QPainter(self)
        p.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        p.fillRect(self.rect(), QColor("#FFFFFF"))

        vp = self.controller.viewport()
        if vp is None or not vp.is_valid():
            self._paint_message(p)
            p.end()
            return

        p.save()
        p.translate(self._pan)
        z = vp.zoom
        if self._renderer is not None:
            self._renderer.render(p, QRectF(vp.offset_x * z, vp.offset_y * z, vp.rendered_w * z, vp.rendered_h * z))

        label_font = QFont(self.font())
        label_font.setPointSizeF(max(6.0, 8.0 * min(z, 2.0)))
        p.setFont(label_font)
        for pres in self.controller.presentations:
            r = pres.projected
            rect = QRectF(r.left, r.top, r.width, r.height)
            p.setBrush(hex_to_qcolor(pres.fill_color, QColor(0, 0, 0, 0)))
            p.setPen(QPen(hex_to_qcolor(pres.border_color, QColor("#888888")), 2.0 if pres.emphasized else 1.0))
            p.drawRect(rect)
            if r.height >= 12:
                p.setPen(QColor("#202020"))
                p.drawText(rect, Qt.AlignmentFlag.AlignCenter, r.label)
        p.restore()
        p.end()

    def _paint_message(self, p: QPainter):
        state = self.controller.state
        if state == SessionState.LOADING:
            text = "Loading layout..."
        elif self.controller.layout_error:
            text = f"{self.controller.layout_error}\n\nClick to retry"
        elif state == SessionState.INACTIVE:
            text = "No area selected"
        else:
            text = ""
        p.setPen(QColor("#606060"))
        p.drawText(QRectF(self.rect()), Qt.AlignmentFlag.AlignCenter, text)

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._press_pos = event.position()
            self._press_pan = QPointF(self._pan)
            self._dragging = False
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._press_pos is None:
            super().mouseMoveEvent(event)
            return
        delta = event.position() - self._press_pos
        if not self._dragging and delta.manhattanLength() > _DRAG_THRESHOLD and self.controller.zoom > 1.0:
            self._dragging = True
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
        if self._dragging:
            self._pan = self._press_pan + delta
            self._clamp_pan()
            self.update()
        event.accept()

    def mouseReleaseEvent(self, event):
        if event.button() != Qt.MouseButton.LeftButton or self._press_pos is None:
            super().mouseReleaseEvent(event)
            return
        was_drag = self._dragging
        self._press_pos = None
        self._dragging = False
        self.unsetCursor()
        if not was_drag:
            self._click(event.position())
        event.accept()

    def _click(self, pos: QPointF):
        if self.controller.viewport() is None:
            if self.controller.layout_error and self.controller.state == SessionState.READY:
                self.controller.refresh()
            return
        c = self.content_point(pos)
        self.controller.tap(c.x(), c.y())

    def wheelEvent(self, event):
        """Zoom with mouse wheel."""
        delta = event.angleDelta().y()
        if delta == 0:
            return
        # Zoom factor from settings. Default: 1.15 (15% per scroll step)
        zoom_factor = get_settings().settings.session.wheel_factor
        factor = zoom_factor if delta > 0 else 1 / zoom_factor
        self._zoom_at(factor, event.position())
        event.accept()

    def event(self, event):
        if event.type() == QEvent.Type.Gesture:
            pinch = event.gesture(Qt.GestureType.PinchGesture)
            if pinch is not None:
                factor = pinch.scaleFactor()
                if factor > 0:
                    self._zoom_at(factor, self.mapFromGlobal(pinch.centerPoint().toPoint()).toPointF())
                event.accept()
                return True
        if event.type() == QEvent.Type.NativeGesture and event.gestureType() == Qt.NativeGestureType.ZoomNativeGesture:
            self._zoom_at(1.0 + event.value(), event.position())
            event.accept()
            return True
        return super().event(event)

    def keyPressEvent(self, event):
        key = event.key()
        if key in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            self.zoom_in()
        elif key == Qt.Key.Key_Minus:
            self.zoom_out()
        elif key == Qt.Key.Key_0:
            self.zoom_reset()
        else:
            super().keyPressEvent(event)
