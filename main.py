"""
main.py

ParkView - Parking Layout Viewer

PyQt6 application hosting one interactive parking layout:
- Diagram rendered with live per-spot occupancy overlays
- Periodic status polling, manual refresh
- Wheel / pinch zoom, click a spot for its details

Usage:
    python main.py --area-id 3 [--base-url http://host:3000/api] [--token TOKEN]

Dependencies:
    pip install PyQt6 requests platformdirs tomli-w

Environment:
    PARKVIEW_DEBUG_TRACE=1 (optional trace output)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from PyQt6.QtGui import QAction, QKeySequence
from PyQt6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from api.client import ApiClient
from canvas.view import LayoutView
from debug_trace import close_log, trace, trace_exception
from models import SessionState, SpotPresentation
from occupancy.binder import describe_spot, legend_entries, summarize
from session.controller import LayoutSessionController
from session.worker import ThreadRunner
from settings import SettingsManager, get_settings

log = logging.getLogger(__name__)


def _legend_bar() -> QWidget:
    """Row of colored swatches explaining the overlay colors."""
    bar = QWidget()
    row = QHBoxLayout(bar)
    row.setContentsMargins(6, 2, 6, 2)
    for _state, label, fill, border in legend_entries():
        swatch = QLabel()
        swatch.setFixedSize(14, 14)
        # Qt style sheets read #AARRGGBB, settings store #RRGGBBAA
        swatch.setStyleSheet(
            f"background-color: #{fill[7:9]}{fill[1:7]}; border: 1px solid #{border[7:9]}{border[1:7]};"
        )
        row.addWidget(swatch)
        row.addWidget(QLabel(label))
        row.addSpacing(10)
    row.addStretch(1)
    return bar


class MainWindow(QMainWindow):
    """Main window: toolbar, legend, layout view and a summary status bar."""

    def __init__(self, settings_manager: SettingsManager, client: ApiClient, area_id: int):
        super().__init__()
        self.settings_manager = settings_manager
        self.area_id = area_id
        self.setWindowTitle("ParkView")

        self.runner = ThreadRunner(self)
        self.controller = LayoutSessionController(
            client.fetch_layout,
            client.fetch_occupancy,
            settings=settings_manager.settings,
            runner=self.runner,
            parent=self,
        )
        self.view = LayoutView(self.controller)

        central = QWidget()
        col = QVBoxLayout(central)
        col.setContentsMargins(0, 0, 0, 0)
        col.addWidget(_legend_bar())
        col.addWidget(self.view, 1)
        self.setCentralWidget(central)

        self._build_toolbar()

        self.controller.state_changed.connect(self.on_state_changed)
        self.controller.presentations_changed.connect(self.on_presentations_changed)
        self.controller.layout_unavailable.connect(self.on_layout_unavailable)
        self.controller.status_unavailable.connect(self.on_status_unavailable)
        self.controller.spot_tapped.connect(self.on_spot_tapped)

    def _build_toolbar(self):
        tb = QToolBar("Layout")
        tb.setMovable(False)
        self.addToolBar(tb)

        self.refresh_act = QAction("Refresh", self)
        self.refresh_act.setShortcut(QKeySequence.StandardKey.Refresh)
        self.refresh_act.triggered.connect(self.controller.refresh)
        tb.addAction(self.refresh_act)
        tb.addSeparator()

        zoom_in = QAction("Zoom In", self)
        zoom_in.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in.triggered.connect(self.view.zoom_in)
        tb.addAction(zoom_in)

        zoom_out = QAction("Zoom Out", self)
        zoom_out.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out.triggered.connect(self.view.zoom_out)
        tb.addAction(zoom_out)

        zoom_reset = QAction("Reset Zoom", self)
        zoom_reset.triggered.connect(self.view.zoom_reset)
        tb.addAction(zoom_reset)

    def start(self):
        self.controller.activate(self.area_id)

    # ---- controller signals ----

    def on_state_changed(self, state: str):
        self.refresh_act.setEnabled(state != SessionState.LOADING)
        if state == SessionState.LOADING:
            self.statusBar().showMessage("Loading layout...")
        payload = self.controller.payload
        if state == SessionState.READY and payload is not None:
            title = payload.layout_name or payload.area_name or f"Area {self.area_id}"
            self.setWindowTitle(f"ParkView - {title} (floor {payload.floor})")

    def on_presentations_changed(self, presentations: List[SpotPresentation]):
        if self.controller.layout is None:
            return
        counts = summarize(presentations)
        self.statusBar().showMessage(
            f"{counts['total']} spots | {counts['available']} available | "
            f"{counts['occupied']} occupied | {counts['reserved']} reserved | "
            f"{counts['owned']} yours"
        )

    def on_layout_unavailable(self, message: str):
        self.statusBar().showMessage(message)

    def on_status_unavailable(self, message: str):
        self.statusBar().showMessage(f"No status data: {message}")

    def on_spot_tapped(self, presentation: SpotPresentation):
        QMessageBox.information(self, f"Spot {presentation.projected.label}", describe_spot(presentation))

    def closeEvent(self, event):
        self.controller.deactivate()
        self.runner.wait_all()
        super().closeEvent(event)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive parking layout viewer")
    parser.add_argument("--area-id", type=int, required=True, help="parking area to show")
    parser.add_argument("--base-url", default=None, help="backend API root (default from settings)")
    parser.add_argument("--token", default=None, help="bearer token for the backend")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging level")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Application entry point."""
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    trace("Application starting", "MAIN")
    app = QApplication(sys.argv[:1])

    # Load settings (use singleton to ensure single instance)
    trace("Loading settings", "MAIN")
    settings_manager = get_settings()

    # Ensure settings file has all sections
    settings_manager.ensure_file_complete()

    def on_quit():
        trace("Application quitting", "MAIN")
        close_log()

    app.aboutToQuit.connect(on_quit)

    client = ApiClient(base_url=args.base_url, token=args.token)
    log.info("Using backend %s", client.base_url)

    trace("Creating MainWindow", "MAIN")
    w = MainWindow(settings_manager, client, args.area_id)
    w.resize(720, 820)
    w.show()
    w.start()
    trace("Entering event loop", "MAIN")
    sys.exit(app.exec())


if __name__ == "__main__":
    # Set up global exception handler to catch crashes
    def excepthook(exc_type, exc_value, exc_tb):
        import traceback
        trace("UNCAUGHT EXCEPTION:", "CRASH")
        trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "CRASH")
        close_log()
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = excepthook

    try:
        main()
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise
