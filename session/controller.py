"""
session/controller.py

Layout Session Controller: drives one layout view through its lifecycle.

    INACTIVE -> LOADING -> READY -> POLLING -> READY -> ... -> INACTIVE

* ``activate(area_id)`` fetches the diagram and the occupancy records in
  parallel.  The first record set is committed unconditionally.
* Once both fetches have resolved (successfully or not) the session is
  READY and, when a layout is shown, a single-shot timer schedules the next
  poll.  A poll re-fetches records only and replaces the committed set only
  when something changed; the next tick is scheduled after it resolves, so
  polls never overlap.
* ``refresh()`` discards everything (including cached parses of the current
  layout) and reloads from scratch.
* ``deactivate()`` cancels the timer and forgets all state.  Results of
  fetches still in flight are discarded by a generation counter.

Fetches go through an injectable *runner* ``runner(fn, on_success, on_failure)``
so tests can resolve them synchronously or on demand.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from debug_trace import clear_trace_context, trace, trace_call, trace_transition
from layout.cache import LayoutCache
from layout.parser import parse_layout
from layout.projector import compute_viewport, hit_test, project
from models import (
    LayoutPayload,
    OccupancyRecord,
    ParsedLayout,
    ProjectedRegion,
    RenderViewport,
    SessionState,
    SpotPresentation,
)
from occupancy.binder import bind, records_changed
from session.worker import ThreadRunner
from settings import AppSettings, get_settings

log = logging.getLogger(__name__)

Runner = Callable[[Callable[[], Any], Callable[[Any], None], Callable[[str], None]], None]

NO_LAYOUT_MESSAGE = "No layout available for this area"


class LayoutSessionController(QObject):
    """
    Owns the state of one layout view.

    Args:
        fetch_layout: ``fetch_layout(area_id) -> LayoutPayload``
        fetch_occupancy: ``fetch_occupancy(area_id) -> List[OccupancyRecord]``
        settings: Application settings; defaults to the global settings.
        runner: Fetch runner; defaults to a :class:`ThreadRunner`.
        cache: Parse cache; defaults to a private :class:`LayoutCache`.

    Signals:
        state_changed(str): New :class:`SessionState` value
        layout_ready(object): :class:`ParsedLayout` of the loaded diagram
        layout_unavailable(str): No diagram to show (absent or fetch failed)
        status_unavailable(str): Initial occupancy fetch failed
        records_changed(object): A new record list was committed
        presentations_changed(object): New list of :class:`SpotPresentation`
        spot_tapped(object): The :class:`SpotPresentation` under a tap
    """

    state_changed = pyqtSignal(str)
    layout_ready = pyqtSignal(object)
    layout_unavailable = pyqtSignal(str)
    status_unavailable = pyqtSignal(str)
    records_changed = pyqtSignal(object)
    presentations_changed = pyqtSignal(object)
    spot_tapped = pyqtSignal(object)

    def __init__(
        self,
        fetch_layout: Callable[[int], LayoutPayload],
        fetch_occupancy: Callable[[int], List[OccupancyRecord]],
        settings: Optional[AppSettings] = None,
        runner: Optional[Runner] = None,
        cache: Optional[LayoutCache] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._fetch_layout = fetch_layout
        self._fetch_occupancy = fetch_occupancy
        self._settings = settings or get_settings().settings
        self._runner: Runner = runner or ThreadRunner(self)
        self._cache = cache if cache is not None else LayoutCache()

        self._poll_timer = QTimer(self)
        self._poll_timer.setSingleShot(True)
        self._poll_timer.timeout.connect(self.poll_once)

        self._state = SessionState.INACTIVE
        self._generation = 0
        self._area_id: Optional[int] = None
        self._container: Tuple[float, float] = (0.0, 0.0)
        self._zoom = 1.0
        self._clear_data()

    def _clear_data(self):
        self._payload: Optional[LayoutPayload] = None
        self._layout: Optional[ParsedLayout] = None
        self._layout_error: Optional[str] = None
        self._records: Optional[List[OccupancyRecord]] = None
        self._layout_done = False
        self._records_done = False
        self._projected: List[ProjectedRegion] = []
        self._presentations: List[SpotPresentation] = []

    # ---- read-only state ----

    @property
    def state(self) -> str:
        return self._state

    @property
    def area_id(self) -> Optional[int]:
        return self._area_id

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def payload(self) -> Optional[LayoutPayload]:
        return self._payload

    @property
    def layout(self) -> Optional[ParsedLayout]:
        return self._layout

    @property
    def layout_error(self) -> Optional[str]:
        return self._layout_error

    @property
    def records(self) -> Optional[List[OccupancyRecord]]:
        """The committed record list (same object until a change is committed)."""
        return self._records

    @property
    def presentations(self) -> List[SpotPresentation]:
        return self._presentations

    @property
    def poll_pending(self) -> bool:
        return self._poll_timer.isActive()

    def viewport(self) -> Optional[RenderViewport]:
        """Current render viewport, or None without a layout."""
        if self._layout is None:
            return None
        w, h = self._container
        return compute_viewport(w, h, self._layout.view_box, self._zoom)

    # ---- lifecycle ----

    def activate(self, area_id: int) -> None:
        """Start a session for *area_id* (restarting any current one)."""
        if self._state != SessionState.INACTIVE:
            self.deactivate()
        self._area_id = area_id
        trace(f"activate area={area_id}", "STATE")
        self._start_load()

    def deactivate(self) -> None:
        """Stop polling and forget all session state."""
        self._poll_timer.stop()
        self._generation += 1
        self._area_id = None
        self._zoom = 1.0
        self._clear_data()
        self._set_state(SessionState.INACTIVE)
        self.presentations_changed.emit(self._presentations)
        clear_trace_context()

    def refresh(self) -> None:
        """Re-fetch diagram and records from scratch."""
        if self._area_id is None:
            return
        self._poll_timer.stop()
        if self._payload is not None:
            self._cache.invalidate(self._payload.layout_id)
        else:
            self._cache.clear()
        trace(f"refresh area={self._area_id}", "STATE")
        self._start_load()

    @trace_call("STATE")
    def _start_load(self):
        self._generation += 1
        gen = self._generation
        area_id = self._area_id
        self._clear_data()
        self._set_state(SessionState.LOADING)
        self.presentations_changed.emit(self._presentations)

        self._runner(
            lambda: self._fetch_layout(area_id),
            lambda payload: self._on_layout(gen, payload),
            lambda message: self._on_layout_failed(gen, message),
        )
        self._runner(
            lambda: self._fetch_occupancy(area_id),
            lambda records: self._on_records(gen, records),
            lambda message: self._on_records_failed(gen, message),
        )

    def _is_stale(self, gen: int, what: str) -> bool:
        if gen != self._generation:
            log.debug("Discarding stale %s result (generation %d, current %d)", what, gen, self._generation)
            return True
        return False

    def _on_layout(self, gen: int, payload: LayoutPayload):
        if self._is_stale(gen, "layout"):
            return
        self._layout_done = True
        if not payload.has_layout or not payload.document:
            log.info("Area %s has no layout", self._area_id)
            self._layout_error = NO_LAYOUT_MESSAGE
            self.layout_unavailable.emit(NO_LAYOUT_MESSAGE)
            self._maybe_ready()
            return

        parsed = self._cache.get(payload.layout_id, payload.document)
        if parsed is None:
            parsed = parse_layout(payload.document, self._settings.parser)
            self._cache.put(payload.layout_id, payload.document, parsed)
        if parsed.document.parse_error:
            log.warning("Layout %s could not be parsed: %s", payload.layout_id, parsed.document.parse_error)
        elif not parsed.spots:
            log.info("Layout %s has no spots", payload.layout_id)

        self._payload = payload
        self._layout = parsed
        self.layout_ready.emit(parsed)
        self._recompute()
        self._maybe_ready()

    def _on_layout_failed(self, gen: int, message: str):
        if self._is_stale(gen, "layout"):
            return
        log.warning("Layout fetch failed for area %s: %s", self._area_id, message)
        self._layout_done = True
        self._layout_error = message or NO_LAYOUT_MESSAGE
        self.layout_unavailable.emit(self._layout_error)
        self._maybe_ready()

    def _on_records(self, gen: int, records: List[OccupancyRecord]):
        if self._is_stale(gen, "occupancy"):
            return
        self._records_done = True
        self._commit_records(list(records))
        self._maybe_ready()

    def _on_records_failed(self, gen: int, message: str):
        if self._is_stale(gen, "occupancy"):
            return
        log.warning("Occupancy fetch failed for area %s: %s", self._area_id, message)
        self._records_done = True
        self._commit_records([])
        self.status_unavailable.emit(message)
        self._maybe_ready()

    def _maybe_ready(self):
        if self._state != SessionState.LOADING or not (self._layout_done and self._records_done):
            return
        self._set_state(SessionState.READY)
        self._schedule_poll()

    # ---- polling ----

    def _schedule_poll(self):
        interval = self._settings.session.poll_interval_ms
        if self._layout is None or interval <= 0:
            return
        self._poll_timer.start(interval)

    def poll_once(self) -> None:
        """Re-fetch occupancy records (no-op unless READY)."""
        if self._state != SessionState.READY or self._area_id is None:
            return
        self._poll_timer.stop()
        gen = self._generation
        area_id = self._area_id
        self._set_state(SessionState.POLLING)
        trace(f"poll area={area_id}", "POLL")
        self._runner(
            lambda: self._fetch_occupancy(area_id),
            lambda records: self._on_poll(gen, records),
            lambda message: self._on_poll_failed(gen, message),
        )

    def _on_poll(self, gen: int, records: List[OccupancyRecord]):
        if self._is_stale(gen, "poll"):
            return
        records = list(records)
        if records_changed(self._records, records):
            trace(f"poll committed {len(records)} record(s)", "POLL")
            self._commit_records(records)
        self._set_state(SessionState.READY)
        self._schedule_poll()

    def _on_poll_failed(self, gen: int, message: str):
        if self._is_stale(gen, "poll"):
            return
        log.warning("Occupancy poll failed for area %s: %s", self._area_id, message)
        self._set_state(SessionState.READY)
        self._schedule_poll()

    # ---- viewport and taps ----

    def set_container_size(self, width: float, height: float) -> None:
        if (width, height) == self._container:
            return
        self._container = (float(width), float(height))
        self._recompute()

    def set_zoom(self, zoom: float) -> float:
        """Set the zoom factor, clamped to the configured bounds; returns the applied value."""
        zoom = self._settings.session.clamp_zoom(zoom)
        if zoom != self._zoom:
            self._zoom = zoom
            self._recompute()
        return self._zoom

    def zoom_by(self, factor: float) -> float:
        return self.set_zoom(self._zoom * factor)

    def tap(self, x: float, y: float) -> Optional[SpotPresentation]:
        """Hit-test a tap in container pixels and emit ``spot_tapped`` on a hit."""
        hit = hit_test(self._presentations, x, y)
        if hit is not None:
            log.debug("Tapped spot %r", hit.projected.id)
            self.spot_tapped.emit(hit)
        return hit

    # ---- internals ----

    def _commit_records(self, records: List[OccupancyRecord]):
        self._records = records
        self.records_changed.emit(records)
        self._rebind()

    def _recompute(self):
        vp = self.viewport()
        self._projected = project(self._layout.spots, vp) if vp is not None else []
        self._rebind()

    def _rebind(self):
        self._presentations = bind(self._projected, self._records or [], self._settings.colors)
        self.presentations_changed.emit(self._presentations)

    def _set_state(self, state: str):
        if state == self._state:
            return
        trace_transition(self._state, state, area=self._area_id, gen=self._generation)
        log.debug("Session state %s -> %s", self._state, state)
        self._state = state
        self.state_changed.emit(state)
