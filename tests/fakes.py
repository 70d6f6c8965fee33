"""
tests/fakes.py

Fetch runners and an in-memory backend shared by the session and view tests.
"""

from __future__ import annotations

from api.client import LayoutFetchError, OccupancyFetchError
from models import LayoutPayload, OccupancyRecord, SpotStatus

SVG = ('<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 276 322">'
       '<rect id="F1-A-1" x="10" y="10" width="40" height="20"/>'
       '<rect id="F1-A-2" x="60" y="10" width="40" height="20"/>'
       '</svg>')


class SyncRunner:
    def __call__(self, fn, on_success, on_failure):
        try:
            result = fn()
        except Exception as e:
            on_failure(str(e))
            return
        on_success(result)


class DeferredRunner:
    def __init__(self):
        self.pending = []

    def __call__(self, fn, on_success, on_failure):
        self.pending.append((fn, on_success, on_failure))

    def resolve(self, index: int = 0):
        fn, on_success, on_failure = self.pending.pop(index)
        try:
            result = fn()
        except Exception as e:
            on_failure(str(e))
            return
        on_success(result)

    def resolve_all(self):
        while self.pending:
            self.resolve()


class FakeBackend:
    def __init__(self, document=SVG, has_layout=True):
        self.document = document
        self.has_layout = has_layout
        self.statuses = {"1": SpotStatus.OCCUPIED, "2": SpotStatus.AVAILABLE}
        self.records = None
        self.layout_error = None
        self.occupancy_error = None
        self.layout_calls = 0
        self.occupancy_calls = 0

    def fetch_layout(self, area_id):
        self.layout_calls += 1
        if self.layout_error:
            raise LayoutFetchError(self.layout_error)
        return LayoutPayload(has_layout=self.has_layout, layout_id=area_id,
                             document=self.document if self.has_layout else "")

    def fetch_occupancy(self, area_id):
        self.occupancy_calls += 1
        if self.occupancy_error:
            raise OccupancyFetchError(self.occupancy_error)
        if self.records is not None:
            return list(self.records)
        # Fresh objects every call, like a real decode
        return [OccupancyRecord(key=k, status=s) for k, s in self.statuses.items()]

