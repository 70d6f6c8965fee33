"""
tests/test_api_client.py

Backend client: envelope handling, payload decoding and error translation.
A fake ``requests.Session`` stands in for the network.
"""

from __future__ import annotations

import pytest
import requests

from api.client import ApiClient, ApiError, LayoutFetchError, OccupancyFetchError
from models import SpotStatus

BASE = "http://api.test/api"
LAYOUT_URL = f"{BASE}/parking-areas/area/3/layout"
STATUS_URL = f"{BASE}/parking-areas/area/3/spots-status"


class FakeResponse:
    def __init__(self, body=None, status_code=200, bad_json=False):
        self.body = body
        self.status_code = status_code
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.body


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.headers = {}
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def _client(responses, **kwargs):
    session = FakeSession(responses)
    return ApiClient(base_url=BASE + "/", timeout=3, session=session, **kwargs), session


# ─────────────────────────────────────────────────────────
# Layout
# ─────────────────────────────────────────────────────────

def test_fetch_layout():
    body = {"success": True, "data": {
        "hasLayout": True, "layoutSvg": "<svg/>", "layoutName": "Ground",
        "areaName": "North Lot", "floor": 2, "layoutId": 11,
    }}
    client, session = _client({LAYOUT_URL: FakeResponse(body)})
    payload = client.fetch_layout(3)

    assert payload.has_layout
    assert payload.layout_id == 11
    assert payload.document == "<svg/>"
    assert (payload.layout_name, payload.area_name, payload.floor) == ("Ground", "North Lot", 2)
    assert session.calls == [(LAYOUT_URL, 3)]


def test_layout_id_defaults_to_area():
    body = {"success": True, "data": {"hasLayout": True, "layoutSvg": "<svg/>"}}
    client, _ = _client({LAYOUT_URL: FakeResponse(body)})
    payload = client.fetch_layout(3)
    assert payload.layout_id == 3
    assert payload.floor == 1


def test_no_layout_is_not_an_error():
    body = {"success": True, "data": {"hasLayout": False, "areaName": "North Lot"}}
    client, _ = _client({LAYOUT_URL: FakeResponse(body)})
    payload = client.fetch_layout(3)
    assert not payload.has_layout
    assert payload.document == ""


def test_bearer_token_header():
    _client_obj, session = _client({}, token="abc")
    assert session.headers["Authorization"] == "Bearer abc"


@pytest.mark.parametrize("response", [
    FakeResponse({"success": False, "message": "Area not found"}),
    FakeResponse({"success": True}),
    FakeResponse(["not", "an", "envelope"]),
    FakeResponse(status_code=500),
    FakeResponse(bad_json=True),
    requests.ConnectionError("refused"),
    requests.Timeout("slow"),
])
def test_layout_errors(response):
    client, _ = _client({LAYOUT_URL: response})
    with pytest.raises(LayoutFetchError):
        client.fetch_layout(3)


def test_error_message_from_envelope():
    client, _ = _client({LAYOUT_URL: FakeResponse({"success": False, "message": "Area not found"})})
    with pytest.raises(ApiError, match="Area not found"):
        client.fetch_layout(3)


# ─────────────────────────────────────────────────────────
# Occupancy
# ─────────────────────────────────────────────────────────

def test_fetch_occupancy():
    body = {"success": True, "data": {"spots": [
        {"id": 40, "spot_number": "1", "status": "Occupied", "spot_type": "regular",
         "section_name": "A", "is_user_booked": 0},
        {"id": 41, "spot_number": "2", "status": "available", "is_user_booked": True},
        {"id": 42, "spot_number": "3", "status": "reserved", "is_user_booked": 1},
        {"id": 43, "status": "maintenance"},
        "junk",
        {"spot_number": ""},
    ]}}
    client, _ = _client({STATUS_URL: FakeResponse(body)})
    records = client.fetch_occupancy(3)

    assert [r.key for r in records] == ["1", "2", "3", "43"]
    assert [r.status for r in records] == [
        SpotStatus.OCCUPIED, SpotStatus.AVAILABLE, SpotStatus.RESERVED, SpotStatus.UNKNOWN,
    ]
    assert [r.owned_by_current_user for r in records] == [False, True, True, False]
    assert records[0].record_id == "40"
    assert (records[0].spot_type, records[0].section_name) == ("regular", "A")


def test_empty_occupancy():
    client, _ = _client({STATUS_URL: FakeResponse({"success": True, "data": {"spots": []}})})
    assert client.fetch_occupancy(3) == []


@pytest.mark.parametrize("response", [
    FakeResponse({"success": True, "data": {"spots": "nope"}}),
    FakeResponse(status_code=401),
    requests.ConnectionError("refused"),
])
def test_occupancy_errors(response):
    client, _ = _client({STATUS_URL: response})
    with pytest.raises(OccupancyFetchError):
        client.fetch_occupancy(3)
