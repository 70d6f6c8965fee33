"""
api/client.py

Thin client for the two backend endpoints the layout engine consumes.

Responses use a ``{"success": bool, "data": {...}}`` envelope:

    GET {base}/parking-areas/area/{area_id}/layout
        data.hasLayout, data.layoutSvg, data.layoutName, data.areaName,
        data.floor, data.layoutId (optional, defaults to the area id)

    GET {base}/parking-areas/area/{area_id}/spots-status
        data.spots[]: id, spot_number, status, spot_type, section_name,
        is_user_booked (true or 1)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from models import LayoutPayload, OccupancyRecord, SpotStatus
from settings import get_settings

log = logging.getLogger(__name__)


class ApiError(Exception):
    """A backend request failed or returned an unusable response."""


class LayoutFetchError(ApiError):
    """The layout diagram could not be fetched."""


class OccupancyFetchError(ApiError):
    """Spot statuses could not be fetched."""


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _is_booked(value: Any) -> bool:
    return value is True or (not isinstance(value, bool) and value == 1)


class ApiClient:
    """Backend client.

    Args:
        base_url: API root, e.g. ``http://localhost:3000/api``; defaults to settings.
        token: Optional bearer token.
        timeout: Request timeout in seconds; defaults to settings.
        session: A ``requests.Session`` (injectable for tests).
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        api = get_settings().settings.api
        self.base_url = (base_url or api.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else api.timeout_s
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get_data(self, path: str, error_cls: type) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise error_cls(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise error_cls(f"GET {url} returned invalid JSON") from e

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise error_cls(message or f"GET {url} was not successful")
        data = body.get("data")
        if not isinstance(data, dict):
            raise error_cls(f"GET {url} returned no data")
        return data

    def fetch_layout(self, area_id: int) -> LayoutPayload:
        """Fetch an area's layout diagram.

        ``has_layout=False`` is a normal answer for areas without a diagram.

        Raises:
            LayoutFetchError: On transport or envelope failure.
        """
        data = self._get_data(f"/parking-areas/area/{area_id}/layout", LayoutFetchError)
        svg = data.get("layoutSvg") or ""
        has_layout = bool(data.get("hasLayout")) and bool(svg)
        payload = LayoutPayload(
            has_layout=has_layout,
            layout_id=_as_int(data.get("layoutId"), _as_int(area_id, 0)),
            document=svg if has_layout else "",
            layout_name=str(data.get("layoutName") or ""),
            area_name=str(data.get("areaName") or ""),
            floor=_as_int(data.get("floor"), 1),
        )
        log.debug("Layout for area %s: has_layout=%s (%d chars)", area_id, has_layout, len(payload.document))
        return payload

    def fetch_occupancy(self, area_id: int) -> List[OccupancyRecord]:
        """Fetch current spot statuses for an area.

        Raises:
            OccupancyFetchError: On transport or envelope failure.
        """
        data = self._get_data(f"/parking-areas/area/{area_id}/spots-status", OccupancyFetchError)
        spots = data.get("spots") or []
        if not isinstance(spots, list):
            raise OccupancyFetchError("spots-status returned a non-list 'spots'")

        records: List[OccupancyRecord] = []
        for spot in spots:
            if not isinstance(spot, dict):
                continue
            key = str(spot.get("spot_number") or "").strip()
            record_id = spot.get("id")
            if not key and record_id is None:
                continue
            records.append(OccupancyRecord(
                key=key or str(record_id),
                status=SpotStatus.normalize(spot.get("status")),
                owned_by_current_user=_is_booked(spot.get("is_user_booked")),
                record_id=str(record_id) if record_id is not None else None,
                spot_type=str(spot.get("spot_type") or ""),
                section_name=str(spot.get("section_name") or ""),
            ))
        log.debug("Occupancy for area %s: %d record(s)", area_id, len(records))
        return records
