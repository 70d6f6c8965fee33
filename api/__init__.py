"""
api package

HTTP client for the parking backend.
"""

from api.client import ApiClient, ApiError, LayoutFetchError, OccupancyFetchError

__all__ = ["ApiClient", "ApiError", "LayoutFetchError", "OccupancyFetchError"]
