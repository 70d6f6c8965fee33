"""
session package

Layout session lifecycle: background fetches, polling and taps.
"""

from session.worker import FetchWorker, ThreadRunner
from session.controller import LayoutSessionController

__all__ = ["FetchWorker", "ThreadRunner", "LayoutSessionController"]
