"""
tests/conftest.py

Shared fixtures: repository root on sys.path, an offscreen QApplication,
and settings isolated in a temporary config directory.
"""
from __future__ import annotations

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import settings  # noqa: E402
from PyQt6.QtWidgets import QApplication  # noqa: E402


@pytest.fixture(scope="session")
def qapp():
    """Provide a single QApplication for the entire test session."""
    app = QApplication.instance() or QApplication(sys.argv[:1])
    yield app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings singleton at an empty temporary config directory."""
    monkeypatch.setattr(settings.platformdirs, "user_config_dir", lambda app_name: str(tmp_path / app_name))
    monkeypatch.setattr(settings, "_settings_manager", None)
    yield settings.get_settings()
