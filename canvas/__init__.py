"""
canvas package

PyQt6 widget that renders a layout session.
"""

from canvas.view import LayoutView

__all__ = ["LayoutView"]
