"""
Sinks for per-frame tracking output (display, annotated images).
"""

from .base import Sink
from .display import DisplaySink
from .image_writer import ImageWriterSink
from .overlay import color_for_target, draw_overlays, get_distinct_colors

__all__ = [
    "Sink",
    "DisplaySink",
    "ImageWriterSink",
    "color_for_target",
    "draw_overlays",
    "get_distinct_colors",
]
