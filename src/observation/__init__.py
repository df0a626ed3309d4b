"""
Observation layer for pluggable video sources.

This layer abstracts where frames come from (video file, camera, stream,
in-memory list) from the processing pipeline. Each source implements the
ObservationSource interface and returns FrameData objects.
"""

from __future__ import annotations

from typing import Any, Dict

from .base import ObservationSource, ObservationConfig
from .memory_source import MemorySource
from .opencv_source import OpenCVSource, OpenCVSourceConfig


def create_source_from_config(source_cfg: Dict[str, Any]) -> ObservationSource:
    """Build an OpenCV source from the `source` config section."""
    return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg or {}))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "MemorySource",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
