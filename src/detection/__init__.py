"""
Detection module.

Detectors turn frames into pixel-space Detections. The pipeline treats them
as black boxes behind the Detector interface.
"""

from __future__ import annotations

from typing import Any, Dict

from models.config import DetectionConfig

from .base import Detector
from .bgsub import BgSubDetector


def create_detector(detection_cfg: Dict[str, Any]) -> Detector:
    """
    Build a detector from the `detection` config section.

    Raises:
        ValueError: If the backend is unknown.
        FileNotFoundError: If the YOLO model file does not exist.
    """
    cfg = DetectionConfig.from_dict(detection_cfg or {})
    if cfg.backend == "yolo":
        from .yolo import UltralyticsDetector

        if cfg.yolo is None:
            raise ValueError("detection.yolo is required when detection.backend is 'yolo'")
        return UltralyticsDetector(cfg.yolo)
    if cfg.backend == "bgsub":
        return BgSubDetector(
            min_contour_area=cfg.min_contour_area,
            detect_shadows=cfg.detect_shadows,
        )
    raise ValueError(f"Unknown detection backend: {cfg.backend}")


__all__ = ["Detector", "BgSubDetector", "create_detector"]
