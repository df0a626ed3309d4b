"""
Detection interfaces.

We keep this lightweight so the pipeline can run with any backend:
- classical CV (background subtraction)
- YOLO via Ultralytics
- anything else that returns pixel-space Detections
"""

from __future__ import annotations

from typing import List

import numpy as np

from models.detection import Detection


class Detector:
    """
    Detector interface returning detections in pixel-space.

    detect() is called once per frame and may return an empty list. Errors
    are not handled by the pipeline; they propagate to the caller.
    """

    def detect(self, frame: np.ndarray, frame_index: int = 0) -> List[Detection]:
        raise NotImplementedError
