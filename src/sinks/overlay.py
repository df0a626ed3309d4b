"""
Overlay drawing for detections and open targets.
"""

from __future__ import annotations

from typing import List, Mapping, Sequence, Tuple

import cv2
import numpy as np

from models.detection import Detection
from models.track import TrackTarget

# Colors (BGR)
COLOR_DETECTION = (0, 255, 0)  # Green
COLOR_LABEL_TEXT = (255, 255, 255)

_DISTINCT_COLORS: List[Tuple[int, int, int]] = [
    (75, 25, 230),
    (75, 180, 60),
    (25, 225, 255),
    (200, 130, 0),
    (48, 130, 245),
    (180, 30, 145),
    (240, 240, 70),
    (230, 50, 240),
    (60, 245, 210),
    (212, 190, 250),
    (128, 128, 0),
    (255, 190, 220),
    (40, 110, 170),
    (200, 250, 255),
    (0, 0, 128),
    (195, 255, 170),
    (0, 128, 128),
    (180, 215, 255),
    (128, 0, 0),
    (128, 128, 128),
]


def get_distinct_colors() -> List[Tuple[int, int, int]]:
    """Palette of visually distinct BGR colors, indexed by target id."""
    return list(_DISTINCT_COLORS)


def color_for_target(target_id: int) -> Tuple[int, int, int]:
    return _DISTINCT_COLORS[target_id % len(_DISTINCT_COLORS)]


def draw_overlays(
    frame: np.ndarray,
    detections: Sequence[Detection],
    open_targets: Mapping[int, TrackTarget],
) -> np.ndarray:
    """
    Draw detections and open targets onto a copy of the frame.

    Detections are drawn as thin ellipses inscribed in their boxes, open
    targets as boxes colored by target id with an "#id" label.
    """
    annotated = frame.copy()

    for det in detections:
        cx, cy = det.center
        axes = (max(int(det.bbox.width / 2), 1), max(int(det.bbox.height / 2), 1))
        cv2.ellipse(annotated, (int(cx), int(cy)), axes, 0, 0, 360, COLOR_DETECTION, 1)

    font = cv2.FONT_HERSHEY_SIMPLEX
    for target_id, target in open_targets.items():
        x1, y1, x2, y2 = target.bbox.as_int_tuple()
        color = color_for_target(target_id)
        cv2.rectangle(annotated, (x1, y1), (x2, y2), color, 2)

        # Label with background
        label = f"#{target_id}"
        (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
        cv2.rectangle(annotated, (x1, y1 - th - 6), (x1 + tw + 4, y1), color, -1)
        cv2.putText(annotated, label, (x1 + 2, y1 - 4), font, 0.5, COLOR_LABEL_TEXT, 1)

    return annotated
