"""
Background-subtraction detector.

Finds moving objects with a MOG2 background model and contour analysis.
It needs no model file, which makes it the default backend for local runs.
"""

import logging
from typing import List

import cv2
import numpy as np

from models.detection import BoundingBox, Detection

from .base import Detector


class BgSubDetector(Detector):
    """Detect moving objects using background subtraction and contour analysis."""

    def __init__(
        self,
        min_contour_area: int = 1000,
        detect_shadows: bool = True,
        history: int = 100,
        var_threshold: int = 40,
        min_width: int = 20,
        min_height: int = 20,
        max_width_ratio: float = 0.8,
        max_height_ratio: float = 0.8
    ) -> None:
        """
        Initialize the detector.

        Args:
            min_contour_area: Minimum contour area to be considered an object
            detect_shadows: Whether to detect shadows in background subtraction
            history: History length for background subtraction
            var_threshold: Variance threshold for background subtraction
            min_width: Minimum bounding box width in pixels
            min_height: Minimum bounding box height in pixels
            max_width_ratio: Maximum width as ratio of frame width
            max_height_ratio: Maximum height as ratio of frame height
        """
        self.min_contour_area = min_contour_area
        self.min_width = min_width
        self.min_height = min_height
        self.max_width_ratio = max_width_ratio
        self.max_height_ratio = max_height_ratio

        self.bg_subtractor = cv2.createBackgroundSubtractorMOG2(
            history=history,
            varThreshold=var_threshold,
            detectShadows=detect_shadows
        )

        # Kernel for morphological operations
        self.kernel = np.ones((5, 5), np.uint8)

        logging.info("Background subtraction detector initialized")

    def detect(self, frame: np.ndarray, frame_index: int = 0) -> List[Detection]:
        """
        Detect moving objects in the frame.

        Args:
            frame: Input frame (BGR)
            frame_index: Index stamped on the returned detections

        Returns:
            Detections ordered as the contours were found
        """
        fg_mask = self.bg_subtractor.apply(frame)

        # Remove noise
        opening = cv2.morphologyEx(fg_mask, cv2.MORPH_OPEN, self.kernel)
        closing = cv2.morphologyEx(opening, cv2.MORPH_CLOSE, self.kernel)

        # Threshold to remove shadows (gray pixels)
        _, thresholded = cv2.threshold(closing, 200, 255, cv2.THRESH_BINARY)

        contours, _ = cv2.findContours(thresholded, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        frame_height, frame_width = frame.shape[0], frame.shape[1]
        detections: List[Detection] = []

        for contour in contours:
            if cv2.contourArea(contour) < self.min_contour_area:
                continue

            x, y, w, h = cv2.boundingRect(contour)

            # Size-based filtering
            if w < self.min_width or h < self.min_height:
                continue
            if w > frame_width * self.max_width_ratio or h > frame_height * self.max_height_ratio:
                continue

            detections.append(
                Detection(
                    bbox=BoundingBox.from_xywh(float(x), float(y), float(w), float(h)),
                    confidence=1.0,
                    frame_index=frame_index,
                    detection_id=len(detections),
                )
            )

        return detections
