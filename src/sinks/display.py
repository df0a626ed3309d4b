"""
On-screen display sink.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import cv2
import numpy as np

from models.detection import Detection
from models.track import TrackTarget

from .base import Sink
from .overlay import draw_overlays


class DisplaySink(Sink):
    """
    Shows annotated frames in a cv2 window at about 60 fps.

    Pressing 'q' in the window sets quit_requested; the engine checks it at
    the frame boundary.
    """

    name = "display"

    def __init__(self, window_name: str = "frames", fps: int = 60, hold_on_finish: bool = True):
        self.window_name = window_name
        self.wait_ms = max(1, 1000 // fps)
        self.hold_on_finish = hold_on_finish
        self.quit_requested = False
        self._window_open = False

    def present(
        self,
        frame: np.ndarray,
        detections: Sequence[Detection],
        open_targets: Mapping[int, TrackTarget],
        frame_index: int,
    ) -> None:
        if not self._window_open:
            cv2.namedWindow(self.window_name, cv2.WINDOW_FREERATIO)
            self._window_open = True

        annotated = draw_overlays(frame, detections, open_targets)
        cv2.imshow(self.window_name, annotated)
        key = cv2.waitKey(self.wait_ms) & 0xFF
        if key == ord('q'):
            logging.info("Display closed by user")
            self.quit_requested = True

    def finish(self, result: Any) -> None:
        if self._window_open and self.hold_on_finish and not self.quit_requested:
            logging.info("Press any key in the display window to exit")
            cv2.waitKey(0)

    def close(self) -> None:
        if self._window_open:
            cv2.destroyAllWindows()
            self._window_open = False
