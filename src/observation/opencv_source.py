"""
OpenCV-based observation source.

Supports:
- Video files (device_id as file path)
- USB webcams (device_id as int, e.g., 0)
- Network streams (device_id as URL)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from .base import ObservationSource, ObservationConfig
from .url_utils import sanitize_url


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        device_id: Camera index (int), stream URL (str), or file path (str).
        buffer_size: OpenCV capture buffer size (reduces latency for live feeds).
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1

    @classmethod
    def from_source_config(cls, source_cfg: Dict[str, Any]) -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the `source` config dict.
        """
        resolution = source_cfg.get("resolution")
        if resolution:
            resolution = tuple(resolution)

        return cls(
            source_id=source_cfg.get("source_id", "main-video"),
            resolution=resolution,
            fps=source_cfg.get("fps"),
            device_id=source_cfg.get("device_id", 0),
            buffer_size=source_cfg.get("buffer_size", 1),
        )


class OpenCVSource(ObservationSource):
    """
    OpenCV-based observation source for video files and cameras.

    Wraps cv2.VideoCapture to provide frames as FrameData objects with
    0-based frame indices. A failed read ends the sequence; there is no
    reconnect, since a restarted stream would not continue the same
    frame sequence.

    Example:
        config = OpenCVSourceConfig(device_id="data/video.mp4")
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        """Check if this is a local video file."""
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def _open(self) -> None:
        logging.info(f"Loading video source: {sanitize_url(self.device_id)}")
        self._cap = cv2.VideoCapture(self.device_id)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise RuntimeError(f"Failed to open video source: {sanitize_url(self.device_id)}")

        # Set properties for USB cameras (not streams/files)
        if isinstance(self.device_id, int) and self._opencv_config.resolution:
            w, h = self._opencv_config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._opencv_config.fps:
                self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._opencv_config.buffer_size)

        info = self.get_video_info()
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"size={info.get('width')}x{info.get('height')}, fps={info.get('fps')}"
        )

    def _next_frame(self) -> Optional[np.ndarray]:
        if self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
            else:
                logging.warning(f"Failed to read frame from {sanitize_url(self.device_id)}")
            return None

        return frame

    def _close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")

    def get_video_info(self) -> Dict[str, Any]:
        """Get information about the opened capture."""
        if self._cap is None or not self._cap.isOpened():
            return {}

        return {
            "width": int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self._cap.get(cv2.CAP_PROP_FPS),
            "frame_count": int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT)) if self.is_file else None,
        }
