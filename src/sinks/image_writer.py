"""
Annotated frame writer.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Sequence

import cv2
import numpy as np

from models.detection import Detection
from models.track import TrackTarget

from .base import Sink
from .overlay import draw_overlays


class ImageWriterSink(Sink):
    """
    Writes one annotated JPEG per frame.

    Files are named frame_annotated_00000042.jpg after the frame index.
    """

    name = "image_writer"
    filename_pattern = "frame_annotated_%08d.jpg"

    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        if not os.path.exists(self.output_dir):
            os.makedirs(self.output_dir)
        self.frames_written = 0

    def path_for(self, frame_index: int) -> str:
        return os.path.join(self.output_dir, self.filename_pattern % frame_index)

    def present(
        self,
        frame: np.ndarray,
        detections: Sequence[Detection],
        open_targets: Mapping[int, TrackTarget],
        frame_index: int,
    ) -> None:
        annotated = draw_overlays(frame, detections, open_targets)
        output_path = self.path_for(frame_index)
        logging.info(f"Writing annotated frame to file: {output_path}")
        if not cv2.imwrite(output_path, annotated):
            raise IOError(f"Failed to write {output_path}")
        self.frames_written += 1

    def close(self) -> None:
        if self.frames_written:
            logging.info(f"Wrote {self.frames_written} annotated frames to {self.output_dir}")
