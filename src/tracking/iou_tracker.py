"""
IoU tracker for following objects across video frames.

This module implements a simple greedy IoU association. It exists so the
pipeline runs end to end without an external tracking engine; any
TrackerBase implementation can replace it.

Each frame:
- open targets (in id order) take the unmatched detection with the best
  IoU above the threshold and emit TargetAssociated
- detections left over start new targets and emit TargetCreated
- targets missing for more than max_frames_since_seen frames are closed,
  removed from the open registry and emit TargetClosed
"""

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np

from models.config import TrackingConfig
from models.detection import Detection
from models.events import TargetAssociated, TargetClosed, TargetCreated
from models.track import TrackTarget

from .base import TrackerBase


class IoUTracker(TrackerBase):
    """
    Tracks objects across frames using IoU-based matching.

    This tracker is responsible for:
    - Matching detections to open targets using IoU
    - Maintaining trajectory history for each target
    - Closing stale targets
    """

    def __init__(
        self,
        max_frames_since_seen: int = 10,
        iou_threshold: float = 0.3,
    ):
        """
        Initialize the tracker.

        Args:
            max_frames_since_seen: Maximum consecutive frames a target can be
                                   unmatched before it is closed
            iou_threshold: Minimum IoU value to match a detection to a target
        """
        super().__init__()
        self.max_frames_since_seen = max_frames_since_seen
        self.iou_threshold = iou_threshold

        self.open_targets: Dict[int, TrackTarget] = {}
        self.next_target_id = 0
        self.image_size: Optional[Tuple[int, int]] = None
        self._last_frame_index: Optional[int] = None

        logging.info("IoU tracker initialized")

    @classmethod
    def from_config(cls, cfg: TrackingConfig) -> "IoUTracker":
        return cls(
            max_frames_since_seen=int(cfg.max_frames_since_seen),
            iou_threshold=float(cfg.iou_threshold),
        )

    def begin_track(self, frame: np.ndarray, detections: Sequence[Detection], frame_index: int) -> None:
        """Reset per-sequence state, then treat frame as the first update."""
        h, w = frame.shape[:2]
        self.image_size = (w, h)
        self.open_targets = {}
        self.next_target_id = 0
        logging.info(f"Tracking started: image_size={w}x{h}")
        self.track(frame, detections, frame_index)

    def track(self, frame: np.ndarray, detections: Sequence[Detection], frame_index: int) -> None:
        """
        Update targets with the detections of one frame.

        Args:
            frame: Pixel buffer (unused by IoU matching)
            detections: Detections observed in this frame
            frame_index: Index of this frame in the sequence
        """
        self._last_frame_index = frame_index

        matched = self._associate(detections, frame_index)
        self._create_targets(detections, matched, frame_index)
        self._close_stale_targets(frame_index)

    def finish_track(self) -> None:
        """Close every open target in id order."""
        frame_index = self._last_frame_index if self._last_frame_index is not None else 0
        for target_id in sorted(self.open_targets):
            target = self.open_targets.pop(target_id)
            target.close(frame_index)
            self._emit(TargetClosed(target=target, frame_index=frame_index))
        logging.info("Tracking finished")

    def get_all_open_targets(self) -> Mapping[int, TrackTarget]:
        return MappingProxyType(self.open_targets)

    def _associate(self, detections: Sequence[Detection], frame_index: int) -> Set[int]:
        """Match detections to open targets; return indices of matched detections."""
        matched: Set[int] = set()

        for target_id in sorted(self.open_targets):
            target = self.open_targets[target_id]

            best_iou = 0.0
            best_idx = None
            for idx, detection in enumerate(detections):
                if idx in matched:
                    continue
                iou = target.bbox.iou(detection.bbox)
                if iou > best_iou and iou >= self.iou_threshold:
                    best_iou = iou
                    best_idx = idx

            if best_idx is None:
                target.mark_missed()
                continue

            detection = detections[best_idx]
            target.update(detection.bbox, frame_index)
            matched.add(best_idx)
            self._emit(TargetAssociated(detection=detection, target=target, frame_index=frame_index))

        return matched

    def _create_targets(self, detections: Sequence[Detection], matched: Set[int], frame_index: int) -> None:
        """Start a target for every detection no open target claimed."""
        for idx, detection in enumerate(detections):
            if idx in matched:
                continue

            target = TrackTarget(
                target_id=self.next_target_id,
                bbox=detection.bbox,
                first_frame=frame_index,
                last_frame=frame_index,
            )
            self.open_targets[target.target_id] = target
            self.next_target_id += 1
            self._emit(TargetCreated(detection=detection, target=target, frame_index=frame_index))

    def _close_stale_targets(self, frame_index: int) -> None:
        """Close targets that haven't been seen for too long."""
        stale: List[int] = [
            target_id
            for target_id in sorted(self.open_targets)
            if self.open_targets[target_id].frames_since_seen > self.max_frames_since_seen
        ]

        for target_id in stale:
            target = self.open_targets.pop(target_id)
            target.close(frame_index)
            self._emit(TargetClosed(target=target, frame_index=frame_index))
