"""
YOLO detector (Ultralytics).

Requires the optional `yolo` extra. Defaults follow the person detector the
pipeline was tuned with: confidence 0.35, NMS IoU 0.7, COCO class 0.
"""

from __future__ import annotations

import logging
import os
from typing import List

import numpy as np

from models.config import YoloConfig
from models.detection import BoundingBox, Detection

from .base import Detector


class UltralyticsDetector(Detector):
    def __init__(self, cfg: YoloConfig):
        self.cfg = cfg
        if not cfg.model or not os.path.exists(cfg.model):
            logging.error(f"Model file not found: {cfg.model}")
            raise FileNotFoundError(f"Model file not found: {cfg.model}")

        try:
            from ultralytics import YOLO  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install frame-tracker[yolo]` "
                "or switch detection.backend to 'bgsub'."
            ) from e

        logging.info(f"Loading model from file: {cfg.model}")
        self._model = YOLO(cfg.model)
        logging.info("Model loaded.")

    def detect(self, frame: np.ndarray, frame_index: int = 0) -> List[Detection]:
        results = self._model.predict(
            source=frame,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            classes=list(self.cfg.classes) if self.cfg.classes is not None else None,
            verbose=False,
        )
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxy = boxes.xyxy.cpu().numpy() if hasattr(boxes.xyxy, "cpu") else np.asarray(boxes.xyxy)
        conf = boxes.conf.cpu().numpy() if hasattr(boxes.conf, "cpu") else np.asarray(boxes.conf)
        cls = boxes.cls.cpu().numpy() if hasattr(boxes.cls, "cpu") else np.asarray(boxes.cls)

        out: List[Detection] = []
        for (x1, y1, x2, y2), c, k in zip(xyxy, conf, cls):
            class_id = int(k)
            class_name = (
                (self.cfg.class_name_overrides or {}).get(class_id)
                or names.get(class_id)
                or str(class_id)
            )
            out.append(
                Detection(
                    bbox=BoundingBox(x1=float(x1), y1=float(y1), x2=float(x2), y2=float(y2)),
                    confidence=float(c),
                    frame_index=frame_index,
                    detection_id=len(out),
                    class_id=class_id,
                    class_name=class_name,
                )
            )

        return out
