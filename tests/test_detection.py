"""
Tests for detector backends and the detector factory.
"""

import sys
import types

import numpy as np
import pytest

from detection import BgSubDetector, Detector, create_detector
from models.config import YoloConfig


def _scene(box=None, shape=(240, 320)):
    frame = np.zeros((shape[0], shape[1], 3), dtype=np.uint8)
    if box is not None:
        x1, y1, x2, y2 = box
        frame[y1:y2, x1:x2] = 255
    return frame


class TestBgSubDetector:
    def test_static_scene_has_no_detections(self):
        """An empty scene produces no detections once the background settles."""
        detector = BgSubDetector()
        results = [detector.detect(_scene(), i) for i in range(20)]

        assert results[-1] == []

    def test_moving_object_detected(self):
        """A bright block on a learned background becomes one detection."""
        detector = BgSubDetector(min_contour_area=500)
        for i in range(30):
            detector.detect(_scene(), i)

        detections = detector.detect(_scene(box=(100, 80, 160, 160)), 30)

        assert len(detections) == 1
        det = detections[0]
        assert det.frame_index == 30
        assert det.detection_id == 0
        assert det.x1 == pytest.approx(100, abs=5)
        assert det.y2 == pytest.approx(160, abs=5)

    def test_small_blobs_filtered(self):
        """Blobs under min_contour_area are dropped."""
        detector = BgSubDetector(min_contour_area=1000)
        for i in range(30):
            detector.detect(_scene(), i)

        assert detector.detect(_scene(box=(100, 100, 115, 115)), 30) == []


class TestDetectorBase:
    def test_detect_not_implemented(self):
        """The base detector has no backend."""
        with pytest.raises(NotImplementedError):
            Detector().detect(_scene())


class TestCreateDetector:
    def test_bgsub_backend(self):
        """The bgsub backend receives its settings."""
        detector = create_detector({"backend": "bgsub", "min_contour_area": 400})

        assert isinstance(detector, BgSubDetector)
        assert detector.min_contour_area == 400

    def test_default_backend(self):
        """An empty section selects background subtraction."""
        assert isinstance(create_detector({}), BgSubDetector)

    def test_unknown_backend(self):
        """Unknown backend names are rejected."""
        with pytest.raises(ValueError, match="Unknown detection backend"):
            create_detector({"backend": "hog"})

    def test_yolo_requires_section(self):
        """The yolo backend needs its own section."""
        with pytest.raises(ValueError, match="detection.yolo"):
            create_detector({"backend": "yolo"})

    def test_yolo_missing_model_file(self, tmp_path):
        """A missing weights file fails at construction."""
        with pytest.raises(FileNotFoundError):
            create_detector({"backend": "yolo", "yolo": {"model": str(tmp_path / "none.pt")}})


class _FakeBoxes:
    def __init__(self):
        self.xyxy = np.array([[10.0, 20.0, 60.0, 120.0], [200.0, 40.0, 240.0, 140.0]])
        self.conf = np.array([0.9, 0.4])
        self.cls = np.array([0.0, 0.0])


class _FakeResult:
    names = {0: "person"}
    boxes = _FakeBoxes()


class _FakeYOLO:
    last_kwargs = None

    def __init__(self, path):
        self.path = path

    def predict(self, **kwargs):
        _FakeYOLO.last_kwargs = kwargs
        return [_FakeResult()]


class TestUltralyticsDetector:
    @pytest.fixture
    def model_file(self, tmp_path, monkeypatch):
        fake = types.ModuleType("ultralytics")
        fake.YOLO = _FakeYOLO
        monkeypatch.setitem(sys.modules, "ultralytics", fake)
        path = tmp_path / "person.pt"
        path.write_bytes(b"weights")
        return str(path)

    def test_detect_converts_boxes(self, model_file):
        """YOLO boxes become Detections with ids in result order."""
        from detection.yolo import UltralyticsDetector

        detector = UltralyticsDetector(YoloConfig(model=model_file))
        detections = detector.detect(_scene(), frame_index=7)

        assert [d.detection_id for d in detections] == [0, 1]
        assert detections[0].bbox.as_tuple() == (10.0, 20.0, 60.0, 120.0)
        assert detections[0].class_name == "person"
        assert detections[1].confidence == pytest.approx(0.4)
        assert all(d.frame_index == 7 for d in detections)

    def test_predict_uses_configured_thresholds(self, model_file):
        """Confidence, IoU and class filters reach predict()."""
        from detection.yolo import UltralyticsDetector

        UltralyticsDetector(YoloConfig(model=model_file)).detect(_scene())

        assert _FakeYOLO.last_kwargs["conf"] == 0.35
        assert _FakeYOLO.last_kwargs["iou"] == 0.7
        assert _FakeYOLO.last_kwargs["classes"] == [0]

    def test_class_name_override(self, model_file):
        """Configured class names replace the model's names."""
        from detection.yolo import UltralyticsDetector

        cfg = YoloConfig(model=model_file, class_name_overrides={0: "pedestrian"})
        detections = UltralyticsDetector(cfg).detect(_scene())

        assert detections[0].class_name == "pedestrian"
