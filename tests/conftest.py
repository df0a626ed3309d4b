"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import Detection  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
source:
  device_id: "data/video.mp4"
  source_id: "main-video"

detection:
  backend: "bgsub"
  min_contour_area: 1000
  detect_shadows: true

tracking:
  max_frames_since_seen: 10
  iou_threshold: 0.3

output:
  visualize: false
  save_output: true
  output_dir: "output/test"

run:
  max_frames: 3000

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "device_id": "data/video.mp4",
            "source_id": "main-video",
        },
        "detection": {
            "backend": "bgsub",
            "min_contour_area": 1000,
            "detect_shadows": True,
        },
        "tracking": {
            "max_frames_since_seen": 10,
            "iou_threshold": 0.3,
        },
        "output": {
            "visualize": False,
            "save_output": True,
            "output_dir": "output/test",
        },
        "run": {
            "max_frames": 100,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def blank_frame():
    """A black 640x480 BGR frame."""
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture
def make_detection():
    """Factory for detections at (x, y, w, h) in a given frame."""
    def _make(x, y, w=50, h=100, frame_index=0, detection_id=0, confidence=0.9):
        return Detection.from_xywh(
            x, y, w, h,
            confidence=confidence,
            frame_index=frame_index,
            detection_id=detection_id,
        )
    return _make
