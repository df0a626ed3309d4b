"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class SourceConfig:
    """Video source configuration."""
    device_id: Union[int, str] = "data/video.mp4"
    source_id: str = "main-video"
    resolution: Optional[List[int]] = None
    fps: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", "data/video.mp4"),
            source_id=d.get("source_id", "main-video"),
            resolution=d.get("resolution"),
            fps=d.get("fps"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "device_id": self.device_id,
            "source_id": self.source_id,
        }
        if self.resolution is not None:
            d["resolution"] = self.resolution
        if self.fps is not None:
            d["fps"] = self.fps
        return d


@dataclass
class YoloConfig:
    """YOLO detector configuration."""
    model: str = ""
    conf_threshold: float = 0.35
    iou_threshold: float = 0.7
    classes: Optional[List[int]] = field(default_factory=lambda: [0])
    class_name_overrides: Optional[Dict[int, str]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "YoloConfig":
        return cls(
            model=d.get("model", ""),
            conf_threshold=d.get("conf_threshold", 0.35),
            iou_threshold=d.get("iou_threshold", 0.7),
            classes=d.get("classes", [0]),
            class_name_overrides=d.get("class_name_overrides"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        if self.class_name_overrides is not None:
            d["class_name_overrides"] = self.class_name_overrides
        return d


@dataclass
class DetectionConfig:
    """Detection configuration."""
    backend: str = "bgsub"
    min_contour_area: int = 1000
    detect_shadows: bool = True
    yolo: Optional[YoloConfig] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        yolo_dict = d.get("yolo")
        yolo = YoloConfig.from_dict(yolo_dict) if yolo_dict else None
        return cls(
            backend=d.get("backend", "bgsub"),
            min_contour_area=d.get("min_contour_area", 1000),
            detect_shadows=d.get("detect_shadows", True),
            yolo=yolo,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "backend": self.backend,
            "min_contour_area": self.min_contour_area,
            "detect_shadows": self.detect_shadows,
        }
        if self.yolo:
            d["yolo"] = self.yolo.to_dict()
        return d


@dataclass
class TrackingConfig:
    """Tracking configuration for the reference IoU tracker."""
    max_frames_since_seen: int = 10
    iou_threshold: float = 0.3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            max_frames_since_seen=d.get("max_frames_since_seen", 10),
            iou_threshold=d.get("iou_threshold", 0.3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_frames_since_seen": self.max_frames_since_seen,
            "iou_threshold": self.iou_threshold,
        }


@dataclass
class OutputConfig:
    """Sink toggles and output location."""
    visualize: bool = False
    save_output: bool = True
    output_dir: str = "output/track_objects_in_video"
    hold_window_on_finish: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OutputConfig":
        return cls(
            visualize=d.get("visualize", False),
            save_output=d.get("save_output", True),
            output_dir=d.get("output_dir", "output/track_objects_in_video"),
            hold_window_on_finish=d.get("hold_window_on_finish", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "visualize": self.visualize,
            "save_output": self.save_output,
            "output_dir": self.output_dir,
            "hold_window_on_finish": self.hold_window_on_finish,
        }


@dataclass
class RunConfig:
    """Run-length bound and stats cadence."""
    max_frames: Optional[int] = 3000
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RunConfig":
        return cls(
            max_frames=d.get("max_frames", 3000),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_frames": self.max_frames,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    run: RunConfig = field(default_factory=RunConfig)
    log_path: str = "logs/frame_tracker.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking", {}) or {}),
            output=OutputConfig.from_dict(d.get("output", {}) or {}),
            run=RunConfig.from_dict(d.get("run", {}) or {}),
            log_path=d.get("log_path", "logs/frame_tracker.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "source": self.source.to_dict(),
            "detection": self.detection.to_dict(),
            "tracking": self.tracking.to_dict(),
            "output": self.output.to_dict(),
            "run": self.run.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
