"""
Typed models for the frame tracker.

Detections come from detectors, targets are owned by trackers, and events
describe what a tracker decided during one frame.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox
from .track import TrackTarget
from .errors import PipelineError, StaleEventError
from .events import (
    EventHandlerResult,
    TargetAssociated,
    TargetClosed,
    TargetCreated,
    TrackingEvent,
)
from .config import (
    Config,
    SourceConfig,
    DetectionConfig,
    YoloConfig,
    TrackingConfig,
    OutputConfig,
    RunConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    # Tracking
    "TrackTarget",
    # Errors
    "PipelineError",
    "StaleEventError",
    # Events
    "EventHandlerResult",
    "TargetCreated",
    "TargetAssociated",
    "TargetClosed",
    "TrackingEvent",
    # Config
    "Config",
    "SourceConfig",
    "DetectionConfig",
    "YoloConfig",
    "TrackingConfig",
    "OutputConfig",
    "RunConfig",
]
