"""
Tracking module.

Defines the tracker contract, the event handler interface with its
per-frame EventCollector, and a reference IoU tracker.
"""

from .events import EventCollector, FrameEvents, StaleEventError, TrackingEventHandler
from .base import TrackerBase
from .iou_tracker import IoUTracker

__all__ = [
    "EventCollector",
    "FrameEvents",
    "StaleEventError",
    "TrackingEventHandler",
    "TrackerBase",
    "IoUTracker",
]
