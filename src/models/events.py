"""
Tracking lifecycle events emitted by trackers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from .detection import Detection
from .track import TrackTarget


class EventHandlerResult(IntEnum):
    """
    Status returned by event handlers to the tracker that notified them.

    NONE means the event was handled and no special action is requested.
    PREVENT_DEFAULT is reserved for handlers that want to suppress the
    tracker's default behavior; trackers in this project ignore it.
    """
    NONE = 0
    PREVENT_DEFAULT = 1


@dataclass(frozen=True)
class TargetCreated:
    """
    A new target was instantiated from a detection.

    Attributes:
        detection: The unmatched detection that started the target.
        target: The new target.
        frame_index: Frame the event was emitted in.
    """
    detection: Detection
    target: TrackTarget
    frame_index: int = 0


@dataclass(frozen=True)
class TargetAssociated:
    """
    An existing target was matched to a detection in the current frame.

    Attributes:
        detection: The matched detection.
        target: The target it was associated with.
        frame_index: Frame the event was emitted in.
    """
    detection: Detection
    target: TrackTarget
    frame_index: int = 0


@dataclass(frozen=True)
class TargetClosed:
    """
    A target was closed and will no longer appear among open targets.

    Attributes:
        target: The closed target.
        frame_index: Frame the event was emitted in.
    """
    target: TrackTarget
    frame_index: int = 0


TrackingEvent = Union[TargetCreated, TargetAssociated, TargetClosed]
