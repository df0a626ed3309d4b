"""
Tracker interface.

Any tracking engine plugged into the FrameOrchestrator implements this
contract:

- begin_track() starts a sequence on frame 0 and sets up per-sequence state
  (e.g. image-size dependent motion models).
- track() processes every following frame.
- finish_track() closes whatever is still open.
- During each of those calls the tracker notifies every registered handler
  synchronously, once per creation, association and closure decision.
- get_all_open_targets() returns the open targets as of the most recent
  call; closed targets never appear in it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Mapping, Sequence

import numpy as np

from models.detection import Detection
from models.events import EventHandlerResult, TrackingEvent
from models.track import TrackTarget

from .events import TrackingEventHandler


class TrackerBase(ABC):
    """Base class for trackers that report lifecycle events to handlers."""

    def __init__(self):
        self._event_handlers: List[TrackingEventHandler] = []

    @property
    def event_handlers(self) -> List[TrackingEventHandler]:
        return list(self._event_handlers)

    def add_event_handler(self, handler: TrackingEventHandler) -> None:
        """Register a handler. Registering the same handler twice is a no-op."""
        if handler not in self._event_handlers:
            self._event_handlers.append(handler)

    def remove_event_handler(self, handler: TrackingEventHandler) -> None:
        if handler in self._event_handlers:
            self._event_handlers.remove(handler)

    def _emit(self, event: TrackingEvent) -> List[EventHandlerResult]:
        """Notify every handler, in registration order, before returning."""
        return [handler.notify(event, sender=self) for handler in self._event_handlers]

    @abstractmethod
    def begin_track(self, frame: np.ndarray, detections: Sequence[Detection], frame_index: int) -> None:
        """Start a new sequence with its first frame."""

    @abstractmethod
    def track(self, frame: np.ndarray, detections: Sequence[Detection], frame_index: int) -> None:
        """Process the next frame of the sequence."""

    @abstractmethod
    def finish_track(self) -> None:
        """Close all remaining open targets and flush pending state."""

    @abstractmethod
    def get_all_open_targets(self) -> Mapping[int, TrackTarget]:
        """Open targets keyed by target id."""
