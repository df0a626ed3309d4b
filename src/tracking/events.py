"""
Tracking event handlers.

A tracker notifies every registered handler synchronously, once per
lifecycle decision, while its begin/track/finish call is running. The
EventCollector records those notifications so the caller can inspect a
consistent per-frame picture after the call returns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from models.detection import Detection
from models.errors import StaleEventError
from models.events import (
    EventHandlerResult,
    TargetAssociated,
    TargetClosed,
    TargetCreated,
    TrackingEvent,
)
from models.track import TrackTarget


class TrackingEventHandler:
    """
    Listener interface for tracker lifecycle events.

    Subclasses override the on_* entry points they care about. Each entry
    point returns an EventHandlerResult; NONE unless the handler wants the
    tracker to act differently.
    """

    def notify(self, event: TrackingEvent, sender: Any = None) -> EventHandlerResult:
        """Dispatch an event to the matching entry point."""
        if isinstance(event, TargetCreated):
            return self.on_target_created(event, sender)
        if isinstance(event, TargetAssociated):
            return self.on_target_associated(event, sender)
        if isinstance(event, TargetClosed):
            return self.on_target_closed(event, sender)
        logging.warning(f"Ignoring unknown tracking event type: {type(event).__name__}")
        return EventHandlerResult.NONE

    def on_target_created(self, event: TargetCreated, sender: Any = None) -> EventHandlerResult:
        return EventHandlerResult.NONE

    def on_target_associated(self, event: TargetAssociated, sender: Any = None) -> EventHandlerResult:
        return EventHandlerResult.NONE

    def on_target_closed(self, event: TargetClosed, sender: Any = None) -> EventHandlerResult:
        return EventHandlerResult.NONE


@dataclass(frozen=True)
class FrameEvents:
    """
    Immutable copy of the events recorded during one tracker call.

    Attributes:
        frame_index: Frame the events belong to (None for finish).
        created: Detection -> target for targets created from a detection.
        associated: Detection -> target for existing targets matched.
        closed: Closed targets in emission order.
    """
    frame_index: Optional[int] = None
    created: Mapping[Detection, TrackTarget] = field(default_factory=dict)
    associated: Mapping[Detection, TrackTarget] = field(default_factory=dict)
    closed: Tuple[TrackTarget, ...] = ()

    @property
    def closed_ids(self) -> List[int]:
        return [t.target_id for t in self.closed]

    @property
    def is_empty(self) -> bool:
        return not self.created and not self.associated and not self.closed


class EventCollector(TrackingEventHandler):
    """
    Per-frame aggregator of tracking events.

    Holds two Detection -> TrackTarget maps (created, associated) and the
    closed targets in emission order. reset() must run before every tracker
    call; the FrameOrchestrator does this itself so callers cannot forget.

    Example:
        collector = EventCollector()
        tracker.add_event_handler(collector)

        collector.reset(frame_index)
        tracker.track(frame, detections, frame_index)
        events = collector.snapshot(frame_index)
    """

    def __init__(self):
        self._created: Dict[Detection, TrackTarget] = {}
        self._associated: Dict[Detection, TrackTarget] = {}
        self._closed: List[TrackTarget] = []
        self._frame_index: Optional[int] = None

    @property
    def frame_index(self) -> Optional[int]:
        """Frame the collector is currently recording for."""
        return self._frame_index

    @property
    def created(self) -> Mapping[Detection, TrackTarget]:
        return MappingProxyType(self._created)

    @property
    def associated(self) -> Mapping[Detection, TrackTarget]:
        return MappingProxyType(self._associated)

    @property
    def closed(self) -> Tuple[TrackTarget, ...]:
        return tuple(self._closed)

    def reset(self, frame_index: Optional[int] = None) -> None:
        """Clear all recorded events and start recording for frame_index."""
        self._created.clear()
        self._associated.clear()
        self._closed.clear()
        self._frame_index = frame_index

    def snapshot(self, frame_index: Optional[int]) -> FrameEvents:
        """
        Copy the recorded events for frame_index.

        Raises:
            StaleEventError: If the collector was last reset for another frame.
        """
        if frame_index != self._frame_index:
            raise StaleEventError(frame_index, self._frame_index)
        return FrameEvents(
            frame_index=frame_index,
            created=MappingProxyType(dict(self._created)),
            associated=MappingProxyType(dict(self._associated)),
            closed=tuple(self._closed),
        )

    def on_target_created(self, event: TargetCreated, sender: Any = None) -> EventHandlerResult:
        if event.detection in self._associated:
            logging.warning(
                f"Detection {event.detection.detection_id} both associated and created "
                f"in frame {event.frame_index}"
            )
        self._created[event.detection] = event.target
        logging.info(
            f"Target created: det={event.detection.detection_id}, target={event.target.target_id}"
        )
        return EventHandlerResult.NONE

    def on_target_associated(self, event: TargetAssociated, sender: Any = None) -> EventHandlerResult:
        if event.detection in self._created:
            logging.warning(
                f"Detection {event.detection.detection_id} both created and associated "
                f"in frame {event.frame_index}"
            )
        self._associated[event.detection] = event.target
        logging.info(
            f"Target association: det={event.detection.detection_id}, target={event.target.target_id}"
        )
        return EventHandlerResult.NONE

    def on_target_closed(self, event: TargetClosed, sender: Any = None) -> EventHandlerResult:
        self._closed.append(event.target)
        logging.info(f"Target closed: target={event.target.target_id}")
        return EventHandlerResult.NONE
