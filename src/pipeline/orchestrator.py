"""
Frame orchestrator.

Drives the begin/update/finish protocol of a tracker one frame at a time and
turns each tracker call into a FrameResult: the frame's detections, the
events the tracker emitted during that call, and the open targets afterwards.

    NOT_STARTED --step(frame_0, dets, 0)--> RUNNING
    RUNNING --step(frame_i, dets, i), i = previous + 1--> RUNNING
    RUNNING --finish()--> FINISHED

Any other call raises InvalidStateError and leaves the state unchanged.
Nothing is retried: a stateful tracker cannot replay a frame without
corrupting target continuity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

import numpy as np

from models.detection import Detection
from models.track import TrackTarget
from tracking.base import TrackerBase
from tracking.events import EventCollector, FrameEvents

from .errors import InvalidStateError


class OrchestratorState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True)
class FrameResult:
    """
    Output of one orchestrated frame.

    Attributes:
        frame_index: Index of the processed frame.
        detections: Detections passed to the tracker.
        events: Events the tracker emitted while processing this frame.
        open_targets: Read-only view of the tracker's open targets, valid
            until the next step()/finish() call.
    """
    frame_index: int
    detections: Sequence[Detection]
    events: FrameEvents
    open_targets: Mapping[int, TrackTarget] = field(default_factory=dict)


@dataclass(frozen=True)
class FinishResult:
    """
    Output of finish().

    Attributes:
        last_frame_index: Index of the last processed frame.
        final_targets: Targets that were open after the last step, keyed by
            id. This is the last read of their state before teardown.
        events: Events emitted while the tracker flushed (closures).
    """
    last_frame_index: int
    final_targets: Mapping[int, TrackTarget]
    events: FrameEvents


class FrameOrchestrator:
    """
    Per-frame control of a tracker plus event collection.

    The orchestrator owns an EventCollector, registers it on the tracker at
    construction and resets it before every tracker call, so events seen in
    a FrameResult always come from that frame alone.

    Example:
        orchestrator = FrameOrchestrator(IoUTracker())
        for i, frame in enumerate(frames):
            result = orchestrator.step(frame, detector.detect(frame, i), i)
            draw(result.open_targets)
        orchestrator.finish()
    """

    def __init__(self, tracker: TrackerBase, collector: Optional[EventCollector] = None):
        self._tracker = tracker
        self._collector = collector if collector is not None else EventCollector()
        self._state = OrchestratorState.NOT_STARTED
        self._last_frame_index: Optional[int] = None
        self._frames_processed = 0
        self._tracker.add_event_handler(self._collector)

    @property
    def tracker(self) -> TrackerBase:
        return self._tracker

    @property
    def collector(self) -> EventCollector:
        return self._collector

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def last_frame_index(self) -> Optional[int]:
        return self._last_frame_index

    @property
    def frames_processed(self) -> int:
        return self._frames_processed

    def step(self, frame: np.ndarray, detections: Sequence[Detection], frame_index: int) -> FrameResult:
        """
        Run the tracker on one frame.

        Frame 0 begins tracking; every later frame must follow the previous
        one by exactly 1.

        Raises:
            InvalidStateError: On a protocol violation (nothing is called).
            Exception: Whatever the tracker raises, unchanged.
        """
        self._check_step(frame_index)
        detections = list(detections)

        self._collector.reset(frame_index)
        if self._state is OrchestratorState.NOT_STARTED:
            self._tracker.begin_track(frame, detections, frame_index)
            self._state = OrchestratorState.RUNNING
        else:
            self._tracker.track(frame, detections, frame_index)

        self._last_frame_index = frame_index
        self._frames_processed += 1

        events = self._collector.snapshot(frame_index)
        open_targets = self._open_targets_view()

        logging.debug(
            f"[TRACK] frame={frame_index} created={len(events.created)} "
            f"associated={len(events.associated)} closed={events.closed_ids} "
            f"open={sorted(open_targets)}"
        )

        return FrameResult(
            frame_index=frame_index,
            detections=tuple(detections),
            events=events,
            open_targets=open_targets,
        )

    def finish(self) -> FinishResult:
        """
        Finish tracking after the last frame.

        The open targets are captured before the tracker flushes, so their
        last known state is available in FinishResult.final_targets.

        Raises:
            InvalidStateError: If tracking never began or already finished.
        """
        if self._state is not OrchestratorState.RUNNING:
            raise InvalidStateError(
                f"finish() requires a running sequence (state={self._state.value})",
                call="finish",
                state=self._state.value,
            )

        final_targets = MappingProxyType(dict(self._tracker.get_all_open_targets()))

        self._collector.reset(None)
        self._tracker.finish_track()
        self._state = OrchestratorState.FINISHED

        events = self._collector.snapshot(None)
        logging.info(
            f"Tracking finished after frame {self._last_frame_index}: "
            f"{len(final_targets)} targets flushed, {len(events.closed)} closed"
        )

        return FinishResult(
            last_frame_index=self._last_frame_index,
            final_targets=final_targets,
            events=events,
        )

    def open_targets(self) -> Mapping[int, TrackTarget]:
        """Current open targets (read-only)."""
        return self._open_targets_view()

    def _open_targets_view(self) -> Mapping[int, TrackTarget]:
        return MappingProxyType(dict(self._tracker.get_all_open_targets()))

    def _check_step(self, frame_index: int) -> None:
        state = self._state
        if state is OrchestratorState.FINISHED:
            raise InvalidStateError(
                "step() called after finish()", call="step", frame_index=frame_index, state=state.value
            )
        if state is OrchestratorState.NOT_STARTED:
            if frame_index != 0:
                raise InvalidStateError(
                    "first step() must use frame index 0", call="step", frame_index=frame_index, state=state.value
                )
            return
        if frame_index == 0:
            raise InvalidStateError(
                "tracking already began; frame index 0 may only be used once",
                call="step",
                frame_index=frame_index,
                state=state.value,
            )
        expected = self._last_frame_index + 1
        if frame_index != expected:
            raise InvalidStateError(
                f"expected frame index {expected}", call="step", frame_index=frame_index, state=state.value
            )
