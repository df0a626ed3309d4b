"""
Tests for the FrameOrchestrator begin/update/finish protocol.
"""

import numpy as np
import pytest

from models.events import TargetAssociated, TargetClosed, TargetCreated
from models.track import TrackTarget
from pipeline.errors import InvalidStateError
from pipeline.orchestrator import FrameOrchestrator, OrchestratorState
from tracking.base import TrackerBase
from tracking.events import EventCollector
from tracking.iou_tracker import IoUTracker


class ScriptedTracker(TrackerBase):
    """
    Tracker whose decisions are scripted per frame.

    script maps frame_index to a list of actions:
        ("create", det_idx, target_id)
        ("associate", det_idx, target_id)
        ("close", target_id)
    """

    def __init__(self, script=None, fail_on=None):
        super().__init__()
        self.script = script or {}
        self.fail_on = fail_on
        self.open = {}
        self.calls = []
        self._last_frame_index = None

    def begin_track(self, frame, detections, frame_index):
        self.calls.append(("begin", frame_index))
        self._run(detections, frame_index)

    def track(self, frame, detections, frame_index):
        self.calls.append(("track", frame_index))
        self._run(detections, frame_index)

    def finish_track(self):
        self.calls.append(("finish", None))
        for target_id in sorted(self.open):
            target = self.open.pop(target_id)
            target.close(self._last_frame_index)
            self._emit(TargetClosed(target, self._last_frame_index))

    def get_all_open_targets(self):
        return self.open

    def _run(self, detections, frame_index):
        if self.fail_on == frame_index:
            raise ValueError(f"malformed frame {frame_index}")
        self._last_frame_index = frame_index
        for action in self.script.get(frame_index, []):
            kind = action[0]
            if kind == "create":
                det = detections[action[1]]
                target = TrackTarget(action[2], det.bbox, first_frame=frame_index, last_frame=frame_index)
                self.open[target.target_id] = target
                self._emit(TargetCreated(det, target, frame_index))
            elif kind == "associate":
                det = detections[action[1]]
                target = self.open[action[2]]
                target.update(det.bbox, frame_index)
                self._emit(TargetAssociated(det, target, frame_index))
            elif kind == "close":
                target = self.open.pop(action[1])
                target.close(frame_index)
                self._emit(TargetClosed(target, frame_index))


@pytest.fixture
def frame():
    return np.zeros((240, 320, 3), dtype=np.uint8)


def _dets(make_detection, frame_index, *xs):
    return [make_detection(x, 20, frame_index=frame_index, detection_id=i) for i, x in enumerate(xs)]


class TestLifecycle:
    def test_initial_state(self):
        """A new orchestrator has not seen any frame."""
        orchestrator = FrameOrchestrator(ScriptedTracker())
        assert orchestrator.state is OrchestratorState.NOT_STARTED
        assert orchestrator.last_frame_index is None
        assert orchestrator.frames_processed == 0

    def test_collector_registered_on_construction(self):
        """The orchestrator subscribes its collector to the tracker."""
        tracker = ScriptedTracker()
        orchestrator = FrameOrchestrator(tracker)
        assert tracker.event_handlers == [orchestrator.collector]

    def test_external_collector_is_used(self):
        """A supplied collector replaces the default one."""
        collector = EventCollector()
        tracker = ScriptedTracker()
        orchestrator = FrameOrchestrator(tracker, collector=collector)
        assert orchestrator.collector is collector
        assert tracker.event_handlers == [collector]

    def test_first_step_begins_then_tracks(self, frame):
        """Frame 0 begins the sequence and later frames track."""
        tracker = ScriptedTracker()
        orchestrator = FrameOrchestrator(tracker)

        orchestrator.step(frame, [], 0)
        orchestrator.step(frame, [], 1)
        orchestrator.step(frame, [], 2)
        orchestrator.finish()

        assert tracker.calls == [("begin", 0), ("track", 1), ("track", 2), ("finish", None)]
        assert orchestrator.state is OrchestratorState.FINISHED
        assert orchestrator.frames_processed == 3


class TestInvalidState:
    def test_step_before_begin_raises(self, frame):
        """A first frame other than 0 is rejected before the tracker runs."""
        tracker = ScriptedTracker()
        orchestrator = FrameOrchestrator(tracker)

        with pytest.raises(InvalidStateError) as exc_info:
            orchestrator.step(frame, [], 1)

        assert exc_info.value.call == "step"
        assert exc_info.value.frame_index == 1
        assert "frame_index=1" in str(exc_info.value)
        assert tracker.calls == []
        assert orchestrator.state is OrchestratorState.NOT_STARTED

    def test_second_frame_zero_raises(self, frame):
        """Frame 0 cannot be stepped twice."""
        orchestrator = FrameOrchestrator(ScriptedTracker())
        orchestrator.step(frame, [], 0)

        with pytest.raises(InvalidStateError, match="frame index 0"):
            orchestrator.step(frame, [], 0)

    def test_gap_raises(self, frame):
        """Skipping a frame index is rejected."""
        orchestrator = FrameOrchestrator(ScriptedTracker())
        orchestrator.step(frame, [], 0)
        orchestrator.step(frame, [], 1)

        with pytest.raises(InvalidStateError, match="expected frame index 2"):
            orchestrator.step(frame, [], 3)

    def test_repeat_raises(self, frame):
        """A repeated index is rejected and the sequence can continue."""
        orchestrator = FrameOrchestrator(ScriptedTracker())
        orchestrator.step(frame, [], 0)
        orchestrator.step(frame, [], 1)

        with pytest.raises(InvalidStateError):
            orchestrator.step(frame, [], 1)

        # State is untouched; the sequence can continue
        orchestrator.step(frame, [], 2)
        assert orchestrator.last_frame_index == 2

    def test_step_after_finish_raises(self, frame):
        """No frames are accepted after finish()."""
        orchestrator = FrameOrchestrator(ScriptedTracker())
        orchestrator.step(frame, [], 0)
        orchestrator.finish()

        with pytest.raises(InvalidStateError, match="after finish"):
            orchestrator.step(frame, [], 1)

    def test_finish_twice_raises(self, frame):
        """finish() may only be called once."""
        orchestrator = FrameOrchestrator(ScriptedTracker())
        orchestrator.step(frame, [], 0)
        orchestrator.finish()

        with pytest.raises(InvalidStateError) as exc_info:
            orchestrator.finish()
        assert exc_info.value.call == "finish"
        assert exc_info.value.state == "finished"

    def test_finish_before_begin_raises(self):
        """finish() needs a started sequence."""
        tracker = ScriptedTracker()
        orchestrator = FrameOrchestrator(tracker)

        with pytest.raises(InvalidStateError):
            orchestrator.finish()
        assert tracker.calls == []


class TestScenarios:
    def test_scenario_sequence(self, frame, make_detection):
        """Create, associate, idle and close across four frames."""
        tracker = ScriptedTracker(script={
            0: [("create", 0, 1)],
            1: [("associate", 0, 1)],
            2: [],
            3: [("close", 1)],
        })
        orchestrator = FrameOrchestrator(tracker)

        # A: single detection creates a target
        dets0 = _dets(make_detection, 0, 10)
        r0 = orchestrator.step(frame, dets0, 0)
        assert len(r0.events.created) == 1
        assert r0.events.created[dets0[0]].target_id == 1
        assert len(r0.events.associated) == 0
        assert r0.events.closed == ()
        assert list(r0.open_targets) == [1]

        # B: re-detection associates with the same target; created is empty
        dets1 = _dets(make_detection, 1, 12)
        r1 = orchestrator.step(frame, dets1, 1)
        assert len(r1.events.associated) == 1
        assert r1.events.associated[dets1[0]].target_id == 1
        assert len(r1.events.created) == 0
        assert r1.events.closed == ()

        # C: no detections; the tracker closes the target when its policy says so
        r2 = orchestrator.step(frame, [], 2)
        assert r2.events.is_empty
        assert 1 in r2.open_targets

        r3 = orchestrator.step(frame, [], 3)
        assert r3.events.closed_ids == [1]
        assert 1 not in r3.open_targets
        assert 1 not in orchestrator.open_targets()

    def test_scenario_d_finish_keeps_final_snapshot(self, frame, make_detection):
        """finish() returns the targets open before the flush."""
        tracker = ScriptedTracker(script={0: [("create", 0, 7)]})
        orchestrator = FrameOrchestrator(tracker)
        dets = _dets(make_detection, 0, 30)
        orchestrator.step(frame, dets, 0)

        result = orchestrator.finish()

        assert list(result.final_targets) == [7]
        assert result.final_targets[7].bbox == dets[0].bbox
        assert result.events.closed_ids == [7]
        assert result.last_frame_index == 0
        assert len(tracker.get_all_open_targets()) == 0

    def test_finish_with_nothing_open(self, frame):
        """Finishing with no targets yields empty results."""
        orchestrator = FrameOrchestrator(ScriptedTracker())
        orchestrator.step(frame, [], 0)

        result = orchestrator.finish()

        assert dict(result.final_targets) == {}
        assert result.events.is_empty


class TestEventIsolation:
    def test_no_leakage_across_frames(self, frame, make_detection):
        """Each result only holds events from its own frame."""
        script = {i: [("create", 0, i)] for i in range(5)}
        script[2].append(("close", 0))
        orchestrator = FrameOrchestrator(ScriptedTracker(script=script))

        for i in range(5):
            dets = _dets(make_detection, i, 10 * i)
            result = orchestrator.step(frame, dets, i)
            assert list(result.events.created) == dets
            assert all(d.frame_index == i for d in result.events.created)
            assert result.events.frame_index == i
            if i == 2:
                assert result.events.closed_ids == [0]
            else:
                assert result.events.closed == ()

    def test_collector_is_reset_before_tracker_runs(self, frame, make_detection):
        """The tracker always sees an empty collector for the new frame."""
        seen = []

        class InspectingTracker(ScriptedTracker):
            def track(self, frame, detections, frame_index):
                handler = self.event_handlers[0]
                seen.append((handler.frame_index, len(handler.created), len(handler.closed)))
                super().track(frame, detections, frame_index)

        tracker = InspectingTracker(script={0: [("create", 0, 1)], 1: [("close", 1)]})
        orchestrator = FrameOrchestrator(tracker)
        orchestrator.step(frame, _dets(make_detection, 0, 10), 0)
        orchestrator.step(frame, [], 1)
        orchestrator.step(frame, [], 2)

        assert seen == [(1, 0, 0), (2, 0, 0)]

    def test_results_are_not_changed_by_later_frames(self, frame, make_detection):
        """Step results are snapshots, not live views."""
        orchestrator = FrameOrchestrator(ScriptedTracker(script={
            0: [("create", 0, 1)],
            1: [("close", 1)],
        }))
        r0 = orchestrator.step(frame, _dets(make_detection, 0, 10), 0)
        orchestrator.step(frame, [], 1)

        assert len(r0.events.created) == 1
        assert list(r0.open_targets) == [1]

    def test_detection_in_at_most_one_map(self, frame, make_detection):
        """No detection is both created and associated."""
        orchestrator = FrameOrchestrator(ScriptedTracker(script={
            0: [("create", 0, 1), ("create", 1, 2)],
            1: [("associate", 0, 1), ("create", 1, 3)],
        }))
        orchestrator.step(frame, _dets(make_detection, 0, 10, 200), 0)
        result = orchestrator.step(frame, _dets(make_detection, 1, 12, 100), 1)

        assert not set(result.events.created) & set(result.events.associated)
        assert len(result.events.created) + len(result.events.associated) == 2

    def test_open_targets_never_contain_closed(self, frame, make_detection):
        """Targets closed on a frame are gone from its open set."""
        orchestrator = FrameOrchestrator(ScriptedTracker(script={
            0: [("create", 0, 1), ("create", 1, 2)],
            1: [("close", 2), ("close", 1)],
        }))
        orchestrator.step(frame, _dets(make_detection, 0, 10, 200), 0)
        result = orchestrator.step(frame, [], 1)

        assert result.events.closed_ids == [2, 1]
        assert not set(result.events.closed_ids) & set(result.open_targets)

    def test_open_targets_view_is_read_only(self, frame, make_detection):
        """Result open targets reject writes."""
        orchestrator = FrameOrchestrator(ScriptedTracker(script={0: [("create", 0, 1)]}))
        result = orchestrator.step(frame, _dets(make_detection, 0, 10), 0)

        with pytest.raises(TypeError):
            result.open_targets[2] = result.open_targets[1]


class TestCollaboratorFailure:
    def test_tracker_error_propagates_unchanged(self, frame):
        """Tracker errors surface as-is and the frame is not counted."""
        tracker = ScriptedTracker(fail_on=1)
        orchestrator = FrameOrchestrator(tracker)
        orchestrator.step(frame, [], 0)

        with pytest.raises(ValueError, match="malformed frame 1"):
            orchestrator.step(frame, [], 1)

        assert orchestrator.state is OrchestratorState.RUNNING
        assert orchestrator.last_frame_index == 0
        assert tracker.calls == [("begin", 0), ("track", 1)]

    def test_failed_begin_leaves_sequence_unstarted(self, frame):
        """A failing begin_track() leaves the orchestrator unstarted."""
        orchestrator = FrameOrchestrator(ScriptedTracker(fail_on=0))

        with pytest.raises(ValueError):
            orchestrator.step(frame, [], 0)

        assert orchestrator.state is OrchestratorState.NOT_STARTED


class TestWithIoUTracker:
    def test_target_identity_is_stable_and_closes(self, frame, make_detection):
        """The IoU tracker keeps one id until the target goes stale."""
        orchestrator = FrameOrchestrator(IoUTracker(max_frames_since_seen=1, iou_threshold=0.3))

        r0 = orchestrator.step(frame, _dets(make_detection, 0, 10), 0)
        (target,) = r0.events.created.values()

        r1 = orchestrator.step(frame, _dets(make_detection, 1, 14), 1)
        assert [t.target_id for t in r1.events.associated.values()] == [target.target_id]
        assert len(r1.events.created) == 0

        r2 = orchestrator.step(frame, [], 2)
        assert r2.events.closed == ()
        r3 = orchestrator.step(frame, [], 3)
        assert r3.events.closed_ids == [target.target_id]
        assert dict(r3.open_targets) == {}

        result = orchestrator.finish()
        assert result.events.is_empty

    def test_finish_flushes_open_targets(self, frame, make_detection):
        """finish() closes every open IoU target."""
        orchestrator = FrameOrchestrator(IoUTracker())
        orchestrator.step(frame, _dets(make_detection, 0, 10, 200), 0)

        result = orchestrator.finish()

        assert sorted(result.final_targets) == [0, 1]
        assert result.events.closed_ids == [0, 1]
        assert all(not t.is_open for t in result.events.closed)
