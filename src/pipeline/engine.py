"""
Pipeline engine for the frame tracker.

Runs the per-frame loop: read a frame from an ObservationSource, detect,
hand the detections to the FrameOrchestrator, then pass the frame's
detections and open targets to every sink. One frame is fully processed
before the next is read.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from detection import Detector, create_detector
from models.config import Config
from models.frame import FrameData
from observation import ObservationSource, create_source_from_config
from sinks import DisplaySink, ImageWriterSink, Sink
from tracking import IoUTracker, TrackerBase

from .orchestrator import FinishResult, FrameOrchestrator, FrameResult, OrchestratorState


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        max_frames: Stop after this many frames. None = until the source ends.
        stats_log_interval: Seconds between status log messages.
    """
    max_frames: Optional[int] = None
    stats_log_interval: float = 60.0


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    detection_count: int = 0
    targets_created: int = 0
    targets_associated: int = 0
    targets_closed: int = 0
    sink_failures: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_count": self.frame_count,
            "detection_count": self.detection_count,
            "targets_created": self.targets_created,
            "targets_associated": self.targets_associated,
            "targets_closed": self.targets_closed,
            "sink_failures": self.sink_failures,
            "elapsed_s": round(time.time() - self.start_time, 3),
        }


class PipelineEngine:
    """
    Main processing engine.

    This engine:
    - Reads frames from any ObservationSource
    - Runs the detector on each frame
    - Steps the FrameOrchestrator (which drives the tracker and collects events)
    - Presents each frame's output to the sinks (best-effort)
    - Finishes tracking once the run ends

    Detector, tracker and protocol errors propagate out of run() after the
    source and sinks are closed. Sink errors are logged and counted.

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id="video.mp4"))
        orchestrator = FrameOrchestrator(IoUTracker())
        engine = PipelineEngine(source, BgSubDetector(), orchestrator, [ImageWriterSink("out")])
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: Detector,
        orchestrator: FrameOrchestrator,
        sinks: Optional[Sequence[Sink]] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.source = source
        self.detector = detector
        self.orchestrator = orchestrator
        self.sinks: List[Sink] = list(sinks or [])
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self.finish_result: Optional[FinishResult] = None
        self._running = False
        self._callbacks: List[Callable[[FrameData, FrameResult], None]] = []

    def add_callback(self, callback: Callable[[FrameData, FrameResult], None]) -> None:
        """
        Add a callback to be called after each frame is processed.

        Args:
            callback: Function taking (frame_data, frame_result) as arguments.
        """
        self._callbacks.append(callback)

    def run(self) -> Optional[FinishResult]:
        """
        Run the main processing loop.

        Opens the source, processes frames until the source is exhausted,
        max_frames is reached or stop() is called, finishes tracking, then
        closes resources.

        Returns:
            The orchestrator's FinishResult, or None if no frame was processed.
        """
        self._running = True
        self.stats = PipelineStats()
        self.finish_result = None

        try:
            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while self._running:
                if self.config.max_frames is not None and self.stats.frame_count >= self.config.max_frames:
                    logging.info(f"Frame limit reached ({self.config.max_frames}), stopping")
                    break

                frame_data = self.source.read()
                if frame_data is None:
                    break

                result = self._process_frame(frame_data)

                for callback in self._callbacks:
                    try:
                        callback(frame_data, result)
                    except Exception as e:
                        logging.warning(f"Callback error: {e}")

                if self._quit_requested():
                    break

                self._handle_periodic_tasks()

            if self.orchestrator.state is OrchestratorState.RUNNING:
                self.finish_result = self.orchestrator.finish()
                self.stats.targets_closed += len(self.finish_result.events.closed)
                self._finish_sinks(self.finish_result)

            self._log_stats()
        finally:
            self._cleanup()

        return self.finish_result

    def stop(self) -> None:
        """Signal the pipeline to stop after the current frame."""
        self._running = False

    def _process_frame(self, frame_data: FrameData) -> FrameResult:
        """Detect, track and present a single frame."""
        frame = frame_data.frame
        frame_index = frame_data.frame_index

        logging.info(
            f"Processing frame {frame_index}, size: {frame_data.width}x{frame_data.height}, "
            f"channels: {frame_data.channels}"
        )
        detections = self.detector.detect(frame, frame_index)
        logging.info(f"Detected {len(detections)} objects")

        result = self.orchestrator.step(frame, detections, frame_index)

        self.stats.frame_count += 1
        self.stats.detection_count += len(detections)
        self.stats.targets_created += len(result.events.created)
        self.stats.targets_associated += len(result.events.associated)
        self.stats.targets_closed += len(result.events.closed)

        for sink in self.sinks:
            try:
                sink.present(frame, result.detections, result.open_targets, frame_index)
            except Exception as e:
                self.stats.sink_failures += 1
                logging.warning(f"Sink '{sink.name}' failed on frame {frame_index}: {e}")

        return result

    def _finish_sinks(self, result: FinishResult) -> None:
        for sink in self.sinks:
            try:
                sink.finish(result)
            except Exception as e:
                self.stats.sink_failures += 1
                logging.warning(f"Sink '{sink.name}' failed to finish: {e}")

    def _quit_requested(self) -> bool:
        return any(getattr(sink, "quit_requested", False) for sink in self.sinks)

    def _handle_periodic_tasks(self) -> None:
        """Log statistics periodically."""
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            self._log_stats()
            self.stats.last_stats_log_time = now

    def _log_stats(self) -> None:
        logging.info(
            f"Pipeline stats: frames={self.stats.frame_count}, "
            f"detections={self.stats.detection_count}, "
            f"created={self.stats.targets_created}, "
            f"closed={self.stats.targets_closed}, "
            f"sink_failures={self.stats.sink_failures}"
        )

    def _cleanup(self) -> None:
        """Clean up resources."""
        self._running = False

        for sink in self.sinks:
            try:
                sink.close()
            except Exception as e:
                logging.warning(f"Error closing sink '{sink.name}': {e}")

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        logging.info("Pipeline stopped")


def create_sinks_from_config(config: Config) -> List[Sink]:
    """Build the sinks enabled by the `output` config section."""
    sinks: List[Sink] = []
    if config.output.visualize:
        sinks.append(DisplaySink(hold_on_finish=config.output.hold_window_on_finish))
    if config.output.save_output:
        sinks.append(ImageWriterSink(config.output.output_dir))
    return sinks


def create_engine_from_config(
    config: Dict[str, Any],
    source: Optional[ObservationSource] = None,
    detector: Optional[Detector] = None,
    tracker: Optional[TrackerBase] = None,
    sinks: Optional[Sequence[Sink]] = None,
) -> PipelineEngine:
    """
    Factory function to create a PipelineEngine from a config dict.

    Any collaborator passed in replaces the one the config would build.

    Args:
        config: Full application config dict.
        source: Frame source (default: OpenCV source from `source`).
        detector: Detector (default: from `detection`).
        tracker: Tracker (default: IoUTracker from `tracking`).
        sinks: Sinks (default: from `output`).
    """
    typed = Config.from_dict(config)

    if source is None:
        source = create_source_from_config(config.get("source", {}) or {})
    if detector is None:
        detector = create_detector(config.get("detection", {}) or {})
    if tracker is None:
        tracker = IoUTracker.from_config(typed.tracking)
    if sinks is None:
        sinks = create_sinks_from_config(typed)

    pipeline_config = PipelineConfig(
        max_frames=typed.run.max_frames,
        stats_log_interval=typed.run.stats_log_interval,
    )

    return PipelineEngine(source, detector, FrameOrchestrator(tracker), sinks, pipeline_config)
