"""
Pipeline module for the frame tracker.

The pipeline orchestrates the full processing flow:
- Frame acquisition from observation sources
- Detection
- Tracking through the FrameOrchestrator's begin/update/finish protocol
- Presentation to sinks
"""

from .errors import InvalidStateError, PipelineError, StaleEventError
from .orchestrator import FinishResult, FrameOrchestrator, FrameResult, OrchestratorState
from .engine import PipelineEngine, PipelineConfig, PipelineStats, create_engine_from_config

__all__ = [
    "InvalidStateError",
    "PipelineError",
    "StaleEventError",
    "FinishResult",
    "FrameOrchestrator",
    "FrameResult",
    "OrchestratorState",
    "PipelineEngine",
    "PipelineConfig",
    "PipelineStats",
    "create_engine_from_config",
]
