"""
Error base classes shared by the tracking and pipeline layers.
"""

from __future__ import annotations

from typing import Optional


class PipelineError(RuntimeError):
    """Base class for orchestration errors."""


class StaleEventError(PipelineError):
    """Events were read for a frame the collector was not reset for."""

    def __init__(self, expected_frame: Optional[int], recorded_frame: Optional[int]):
        self.expected_frame = expected_frame
        self.recorded_frame = recorded_frame
        super().__init__(
            f"Event collector holds events for frame {recorded_frame}, "
            f"not frame {expected_frame}"
        )
