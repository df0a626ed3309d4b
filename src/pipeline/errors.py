"""
Errors raised by the frame orchestration layer.

Detector and tracker failures are not wrapped: they reach the caller as
whatever the collaborator raised.
"""

from __future__ import annotations

from typing import Optional

from models.errors import PipelineError, StaleEventError


class InvalidStateError(PipelineError):
    """
    A lifecycle call violated the begin/update/finish protocol.

    Attributes:
        call: Name of the offending call ("step" or "finish").
        frame_index: Frame index passed to the call, if any.
        state: Orchestrator state when the call was made.
    """

    def __init__(self, message: str, call: str, frame_index: Optional[int] = None, state: Optional[str] = None):
        self.call = call
        self.frame_index = frame_index
        self.state = state
        where = f"{call}(frame_index={frame_index})" if frame_index is not None else f"{call}()"
        super().__init__(f"{where}: {message}")


__all__ = ["PipelineError", "InvalidStateError", "StaleEventError"]
