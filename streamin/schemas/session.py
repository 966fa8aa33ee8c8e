"""
Pydantic schemas for conversion session status.

Includes the status document returned by the session endpoints and the
process request body.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

SessionStateName = Literal["pending", "running", "completed", "failed", "cancelled"]


# --- Request Schemas ---


class ProcessRequest(BaseModel):
    """Request to convert an unprocessed media file."""

    id: str = Field(..., description="Media id as returned by /media/unprocessed")
    dash: Optional[bool] = Field(None, description="Convert to an MPEG-DASH package")


# --- Response Schemas ---


class SessionDetail(BaseModel):
    """Live encoder telemetry, present once the encoder reported a bitrate."""

    frame: int
    fps: float
    bitrate: float = Field(..., description="Bitrate in kbit/s")
    total_size: int = Field(..., description="Bytes written so far")
    time: float = Field(..., description="Elapsed media time in seconds")
    length: float = Field(..., description="Total media duration in seconds")


class SessionLog(BaseModel):
    """Output collected from the stage processes."""

    stdout: List[str] = Field(default_factory=list)
    stderr: List[str] = Field(default_factory=list)


class SessionInfo(BaseModel):
    """Snapshot of a conversion session."""

    percent_complete: float = Field(..., ge=0, le=100)
    stage: int = Field(..., description="1-based index of the running stage")
    max_stages: int
    state: SessionStateName
    error: Optional[str] = Field(None, description="Why the session stopped early")
    detail: Optional[SessionDetail] = None
    logs: SessionLog = Field(default_factory=SessionLog)
