"""
Conversion Pipeline

Stage specifications for the external tools a DASH conversion runs and the
session that executes them in order while tracking progress.

Usage:
    from streamin.pipeline import EncodeConfig, FragmentConfig, DashConfig, Session

    session = Session(EncodeConfig(source).audio_disabled().subtitle_disabled(), info)
    session.chain(FragmentConfig(video_out)).chain(DashConfig.of([video_frag]))
    session.start()
"""

from .encode import (
    AAC,
    COPY,
    WEB_VTT,
    X264,
    X264_NVENC,
    X265,
    X265_NVENC,
    EncodeConfig,
    Encoder,
    TrackGroup,
)
from .errors import AlreadyStarted, ConfigError, ProcessFailure, SessionError
from .fragment import FragmentConfig
from .package import DashConfig
from .progress import ProgressSnapshot, SessionState, TelemetryParser, overall_percent
from .session import STAGE_TYPES, Session, StageConfig
from .stage import Invocation, StageSpec, TrackKind

__all__ = [
    # Stages
    "StageSpec",
    "StageConfig",
    "STAGE_TYPES",
    "Invocation",
    "TrackKind",
    "EncodeConfig",
    "TrackGroup",
    "Encoder",
    "FragmentConfig",
    "DashConfig",
    # Encoders
    "X264",
    "X265",
    "X264_NVENC",
    "X265_NVENC",
    "AAC",
    "WEB_VTT",
    "COPY",
    # Session
    "Session",
    "SessionState",
    "ProgressSnapshot",
    "TelemetryParser",
    "overall_percent",
    # Errors
    "SessionError",
    "ConfigError",
    "AlreadyStarted",
    "ProcessFailure",
]
