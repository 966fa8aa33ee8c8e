"""
Pydantic schemas for streamin.

Media metadata parsed from ffprobe and the session status documents served
by the API.
"""

from .media import (
    FFProbeResponse,
    MediaInfo,
    ProbeFormat,
    ProbeStream,
    StreamTags,
    decode_media_id,
    encode_media_id,
)
from .session import ProcessRequest, SessionDetail, SessionInfo, SessionLog

__all__ = [
    # Media
    "FFProbeResponse",
    "MediaInfo",
    "ProbeFormat",
    "ProbeStream",
    "StreamTags",
    "decode_media_id",
    "encode_media_id",
    # Session
    "ProcessRequest",
    "SessionDetail",
    "SessionInfo",
    "SessionLog",
]
