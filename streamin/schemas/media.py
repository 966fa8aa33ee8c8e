"""
Pydantic schemas for media metadata.

Includes the subset of ffprobe's JSON output the converter relies on and the
MediaInfo record returned by the media listing endpoints.
"""

import base64
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


# --- ffprobe Output ---


class StreamTags(BaseModel):
    """Optional per-stream tags."""

    title: Optional[str] = None
    language: Optional[str] = None


class ProbeStream(BaseModel):
    """One stream record of ffprobe -show_streams."""

    index: int
    codec_name: Optional[str] = None
    codec_type: str
    tags: Optional[StreamTags] = None


class ProbeFormat(BaseModel):
    """Container level fields requested with -show_entries format=duration."""

    duration: Optional[float] = None


class FFProbeResponse(BaseModel):
    """Parsed ffprobe JSON document."""

    streams: List[ProbeStream] = Field(default_factory=list)
    format: ProbeFormat = Field(default_factory=ProbeFormat)

    def streams_of(self, codec_type: str) -> List[ProbeStream]:
        return [s for s in self.streams if s.codec_type == codec_type]

    def first_of(self, codec_type: str) -> Optional[ProbeStream]:
        return next((s for s in self.streams if s.codec_type == codec_type), None)


# --- Media Listing ---


def encode_media_id(path: Path) -> str:
    """URL-safe, unpadded base64 of a file path."""
    return base64.urlsafe_b64encode(str(path).encode("utf-8")).decode("ascii").rstrip("=")


def decode_media_id(media_id: str) -> str:
    """
    Reverse encode_media_id.

    Raises:
        ValueError: If the id is not valid base64 or not UTF-8
    """
    padded = media_id + "=" * (-len(media_id) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


class MediaInfo(BaseModel):
    """Summary of a probed media file."""

    id: str = Field(..., description="URL-safe base64 of the file path")
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    meta_title: Optional[str] = Field(None, description="Title tag of the video stream")
    file_title: str = Field(..., description="File name")
    duration: float = Field(0.0, ge=0, description="Duration in seconds")

    raw: FFProbeResponse = Field(default_factory=FFProbeResponse, exclude=True)

    @classmethod
    def from_probe(cls, path: Path, probe: FFProbeResponse) -> "MediaInfo":
        video = probe.first_of("video")
        audio = probe.first_of("audio")
        return cls(
            id=encode_media_id(path),
            video_codec=video.codec_name if video else None,
            audio_codec=audio.codec_name if audio else None,
            meta_title=video.tags.title if video and video.tags else None,
            file_title=Path(path).name,
            duration=probe.format.duration or 0.0,
            raw=probe,
        )

    def dash_transcode_required(self) -> bool:
        """Whether the video stream has to be re-encoded to h264 for DASH."""
        return self.video_codec != "h264"
