"""
DASH Conversion

Turns a probed source file into the session that converts it to an
MPEG-DASH package:

1. encode the video track (x264 when the source is not already h264)
2. encode every audio track to stereo AAC
3. convert every subtitle track to WebVTT
4. fragment the video output, then every audio output
5. package the fragments and subtitles with mp4dash
"""

import asyncio
import logging
from pathlib import Path
from typing import List

from streamin.core.registry import SessionRegistry
from streamin.pipeline import errors
from streamin.pipeline.encode import AAC, WEB_VTT, X264, EncodeConfig
from streamin.pipeline.errors import ConfigError
from streamin.pipeline.fragment import FragmentConfig
from streamin.pipeline.package import DashConfig
from streamin.pipeline.session import Session, StageConfig
from streamin.schemas.media import MediaInfo

from .probe import get_media_info

logger = logging.getLogger(__name__)

# Encoding settings for DASH renditions
VIDEO_CRF = 19
AUDIO_CHANNELS = 2
AUDIO_BITRATE = 256_000


def build_dash_stages(file: Path, info: MediaInfo) -> List[StageConfig]:
    """
    Stage list converting ``file`` to a DASH package.

    Args:
        file: Source media file
        info: Probe result for ``file``

    Returns:
        Stages in execution order

    Raises:
        ConfigError: If the source has neither video nor audio streams
    """
    file = Path(file)
    has_video = info.raw.first_of("video") is not None
    audio_streams = info.raw.streams_of("audio")
    subtitle_streams = info.raw.streams_of("subtitle")

    encodes: List[EncodeConfig] = []
    if has_video:
        video = EncodeConfig(file)
        if info.dash_transcode_required():
            video = video.video_encoder(X264).crf(VIDEO_CRF).colour_8_bit()
        encodes.append(video.audio_disabled().subtitle_disabled())

    audios = [
        EncodeConfig(file)
        .video_disabled()
        .subtitle_disabled()
        .audio_channels(AUDIO_CHANNELS)
        .audio_encoder(AAC)
        .audio_bitrate(AUDIO_BITRATE)
        .with_tracks([stream.index])
        for stream in audio_streams
    ]
    subtitles = [
        EncodeConfig(file)
        .video_disabled()
        .audio_disabled()
        .subtitle_encoder(WEB_VTT)
        .with_tracks([stream.index])
        for stream in subtitle_streams
    ]
    encodes += audios

    if not encodes:
        raise ConfigError(errors.NO_STREAMS_ENABLED)

    fragments = [FragmentConfig(encode.resolved_output()) for encode in encodes]

    package = DashConfig.of(
        [fragment.resolved_output() for fragment in fragments]
        + [subtitle.resolved_output() for subtitle in subtitles]
    )

    # Subtitles run after the audio encodes, before fragmenting
    return [*encodes, *subtitles, *fragments, package]


def build_dash_session(file: Path, info: MediaInfo) -> Session:
    """Create a pending session running the DASH stages for ``file``."""
    first, *rest = build_dash_stages(file, info)
    session = Session(first, info)
    for stage in rest:
        session.chain(stage)
    return session


async def start_dash_conversion(registry: SessionRegistry, file: Path) -> str:
    """
    Probe ``file``, start its DASH conversion and register the session.

    ffprobe runs in the loop's default executor so running sessions keep
    reading their processes' output meanwhile.

    Returns:
        Id of the registered session

    Raises:
        ProbeError: If the file cannot be probed
        ConfigError: If no conversion can be built for it
    """
    loop = asyncio.get_running_loop()
    info = await loop.run_in_executor(None, get_media_info, file)
    session = build_dash_session(file, info)
    session.start()
    session_id = registry.add(session)
    logger.info(f"Started DASH conversion {session_id} for {file}")
    return session_id
