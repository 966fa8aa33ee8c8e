"""
FFmpeg Encoding Stage

Describes one ffmpeg invocation that splits a source file into a single
encoded (or stream-copied) output. The command requests a machine readable
progress stream on stdout (-progress -) which the session parses while the
encode runs.

Usage:
    config = (
        EncodeConfig(Path("movie.mkv"))
        .audio_disabled()
        .subtitle_disabled()
        .video_encoder(X264)
        .crf(19)
        .colour_8_bit()
    )
    invocation = config.build()
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from streamin.core.config import get_settings

from . import errors
from .errors import ConfigError
from .naming import split_output
from .stage import Invocation, StageSpec, TrackKind


@dataclass(frozen=True)
class Encoder:
    """An ffmpeg encoder name tagged with the stream kind it produces."""

    kind: TrackKind
    name: str


X264 = Encoder(TrackKind.VIDEO, "libx264")
X265 = Encoder(TrackKind.VIDEO, "libx265")
X264_NVENC = Encoder(TrackKind.VIDEO, "h264_nvenc")
X265_NVENC = Encoder(TrackKind.VIDEO, "hevc_nvenc")

AAC = Encoder(TrackKind.AUDIO, "aac")

WEB_VTT = Encoder(TrackKind.SUBTITLE, "webvtt")

# Codec selector used when a group is enabled without an encoder
COPY = "copy"

# Pixel format filter applied when 8-bit colour is forced
EIGHT_BIT_FILTER = "format=yuv420p"


@dataclass(frozen=True)
class TrackGroup:
    """
    Options for one kind of stream in the output.

    Attributes:
        enabled: Whether streams of this kind are kept at all
        encoder: Encoder to use, or None to copy the stream unmodified
        bitrate: Target bitrate in bits per second
        crf: Constant rate factor (video only)
        channels: Output channel count (audio only)
        colour_8_bit: Force yuv420p output (video only)
    """

    enabled: bool = True
    encoder: Optional[Encoder] = None
    bitrate: Optional[int] = None
    crf: Optional[int] = None
    channels: Optional[int] = None
    colour_8_bit: bool = False

    def __post_init__(self) -> None:
        if self.bitrate is not None and self.bitrate <= 0:
            raise ValueError(f"bitrate must be > 0, got {self.bitrate}")
        if self.crf is not None and self.crf < 0:
            raise ValueError(f"crf must be >= 0, got {self.crf}")
        if self.channels is not None and self.channels <= 0:
            raise ValueError(f"channels must be > 0, got {self.channels}")

    def codec(self) -> str:
        return self.encoder.name if self.encoder is not None else COPY


@dataclass(frozen=True)
class EncodeConfig(StageSpec):
    """ffmpeg encode of selected tracks of ``source`` into one output file."""

    source: Path
    video: TrackGroup = field(default_factory=TrackGroup)
    audio: TrackGroup = field(default_factory=TrackGroup)
    subtitle: TrackGroup = field(default_factory=TrackGroup)
    output: Optional[Path] = None
    tracks: Tuple[int, ...] = ()
    can_fail: bool = False

    # -------------------------------------------------------------------------
    # Builder helpers, each returning a modified copy
    # -------------------------------------------------------------------------

    def output_file(self, path: Path) -> "EncodeConfig":
        return replace(self, output=Path(path))

    def crf(self, crf: int) -> "EncodeConfig":
        return replace(self, video=replace(self.video, crf=crf))

    def video_bitrate(self, bitrate: int) -> "EncodeConfig":
        return replace(self, video=replace(self.video, bitrate=bitrate))

    def audio_bitrate(self, bitrate: int) -> "EncodeConfig":
        return replace(self, audio=replace(self.audio, bitrate=bitrate))

    def video_encoder(self, encoder: Encoder) -> "EncodeConfig":
        return replace(self, video=replace(self.video, encoder=encoder))

    def audio_encoder(self, encoder: Encoder) -> "EncodeConfig":
        return replace(self, audio=replace(self.audio, encoder=encoder))

    def subtitle_encoder(self, encoder: Encoder) -> "EncodeConfig":
        return replace(self, subtitle=replace(self.subtitle, encoder=encoder))

    def video_disabled(self) -> "EncodeConfig":
        return replace(self, video=replace(self.video, enabled=False))

    def audio_disabled(self) -> "EncodeConfig":
        return replace(self, audio=replace(self.audio, enabled=False))

    def subtitle_disabled(self) -> "EncodeConfig":
        return replace(self, subtitle=replace(self.subtitle, enabled=False))

    def audio_channels(self, channels: int) -> "EncodeConfig":
        return replace(self, audio=replace(self.audio, channels=channels))

    def colour_8_bit(self) -> "EncodeConfig":
        return replace(self, video=replace(self.video, colour_8_bit=True))

    def with_tracks(self, tracks: Iterable[int]) -> "EncodeConfig":
        return replace(self, tracks=self.tracks + tuple(tracks))

    def tolerate_failure(self) -> "EncodeConfig":
        return replace(self, can_fail=True)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def check(self) -> None:
        if self.audio.crf is not None or self.subtitle.crf is not None:
            raise ConfigError(errors.CRF_NOT_VIDEO)

        for group, kind, reason in (
            (self.video, TrackKind.VIDEO, errors.VIDEO_ENCODER_MISMATCH),
            (self.audio, TrackKind.AUDIO, errors.AUDIO_ENCODER_MISMATCH),
            (self.subtitle, TrackKind.SUBTITLE, errors.SUBTITLE_ENCODER_MISMATCH),
        ):
            if group.encoder is not None and group.encoder.kind != kind:
                raise ConfigError(reason)

        if not (self.video.enabled or self.audio.enabled or self.subtitle.enabled):
            raise ConfigError(errors.NO_STREAMS_ENABLED)

        for group in (self.video, self.audio, self.subtitle):
            if group.encoder is None and (group.bitrate is not None or group.crf is not None):
                raise ConfigError(errors.MISSING_ENCODER)

    def check_files(self) -> None:
        if not Path(self.source).exists():
            raise ConfigError(errors.FILE_NOT_FOUND)

    # -------------------------------------------------------------------------
    # Command assembly
    # -------------------------------------------------------------------------

    def default_output(self) -> Path:
        index = self.tracks[0] if self.tracks else 0
        if self.video.enabled:
            kind = TrackKind.VIDEO
        elif self.audio.enabled:
            kind = TrackKind.AUDIO
        else:
            kind = TrackKind.SUBTITLE
        return split_output(self.source, kind, index)

    def resolved_output(self) -> Path:
        return self.output if self.output is not None else self.default_output()

    def command(self) -> Invocation:
        args: List[str] = ["-i", str(self.source), "-y", "-progress", "-"]

        if self.video.enabled:
            args += ["-c:v", self.video.codec()]
            if self.video.bitrate is not None:
                args += ["-b:v", str(self.video.bitrate)]
            if self.video.colour_8_bit:
                args += ["-vf", EIGHT_BIT_FILTER]
            if self.video.crf is not None:
                args += ["-crf", str(self.video.crf)]
        else:
            args.append("-vn")

        if self.audio.enabled:
            args += ["-c:a", self.audio.codec()]
            if self.audio.bitrate is not None:
                args += ["-b:a", str(self.audio.bitrate)]
            if self.audio.channels is not None:
                args += ["-ac", str(self.audio.channels)]
        else:
            args.append("-an")

        if self.subtitle.enabled:
            args += ["-c:s", self.subtitle.codec()]
        else:
            args.append("-sn")

        for track in self.tracks:
            args += ["-map", f"0:{track}"]

        args.append(str(self.resolved_output()))
        return Invocation(program=get_settings().ffmpeg_path, args=tuple(args))
