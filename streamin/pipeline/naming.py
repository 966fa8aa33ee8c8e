"""
Intermediate File Naming

Every stage of a DASH conversion finds the files produced by the previous
stages by name alone, so the encoder, the fragmenter and the packager all
derive their paths from the helpers in this module.

    <stem>-split-vid-<idx>.mp4      video encode output
    <stem>-split-aud-<idx>.mp4      audio encode output
    <stem>-split-sub-<idx>.vtt      subtitle encode output
    <name>-f.mp4                    fragmented copy of an mp4 output
"""

from pathlib import Path
from typing import Optional

from streamin.core.config import get_settings

from .stage import TrackKind

SPLIT_MARKER = "-split-"
FRAGMENT_SUFFIX = "-f.mp4"

_KIND_TAGS = {
    TrackKind.VIDEO: ("vid", ".mp4"),
    TrackKind.AUDIO: ("aud", ".mp4"),
    TrackKind.SUBTITLE: ("sub", ".vtt"),
}


def temp_root(temp_dir: Optional[Path] = None) -> Path:
    """Scratch directory for intermediate files (settings.temp_dir by default)."""
    return Path(temp_dir) if temp_dir is not None else get_settings().temp_dir


def split_suffix(kind: TrackKind, index: int) -> str:
    """
    Suffix appended to the source stem for one encoded track.

    Example:
        >>> split_suffix(TrackKind.AUDIO, 2)
        '-split-aud-2.mp4'
    """
    tag, ext = _KIND_TAGS[TrackKind(kind)]
    return f"{SPLIT_MARKER}{tag}-{index}{ext}"


def split_output(
    source: Path, kind: TrackKind, index: int, temp_dir: Optional[Path] = None
) -> Path:
    """Default output path of an encode stage for one track of ``source``."""
    return temp_root(temp_dir) / f"{Path(source).stem}{split_suffix(kind, index)}"


def fragment_output(path: Path, temp_dir: Optional[Path] = None) -> Path:
    """Default output path of a fragment stage reading ``path``."""
    return temp_root(temp_dir) / f"{Path(path).stem}{FRAGMENT_SUFFIX}"


def is_audio_file(path: Path) -> bool:
    return f"{SPLIT_MARKER}aud-" in Path(path).name


def is_subtitle_file(path: Path) -> bool:
    return f"{SPLIT_MARKER}sub-" in Path(path).name


def package_name(path: Path) -> str:
    """
    Name of the DASH package directory for an intermediate file.

    The source stem is everything before the last split marker, so source
    files whose names contain hyphens keep their full name.
    """
    stem = Path(path).stem
    head, sep, _ = stem.rpartition(SPLIT_MARKER)
    return head if sep else stem
