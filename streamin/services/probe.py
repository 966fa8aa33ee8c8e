"""
Media Probe

Extracts stream and duration metadata from a media file with ffprobe.
"""

import logging
import subprocess
from pathlib import Path

from pydantic import ValidationError

from streamin.core.config import get_settings
from streamin.schemas.media import FFProbeResponse, MediaInfo

logger = logging.getLogger(__name__)

# ffprobe should answer quickly; anything slower is treated as unreadable
PROBE_TIMEOUT_SECONDS = 30


class ProbeError(Exception):
    """Raised when a file cannot be read as a media container."""

    pass


def probe(path: Path) -> FFProbeResponse:
    """
    Run ffprobe on a file and parse its JSON output.

    Args:
        path: Path to the media file

    Returns:
        Parsed ffprobe document with streams and container duration

    Raises:
        ProbeError: If the file is missing, ffprobe fails or its output
            cannot be parsed
    """
    path = Path(path)
    if not path.is_file():
        raise ProbeError(f"Media file not found: {path}")

    cmd = [
        get_settings().ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        "-show_streams",
        "-show_entries", "format=duration",
        str(path),
    ]

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            timeout=PROBE_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ProbeError(f"ffprobe failed for {path}: {e}") from e

    logger.debug(f"ffprobe output for {path}: {result.stdout[:2000]!r}")

    if result.returncode != 0:
        raise ProbeError(f"ffprobe exited with code {result.returncode} for {path}")

    try:
        return FFProbeResponse.model_validate_json(result.stdout)
    except ValidationError as e:
        raise ProbeError(f"Failed to parse ffprobe output for {path}: {e}") from e


def get_media_info(path: Path) -> MediaInfo:
    """
    Probe a file and summarise it as a MediaInfo record.

    Raises:
        ProbeError: If the file cannot be probed
    """
    return MediaInfo.from_probe(Path(path), probe(path))
