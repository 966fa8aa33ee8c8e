"""
Media Library

Lists the media files of a directory by probing every entry concurrently.
Package directories are probed through their DASH manifest. Entries ffprobe
cannot read (sidecar files, stray directories, partial uploads) are skipped.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from streamin.pipeline.package import MANIFEST_NAME
from streamin.schemas.media import MediaInfo

from .probe import ProbeError, get_media_info

logger = logging.getLogger(__name__)

# ffprobe calls are I/O bound; a handful in flight is plenty
MAX_PROBE_WORKERS = 8


def _probe_or_none(path: Path) -> Optional[MediaInfo]:
    # Converted sources are directories holding a DASH manifest
    manifest = path / MANIFEST_NAME
    target = manifest if path.is_dir() and manifest.is_file() else path

    try:
        info = get_media_info(target)
    except ProbeError as e:
        logger.debug(f"Skipping {path}: {e}")
        return None

    if target is manifest:
        info = info.model_copy(update={"file_title": path.name})
    return info


def list_media(directory: Path) -> List[MediaInfo]:
    """
    Probe every entry of ``directory``.

    Args:
        directory: Directory to scan (not recursive)

    Returns:
        MediaInfo of each readable media file, sorted by file name

    Raises:
        FileNotFoundError: If the directory does not exist
    """
    entries = sorted(Path(directory).iterdir())
    with ThreadPoolExecutor(max_workers=MAX_PROBE_WORKERS) as pool:
        results = pool.map(_probe_or_none, entries)
    return [info for info in results if info is not None]
