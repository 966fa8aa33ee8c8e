"""
DASH Packaging Stage

Runs Bento4's mp4dash over the fragmented video/audio files and the WebVTT
subtitle files of one source, producing ``manifest.mpd`` and its segments in
a directory under the processed media directory.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from streamin.core.config import get_settings

from . import errors
from .errors import ConfigError
from .naming import is_audio_file, is_subtitle_file, package_name
from .stage import Invocation, StageSpec

MANIFEST_NAME = "manifest.mpd"


@dataclass(frozen=True)
class DashConfig(StageSpec):
    """mp4dash packaging of ``files`` into ``out_dir``."""

    files: Tuple[Path, ...]
    out_dir: Optional[Path] = None
    can_fail: bool = False

    @classmethod
    def of(cls, files: Iterable[Path]) -> "DashConfig":
        return cls(files=tuple(Path(f) for f in files))

    def output_dir(self, path: Path) -> "DashConfig":
        return replace(self, out_dir=Path(path))

    def tolerate_failure(self) -> "DashConfig":
        return replace(self, can_fail=True)

    def check(self) -> None:
        if not self.files:
            raise ConfigError(errors.NO_INPUT_FILES)
        if self.out_dir is not None and self.out_dir.suffix:
            raise ConfigError(errors.OUT_DIR_NOT_DIRECTORY)

    def check_files(self) -> None:
        if self.resolved_out_dir().exists():
            raise ConfigError(errors.OUT_DIR_EXISTS)

    def resolved_out_dir(self) -> Path:
        if self.out_dir is not None:
            return self.out_dir
        return get_settings().processed_dir / package_name(self.files[0])

    def inputs(self) -> List[str]:
        """mp4dash input arguments, with per-file options for audio and subtitles."""
        result = []
        language = 0
        for path in self.files:
            if is_audio_file(path):
                language += 1
                result.append(f"[+language={language}]{path}")
            elif is_subtitle_file(path):
                result.append(f"[+format=webvtt]{path}")
            else:
                result.append(str(path))
        return result

    def command(self) -> Invocation:
        program = get_settings().mp4dash_path
        args: List[str] = []

        # mp4dash is a script wrapper on Windows and has to go through cmd
        if os.name == "nt":
            args += ["/c", program]
            program = "cmd"

        args += [
            "-o",
            str(self.resolved_out_dir()),
            f"--mpd-name={MANIFEST_NAME}",
            "--use-segment-timeline",
        ]
        args += self.inputs()
        return Invocation(program=program, args=tuple(args))
