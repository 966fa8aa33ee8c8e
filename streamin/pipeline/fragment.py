"""
MP4 Fragmenting Stage

Runs Bento4's mp4fragment on one encoded mp4 so it can be packaged for DASH.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from streamin.core.config import get_settings

from . import errors
from .errors import ConfigError
from .naming import fragment_output
from .stage import Invocation, StageSpec


@dataclass(frozen=True)
class FragmentConfig(StageSpec):
    """mp4fragment of ``source`` into ``output`` (``<stem>-f.mp4`` by default)."""

    source: Path
    output: Optional[Path] = None
    can_fail: bool = False

    def output_file(self, path: Path) -> "FragmentConfig":
        return replace(self, output=Path(path))

    def tolerate_failure(self) -> "FragmentConfig":
        return replace(self, can_fail=True)

    def check(self) -> None:
        # The input is produced by an earlier stage; only its presence matters.
        pass

    def check_files(self) -> None:
        if not Path(self.source).exists():
            raise ConfigError(errors.FILE_NOT_FOUND)

    def resolved_output(self) -> Path:
        return self.output if self.output is not None else fragment_output(self.source)

    def command(self) -> Invocation:
        return Invocation(
            program=get_settings().mp4fragment_path,
            args=(str(self.source), str(self.resolved_output())),
        )
