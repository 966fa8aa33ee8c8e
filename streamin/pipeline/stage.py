"""
Stage Specifications

A stage is one external process run by a session (one ffmpeg encode, one
mp4fragment call, one mp4dash call). Each stage is described by an
immutable specification that can validate itself and build the concrete
invocation without spawning anything.
"""

import asyncio
import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Tuple


class TrackKind(str, enum.Enum):
    """Kind of elementary stream a track group or encoder deals with."""

    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"


@dataclass(frozen=True)
class Invocation:
    """
    A fully resolved process invocation.

    Attributes:
        program: Executable name or path
        args: Ordered argument list, excluding the program itself
        stdin: asyncio subprocess wiring for standard input
        stdout: asyncio subprocess wiring for standard output
        stderr: asyncio subprocess wiring for standard error
    """

    program: str
    args: Tuple[str, ...]
    stdin: int = asyncio.subprocess.DEVNULL
    stdout: int = asyncio.subprocess.PIPE
    stderr: int = asyncio.subprocess.PIPE

    @property
    def argv(self) -> List[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return " ".join(self.argv)


class StageSpec(ABC):
    """
    Contract shared by every stage specification.

    Subclasses are frozen dataclasses declaring a ``can_fail`` field. They
    implement ``check`` (structural rules, no filesystem access),
    ``check_files`` (existence checks) and ``command`` (argument assembly).
    """

    can_fail: bool

    @abstractmethod
    def check(self) -> None:
        """Raise ConfigError if the fields describe an impossible command."""

    def check_files(self) -> None:
        """Raise ConfigError if a required input is missing on disk."""

    @abstractmethod
    def command(self) -> Invocation:
        """Assemble the invocation. Only called after validation passed."""

    def validate(self) -> None:
        """
        Run every validation rule of this stage.

        Raises:
            ConfigError: On the first rule the stage violates
        """
        self.check()
        self.check_files()

    def build(self) -> Invocation:
        """
        Validate the stage and build its process invocation.

        Path defaults are resolved here; nothing is spawned.

        Returns:
            Invocation ready to be handed to the session runner

        Raises:
            ConfigError: If validation fails
        """
        self.validate()
        return self.command()
