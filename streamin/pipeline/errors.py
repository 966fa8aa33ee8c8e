"""
Pipeline Errors

Exceptions raised while validating stage specifications and running
sessions, plus the closed set of configuration problems a stage can report.
"""

from typing import Optional

# Reasons a stage specification can be rejected with
VIDEO_ENCODER_MISMATCH = "video cannot have an audio or subtitle encoder"
AUDIO_ENCODER_MISMATCH = "audio cannot have a video or subtitle encoder"
SUBTITLE_ENCODER_MISMATCH = "subtitle cannot have an audio or video encoder"
NO_STREAMS_ENABLED = "no streams are enabled"
CRF_NOT_VIDEO = "audio and subtitles cannot have a crf"
MISSING_ENCODER = "bitrate and crf cannot be set without an encoder"
FILE_NOT_FOUND = "file does not exist"
NO_INPUT_FILES = "no input files"
OUT_DIR_EXISTS = "directory already exists"
OUT_DIR_NOT_DIRECTORY = "path must be a directory"

CONFIG_ERROR_REASONS = frozenset(
    {
        VIDEO_ENCODER_MISMATCH,
        AUDIO_ENCODER_MISMATCH,
        SUBTITLE_ENCODER_MISMATCH,
        NO_STREAMS_ENABLED,
        CRF_NOT_VIDEO,
        MISSING_ENCODER,
        FILE_NOT_FOUND,
        NO_INPUT_FILES,
        OUT_DIR_EXISTS,
        OUT_DIR_NOT_DIRECTORY,
    }
)


class SessionError(Exception):
    """Base class for errors raised by the conversion pipeline."""

    pass


class ConfigError(SessionError):
    """Raised when a stage specification describes an impossible command."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            f"The command has ended up with an impossible configuration: {reason}"
        )


class AlreadyStarted(SessionError):
    """Raised when a session is started twice or with nothing to run."""

    def __init__(self) -> None:
        super().__init__("The session has already been started")


class ProcessFailure(SessionError):
    """Raised when a stage process could not be spawned or exited non-zero."""

    def __init__(self, program: str, returncode: Optional[int], detail: str = ""):
        self.program = program
        self.returncode = returncode
        if returncode is None:
            message = f"{program} could not be started"
        else:
            message = f"{program} exited with code {returncode}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
