"""
Progress Telemetry

Parses the key=value progress stream ffmpeg writes to stdout when run with
``-progress -`` and rolls it into the shared progress snapshot of a session.

Lock acquisitions are rate limited: telemetry is accumulated locally and
written to the snapshot on every 25th recognised update, while diagnostic
lines (anything that is not key=value) force an immediate write so they show
up without delay. Standard error is not batched at all.
"""

import asyncio
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from streamin.core.locks import Guarded

logger = logging.getLogger(__name__)

# Recognised updates between two snapshot writes
FLUSH_EVERY = 25

# Unit ffmpeg appends to the bitrate field
BITRATE_SUFFIX = "kbits/s"

TELEMETRY_KEYS = frozenset({"frame", "fps", "bitrate", "total_size", "out_time_us"})


class SessionState(str, enum.Enum):
    """Lifecycle of a session."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class Telemetry:
    """Progress fields reported by the running encoder."""

    frame: int = 0
    fps: float = 0.0
    bitrate: float = 0.0
    total_size: int = 0
    time: float = 0.0


@dataclass
class ProgressSnapshot(Telemetry):
    """
    Shared progress of a session.

    Mutated by the running session, read by any number of status readers.
    Always accessed through the Guarded wrapper that owns it.

    Attributes:
        stdout: Diagnostic lines from the encoder's progress channel
        stderr: Raw standard error lines of every stage
        stage: 1-based index of the running stage (0 before start)
        max_stages: Number of stages in the session
        state: Lifecycle state
        error: Why the session stopped early, if it did
    """

    stdout: List[str] = field(default_factory=list)
    stderr: List[str] = field(default_factory=list)
    stage: int = 0
    max_stages: int = 1
    state: SessionState = SessionState.PENDING
    error: Optional[str] = None

    def apply(self, telemetry: Telemetry) -> None:
        self.frame = telemetry.frame
        self.fps = telemetry.fps
        self.bitrate = telemetry.bitrate
        self.total_size = telemetry.total_size
        self.time = telemetry.time

    def reset_telemetry(self) -> None:
        self.apply(Telemetry())


def overall_percent(stage: int, max_stages: int, time: float, length: float) -> float:
    """
    Whole-session completion percentage.

    Each stage is worth an equal share; the running stage contributes the
    fraction of the media duration its process has reached so far. The
    fraction is clamped to [0, 1] and computed with a single division so the
    last stage at full length reads exactly 100.0.

    Args:
        stage: 1-based index of the running stage (0 before start)
        max_stages: Number of stages in the session
        time: Elapsed media time of the running stage, in seconds
        length: Total media duration, in seconds (0 if unknown)

    Returns:
        Percentage between 0.0 and 100.0

    Example:
        >>> round(overall_percent(4, 6, 30.0, 60.0), 2)
        58.33
    """
    if stage <= 0 or max_stages <= 0:
        return 0.0

    fraction = 0.0
    if length > 0:
        fraction = min(max(time / length, 0.0), 1.0)

    return (stage - 1 + fraction) / max_stages * 100.0


async def iter_lines(stream: asyncio.StreamReader, chunk_size: int = 4096) -> AsyncIterator[str]:
    """
    Yield decoded lines from a subprocess stream until EOF.

    Reads in chunks instead of using readline() so that very long lines
    (ffmpeg rewrites its stats line with carriage returns and no newline)
    never hit the stream reader's line length limit.
    """
    buffer = bytearray()
    while True:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        scan_from = len(buffer)
        buffer.extend(chunk)

        start = 0
        while True:
            end = buffer.find(b"\n", scan_from)
            if end < 0:
                break
            yield _decode(buffer[start:end])
            start = scan_from = end + 1
        del buffer[:start]

    if buffer:
        yield _decode(buffer)


def _decode(raw: bytes) -> str:
    return bytes(raw).decode("utf-8", errors="replace").rstrip("\r")


class TelemetryParser:
    """
    Incremental parser for one stage's progress stream.

    Usage:
        parser = TelemetryParser(status)
        await parser.consume(process.stdout)
    """

    def __init__(self, status: Guarded[ProgressSnapshot]):
        self._status = status
        self.telemetry = Telemetry()
        self._pending: List[str] = []
        self._updates = 0

    def feed(self, line: str) -> None:
        """Parse one line, writing to the snapshot when the update policy says so."""
        if not line.strip():
            return

        parts = line.split("=")
        if len(parts) == 2:
            key, value = parts
            if key in TELEMETRY_KEYS:
                self._apply(key, value.strip())
                self._updates += 1
                if self._updates >= FLUSH_EVERY:
                    self.flush()
            return

        # Diagnostic line: surface it right away
        self._pending.append(line)
        self.flush()

    def _apply(self, key: str, value: str) -> None:
        telemetry = self.telemetry
        try:
            if key == "frame":
                telemetry.frame = _unsigned(int(value))
            elif key == "fps":
                telemetry.fps = _finite(float(value))
            elif key == "bitrate":
                if value.endswith(BITRATE_SUFFIX):
                    value = value[: -len(BITRATE_SUFFIX)].strip()
                telemetry.bitrate = _finite(float(value))
            elif key == "total_size":
                telemetry.total_size = _unsigned(int(value))
            elif key == "out_time_us":
                telemetry.time = _unsigned(int(value)) / 1_000_000
        except ValueError:
            logger.debug(f"Keeping previous {key}, unparseable value {value!r}")

    def flush(self) -> None:
        """Write the accumulated telemetry and pending diagnostics to the snapshot."""
        with self._status.write() as snapshot:
            snapshot.apply(self.telemetry)
            snapshot.stdout.extend(self._pending)
        self._pending.clear()
        self._updates = 0

    async def consume(self, stream: asyncio.StreamReader) -> None:
        """Parse ``stream`` until EOF, then write the final values."""
        async for line in iter_lines(stream):
            self.feed(line)
        self.flush()


def _unsigned(value: int) -> int:
    if value < 0:
        raise ValueError(f"negative value {value}")
    return value


def _finite(value: float) -> float:
    # nan and inf cannot be serialised as JSON
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {value}")
    return value


async def collect_stderr(
    stream: asyncio.StreamReader,
    status: Guarded[ProgressSnapshot],
    program: str = "",
) -> None:
    """Append every standard error line to the snapshot as soon as it arrives."""
    async for line in iter_lines(stream):
        logger.debug(f"[{program}] {line}")
        with status.write() as snapshot:
            snapshot.stderr.append(line)
