"""
Conversion Session

A session owns an ordered list of stage specifications and runs them one
at a time as supervised child processes in a background asyncio task,
while any number of readers poll its progress through get_info().

Stage processes are wired as follows:
- stdout goes to the TelemetryParser (ffmpeg -progress stream)
- stderr lines are appended to the snapshot as they arrive
- stdin is closed

Usage:
    session = Session(video_encode, media_info)
    session.chain(audio_encode).chain(fragment).chain(package)
    session.start()           # returns once the background task is scheduled
    info = session.get_info() # safe from any thread, never blocks on the job
"""

import asyncio
import logging
from typing import List, Optional, Union

from streamin.core.locks import Guarded
from streamin.schemas.media import MediaInfo
from streamin.schemas.session import SessionDetail, SessionInfo, SessionLog

from .encode import EncodeConfig
from .errors import AlreadyStarted, ProcessFailure, SessionError
from .fragment import FragmentConfig
from .package import DashConfig
from .progress import (
    ProgressSnapshot,
    SessionState,
    TelemetryParser,
    collect_stderr,
    overall_percent,
)
from .stage import Invocation

logger = logging.getLogger(__name__)

# The closed set of stage kinds a session accepts
STAGE_TYPES = (EncodeConfig, FragmentConfig, DashConfig)
StageConfig = Union[EncodeConfig, FragmentConfig, DashConfig]


class Session:
    """
    Sequential pipeline of external processes with shared progress.

    The session starts out pending with exactly one stage; further stages are
    appended with chain(). start() is a one-time transition to running.
    """

    def __init__(
        self,
        stage: StageConfig,
        media_info: Union[MediaInfo, Guarded[MediaInfo]],
    ):
        if not isinstance(media_info, Guarded):
            media_info = Guarded(media_info)
        self.media_info: Guarded[MediaInfo] = media_info
        self.status: Guarded[ProgressSnapshot] = Guarded(ProgressSnapshot())
        self._stages: List[StageConfig] = []
        self._task: Optional[asyncio.Task] = None
        self._started = False
        self.chain(stage)

    # =========================================================================
    # Setup
    # =========================================================================

    def chain(self, stage: StageConfig) -> "Session":
        """
        Append a stage to run after the ones already added.

        Raises:
            TypeError: If ``stage`` is not one of the known stage kinds
            AlreadyStarted: If the session is already running
        """
        if not isinstance(stage, STAGE_TYPES):
            raise TypeError(f"Unsupported stage type: {type(stage).__name__}")
        if self._started:
            raise AlreadyStarted()
        self._stages.append(stage)
        return self

    @property
    def pending_stages(self) -> int:
        return len(self._stages)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> asyncio.Task:
        """
        Start running the stages in the background.

        Every stage is checked for structural problems first, so an impossible
        configuration is rejected before anything is spawned. Checks that
        need files produced by earlier stages run when each stage is built.

        Must be called from a running event loop.

        Returns:
            The background task

        Raises:
            AlreadyStarted: If the session was started before or has no stages
            ConfigError: If a stage describes an impossible command
        """
        if self._started or not self._stages:
            raise AlreadyStarted()

        loop = asyncio.get_running_loop()
        for stage in self._stages:
            stage.check()

        stages, self._stages = self._stages, []
        self._started = True

        with self.media_info.read() as media:
            length = media.duration

        with self.status.write() as snapshot:
            snapshot.max_stages = len(stages)
            snapshot.state = SessionState.RUNNING

        logger.info(f"Starting session with {len(stages)} stages")
        self._task = loop.create_task(self._run(stages, length))
        self._task.add_done_callback(self._on_done)
        return self._task

    def cancel(self) -> bool:
        """
        Stop a running session, killing the current stage process.

        Returns:
            True if a running session was asked to stop
        """
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        return True

    async def wait(self) -> SessionState:
        """Wait for the background task to finish and return the final state."""
        if self._task is None:
            raise RuntimeError("Session has not been started")
        await asyncio.wait([self._task])
        return self.state

    @property
    def state(self) -> SessionState:
        with self.status.read() as snapshot:
            return snapshot.state

    # =========================================================================
    # Status
    # =========================================================================

    def get_info(self) -> SessionInfo:
        """
        Consistent snapshot of the session's progress.

        Reads the media duration and the progress snapshot under their own
        read locks; never waits on the background task.
        """
        with self.media_info.read() as media:
            length = media.duration

        with self.status.read() as snapshot:
            # Without a probed duration the time fraction never leaves 0
            if snapshot.state == SessionState.COMPLETED:
                percent = 100.0
            else:
                percent = overall_percent(
                    snapshot.stage, snapshot.max_stages, snapshot.time, length
                )
            detail = None
            if snapshot.bitrate > 0:
                detail = SessionDetail(
                    frame=snapshot.frame,
                    fps=snapshot.fps,
                    bitrate=snapshot.bitrate,
                    total_size=snapshot.total_size,
                    time=snapshot.time,
                    length=length,
                )
            return SessionInfo(
                percent_complete=percent,
                stage=snapshot.stage,
                max_stages=snapshot.max_stages,
                state=snapshot.state.value,
                error=snapshot.error,
                detail=detail,
                logs=SessionLog(
                    stdout=list(snapshot.stdout),
                    stderr=list(snapshot.stderr),
                ),
            )

    # =========================================================================
    # Background execution
    # =========================================================================

    async def _run(self, stages: List[StageConfig], length: float) -> None:
        total = len(stages)
        index = 0
        try:
            for index, stage in enumerate(stages, start=1):
                invocation = stage.build()

                # Bumping the stage and clearing the previous stage's telemetry
                # in one write keeps the percentage from moving backwards.
                with self.status.write() as snapshot:
                    snapshot.stage = index
                    snapshot.reset_telemetry()

                logger.info(f"Stage {index}/{total}: {invocation.program}")
                try:
                    await self._spawn(invocation)
                except ProcessFailure as e:
                    if not stage.can_fail:
                        raise
                    logger.warning(f"Stage {index}/{total} failed, continuing: {e}")

            # Encoders stop a little short of the probed duration
            with self.status.write() as snapshot:
                snapshot.time = length
                snapshot.state = SessionState.COMPLETED
            logger.info(f"Session completed {total} stages")

        except SessionError as e:
            logger.error(f"Session aborted at stage {index}/{total}: {e}")
            self._finish(SessionState.FAILED, str(e))
        except Exception as e:
            # Nothing awaits a registered session; the snapshot carries the error
            logger.error(f"Unexpected error in session: {e}", exc_info=True)
            self._finish(SessionState.FAILED, f"Unexpected error: {e}")

    def _finish(self, state: SessionState, error: str) -> None:
        with self.status.write() as snapshot:
            snapshot.state = state
            snapshot.error = error

    def _on_done(self, task: asyncio.Task) -> None:
        # A task cancelled before its first step never enters _run's body
        if not task.cancelled():
            return
        with self.status.write() as snapshot:
            logger.info(f"Session cancelled during stage {snapshot.stage}/{snapshot.max_stages}")
            snapshot.state = SessionState.CANCELLED
            snapshot.error = "Session was cancelled"

    async def _spawn(self, invocation: Invocation) -> None:
        """
        Run one stage process to completion.

        Raises:
            ProcessFailure: If the process cannot be started or exits non-zero
        """
        logger.debug(f"Command: {invocation}")

        try:
            process = await asyncio.create_subprocess_exec(
                *invocation.argv,
                stdin=invocation.stdin,
                stdout=invocation.stdout,
                stderr=invocation.stderr,
            )
        except OSError as e:
            raise ProcessFailure(invocation.program, None, str(e)) from e

        parser = TelemetryParser(self.status)
        try:
            _, _, returncode = await asyncio.gather(
                parser.consume(process.stdout),
                collect_stderr(process.stderr, self.status, invocation.program),
                process.wait(),
            )
        except asyncio.CancelledError:
            _kill(process)
            await process.wait()
            raise

        logger.info(f"{invocation.program} exited with code {returncode}")
        if returncode != 0:
            raise ProcessFailure(invocation.program, returncode)


def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill a stage process, tolerating one that already exited."""
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        logger.debug("Process already terminated")
