"""Runs the external renderer (ffmpeg) as a subprocess."""

import asyncio
import logging
import re
import signal
from collections import deque
from collections.abc import Awaitable, Callable

from beatcutter.common.config import BeatcutterConfig, get_config, resolve_ffmpeg_path
from beatcutter.common.errors import RendererNotFoundError, RenderJobConflictError
from beatcutter.render.schemas import RenderJobRequest, RenderJobResult, RenderProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[RenderProgress], Awaitable[None]]

_TIME_PATTERN = re.compile(r"time=(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
_LINE_BREAK = re.compile(r"[\r\n]")

_READ_CHUNK_BYTES = 4096
_LOG_TAIL_LINES = 20
_TERMINATE_TIMEOUT_SEC = 5.0


def parse_progress_time(line: str) -> float | None:
    """Extract the ``time=HH:MM:SS.ms`` position from a renderer line, in seconds."""
    match = _TIME_PATTERN.search(line)
    if match is None:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def progress_percent(elapsed_sec: float, expected_duration_sec: float | None) -> float | None:
    """Convert elapsed output time into a 0-100 percent, when the total is known."""
    if not expected_duration_sec or expected_duration_sec <= 0:
        return None
    return min(100.0, max(0.0, elapsed_sec / expected_duration_sec * 100))


class RenderRunner:
    """Spawns render jobs and tracks the ones still running.

    At most one job may run per job id. Cancellation is best effort: the
    process is sent SIGTERM and partial output is left as is.
    """

    def __init__(self, ffmpeg_path: str | None = None) -> None:
        """Initialize the runner.

        Args:
            ffmpeg_path: Renderer binary. Defaults to the configured one.
        """
        self._ffmpeg_path = ffmpeg_path
        # None marks a job that is reserved but not spawned yet
        self._active: dict[str, asyncio.subprocess.Process | None] = {}
        self._cancel_requested: set[str] = set()

    def resolve_binary(self) -> str:
        """Locate the renderer executable.

        Raises:
            RendererNotFoundError: If the binary cannot be found.
        """
        if self._ffmpeg_path is None:
            config = get_config()
        else:
            config = BeatcutterConfig(ffmpeg_path=self._ffmpeg_path)
        path = resolve_ffmpeg_path(config)
        if path is None:
            raise RendererNotFoundError(config.ffmpeg_path)
        return path

    def is_running(self, job_id: str) -> bool:
        return job_id in self._active

    @property
    def active_job_ids(self) -> list[str]:
        return list(self._active)

    async def run(
        self,
        request: RenderJobRequest,
        on_progress: ProgressCallback | None = None,
    ) -> RenderJobResult:
        """Run a render job to completion.

        Args:
            request: The job to run.
            on_progress: Awaited for every progress line the renderer prints.

        Returns:
            The exit status. Failures are reported in the result, not raised.

        Raises:
            RenderJobConflictError: If a job with the same id is running.
            RendererNotFoundError: If the renderer binary cannot be found.
        """
        job_id = request.job_id
        if job_id in self._active:
            raise RenderJobConflictError(job_id)

        binary = self.resolve_binary()
        self._active[job_id] = None
        log_tail: deque[str] = deque(maxlen=_LOG_TAIL_LINES)
        process: asyncio.subprocess.Process | None = None

        try:
            logger.info("[job=%s] Starting renderer with %d args", job_id, len(request.args))
            logger.debug("[job=%s] %s %s", job_id, binary, " ".join(request.args))

            process = await asyncio.create_subprocess_exec(
                binary,
                *request.args,
                cwd=request.working_directory,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            self._active[job_id] = process
            if job_id in self._cancel_requested:
                self._terminate(job_id, process)

            if process.stderr is not None:
                await self._pump_output(request, process.stderr, log_tail, on_progress)
            return_code = await process.wait()
        finally:
            # Never leave a renderer running once the job id is released
            if process is not None and process.returncode is None:
                await self._stop(job_id, process)
            self._active.pop(job_id, None)
            self._cancel_requested.discard(job_id)

        result = _to_result(job_id, return_code, list(log_tail))
        if result.succeeded:
            logger.info("[job=%s] Renderer finished", job_id)
        else:
            logger.warning(
                "[job=%s] Renderer exited: code=%s signal=%s",
                job_id,
                result.exit_code,
                result.termination_signal,
            )
        return result

    def cancel(self, job_id: str) -> bool:
        """Ask a running job to stop.

        Returns:
            True if the job was running and a termination was requested.
        """
        if job_id not in self._active:
            return False

        self._cancel_requested.add(job_id)
        process = self._active[job_id]
        if process is None:
            # Terminated as soon as it is spawned
            return True
        return self._terminate(job_id, process)

    async def _stop(self, job_id: str, process: asyncio.subprocess.Process) -> None:
        """Terminate a renderer and wait for it, killing it if SIGTERM is ignored."""
        self._terminate(job_id, process)
        try:
            await asyncio.wait_for(process.wait(), timeout=_TERMINATE_TIMEOUT_SEC)
        except TimeoutError:
            logger.warning("[job=%s] Renderer ignored SIGTERM, killing it", job_id)
            process.kill()
            await process.wait()

    def _terminate(self, job_id: str, process: asyncio.subprocess.Process) -> bool:
        if process.returncode is not None:
            return False
        try:
            process.send_signal(signal.SIGTERM)
        except ProcessLookupError:
            return False
        logger.info("[job=%s] Sent SIGTERM to renderer", job_id)
        return True

    async def _pump_output(
        self,
        request: RenderJobRequest,
        stream: asyncio.StreamReader,
        log_tail: deque[str],
        on_progress: ProgressCallback | None,
    ) -> None:
        """Split renderer output on CR/LF and emit progress per line."""
        buffer = ""
        while True:
            chunk = await stream.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            buffer += chunk.decode("utf-8", errors="replace")
            *lines, buffer = _LINE_BREAK.split(buffer)
            for line in lines:
                await self._handle_line(request, line, log_tail, on_progress)

        if buffer:
            await self._handle_line(request, buffer, log_tail, on_progress)

    async def _handle_line(
        self,
        request: RenderJobRequest,
        line: str,
        log_tail: deque[str],
        on_progress: ProgressCallback | None,
    ) -> None:
        line = line.strip()
        if not line:
            return
        log_tail.append(line)

        elapsed = parse_progress_time(line)
        if elapsed is None or on_progress is None:
            return

        await on_progress(
            RenderProgress(
                job_id=request.job_id,
                elapsed_sec=elapsed,
                percent=progress_percent(elapsed, request.expected_duration_sec),
                raw_line=line,
            )
        )


def _to_result(job_id: str, return_code: int, log_tail: list[str]) -> RenderJobResult:
    # Negative return codes mean the process was killed by that signal
    if return_code < 0:
        try:
            signal_name = signal.Signals(-return_code).name
        except ValueError:
            signal_name = f"SIG{-return_code}"
        return RenderJobResult(
            job_id=job_id,
            exit_code=None,
            termination_signal=signal_name,
            log_tail=log_tail,
        )
    return RenderJobResult(job_id=job_id, exit_code=return_code, log_tail=log_tail)
