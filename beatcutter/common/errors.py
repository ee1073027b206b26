"""Exceptions surfaced by the export and render layers.

Analysis, planning and editing never raise for degenerate input; they degrade
to empty results or clamp. Only export and render failures are surfaced.
"""

import signal


class BeatcutterError(Exception):
    """Base class for all Beatcutter errors."""


class ExportError(BeatcutterError):
    """The timeline could not be exported."""


class NoValidSegmentsError(ExportError):
    """The video track has nothing that can be rendered."""

    def __init__(self) -> None:
        super().__init__("No valid segments to export")


class MissingSourceError(ExportError):
    """A source file referenced by the timeline is missing or unreadable."""

    def __init__(self, path: str, clip_id: str | None = None) -> None:
        self.path = path
        self.clip_id = clip_id
        super().__init__(f"Source file not found or unreadable: {path}")


class RendererNotFoundError(BeatcutterError):
    """The renderer binary could not be located."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"FFmpeg binary not found at {path}. "
            "Install ffmpeg or set BEATCUTTER_FFMPEG_PATH."
        )


class RenderJobConflictError(BeatcutterError):
    """A render job with the same id is already running."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Render job already running for job_id={job_id}")


class RenderFailedError(ExportError):
    """The renderer exited with a non-zero status or was killed by a signal."""

    def __init__(
        self,
        job_id: str,
        exit_code: int | None,
        termination_signal: str | None,
    ) -> None:
        self.job_id = job_id
        self.exit_code = exit_code
        self.termination_signal = termination_signal
        super().__init__(
            describe_render_failure(job_id, exit_code, termination_signal)
        )

    @property
    def out_of_memory(self) -> bool:
        """Whether the termination signal points at the OOM killer."""
        return self.termination_signal == signal.Signals.SIGKILL.name


def describe_render_failure(
    job_id: str,
    exit_code: int | None,
    termination_signal: str | None,
) -> str:
    """Build a human readable message for a failed render job."""
    if termination_signal == signal.Signals.SIGKILL.name:
        return (
            f"Render job {job_id} was killed by {termination_signal}; "
            "the system most likely ran out of memory. "
            "Try a lower resolution or shorter timeline."
        )
    if termination_signal:
        return f"Render job {job_id} terminated by signal {termination_signal}"
    return f"Render job {job_id} failed with exit code {exit_code}"
