"""Render job schemas."""

from datetime import UTC, datetime
from enum import StrEnum, auto
from uuid import uuid4

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel


def new_job_id() -> str:
    return uuid4().hex


class RenderJobRequest(BaseBeatcutterModel):
    """One invocation of the external renderer."""

    job_id: str = Field(default_factory=new_job_id)
    args: list[str]
    working_directory: str | None = None
    # Enables percent in progress events
    expected_duration_sec: float | None = None


class RenderJobResult(BaseBeatcutterModel):
    """Exit status of a finished render."""

    job_id: str
    exit_code: int | None
    termination_signal: str | None = None
    # Last renderer output lines, for error reporting
    log_tail: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.termination_signal is None


class RenderProgress(BaseBeatcutterModel):
    """A progress event parsed from the renderer's output."""

    job_id: str
    elapsed_sec: float = Field(ge=0)
    percent: float | None = Field(default=None, ge=0, le=100)
    raw_line: str


class RenderStage(StrEnum):
    """Lifecycle of an export job."""

    QUEUED = auto()
    RENDERING = auto()
    COMPLETED = auto()
    FAILED = auto()
    CANCELLED = auto()


class RenderJobStatus(BaseBeatcutterModel):
    """Tracked state of an export job."""

    job_id: str
    stage: RenderStage = RenderStage.QUEUED
    output_path: str
    progress_percent: float = Field(default=0.0, ge=0, le=100)
    elapsed_sec: float = 0.0
    total_duration_sec: float = 0.0
    exit_code: int | None = None
    termination_signal: str | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def is_finished(self) -> bool:
        return self.stage in (
            RenderStage.COMPLETED,
            RenderStage.FAILED,
            RenderStage.CANCELLED,
        )
