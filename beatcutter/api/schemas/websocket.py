"""WebSocket message schemas."""

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel
from beatcutter.render.schemas import RenderJobStatus, RenderStage


class ProgressMessage(BaseBeatcutterModel):
    """WebSocket message for export progress updates."""

    job_id: str
    stage: RenderStage
    progress_percent: float = Field(ge=0, le=100)
    elapsed_sec: float | None = None
    message: str = ""

    @classmethod
    def from_status(cls, status: RenderJobStatus) -> "ProgressMessage":
        """Snapshot of a tracked job, sent to clients that join mid-render."""
        if status.stage == RenderStage.COMPLETED:
            message = status.output_path
        else:
            message = status.error_message or ""
        return cls(
            job_id=status.job_id,
            stage=status.stage,
            progress_percent=status.progress_percent,
            elapsed_sec=status.elapsed_sec,
            message=message,
        )
