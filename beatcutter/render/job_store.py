"""In-memory registry of export job statuses."""

import logging
from datetime import UTC, datetime
from typing import Any

from beatcutter.render.schemas import RenderJobStatus, RenderStage

logger = logging.getLogger(__name__)


class RenderJobStore:
    """Keeps the latest status of every export job in this process."""

    def __init__(self) -> None:
        self._jobs: dict[str, RenderJobStatus] = {}

    def create(self, job_id: str, output_path: str, total_duration_sec: float) -> RenderJobStatus:
        status = RenderJobStatus(
            job_id=job_id,
            output_path=output_path,
            total_duration_sec=total_duration_sec,
        )
        self._jobs[job_id] = status
        return status

    def get(self, job_id: str) -> RenderJobStatus | None:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[RenderJobStatus]:
        return sorted(self._jobs.values(), key=lambda s: s.created_at, reverse=True)

    def update(self, job_id: str, **changes: Any) -> RenderJobStatus | None:
        """Apply field changes to a job; finishing stages stamp ``completed_at``."""
        status = self._jobs.get(job_id)
        if status is None:
            logger.warning("[job=%s] Status update for unknown job", job_id)
            return None

        stage = changes.get("stage")
        if stage is not None and RenderStage(stage) in (
            RenderStage.COMPLETED,
            RenderStage.FAILED,
            RenderStage.CANCELLED,
        ):
            changes.setdefault("completed_at", datetime.now(UTC))

        updated = RenderJobStatus.model_validate({**status.model_dump(), **changes})
        self._jobs[job_id] = updated
        return updated
