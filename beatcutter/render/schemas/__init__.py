"""Render schemas."""

from beatcutter.render.schemas.job import (
    RenderJobRequest,
    RenderJobResult,
    RenderJobStatus,
    RenderProgress,
    RenderStage,
    new_job_id,
)

__all__ = [
    "RenderJobRequest",
    "RenderJobResult",
    "RenderJobStatus",
    "RenderProgress",
    "RenderStage",
    "new_job_id",
]
