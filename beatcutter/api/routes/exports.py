"""Export routes: compile, render in the background, track and cancel."""

import logging
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.concurrency import run_in_threadpool

from beatcutter.api.schemas import ExportJobResponse, ExportRequest, OtioExportRequest
from beatcutter.common.errors import BeatcutterError, ExportError, RenderFailedError
from beatcutter.export_compiler.otio_writer import write_timeline_otio
from beatcutter.export_compiler.providers import export_compiler_service, export_service
from beatcutter.export_compiler.schemas import RenderPlan
from beatcutter.render.progress_reporter import ProgressReporter
from beatcutter.render.providers import render_job_store, render_runner
from beatcutter.render.schemas import RenderJobStatus, RenderProgress, RenderStage, new_job_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ExportJobResponse)
async def start_export(
    request: ExportRequest,
    background_tasks: BackgroundTasks,
) -> ExportJobResponse:
    """Compile the project and start rendering it in the background."""
    job_id = request.job_id or new_job_id()
    store = render_job_store()

    existing = store.get(job_id)
    if render_runner().is_running(job_id) or (existing is not None and not existing.is_finished):
        raise HTTPException(status_code=409, detail="Export job is already running")

    try:
        plan = export_compiler_service().compile(request.project, request.settings)
    except ExportError as e:
        logger.warning("[job=%s] Export rejected: %s", job_id, e)
        raise HTTPException(status_code=400, detail=str(e)) from e

    status = store.create(job_id, plan.output_path, plan.total_duration_sec)
    background_tasks.add_task(_run_export, plan, job_id)

    logger.info("[job=%s] Export queued: %s", job_id, plan.output_path)
    return ExportJobResponse(
        status=status,
        constant_frame_rate=plan.constant_frame_rate,
        segment_count=plan.segment_count,
    )


@router.get("", response_model=list[RenderJobStatus])
def list_exports() -> list[RenderJobStatus]:
    """List export jobs, newest first."""
    return render_job_store().list_jobs()


@router.post("/otio")
async def export_otio(request: OtioExportRequest) -> dict[str, str]:
    """Write the project as an OTIO timeline for other editors."""
    output_path = await run_in_threadpool(
        write_timeline_otio,
        request.project,
        Path(request.output_path),
        request.frame_rate,
    )
    return {"status": "success", "output_path": str(output_path)}


@router.get("/{job_id}", response_model=ExportJobResponse)
def get_export(job_id: str) -> ExportJobResponse:
    """Get an export job's status."""
    status = render_job_store().get(job_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Export job not found")
    return ExportJobResponse(status=status)


@router.post("/{job_id}/cancel")
async def cancel_export(job_id: str) -> dict[str, str]:
    """Cancel a running export (best effort, partial output is kept)."""
    store = render_job_store()
    status = store.get(job_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Export job not found")
    if status.is_finished:
        raise HTTPException(status_code=409, detail=f"Export job already {status.stage}")

    render_runner().cancel(job_id)
    store.update(job_id, stage=RenderStage.CANCELLED)
    return {"status": "cancelled", "job_id": job_id}


async def _run_export(plan: RenderPlan, job_id: str) -> None:
    """Render a compiled plan, recording status and broadcasting progress."""
    store = render_job_store()
    reporter = ProgressReporter(job_id)

    status = store.get(job_id)
    if status is None or status.stage == RenderStage.CANCELLED:
        await reporter.send_cancelled()
        return
    store.update(job_id, stage=RenderStage.RENDERING)

    async def on_progress(progress: RenderProgress) -> None:
        if progress.percent is not None:
            store.update(
                job_id,
                progress_percent=progress.percent,
                elapsed_sec=progress.elapsed_sec,
            )
        else:
            store.update(job_id, elapsed_sec=progress.elapsed_sec)
        await reporter.on_render_progress(progress)

    try:
        result = await export_service().render(plan, job_id, on_progress)
    except RenderFailedError as e:
        current = store.get(job_id)
        if current is not None and current.stage == RenderStage.CANCELLED:
            store.update(job_id, termination_signal=e.termination_signal)
            await reporter.send_cancelled()
            return
        store.update(
            job_id,
            stage=RenderStage.FAILED,
            exit_code=e.exit_code,
            termination_signal=e.termination_signal,
            error_message=str(e),
        )
        await reporter.send_error(str(e))
        return
    except BeatcutterError as e:
        store.update(job_id, stage=RenderStage.FAILED, error_message=str(e))
        await reporter.send_error(str(e))
        return

    store.update(
        job_id,
        stage=RenderStage.COMPLETED,
        progress_percent=100.0,
        exit_code=result.exit_code,
    )
    await reporter.send_complete(plan.output_path)
