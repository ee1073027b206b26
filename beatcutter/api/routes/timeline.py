"""Timeline editing and preview routes.

The server keeps no project state: each request carries the project and
gets the updated project back.
"""

from fastapi import APIRouter

from beatcutter.api.schemas import AutoSyncRequest, EditRequest, FrameRequest, FrameResponse
from beatcutter.playback.scheduler import resolve_frame
from beatcutter.timeline.edits import apply_edit
from beatcutter.timeline.schemas import AutoSync, ProjectState

router = APIRouter()


@router.post("/auto-sync", response_model=ProjectState)
def auto_sync(request: AutoSyncRequest) -> ProjectState:
    """Replace the video track with a beat-synced plan."""
    return apply_edit(request.project, AutoSync(preferred_bars=request.preferred_bars))


@router.post("/edits", response_model=ProjectState)
def edits(request: EditRequest) -> ProjectState:
    """Apply edit commands in order."""
    project = request.project
    for command in request.commands:
        project = apply_edit(project, command)
    return project


@router.post("/frame", response_model=FrameResponse)
def frame(request: FrameRequest) -> FrameResponse:
    """Resolve what the preview shows at a timeline time."""
    current_time_ms = (
        request.current_time_ms
        if request.current_time_ms is not None
        else float(request.project.playback.current_time_ms)
    )
    return FrameResponse(
        current_time_ms=current_time_ms,
        frame=resolve_frame(request.project, current_time_ms),
    )
