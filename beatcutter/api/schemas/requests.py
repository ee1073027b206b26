"""API request schemas."""

from pydantic import Field

from beatcutter.beat_analyzer.schemas import MAX_BPM, MAX_GRID_DURATION_SEC
from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel
from beatcutter.export_compiler.schemas import ExportSettings
from beatcutter.timeline.schemas import EditCommand, ProjectState


class BeatGridRequest(BaseBeatcutterModel):
    """Request to build a beat grid from a known tempo."""

    bpm: float = Field(gt=0, le=MAX_BPM)
    offset: float = 0.0
    duration_sec: float = Field(ge=0, le=MAX_GRID_DURATION_SEC)


class AnalyzeBeatsRequest(BaseBeatcutterModel):
    """Request to analyze an audio file on the server's disk."""

    audio_path: str = Field(min_length=1)


class AutoSyncRequest(BaseBeatcutterModel):
    project: ProjectState
    preferred_bars: int | None = None


class EditRequest(BaseBeatcutterModel):
    """Request to apply one or more edits, in order."""

    project: ProjectState
    commands: list[EditCommand] = Field(min_length=1)


class FrameRequest(BaseBeatcutterModel):
    project: ProjectState
    current_time_ms: float | None = Field(default=None, ge=0)


class ExportRequest(BaseBeatcutterModel):
    """Request to compile a project and render it in the background."""

    project: ProjectState
    settings: ExportSettings
    job_id: str | None = None


class OtioExportRequest(BaseBeatcutterModel):
    """Request to write the project as an OTIO file."""

    project: ProjectState
    output_path: str = Field(min_length=1)
    frame_rate: float = Field(default=30.0, gt=0)
