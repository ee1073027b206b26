"""API response schemas."""

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel
from beatcutter.playback.schemas import FrameResolution
from beatcutter.render.schemas import RenderJobStatus


class FrameResponse(BaseBeatcutterModel):
    """Preview frame at a timeline time; ``frame`` is None for black."""

    current_time_ms: float
    frame: FrameResolution | None = None


class ExportJobResponse(BaseBeatcutterModel):
    """Export job status, plus the compiled command for started jobs."""

    status: RenderJobStatus
    constant_frame_rate: bool | None = None
    segment_count: int | None = None
