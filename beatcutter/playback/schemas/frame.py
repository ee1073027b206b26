"""Per-frame preview resolution schemas."""

from enum import StrEnum, auto

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel


class DriveMode(StrEnum):
    """How the source element is driven for a frame."""

    PLAY = auto()  # Native playback at the effective rate
    SEEK = auto()  # Paused, stepped by explicit seeks (reverse, held frames)


class FrameResolution(BaseBeatcutterModel):
    """What the preview should show at one timeline time."""

    segment_id: str
    source_clip_id: str
    media_path: str

    timeline_time_ms: float
    offset_in_segment_ms: float

    effective_rate: float
    source_seek_sec: float
    fade_alpha: float = Field(ge=0, le=1)

    reverse: bool
    drive_mode: DriveMode

    # No source left after the offset: the last frame is held
    holding_last_frame: bool = False
