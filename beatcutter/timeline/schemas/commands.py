"""Edit commands accepted by ``apply_edit``."""

from typing import Annotated, Literal

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel
from beatcutter.timeline.schemas.segment import FadeOutRange, FadeRange


class ResizeSegment(BaseBeatcutterModel):
    """Change a segment's duration, rippling later segments."""

    kind: Literal["resize_segment"] = "resize_segment"
    segment_id: str
    duration_ms: int


class RemoveSegment(BaseBeatcutterModel):
    """Delete a segment and close the gap it leaves."""

    kind: Literal["remove_segment"] = "remove_segment"
    segment_id: str


class SwapSegments(BaseBeatcutterModel):
    """Exchange the source clips of two segments."""

    kind: Literal["swap_segments"] = "swap_segments"
    first_segment_id: str
    second_segment_id: str


class InsertSegment(BaseBeatcutterModel):
    """Insert a clip at a timeline position, rippling later segments."""

    kind: Literal["insert_segment"] = "insert_segment"
    track_id: str
    clip_id: str
    timeline_start_ms: int
    duration_ms: int
    source_start_offset_ms: int = 0


class SlipSegment(BaseBeatcutterModel):
    """Change which part of the source plays without moving the segment."""

    kind: Literal["slip_segment"] = "slip_segment"
    segment_id: str
    source_start_offset_ms: int


class UpdateSegmentEffects(BaseBeatcutterModel):
    """Set speed, direction and fades. Unset fields are left unchanged."""

    kind: Literal["update_segment_effects"] = "update_segment_effects"
    segment_id: str
    playback_rate: float | None = None
    reverse: bool | None = None
    fade_in: FadeRange | None = None
    fade_out: FadeOutRange | None = None


class SelectSegment(BaseBeatcutterModel):
    kind: Literal["select_segment"] = "select_segment"
    segment_id: str | None = None


class RemoveClip(BaseBeatcutterModel):
    """Remove a clip from the pool along with every segment using it."""

    kind: Literal["remove_clip"] = "remove_clip"
    clip_id: str


class SetTempo(BaseBeatcutterModel):
    """Change BPM and/or intro skip, rebuilding the beat grid.

    With ``resync`` the video track is re-planned on the new grid. Tempos
    above ``MAX_BPM`` are clamped to it.
    """

    kind: Literal["set_tempo"] = "set_tempo"
    bpm: float | None = None
    intro_skip_ms: int | None = None
    resync: bool = False


class AutoSync(BaseBeatcutterModel):
    """Replace the video track with an auto-synced plan."""

    kind: Literal["auto_sync"] = "auto_sync"
    preferred_bars: int | None = None


EditCommand = Annotated[
    ResizeSegment
    | RemoveSegment
    | SwapSegments
    | InsertSegment
    | SlipSegment
    | UpdateSegmentEffects
    | SelectSegment
    | RemoveClip
    | SetTempo
    | AutoSync,
    Field(discriminator="kind"),
]
