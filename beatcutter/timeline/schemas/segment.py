"""Timeline segment schemas."""

import uuid
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel

DEFAULT_FADE_MS = 500


class FadeRange(BaseBeatcutterModel):
    """An opacity ramp inside a segment.

    For fade-in the bounds are measured from the segment start. For fade-out
    they are offsets from the segment end (usually negative).
    """

    enabled: bool = False
    start_ms: int = 0
    end_ms: int = DEFAULT_FADE_MS


def default_fade_in() -> FadeRange:
    return FadeRange(enabled=False, start_ms=0, end_ms=DEFAULT_FADE_MS)


def default_fade_out() -> FadeRange:
    return FadeRange(enabled=False, start_ms=-DEFAULT_FADE_MS, end_ms=0)


def _fill_fade_out_defaults(value: Any) -> Any:
    """Missing fade-out bounds default to the last ``DEFAULT_FADE_MS`` of the segment."""
    if isinstance(value, dict):
        return {**default_fade_out().model_dump(), **value}
    return value


# Fade-out bounds are offsets from the segment end
FadeOutRange = Annotated[FadeRange, BeforeValidator(_fill_fade_out_defaults)]


def new_segment_id() -> str:
    """Generate a fresh segment id (ids are never reused)."""
    return str(uuid.uuid4())


class ClipSegment(BaseBeatcutterModel):
    """A placed, time-bounded reference to a sub-range of a source clip."""

    id: str = Field(default_factory=new_segment_id)
    # Weak reference into the clip pool; the clip may have been deleted
    source_clip_id: str

    timeline_start_ms: int = Field(ge=0)
    duration_ms: int = Field(ge=1)

    # The "slip": where in the source this segment starts
    source_start_offset_ms: int = Field(default=0, ge=0)

    playback_rate: float = Field(default=1.0, gt=0)
    reverse: bool = False
    fade_in: FadeRange = Field(default_factory=default_fade_in)
    fade_out: FadeOutRange = Field(default_factory=default_fade_out)

    @property
    def timeline_end_ms(self) -> int:
        return self.timeline_start_ms + self.duration_ms

    def contains(self, time_ms: float) -> bool:
        """Whether a timeline time falls inside ``[start, end)``."""
        return self.timeline_start_ms <= time_ms < self.timeline_end_ms
