"""Track schema."""

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel
from beatcutter.timeline.schemas.clip import MediaType
from beatcutter.timeline.schemas.segment import ClipSegment


class TimelineTrack(BaseBeatcutterModel):
    """A track of non-overlapping segments."""

    id: str
    track_type: MediaType
    segments: list[ClipSegment] = Field(default_factory=list)

    @property
    def ordered_segments(self) -> list[ClipSegment]:
        """Segments sorted by timeline position."""
        return sorted(self.segments, key=lambda s: s.timeline_start_ms)

    @property
    def end_ms(self) -> int:
        """End of the last segment (0 for an empty track)."""
        return max((s.timeline_end_ms for s in self.segments), default=0)

    def find_segment(self, segment_id: str) -> ClipSegment | None:
        for segment in self.segments:
            if segment.id == segment_id:
                return segment
        return None

    def segment_at(self, time_ms: float) -> ClipSegment | None:
        """The segment covering a timeline time, if any."""
        for segment in self.segments:
            if segment.contains(time_ms):
                return segment
        return None
