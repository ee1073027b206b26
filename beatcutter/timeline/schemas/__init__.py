"""Timeline schemas."""

from beatcutter.timeline.schemas.clip import MediaType, SourceClip
from beatcutter.timeline.schemas.commands import (
    AutoSync,
    EditCommand,
    InsertSegment,
    RemoveClip,
    RemoveSegment,
    ResizeSegment,
    SelectSegment,
    SetTempo,
    SlipSegment,
    SwapSegments,
    UpdateSegmentEffects,
)
from beatcutter.timeline.schemas.playback import PlaybackState
from beatcutter.timeline.schemas.project import (
    PROJECT_SCHEMA_VERSION,
    ProjectState,
)
from beatcutter.timeline.schemas.segment import (
    ClipSegment,
    FadeOutRange,
    FadeRange,
    default_fade_in,
    default_fade_out,
    new_segment_id,
)
from beatcutter.timeline.schemas.track import TimelineTrack

__all__ = [
    "PROJECT_SCHEMA_VERSION",
    "AutoSync",
    "ClipSegment",
    "FadeOutRange",
    "EditCommand",
    "FadeRange",
    "InsertSegment",
    "MediaType",
    "PlaybackState",
    "ProjectState",
    "RemoveClip",
    "RemoveSegment",
    "ResizeSegment",
    "SelectSegment",
    "SetTempo",
    "SlipSegment",
    "SourceClip",
    "SwapSegments",
    "TimelineTrack",
    "UpdateSegmentEffects",
    "default_fade_in",
    "default_fade_out",
    "new_segment_id",
]
