"""Project aggregate: everything the persistence layer stores."""

from pydantic import Field

from beatcutter.beat_analyzer.schemas import BeatGrid
from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel
from beatcutter.common.config import get_config
from beatcutter.timeline.schemas.clip import MediaType, SourceClip
from beatcutter.timeline.schemas.playback import PlaybackState
from beatcutter.timeline.schemas.segment import ClipSegment
from beatcutter.timeline.schemas.track import TimelineTrack

PROJECT_SCHEMA_VERSION = 1

DEFAULT_DURATION_MS = 30_000


def default_tracks() -> list[TimelineTrack]:
    return [
        TimelineTrack(id="video-1", track_type=MediaType.VIDEO),
        TimelineTrack(id="audio-1", track_type=MediaType.AUDIO),
    ]


class ProjectState(BaseBeatcutterModel):
    """Complete editor state as a flat, JSON-compatible structure."""

    version: int = PROJECT_SCHEMA_VERSION

    clips: list[SourceClip] = Field(default_factory=list)
    tracks: list[TimelineTrack] = Field(default_factory=default_tracks)
    beat_grid: BeatGrid = Field(default_factory=BeatGrid)
    playback: PlaybackState = Field(default_factory=PlaybackState)

    # Timeline length (audio length minus intro skip once audio is analyzed)
    duration_ms: int = Field(default=DEFAULT_DURATION_MS, ge=0)
    audio_duration_ms: int | None = None

    # Milliseconds of audio before timeline 0 (negative delays the audio)
    intro_skip_ms: int = 0

    # New projects take their musical defaults from the configuration
    beats_per_bar: int = Field(default_factory=lambda: get_config().beats_per_bar, ge=1)
    preferred_bars: int = Field(default_factory=lambda: get_config().preferred_bars, ge=1)

    selected_segment_id: str | None = None

    def find_clip(self, clip_id: str) -> SourceClip | None:
        """Look up a clip; clips may be deleted so absence is normal."""
        for clip in self.clips:
            if clip.id == clip_id:
                return clip
        return None

    def find_track(self, track_id: str) -> TimelineTrack | None:
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None

    def first_track(self, track_type: MediaType) -> TimelineTrack | None:
        for track in self.tracks:
            if track.track_type == track_type:
                return track
        return None

    def locate_segment(
        self, segment_id: str
    ) -> tuple[TimelineTrack, ClipSegment] | None:
        """Find a segment and the track that owns it."""
        for track in self.tracks:
            segment = track.find_segment(segment_id)
            if segment is not None:
                return track, segment
        return None

    @property
    def video_track(self) -> TimelineTrack | None:
        return self.first_track(MediaType.VIDEO)

    @property
    def audio_track(self) -> TimelineTrack | None:
        return self.first_track(MediaType.AUDIO)
