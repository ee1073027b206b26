"""Maps the timeline cursor to source-seek state for live preview.

Nothing here is cached: every frame is resolved from the current project and
the current time, so edits made during playback take effect on the next frame.
"""

import logging
from typing import Protocol

from beatcutter.playback.schemas import DriveMode, FrameResolution
from beatcutter.timeline.schemas import ClipSegment, ProjectState, SourceClip
from beatcutter.timeline.timing import effective_rate, fade_alpha

logger = logging.getLogger(__name__)

# Never seek closer than this to the end of a source file
SEEK_EPSILON_SEC = 0.05

# Only correct native playback when it drifts further than this
DRIFT_TOLERANCE_SEC = 0.2


def resolve_segment_frame(
    segment: ClipSegment,
    clip: SourceClip,
    current_time_ms: float,
) -> FrameResolution:
    """Compute the source position for a segment at a timeline time.

    Reverse segments are seek-driven on the forward media, or played
    natively when the clip has a reversed proxy.

    Args:
        segment: The active segment.
        clip: The segment's source clip.
        current_time_ms: Timeline cursor.

    Returns:
        FrameResolution with a seek time inside ``[0, clip end - epsilon]``.
    """
    offset_in_segment = min(
        max(0.0, current_time_ms - segment.timeline_start_ms), float(segment.duration_ms)
    )
    rate = effective_rate(segment, clip.duration_ms)

    effective_offset = (
        segment.duration_ms - offset_in_segment if segment.reverse else offset_in_segment
    )
    source_ms = segment.source_start_offset_ms + effective_offset * rate
    holding = rate <= 0

    # A reversed proxy plays the segment forward, at the mirrored position
    reverse_proxy = clip.reverse_proxy_path if segment.reverse else None
    if reverse_proxy is not None:
        source_ms = clip.duration_ms - source_ms
        media_path = reverse_proxy
    else:
        media_path = clip.preview_path

    max_seek = max(0.0, clip.duration_ms / 1000 - SEEK_EPSILON_SEC)
    source_seek_sec = min(max(0.0, source_ms / 1000), max_seek)

    if holding or (segment.reverse and reverse_proxy is None):
        drive_mode = DriveMode.SEEK
    else:
        drive_mode = DriveMode.PLAY

    return FrameResolution(
        segment_id=segment.id,
        source_clip_id=clip.id,
        media_path=media_path,
        timeline_time_ms=current_time_ms,
        offset_in_segment_ms=offset_in_segment,
        effective_rate=rate,
        source_seek_sec=source_seek_sec,
        fade_alpha=fade_alpha(segment, offset_in_segment),
        reverse=segment.reverse,
        drive_mode=drive_mode,
        holding_last_frame=holding,
    )


def resolve_frame(
    project: ProjectState,
    current_time_ms: float | None = None,
) -> FrameResolution | None:
    """Resolve the preview frame for the project's video track.

    Args:
        project: Current project state.
        current_time_ms: Timeline cursor (defaults to the playback state).

    Returns:
        FrameResolution, or None when nothing covers the cursor (black frame)
        or the segment's clip is no longer in the pool.
    """
    if current_time_ms is None:
        current_time_ms = project.playback.current_time_ms

    track = project.video_track
    if track is None:
        return None

    segment = track.segment_at(current_time_ms)
    if segment is None:
        return None

    clip = project.find_clip(segment.source_clip_id)
    if clip is None:
        logger.debug(
            "Segment %s references missing clip %s", segment.id, segment.source_clip_id
        )
        return None

    return resolve_segment_frame(segment, clip, current_time_ms)


class SourceElement(Protocol):
    """A media element the preview draws from (e.g. a decoder or video tag)."""

    current_time: float
    playback_rate: float

    @property
    def paused(self) -> bool: ...

    @property
    def loaded_path(self) -> str | None: ...

    def load(self, path: str) -> None: ...

    def seek(self, time_sec: float) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def clear(self) -> None: ...


def sync_source(
    element: SourceElement,
    frame: FrameResolution | None,
    is_playing: bool,
    transport_rate: float = 1.0,
) -> bool:
    """Bring a source element in line with a resolved frame.

    Seeks only when paused, when the frame is seek-driven, or when native
    playback drifted beyond the tolerance.

    Args:
        element: The media element to drive.
        frame: Resolved frame, or None for black.
        is_playing: Whether the transport is running.
        transport_rate: Speed of the timeline cursor. Native playback runs at
            the segment rate times this so it keeps pace with the cursor.

    Returns:
        True if a seek was issued.
    """
    if frame is None:
        if not element.paused:
            element.pause()
        element.clear()
        return False

    if element.loaded_path != frame.media_path:
        element.load(frame.media_path)

    native = frame.drive_mode == DriveMode.PLAY
    element_rate = frame.effective_rate * transport_rate
    if native and element.playback_rate != element_rate:
        element.playback_rate = element_rate

    drift = abs(element.current_time - frame.source_seek_sec)
    should_seek = not is_playing or not native or drift > DRIFT_TOLERANCE_SEC
    if should_seek:
        element.seek(frame.source_seek_sec)

    if is_playing and native:
        if element.paused:
            element.play()
    elif not element.paused:
        element.pause()

    return should_seek
