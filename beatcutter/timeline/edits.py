"""Timeline edit operations.

Every edit is a pure function ``(ProjectState, command) -> ProjectState``.
Models are immutable, so a half-applied edit is never observable and the
preview can keep reading the previous state while an edit runs.

Out-of-range requests are clamped silently; commands that reference a
missing segment, clip or track return the state unchanged.
"""

import logging
import math
from collections.abc import Callable
from typing import Any

from beatcutter.auto_sync.providers import auto_sync_planner_service
from beatcutter.auto_sync.service import sanitize_preferred_bars
from beatcutter.beat_analyzer.beat_grid import rebuild_beat_grid
from beatcutter.beat_analyzer.schemas import MAX_BPM
from beatcutter.timeline.schemas import (
    AutoSync,
    ClipSegment,
    EditCommand,
    InsertSegment,
    MediaType,
    ProjectState,
    RemoveClip,
    RemoveSegment,
    ResizeSegment,
    SelectSegment,
    SetTempo,
    SlipSegment,
    SourceClip,
    SwapSegments,
    TimelineTrack,
    UpdateSegmentEffects,
)
from beatcutter.timeline.timing import clamp_source_offset

logger = logging.getLogger(__name__)

MIN_PLAYBACK_RATE = 0.05
MAX_PLAYBACK_RATE = 20.0

# Longest segment a resize may produce, in bars at the grid tempo
MAX_SEGMENT_BARS = 8


def max_segment_duration(project: ProjectState, clip_duration_ms: int) -> int:
    """Upper bound for a segment's duration.

    A segment may always cover its whole clip, and may be stretched up to
    MAX_SEGMENT_BARS bars at the current tempo.
    """
    spb = project.beat_grid.seconds_per_beat
    bar_ceiling_ms = round(MAX_SEGMENT_BARS * project.beats_per_bar * spb * 1000)
    return max(1, clip_duration_ms, bar_ceiling_ms)


def _clip_duration_for(project: ProjectState, segment: ClipSegment) -> int:
    clip = project.find_clip(segment.source_clip_id)
    if clip is not None:
        return clip.duration_ms
    # Clip deleted from the pool: trust the segment's own extent
    return segment.source_start_offset_ms + segment.duration_ms


def _replace_track(project: ProjectState, track: TimelineTrack) -> ProjectState:
    tracks = [track if t.id == track.id else t for t in project.tracks]
    return project.model_copy(update={"tracks": tracks})


def _replace_segments(
    project: ProjectState, replacements: dict[str, ClipSegment]
) -> ProjectState:
    tracks = [
        track.model_copy(
            update={"segments": [replacements.get(s.id, s) for s in track.segments]}
        )
        for track in project.tracks
    ]
    return project.model_copy(update={"tracks": tracks})


def _shift_segments(
    segments: list[ClipSegment],
    after_ms: int,
    delta_ms: int,
    exclude_id: str | None = None,
) -> list[ClipSegment]:
    """Move every segment starting strictly after ``after_ms`` by ``delta_ms``."""
    shifted: list[ClipSegment] = []
    for segment in segments:
        if segment.id != exclude_id and segment.timeline_start_ms > after_ms:
            segment = segment.model_copy(
                update={
                    "timeline_start_ms": max(0, segment.timeline_start_ms + delta_ms)
                }
            )
        shifted.append(segment)
    return shifted


def _sorted(segments: list[ClipSegment]) -> list[ClipSegment]:
    return sorted(segments, key=lambda s: s.timeline_start_ms)


def resize_segment(project: ProjectState, command: ResizeSegment) -> ProjectState:
    located = project.locate_segment(command.segment_id)
    if located is None:
        return project
    track, segment = located

    clip_duration = _clip_duration_for(project, segment)
    new_duration = min(
        max(1, command.duration_ms), max_segment_duration(project, clip_duration)
    )
    delta = new_duration - segment.duration_ms

    resized = segment.model_copy(
        update={
            "duration_ms": new_duration,
            "source_start_offset_ms": clamp_source_offset(
                clip_duration, new_duration, segment.source_start_offset_ms
            ),
        }
    )
    segments = [resized if s.id == segment.id else s for s in track.segments]
    segments = _shift_segments(
        segments, segment.timeline_start_ms, delta, exclude_id=segment.id
    )
    return _replace_track(project, track.model_copy(update={"segments": _sorted(segments)}))


def remove_segment(project: ProjectState, command: RemoveSegment) -> ProjectState:
    located = project.locate_segment(command.segment_id)
    if located is None:
        return project
    track, segment = located

    remaining = [s for s in track.segments if s.id != segment.id]
    remaining = _sorted(
        _shift_segments(remaining, segment.timeline_start_ms, -segment.duration_ms)
    )

    selected = project.selected_segment_id
    if selected == segment.id:
        later = [s for s in remaining if s.timeline_start_ms >= segment.timeline_start_ms]
        selected = later[0].id if later else None

    updated = _replace_track(project, track.model_copy(update={"segments": remaining}))
    return updated.model_copy(update={"selected_segment_id": selected})


def swap_segments(project: ProjectState, command: SwapSegments) -> ProjectState:
    first = project.locate_segment(command.first_segment_id)
    second = project.locate_segment(command.second_segment_id)
    if first is None or second is None or command.first_segment_id == command.second_segment_id:
        return project

    (first_track, a), (second_track, b) = first, second
    if first_track.track_type != second_track.track_type:
        return project

    clip_a = project.find_clip(a.source_clip_id)
    clip_b = project.find_clip(b.source_clip_id)
    if clip_a is None or clip_b is None:
        return project

    new_a = a.model_copy(
        update={
            "source_clip_id": clip_b.id,
            "source_start_offset_ms": clamp_source_offset(
                clip_b.duration_ms, a.duration_ms, b.source_start_offset_ms
            ),
        }
    )
    new_b = b.model_copy(
        update={
            "source_clip_id": clip_a.id,
            "source_start_offset_ms": clamp_source_offset(
                clip_a.duration_ms, b.duration_ms, a.source_start_offset_ms
            ),
        }
    )
    return _replace_segments(project, {a.id: new_a, b.id: new_b})


def insert_segment(project: ProjectState, command: InsertSegment) -> ProjectState:
    track = project.find_track(command.track_id)
    clip = project.find_clip(command.clip_id)
    if track is None or clip is None or clip.media_type != track.track_type:
        return project

    duration = min(
        max(1, command.duration_ms), max_segment_duration(project, clip.duration_ms)
    )

    insert_at = max(0, command.timeline_start_ms)
    covering = track.segment_at(insert_at)
    if covering is not None and covering.timeline_start_ms < insert_at:
        insert_at = covering.timeline_end_ms

    new_segment = ClipSegment(
        source_clip_id=clip.id,
        timeline_start_ms=insert_at,
        duration_ms=duration,
        source_start_offset_ms=clamp_source_offset(
            clip.duration_ms, duration, command.source_start_offset_ms
        ),
    )
    segments = _shift_segments(track.segments, insert_at - 1, duration)
    segments = _sorted([*segments, new_segment])
    return _replace_track(project, track.model_copy(update={"segments": segments}))


def slip_segment(project: ProjectState, command: SlipSegment) -> ProjectState:
    located = project.locate_segment(command.segment_id)
    if located is None:
        return project
    _, segment = located

    clip = project.find_clip(segment.source_clip_id)
    if clip is None:
        return project

    slipped = segment.model_copy(
        update={
            "source_start_offset_ms": clamp_source_offset(
                clip.duration_ms, segment.duration_ms, command.source_start_offset_ms
            )
        }
    )
    return _replace_segments(project, {segment.id: slipped})


def update_segment_effects(
    project: ProjectState, command: UpdateSegmentEffects
) -> ProjectState:
    located = project.locate_segment(command.segment_id)
    if located is None:
        return project
    _, segment = located

    update: dict[str, Any] = {}
    if command.playback_rate is not None and math.isfinite(command.playback_rate):
        update["playback_rate"] = min(
            MAX_PLAYBACK_RATE, max(MIN_PLAYBACK_RATE, command.playback_rate)
        )
    if command.reverse is not None:
        update["reverse"] = command.reverse
    if command.fade_in is not None:
        update["fade_in"] = command.fade_in
    if command.fade_out is not None:
        update["fade_out"] = command.fade_out

    if not update:
        return project
    return _replace_segments(project, {segment.id: segment.model_copy(update=update)})


def select_segment(project: ProjectState, command: SelectSegment) -> ProjectState:
    selected = command.segment_id
    if selected is not None and project.locate_segment(selected) is None:
        selected = None
    return project.model_copy(update={"selected_segment_id": selected})


def remove_clip(project: ProjectState, command: RemoveClip) -> ProjectState:
    clips: list[SourceClip] = [c for c in project.clips if c.id != command.clip_id]
    tracks = [
        track.model_copy(
            update={
                "segments": [
                    s for s in track.segments if s.source_clip_id != command.clip_id
                ]
            }
        )
        for track in project.tracks
    ]
    updated = project.model_copy(update={"clips": clips, "tracks": tracks})
    if (
        updated.selected_segment_id is not None
        and updated.locate_segment(updated.selected_segment_id) is None
    ):
        updated = updated.model_copy(update={"selected_segment_id": None})
    return updated


def set_tempo(project: ProjectState, command: SetTempo) -> ProjectState:
    bpm = project.beat_grid.bpm
    if command.bpm is not None and math.isfinite(command.bpm) and command.bpm > 0:
        bpm = min(command.bpm, MAX_BPM)

    intro_skip_ms = (
        project.intro_skip_ms if command.intro_skip_ms is None else command.intro_skip_ms
    )
    audio_duration_ms = (
        project.audio_duration_ms
        if project.audio_duration_ms is not None
        else project.duration_ms + project.intro_skip_ms
    )

    beat_grid = rebuild_beat_grid(
        project.beat_grid,
        audio_duration_ms / 1000,
        previous_intro_skip_sec=project.intro_skip_ms / 1000,
        intro_skip_sec=intro_skip_ms / 1000,
        bpm=bpm,
    )
    duration_ms = max(0, audio_duration_ms - intro_skip_ms)
    playback = project.playback.model_copy(
        update={"current_time_ms": min(project.playback.current_time_ms, duration_ms)}
    )

    logger.info(
        "Rebuilt beat grid: %.1f BPM, intro skip %d ms, %d beats",
        beat_grid.bpm,
        intro_skip_ms,
        len(beat_grid.beats),
    )

    updated = project.model_copy(
        update={
            "beat_grid": beat_grid,
            "intro_skip_ms": intro_skip_ms,
            "duration_ms": duration_ms,
            "playback": playback,
        }
    )
    if command.resync:
        updated = auto_sync(updated, AutoSync())
    return updated


def auto_sync(project: ProjectState, command: AutoSync) -> ProjectState:
    preferred_bars = sanitize_preferred_bars(
        command.preferred_bars
        if command.preferred_bars is not None
        else project.preferred_bars
    )
    segments = auto_sync_planner_service().plan(
        project.clips,
        project.beat_grid,
        project.duration_ms,
        preferred_bars=preferred_bars,
        beats_per_bar=project.beats_per_bar,
    )

    video_track = project.video_track
    if video_track is None:
        video_track = TimelineTrack(id="video-1", track_type=MediaType.VIDEO)
        project = project.model_copy(update={"tracks": [video_track, *project.tracks]})

    updated = _replace_track(project, video_track.model_copy(update={"segments": segments}))
    selected = updated.selected_segment_id
    if selected is not None and updated.locate_segment(selected) is None:
        selected = None
    return updated.model_copy(
        update={"preferred_bars": preferred_bars, "selected_segment_id": selected}
    )


_HANDLERS: dict[type, Callable[[ProjectState, Any], ProjectState]] = {
    ResizeSegment: resize_segment,
    RemoveSegment: remove_segment,
    SwapSegments: swap_segments,
    InsertSegment: insert_segment,
    SlipSegment: slip_segment,
    UpdateSegmentEffects: update_segment_effects,
    SelectSegment: select_segment,
    RemoveClip: remove_clip,
    SetTempo: set_tempo,
    AutoSync: auto_sync,
}


def apply_edit(project: ProjectState, command: EditCommand) -> ProjectState:
    """Apply one edit command and return the new project state.

    Args:
        project: Current state (left untouched).
        command: The edit to apply.

    Returns:
        The updated state.
    """
    handler = _HANDLERS.get(type(command))
    if handler is None:
        msg = f"Unsupported edit command: {type(command).__name__}"
        raise TypeError(msg)
    return handler(project, command)
