"""OpenTimelineIO interchange export for hand-off to other editors."""

import logging
from pathlib import Path

import opentimelineio as otio

from beatcutter.timeline.schemas import ClipSegment, FadeRange, ProjectState, SourceClip
from beatcutter.timeline.timing import effective_rate

logger = logging.getLogger(__name__)

DEFAULT_FRAME_RATE = 30.0


def write_timeline_otio(
    project: ProjectState,
    output_path: Path,
    frame_rate: float = DEFAULT_FRAME_RATE,
) -> Path:
    """Write the project's tracks to an OTIO file.

    Args:
        project: The project to export.
        output_path: Where to save the .otio file.
        frame_rate: Rate used for all rational times.

    Returns:
        The path to the saved OTIO file.
    """
    timeline = build_otio_timeline(project, frame_rate)
    otio.adapters.write_to_file(timeline, str(output_path))
    logger.info("Wrote OTIO timeline to %s", output_path)
    return output_path


def build_otio_timeline(
    project: ProjectState,
    frame_rate: float = DEFAULT_FRAME_RATE,
) -> otio.schema.Timeline:
    """Create an OTIO timeline from a project."""
    timeline = otio.schema.Timeline(name="Beatcutter Edit")
    timeline.global_start_time = otio.opentime.RationalTime(0, frame_rate)
    timeline.metadata["beatcutter"] = {
        "bpm": project.beat_grid.bpm,
        "beat_offset_seconds": project.beat_grid.offset,
        "intro_skip_ms": project.intro_skip_ms,
    }

    video_track = project.video_track
    if video_track is not None:
        timeline.tracks.append(
            _create_video_track(project, video_track.ordered_segments, frame_rate)
        )

    audio_track = project.audio_track
    if audio_track is not None and audio_track.segments:
        timeline.tracks.append(
            _create_audio_track(project, audio_track.ordered_segments, frame_rate)
        )

    return timeline


def _rational(ms: float, frame_rate: float) -> otio.opentime.RationalTime:
    return otio.opentime.RationalTime(ms / 1000 * frame_rate, frame_rate)


def _time_range(start_ms: float, duration_ms: float, frame_rate: float) -> otio.opentime.TimeRange:
    return otio.opentime.TimeRange(
        start_time=_rational(start_ms, frame_rate),
        duration=_rational(duration_ms, frame_rate),
    )


def _create_gap(duration_ms: float, frame_rate: float) -> otio.schema.Gap:
    return otio.schema.Gap(source_range=_time_range(0, duration_ms, frame_rate))


def _fade_metadata(fade: FadeRange) -> dict[str, int | bool]:
    return {"enabled": fade.enabled, "start_ms": fade.start_ms, "end_ms": fade.end_ms}


def _create_video_track(
    project: ProjectState,
    segments: list[ClipSegment],
    frame_rate: float,
) -> otio.schema.Track:
    track = otio.schema.Track(name="Video", kind=otio.schema.TrackKind.Video)

    current_ms = 0
    for segment in segments:
        clip = project.find_clip(segment.source_clip_id)
        if clip is None:
            continue

        if segment.timeline_start_ms > current_ms:
            track.append(_create_gap(segment.timeline_start_ms - current_ms, frame_rate))
        track.append(_create_video_clip(segment, clip, frame_rate))
        current_ms = max(current_ms, segment.timeline_end_ms)

    return track


def _create_video_clip(
    segment: ClipSegment,
    clip: SourceClip,
    frame_rate: float,
) -> otio.schema.Clip:
    media_ref = otio.schema.ExternalReference(
        target_url=str(Path(clip.file_path).absolute()),
    )

    # Timeline duration keeps the track aligned; the warp carries the speed
    otio_clip = otio.schema.Clip(
        name=clip.name,
        media_reference=media_ref,
        source_range=_time_range(
            segment.source_start_offset_ms, segment.duration_ms, frame_rate
        ),
    )

    rate = effective_rate(segment, clip.duration_ms)
    if rate <= 0:
        otio_clip.effects.append(otio.schema.FreezeFrame())
    elif rate != 1.0 or segment.reverse:
        otio_clip.effects.append(
            otio.schema.LinearTimeWarp(time_scalar=-rate if segment.reverse else rate)
        )

    otio_clip.metadata["beatcutter"] = {
        "segment_id": segment.id,
        "source_clip_id": segment.source_clip_id,
        "playback_rate": segment.playback_rate,
        "effective_rate": rate,
        "reverse": segment.reverse,
        "fade_in": _fade_metadata(segment.fade_in),
        "fade_out": _fade_metadata(segment.fade_out),
    }
    return otio_clip


def _create_audio_track(
    project: ProjectState,
    segments: list[ClipSegment],
    frame_rate: float,
) -> otio.schema.Track:
    track = otio.schema.Track(name="Audio", kind=otio.schema.TrackKind.Audio)

    current_ms = 0
    for segment in segments:
        clip = project.find_clip(segment.source_clip_id)
        if clip is None:
            continue

        # Intro skip shifts the soundtrack against timeline 0
        source_start_ms = segment.source_start_offset_ms + project.intro_skip_ms
        timeline_start_ms = segment.timeline_start_ms
        if source_start_ms < 0:
            timeline_start_ms -= source_start_ms
            source_start_ms = 0

        duration_ms = min(
            segment.duration_ms, max(0, clip.duration_ms - source_start_ms)
        )
        if duration_ms <= 0:
            continue

        if timeline_start_ms > current_ms:
            track.append(_create_gap(timeline_start_ms - current_ms, frame_rate))

        track.append(
            otio.schema.Clip(
                name=clip.name,
                media_reference=otio.schema.ExternalReference(
                    target_url=str(Path(clip.file_path).absolute()),
                ),
                source_range=_time_range(source_start_ms, duration_ms, frame_rate),
            )
        )
        current_ms = timeline_start_ms + duration_ms

    return track
