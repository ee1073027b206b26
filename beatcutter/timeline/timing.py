"""Timing math shared by preview playback and export.

Both the preview scheduler and the export compiler evaluate speed and fades
through these functions so that what plays is what renders.
"""

from beatcutter.timeline.schemas import ClipSegment, FadeRange


def clamp_source_offset(clip_duration_ms: int, duration_ms: int, requested_ms: int) -> int:
    """Clamp a source offset so the segment stays inside its clip.

    Falls back to 0 when the segment is longer than the clip.
    """
    return min(max(0, requested_ms), max(0, clip_duration_ms - duration_ms))


def available_source_ms(segment: ClipSegment, clip_duration_ms: int) -> int:
    """Source material left after the segment's offset."""
    return max(0, clip_duration_ms - segment.source_start_offset_ms)


def effective_rate(segment: ClipSegment, clip_duration_ms: int) -> float:
    """Playback rate actually used for a segment.

    The requested rate is lowered (stretched) when the remaining source is
    too short to fill the segment, so playback never runs past the clip end.
    Zero means no source is left and the last frame is held.
    """
    available = available_source_ms(segment, clip_duration_ms)
    return min(segment.playback_rate, available / segment.duration_ms)


def resolve_fade_window(
    fade: FadeRange,
    duration_ms: int,
    from_end: bool = False,
) -> tuple[int, int]:
    """Resolve a fade into an absolute ``(start, end)`` inside the segment.

    Args:
        fade: The fade range.
        duration_ms: Segment duration.
        from_end: Interpret bounds as offsets from the segment end (fade-out).

    Returns:
        Window clamped into ``[0, duration_ms]`` with ``start <= end``.
    """
    base = duration_ms if from_end else 0
    start = min(max(0, base + fade.start_ms), duration_ms)
    end = min(max(0, base + fade.end_ms), duration_ms)
    return start, max(start, end)


def _ramp(local_ms: float, start: int, end: int) -> float:
    if end <= start:
        # Zero length window: hard cut at the window start
        return 0.0 if local_ms < start else 1.0
    return min(1.0, max(0.0, (local_ms - start) / (end - start)))


def fade_alpha(segment: ClipSegment, local_ms: float) -> float:
    """Opacity of a segment at a time relative to its start (0..1)."""
    alpha = 1.0
    if segment.fade_in.enabled:
        start, end = resolve_fade_window(segment.fade_in, segment.duration_ms)
        alpha *= _ramp(local_ms, start, end)
    if segment.fade_out.enabled:
        start, end = resolve_fade_window(
            segment.fade_out, segment.duration_ms, from_end=True
        )
        alpha *= 1.0 - _ramp(local_ms, start, end)
    return alpha
