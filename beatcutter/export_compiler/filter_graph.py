"""ffmpeg filter graph construction for timeline export.

Speed, hold and fade decisions come from ``beatcutter.timeline.timing`` so
the render matches the live preview.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from beatcutter.export_compiler.schemas import ExportSettings
from beatcutter.timeline.schemas import ClipSegment
from beatcutter.timeline.timing import effective_rate, resolve_fade_window

# Max distance from a whole frame for a boundary to count as aligned
FRAME_ALIGNMENT_EPSILON = 1e-3

VIDEO_OUTPUT_LABEL = "outv"
AUDIO_OUTPUT_LABEL = "outa"


@dataclass(frozen=True)
class SegmentSource:
    """A video segment paired with the renderer input it reads from."""

    segment: ClipSegment
    input_index: int
    clip_duration_ms: int


def format_number(value: float) -> str:
    """Format a number for filter arguments (6 decimals, no trailing zeros)."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _seconds(ms: float) -> str:
    return format_number(ms / 1000)


def is_frame_aligned(segments: Iterable[ClipSegment], frame_rate: float) -> bool:
    """Whether every segment start and duration lands on a whole output frame."""
    for segment in segments:
        for ms in (segment.timeline_start_ms, segment.duration_ms):
            frames = ms * frame_rate / 1000
            if abs(frames - round(frames)) > FRAME_ALIGNMENT_EPSILON:
                return False
    return True


def _timing_filters(source: SegmentSource, frame_rate: float) -> list[str]:
    """Trim, reverse and retime a segment to exactly its timeline duration."""
    segment = source.segment
    rate = effective_rate(segment, source.clip_duration_ms)

    if rate > 0:
        source_ms = segment.duration_ms * rate
        filters = [
            f"trim=start={_seconds(segment.source_start_offset_ms)}:duration={_seconds(source_ms)}",
            "setpts=PTS-STARTPTS",
        ]
        if segment.reverse:
            filters.append("reverse")
        filters.append(f"setpts={format_number(1 / rate)}*PTS")
    else:
        # Nothing left after the offset: hold the clip's final frame
        last_frame_sec = max(0.0, source.clip_duration_ms / 1000 - 1 / frame_rate)
        filters = [
            f"trim=start={format_number(last_frame_sec)}",
            "setpts=PTS-STARTPTS",
        ]

    # Clone the last frame to cover rounding, then cut to the exact length
    duration = _seconds(segment.duration_ms)
    filters.extend(
        [
            f"tpad=stop_mode=clone:stop_duration={duration}",
            f"trim=duration={duration}",
            "setpts=PTS-STARTPTS",
        ]
    )
    return filters


def _ramp_filter(direction: str, start_ms: int, end_ms: int, color: str) -> str | None:
    if end_ms > start_ms:
        return (
            f"fade=t={direction}:st={_seconds(start_ms)}"
            f":d={_seconds(end_ms - start_ms)}:color={color}"
        )

    # Zero length window: hard cut at the window start
    if direction == "in":
        if start_ms <= 0:
            return None
        condition = f"lt(t,{_seconds(start_ms)})"
    else:
        condition = f"gte(t,{_seconds(start_ms)})"
    return f"drawbox=color={color}:t=fill:enable='{condition}'"


def _fade_filters(segment: ClipSegment, color: str) -> list[str]:
    filters: list[str] = []
    if segment.fade_in.enabled:
        start, end = resolve_fade_window(segment.fade_in, segment.duration_ms)
        ramp = _ramp_filter("in", start, end, color)
        if ramp is not None:
            filters.append(ramp)
    if segment.fade_out.enabled:
        start, end = resolve_fade_window(
            segment.fade_out, segment.duration_ms, from_end=True
        )
        ramp = _ramp_filter("out", start, end, color)
        if ramp is not None:
            filters.append(ramp)
    return filters


def _normalize_filters(settings: ExportSettings, constant_frame_rate: bool) -> list[str]:
    w, h = settings.width, settings.height
    filters = [
        f"scale={w}:{h}:force_original_aspect_ratio=decrease",
        f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:color={settings.background_color}",
        "setsar=1",
    ]
    if constant_frame_rate:
        filters.append(f"fps={format_number(settings.frame_rate)}")
    filters.append("format=yuv420p")
    return filters


def segment_chain(
    source: SegmentSource,
    label: str,
    settings: ExportSettings,
    constant_frame_rate: bool,
) -> str:
    """Build the filter chain rendering one segment into ``[label]``."""
    filters = [
        *_timing_filters(source, settings.frame_rate),
        *_fade_filters(source.segment, settings.background_color),
        *_normalize_filters(settings, constant_frame_rate),
    ]
    return f"[{source.input_index}:v]{','.join(filters)}[{label}]"


def gap_chain(label: str, gap_ms: int, settings: ExportSettings) -> str:
    """Build a solid-color filler of ``gap_ms`` into ``[label]``."""
    return (
        f"color=c={settings.background_color}"
        f":s={settings.width}x{settings.height}"
        f":r={format_number(settings.frame_rate)}"
        f":d={_seconds(gap_ms)},setsar=1,format=yuv420p[{label}]"
    )


def build_video_graph(
    sources: list[SegmentSource],
    settings: ExportSettings,
    constant_frame_rate: bool,
) -> tuple[list[str], int]:
    """Build the video part of the filter graph.

    Args:
        sources: Segments in ascending timeline order.
        settings: Output format.
        constant_frame_rate: Emit per-segment ``fps`` normalization.

    Returns:
        Tuple of (filter chains ending in ``[outv]``, timeline end in ms).
    """
    chains: list[str] = []
    labels: list[str] = []
    previous_end_ms = 0

    for index, source in enumerate(sources):
        segment = source.segment
        gap_ms = max(0, segment.timeline_start_ms - previous_end_ms)
        if gap_ms > 0:
            gap_label = f"gap{index}"
            chains.append(gap_chain(gap_label, gap_ms, settings))
            labels.append(gap_label)

        label = f"v{index}"
        chains.append(segment_chain(source, label, settings, constant_frame_rate))
        labels.append(label)
        previous_end_ms = max(previous_end_ms, segment.timeline_end_ms)

    inputs = "".join(f"[{label}]" for label in labels)
    chains.append(f"{inputs}concat=n={len(labels)}:v=1:a=0[{VIDEO_OUTPUT_LABEL}]")
    return chains, previous_end_ms


def audio_chain(input_index: int, lead_ms: int, total_duration_sec: float) -> str:
    """Align the soundtrack to timeline 0 and fit it to the output duration.

    Args:
        input_index: Renderer input holding the soundtrack.
        lead_ms: Soundtrack time at timeline 0. Positive trims the start,
            negative delays the soundtrack by that amount.
        total_duration_sec: Output duration to pad or trim to.
    """
    filters: list[str] = []
    if lead_ms > 0:
        filters.extend([f"atrim=start={_seconds(lead_ms)}", "asetpts=PTS-STARTPTS"])
    elif lead_ms < 0:
        filters.append(f"adelay=delays={-lead_ms}:all=1")
    filters.extend(["apad", f"atrim=duration={format_number(total_duration_sec)}"])
    return f"[{input_index}:a]{','.join(filters)}[{AUDIO_OUTPUT_LABEL}]"
