"""AutoSyncPlanner service: cuts a clip pool onto the beat grid."""

import logging
import math
import re

from beatcutter.beat_analyzer.beat_grid import beats_before_start
from beatcutter.beat_analyzer.schemas import BeatGrid
from beatcutter.timeline.schemas import ClipSegment, MediaType, SourceClip

logger = logging.getLogger(__name__)

MIN_PREFERRED_BARS = 1
MAX_PREFERRED_BARS = 8
DEFAULT_PREFERRED_BARS = 4
FALLBACK_BARS = (4, 2, 1)

# Intervals shorter than this are merged into the next segment
MIN_SEGMENT_MS = 100

_DIGITS = re.compile(r"(\d+)")


def natural_sort_key(name: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key that orders embedded numbers numerically (clip2 < clip10)."""
    parts = _DIGITS.split(name.casefold())
    return tuple(
        (0, int(part)) if part.isdigit() else (1, part)
        for part in parts
        if part
    )


def sanitize_preferred_bars(preferred_bars: float) -> int:
    """Round and clamp the preferred bar count into the supported range."""
    if not math.isfinite(preferred_bars):
        return DEFAULT_PREFERRED_BARS
    return min(MAX_PREFERRED_BARS, max(MIN_PREFERRED_BARS, round(preferred_bars)))


def candidate_beat_lengths(preferred_bars: float, beats_per_bar: int) -> list[int]:
    """Segment lengths in beats, most preferred first.

    The preferred length is followed by the standard 4/2/1 bar lengths that
    are shorter than it, so one bar is always the final candidate.
    """
    preferred = sanitize_preferred_bars(preferred_bars)
    bars = [preferred] + [b for b in FALLBACK_BARS if b < preferred]
    return [b * beats_per_bar for b in bars]


class AutoSyncPlannerService:
    """Service that assigns video clips to bar-quantized beat intervals."""

    def plan(
        self,
        clips: list[SourceClip],
        beat_grid: BeatGrid,
        total_duration_ms: int,
        preferred_bars: float = DEFAULT_PREFERRED_BARS,
        beats_per_bar: int = 4,
    ) -> list[ClipSegment]:
        """Build the initial video track for a clip pool.

        Clips are used round-robin in natural name order. Each segment spans
        the longest candidate bar length that still fits inside the grid.

        Args:
            clips: Clip pool (non-video clips are ignored).
            beat_grid: Timeline beat grid.
            total_duration_ms: Length of the timeline.
            preferred_bars: Preferred segment length in bars (clamped to 1-8).
            beats_per_bar: Beats in one bar.

        Returns:
            Ordered, non-overlapping segments. Empty when there are no video
            clips or no beats.
        """
        video_clips = sorted(
            (c for c in clips if c.media_type == MediaType.VIDEO),
            key=lambda c: natural_sort_key(c.name),
        )
        beats = beat_grid.beats
        if not video_clips or not beats or beats_per_bar < 1:
            return []

        beat_lengths = candidate_beat_lengths(preferred_bars, beats_per_bar)
        # Keep the first cut on the bar when the grid lost beats before 0
        first_reduction = beats_before_start(beat_grid) % beats_per_bar

        segments: list[ClipSegment] = []
        beat_index = 0
        merged_start_index: int | None = None

        while beat_index < len(beats) - 1:
            start_index = beat_index if merged_start_index is None else merged_start_index
            start_ms = round(beats[start_index] * 1000)
            if start_ms > total_duration_ms:
                break

            reduction = first_reduction if not segments else 0
            end_index = self._choose_end_index(
                beat_index, len(beats), beat_lengths, reduction
            )
            if end_index is None:
                break

            duration_ms = round(beats[end_index] * 1000) - start_ms
            if duration_ms < MIN_SEGMENT_MS:
                merged_start_index = start_index
                beat_index = end_index
                continue

            clip = video_clips[len(segments) % len(video_clips)]
            segments.append(
                ClipSegment(
                    source_clip_id=clip.id,
                    timeline_start_ms=start_ms,
                    duration_ms=duration_ms,
                    source_start_offset_ms=0,
                )
            )
            merged_start_index = None
            beat_index = end_index

        logger.info(
            "Auto-synced %d segments from %d clips over %d beats (%.1f BPM)",
            len(segments),
            len(video_clips),
            len(beats),
            beat_grid.bpm,
        )
        return segments

    def _choose_end_index(
        self,
        beat_index: int,
        beat_count: int,
        beat_lengths: list[int],
        reduction: int,
    ) -> int | None:
        """Pick the end beat for the longest candidate inside the grid."""
        for length in beat_lengths:
            candidate = beat_index + max(1, length - reduction)
            if candidate < beat_count:
                return candidate
        return None
