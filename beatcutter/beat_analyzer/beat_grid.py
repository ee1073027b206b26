"""Beat grid construction.

The grid builder is the single source of truth for beat timestamps: initial
analysis, manual BPM edits and intro-skip shifts all go through
``build_beat_grid``.
"""

import math

from beatcutter.beat_analyzer.schemas import DEFAULT_BPM, BeatGrid

# Backfilled beats earlier than this (seconds) are dropped instead of clamped to 0
BACKFILL_TOLERANCE_SEC = 0.1

# Beat timestamps are rounded to whole microseconds
BEAT_PRECISION_DIGITS = 6


def _is_valid_tempo(bpm: float) -> bool:
    return math.isfinite(bpm) and bpm > 0


def build_beat_grid(bpm: float, offset: float, duration_sec: float) -> BeatGrid:
    """Build a regular beat grid covering ``[0, duration_sec)``.

    Starting at ``offset`` the grid is walked backwards to the first step at
    or before 0, then forwards until ``duration_sec``. Steps within the
    backfill tolerance of 0 are clamped to 0.

    Args:
        bpm: Tempo in beats per minute.
        offset: Anchor beat in seconds (may be negative).
        duration_sec: Length of the timeline in seconds.

    Returns:
        BeatGrid with strictly increasing, non-negative beats. An invalid tempo
        or non-finite input yields an empty beat list.
    """
    safe_bpm = bpm if math.isfinite(bpm) else DEFAULT_BPM
    safe_offset = offset if math.isfinite(offset) else 0.0

    if not _is_valid_tempo(bpm) or not math.isfinite(duration_sec):
        return BeatGrid(bpm=safe_bpm, offset=safe_offset, beats=[])

    spb = 60.0 / bpm

    start = safe_offset
    if start > 0:
        start -= math.ceil(start / spb) * spb

    first_step = 0
    if start < -BACKFILL_TOLERANCE_SEC:
        first_step = math.ceil((-BACKFILL_TOLERANCE_SEC - start) / spb)

    beats: set[float] = set()
    step = first_step
    while True:
        t = start + step * spb
        if t >= duration_sec:
            break
        if t >= -BACKFILL_TOLERANCE_SEC:
            beats.add(round(max(0.0, t), BEAT_PRECISION_DIGITS))
        step += 1

    return BeatGrid(bpm=safe_bpm, offset=safe_offset, beats=sorted(beats))


def beats_before_start(grid: BeatGrid) -> int:
    """Count the grid steps that fell before the timeline start.

    A negative offset places the anchor beat before 0; the steps between the
    anchor and the first emitted beat are lost from the grid.
    """
    spb = grid.seconds_per_beat
    if spb <= 0 or grid.offset >= -BACKFILL_TOLERANCE_SEC:
        return 0
    return math.ceil((-BACKFILL_TOLERANCE_SEC - grid.offset) / spb)


def rebuild_beat_grid(
    grid: BeatGrid,
    audio_duration_sec: float,
    previous_intro_skip_sec: float = 0.0,
    intro_skip_sec: float = 0.0,
    bpm: float | None = None,
) -> BeatGrid:
    """Rebuild a grid after a tempo or intro-skip change.

    The previous intro skip is undone to recover the anchor in audio time,
    then the new skip is applied and the grid rebuilt over the remaining audio.

    Args:
        grid: The current grid (timeline relative).
        audio_duration_sec: Full length of the audio track.
        previous_intro_skip_sec: Intro skip the current grid was built with.
        intro_skip_sec: New intro skip (seconds of audio before timeline 0).
        bpm: New tempo, or None to keep the current one.

    Returns:
        A fresh BeatGrid.
    """
    audio_anchor = grid.offset + previous_intro_skip_sec
    new_bpm = grid.bpm if bpm is None else bpm
    return build_beat_grid(
        new_bpm,
        audio_anchor - intro_skip_sec,
        max(0.0, audio_duration_sec - intro_skip_sec),
    )
