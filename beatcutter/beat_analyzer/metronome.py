"""The Metronome: estimates tempo and a beat grid from raw audio energy.

This is a deliberately simple energy-based onset detector. Tempo accuracy is
best effort; the grid is always regularized through ``build_beat_grid``.
"""

import logging
import math
import statistics
from pathlib import Path

import numpy as np

from beatcutter.beat_analyzer.beat_grid import build_beat_grid
from beatcutter.beat_analyzer.decoder import AudioDecoder, LibrosaAudioDecoder
from beatcutter.beat_analyzer.schemas import DEFAULT_BPM, BeatAnalysis, BeatGrid

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 0.05
ONSET_RATIO = 1.3
ONSET_THRESHOLD = 0.05
MIN_ONSET_GAP_WINDOWS = 5

# Intervals outside this range (seconds) are ignored for tempo estimation (60-200 BPM)
MIN_BEAT_INTERVAL = 0.3
MAX_BEAT_INTERVAL = 1.0
MIN_INTERVALS_FOR_ESTIMATE = 2

MIN_REFINED_BPM = 60
MAX_REFINED_BPM = 180

MIN_WAVEFORM_POINTS = 600
MAX_WAVEFORM_POINTS = 4000
WAVEFORM_POINTS_PER_SECOND = 60
WAVEFORM_SAMPLE_STRIDE = 100


def _as_mono(samples: np.ndarray | None) -> np.ndarray:
    if samples is None:
        return np.zeros(0, dtype=np.float64)
    data = np.asarray(samples, dtype=np.float64)
    if data.ndim > 1:
        data = data[0]
    return np.nan_to_num(data, nan=0.0, posinf=0.0, neginf=0.0)


def window_energy(samples: np.ndarray, window_size: int) -> np.ndarray:
    """Compute RMS energy for consecutive fixed-size windows.

    The last window is zero padded; every window divides by the full size.
    """
    if window_size <= 0 or len(samples) == 0:
        return np.zeros(0, dtype=np.float64)

    n_windows = math.ceil(len(samples) / window_size)
    padded = np.zeros(n_windows * window_size, dtype=np.float64)
    padded[: len(samples)] = samples
    frames = padded.reshape(n_windows, window_size)
    return np.sqrt(np.sum(frames * frames, axis=1) / window_size)


def detect_onset_windows(energy: np.ndarray) -> list[int]:
    """Find window indices whose energy spikes above the local background.

    Args:
        energy: Per-window RMS energy.

    Returns:
        Accepted onset window indices, at least MIN_ONSET_GAP_WINDOWS apart.
    """
    if len(energy) < 3:
        return []

    local_avg = (energy[:-2] + energy[1:-1] + energy[2:]) / 3
    centre = energy[1:-1]
    candidates = np.flatnonzero(
        (centre > local_avg * ONSET_RATIO) & (centre > ONSET_THRESHOLD)
    ) + 1

    onsets: list[int] = []
    for index in candidates:
        if not onsets or index - onsets[-1] >= MIN_ONSET_GAP_WINDOWS:
            onsets.append(int(index))
    return onsets


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def estimate_bpm(onset_times: list[float]) -> float:
    """Estimate tempo from the median of plausible onset intervals.

    Args:
        onset_times: Onset timestamps in seconds, ascending.

    Returns:
        Tempo in BPM, octave corrected into a usual range.
    """
    intervals = [
        later - earlier
        for earlier, later in zip(onset_times, onset_times[1:], strict=False)
        if MIN_BEAT_INTERVAL <= later - earlier <= MAX_BEAT_INTERVAL
    ]

    bpm = DEFAULT_BPM
    if len(intervals) >= MIN_INTERVALS_FOR_ESTIMATE:
        median_interval = statistics.median_high(intervals)
        bpm = float(_round_half_up(60.0 / median_interval))

    if bpm < MIN_REFINED_BPM:
        bpm *= 2
    if bpm > MAX_REFINED_BPM:
        bpm /= 2
    return bpm


def detect_onset_times(samples: np.ndarray, sample_rate: int) -> list[float]:
    """Detect onset timestamps (seconds) in a mono sample buffer."""
    data = _as_mono(samples)
    if sample_rate <= 0 or len(data) == 0:
        return []

    window_size = max(1, int(sample_rate * WINDOW_SECONDS))
    energy = window_energy(data, window_size)
    return [
        index * window_size / sample_rate
        for index in detect_onset_windows(energy)
    ]


def analyze_beats(samples: np.ndarray | None, sample_rate: int) -> BeatGrid:
    """Estimate a beat grid from raw samples.

    Never raises: absent or degenerate input yields the default tempo with
    an empty grid.

    Args:
        samples: Mono (or channels-first, first channel used) sample buffer.
        sample_rate: Samples per second.

    Returns:
        BeatGrid anchored at the first detected onset.
    """
    data = _as_mono(samples)
    if sample_rate <= 0 or len(data) == 0:
        return build_beat_grid(DEFAULT_BPM, 0.0, 0.0)

    onset_times = detect_onset_times(data, sample_rate)
    return _grid_from_onsets(onset_times, len(data) / sample_rate)


def _grid_from_onsets(onset_times: list[float], duration: float) -> BeatGrid:
    bpm = estimate_bpm(onset_times)
    anchor = onset_times[0] if onset_times else 0.0
    return build_beat_grid(bpm, anchor, duration)


def waveform_point_count(duration_seconds: float) -> int:
    """Number of overview points to draw for a track of this length."""
    points = math.floor(max(0.0, duration_seconds) * WAVEFORM_POINTS_PER_SECOND)
    return min(MAX_WAVEFORM_POINTS, max(MIN_WAVEFORM_POINTS, points))


def generate_waveform(samples: np.ndarray | None, points: int) -> list[float]:
    """Generate a peak-magnitude overview for timeline display.

    Only every WAVEFORM_SAMPLE_STRIDE-th sample of each bucket is inspected.
    """
    data = _as_mono(samples)
    if points <= 0:
        return []
    if len(data) == 0:
        return [0.0] * points

    step = math.ceil(len(data) / points)
    waveform: list[float] = []
    for i in range(points):
        bucket = data[i * step : (i + 1) * step : WAVEFORM_SAMPLE_STRIDE]
        waveform.append(float(np.max(np.abs(bucket))) if len(bucket) else 0.0)
    return waveform


def analyze_audio_file(
    audio_path: Path,
    decoder: AudioDecoder | None = None,
) -> BeatAnalysis:
    """Decode an audio file and analyze its beats.

    Args:
        audio_path: Path to the audio file (mp3, wav, etc.)
        decoder: Audio decoder to use (defaults to librosa).

    Returns:
        BeatAnalysis with the beat grid, onsets and a waveform overview.
        Decode failures degrade to the default grid.
    """
    decoder = decoder or LibrosaAudioDecoder()

    try:
        decoded = decoder.decode(audio_path)
    except Exception as e:
        logger.warning("Failed to decode %s, using default tempo: %s", audio_path, e)
        return BeatAnalysis(
            beat_grid=build_beat_grid(DEFAULT_BPM, 0.0, 0.0),
            duration_seconds=0.0,
            onset_times=[],
            waveform=[],
        )

    duration = decoded.duration_seconds
    onset_times = detect_onset_times(decoded.samples, decoded.sample_rate)
    beat_grid = _grid_from_onsets(onset_times, duration)

    logger.info(
        "Analyzed %s: %.1f BPM, %d onsets, %d beats over %.1fs",
        audio_path.name,
        beat_grid.bpm,
        len(onset_times),
        len(beat_grid.beats),
        duration,
    )

    return BeatAnalysis(
        beat_grid=beat_grid,
        duration_seconds=duration,
        onset_times=onset_times,
        waveform=generate_waveform(decoded.samples, waveform_point_count(duration)),
    )
