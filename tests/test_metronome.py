"""Tests for the energy-based tempo estimator."""

from pathlib import Path

import numpy as np
import pytest

from beatcutter.beat_analyzer.decoder import DecodedAudio
from beatcutter.beat_analyzer.metronome import (
    analyze_audio_file,
    analyze_beats,
    detect_onset_windows,
    estimate_bpm,
    generate_waveform,
    waveform_point_count,
    window_energy,
)

SAMPLE_RATE = 1000


def click_track(interval_sec: float = 0.5, duration_sec: float = 5.0) -> np.ndarray:
    """Silence with a 50 ms full-scale burst every ``interval_sec``."""
    samples = np.zeros(int(duration_sec * SAMPLE_RATE), dtype=np.float32)
    burst = int(0.05 * SAMPLE_RATE)
    t = interval_sec
    while t < duration_sec - interval_sec / 2:
        start = int(round(t * SAMPLE_RATE))
        samples[start : start + burst] = 1.0
        t += interval_sec
    return samples


class FakeDecoder:
    def __init__(self, samples: np.ndarray | None = None, error: Exception | None = None):
        self.samples = samples
        self.error = error

    def decode(self, audio_path: Path) -> DecodedAudio:
        if self.error is not None:
            raise self.error
        return DecodedAudio(samples=self.samples, sample_rate=SAMPLE_RATE)


class TestAnalyzeBeats:
    """Test suite for analyze_beats."""

    def test_click_track_at_120_bpm(self):
        grid = analyze_beats(click_track(0.5), SAMPLE_RATE)
        assert grid.bpm == 120
        assert grid.offset == pytest.approx(0.5)
        assert grid.beats[0] == 0.0
        assert len(grid.beats) == 10

    def test_silence_falls_back_to_default_tempo(self):
        grid = analyze_beats(np.zeros(5 * SAMPLE_RATE), SAMPLE_RATE)
        assert grid.bpm == 120
        assert grid.offset == 0.0

    def test_missing_samples_never_raise(self):
        assert analyze_beats(None, SAMPLE_RATE).beats == []

    def test_invalid_sample_rate_never_raises(self):
        grid = analyze_beats(click_track(), 0)
        assert grid.bpm == 120
        assert grid.beats == []

    def test_non_finite_samples_are_ignored(self):
        samples = click_track(0.5)
        samples[10] = np.nan
        assert analyze_beats(samples, SAMPLE_RATE).bpm == 120


class TestOnsetDetection:
    """Test suite for energy and onset helpers."""

    def test_window_energy_zero_pads_last_window(self):
        energy = window_energy(np.ones(120), 50)
        assert energy == pytest.approx([1.0, 1.0, np.sqrt(20 / 50)])

    def test_onsets_are_debounced(self):
        energy = np.zeros(12)
        energy[[1, 3, 7]] = 1.0
        assert detect_onset_windows(energy) == [1, 7]

    def test_quiet_spikes_are_not_onsets(self):
        energy = np.zeros(6)
        energy[2] = 0.04
        assert detect_onset_windows(energy) == []

    def test_too_few_windows(self):
        assert detect_onset_windows(np.array([1.0, 0.0])) == []


class TestEstimateBpm:
    """Test suite for estimate_bpm."""

    def test_median_interval(self):
        assert estimate_bpm([0.0, 0.5, 1.0, 1.6, 2.1]) == 120

    def test_needs_two_plausible_intervals(self):
        assert estimate_bpm([0.0, 0.5]) == 120

    def test_implausible_intervals_are_ignored(self):
        assert estimate_bpm([0.0, 2.0, 4.0, 4.1, 6.0]) == 120

    def test_fast_tempo_is_halved(self):
        assert estimate_bpm([0.0, 0.3, 0.6, 0.9]) == 100


class TestWaveform:
    """Test suite for the waveform overview."""

    @pytest.mark.parametrize(
        ("duration", "points"), [(1.0, 600), (20.0, 1200), (100.0, 4000)]
    )
    def test_point_count(self, duration, points):
        assert waveform_point_count(duration) == points

    def test_empty_input_is_flat(self):
        assert generate_waveform(np.zeros(0), 4) == [0.0, 0.0, 0.0, 0.0]

    def test_peaks_per_bucket(self):
        samples = np.zeros(1000)
        samples[500] = -0.8
        waveform = generate_waveform(samples, 2)
        assert waveform == pytest.approx([0.0, 0.8])


class TestAnalyzeAudioFile:
    """Test suite for analyze_audio_file."""

    def test_decoded_file(self):
        analysis = analyze_audio_file(Path("song.wav"), decoder=FakeDecoder(click_track()))
        assert analysis.beat_grid.bpm == 120
        assert analysis.duration_seconds == pytest.approx(5.0)
        assert analysis.onset_times[0] == pytest.approx(0.5)
        assert len(analysis.waveform) == 600

    def test_decode_failure_degrades_to_default(self):
        analysis = analyze_audio_file(
            Path("broken.mp3"), decoder=FakeDecoder(error=RuntimeError("bad header"))
        )
        assert analysis.beat_grid.bpm == 120
        assert analysis.beat_grid.beats == []
        assert analysis.waveform == []
