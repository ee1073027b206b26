"""Schemas for beat analysis results."""

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel

DEFAULT_BPM = 120.0

# Upper bounds for manually entered tempos and grid lengths
MAX_BPM = 400.0
MAX_GRID_DURATION_SEC = 24 * 3600.0


class BeatGrid(BaseBeatcutterModel):
    """Regular beat grid anchored at an offset.

    Beats are strictly increasing timestamps in seconds, all >= 0.
    """

    bpm: float = DEFAULT_BPM
    offset: float = 0.0
    beats: list[float] = Field(default_factory=list)

    @property
    def seconds_per_beat(self) -> float:
        """Length of one beat in seconds (0 for an invalid tempo)."""
        return 60.0 / self.bpm if self.bpm > 0 else 0.0


class BeatAnalysis(BaseBeatcutterModel):
    """Full output of analyzing an audio track."""

    beat_grid: BeatGrid
    duration_seconds: float
    onset_times: list[float]
    waveform: list[float]
