"""Beat analyzer schemas."""

from beatcutter.beat_analyzer.schemas.beat_grid import (
    DEFAULT_BPM,
    MAX_BPM,
    MAX_GRID_DURATION_SEC,
    BeatAnalysis,
    BeatGrid,
)

__all__ = [
    "DEFAULT_BPM",
    "MAX_BPM",
    "MAX_GRID_DURATION_SEC",
    "BeatAnalysis",
    "BeatGrid",
]
