"""Playback transport state."""

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel


class PlaybackState(BaseBeatcutterModel):
    """Transport state shared by the preview and the timeline cursor."""

    is_playing: bool = False
    current_time_ms: int = Field(default=0, ge=0)
    playback_rate: float = Field(default=1.0, gt=0)
