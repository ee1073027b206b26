"""Export settings schema."""

from pydantic import Field

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel


class ExportSettings(BaseBeatcutterModel):
    """Output format for a render."""

    output_path: str

    # Every segment is normalized to this frame
    width: int = Field(default=1920, gt=0)
    height: int = Field(default=1080, gt=0)
    frame_rate: float = Field(default=30.0, gt=0)

    video_bitrate: str = "8M"
    audio_bitrate: str = "192k"
    preset: str = "medium"

    # Gap filler and letterbox color
    background_color: str = "black"
