"""Render plan schema."""

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel


class RenderPlan(BaseBeatcutterModel):
    """A compiled timeline, ready to hand to the renderer."""

    # Renderer arguments, without the binary itself
    args: list[str]
    filter_complex: str

    input_paths: list[str]
    output_path: str

    total_duration_sec: float
    constant_frame_rate: bool
    segment_count: int
    has_audio: bool
