"""Source clip schema."""

from enum import StrEnum, auto
from pathlib import Path
from typing import Any

from pydantic import Field, model_validator

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel


class MediaType(StrEnum):
    """Kind of media a clip or track carries."""

    VIDEO = auto()
    AUDIO = auto()


class SourceClip(BaseBeatcutterModel):
    """An imported media file in the clip pool.

    Only ``id``, ``duration_ms`` and ``media_type`` are read by the timeline
    core; the clip pool owns everything else.
    """

    id: str
    file_path: str
    name: str = ""
    duration_ms: int = Field(ge=0)
    media_type: MediaType = MediaType.VIDEO

    # Lower resolution transcodes used for preview playback
    proxy_path: str | None = None
    reverse_proxy_path: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("file_path"):
            return {**data, "name": Path(str(data["file_path"])).name}
        return data

    @property
    def preview_path(self) -> str:
        """Path to play in the preview (proxy when one exists)."""
        return self.proxy_path or self.file_path

    def with_proxy(
        self,
        proxy_path: str | None = None,
        reverse_proxy_path: str | None = None,
    ) -> "SourceClip":
        """Return a copy annotated with proxy paths."""
        return self.model_copy(
            update={
                "proxy_path": proxy_path or self.proxy_path,
                "reverse_proxy_path": reverse_proxy_path or self.reverse_proxy_path,
            }
        )
