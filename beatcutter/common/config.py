"""Runtime configuration loaded from the environment."""

import os
import shutil
from functools import cache
from pathlib import Path

from dotenv import load_dotenv

from beatcutter.common.base_beatcutter_model import BaseBeatcutterModel

# Load .env file from the project root
_project_dir = Path(__file__).parent.parent.parent
load_dotenv(_project_dir / ".env")

DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://localhost:3000")


class BeatcutterConfig(BaseBeatcutterModel):
    """Configuration for analysis, planning and rendering."""

    # Renderer binary (absolute path or a name resolved on PATH)
    ffmpeg_path: str = "ffmpeg"

    # Musical quantization defaults
    beats_per_bar: int = 4
    preferred_bars: int = 4

    log_level: str = "INFO"
    cors_origins: list[str] = list(DEFAULT_CORS_ORIGINS)


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ValueError(msg) from None


@cache
def get_config() -> BeatcutterConfig:
    """Get Beatcutter configuration from environment variables.

    Environment variables:
        BEATCUTTER_FFMPEG_PATH: Path to the ffmpeg binary (default: ffmpeg on PATH)
        BEATCUTTER_BEATS_PER_BAR: Beats per bar (default: 4)
        BEATCUTTER_PREFERRED_BARS: Preferred auto-sync segment length in bars (default: 4)
        BEATCUTTER_LOG_LEVEL: Logging level (default: INFO)
        BEATCUTTER_CORS_ORIGINS: Comma separated list of allowed origins
    """
    cors_raw = os.environ.get("BEATCUTTER_CORS_ORIGINS", "")
    cors_origins = (
        [origin.strip() for origin in cors_raw.split(",") if origin.strip()]
        if cors_raw
        else list(DEFAULT_CORS_ORIGINS)
    )

    return BeatcutterConfig(
        ffmpeg_path=os.environ.get("BEATCUTTER_FFMPEG_PATH", "ffmpeg"),
        beats_per_bar=_int_from_env("BEATCUTTER_BEATS_PER_BAR", 4),
        preferred_bars=_int_from_env("BEATCUTTER_PREFERRED_BARS", 4),
        log_level=os.environ.get("BEATCUTTER_LOG_LEVEL", "INFO").upper(),
        cors_origins=cors_origins,
    )


def resolve_ffmpeg_path(config: BeatcutterConfig) -> str | None:
    """Resolve the configured renderer to an executable path.

    Returns:
        The executable path, or None if it cannot be found.
    """
    candidate = Path(config.ffmpeg_path).expanduser()
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return str(candidate)
    return shutil.which(config.ffmpeg_path)
