"""Shared fixtures for the Beatcutter test suite."""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from beatcutter.beat_analyzer.beat_grid import build_beat_grid
from beatcutter.timeline.schemas import (
    ClipSegment,
    MediaType,
    ProjectState,
    SourceClip,
    TimelineTrack,
)


@pytest.fixture
def make_clip() -> Callable[..., SourceClip]:
    """Factory for clip pool entries."""

    def _make(
        clip_id: str,
        duration_ms: int = 4000,
        media_type: MediaType = MediaType.VIDEO,
        file_path: str | None = None,
        name: str | None = None,
    ) -> SourceClip:
        return SourceClip(
            id=clip_id,
            file_path=file_path or f"/media/{clip_id}.mp4",
            name=name or f"{clip_id}.mp4",
            duration_ms=duration_ms,
            media_type=media_type,
        )

    return _make


@pytest.fixture
def make_project() -> Callable[..., ProjectState]:
    """Factory for projects with a 120 BPM grid and one video/audio track."""

    def _make(
        clips: list[SourceClip] | None = None,
        segments: list[ClipSegment] | None = None,
        audio_segments: list[ClipSegment] | None = None,
        bpm: float = 120.0,
        duration_ms: int = 8000,
        intro_skip_ms: int = 0,
    ) -> ProjectState:
        return ProjectState(
            clips=clips or [],
            tracks=[
                TimelineTrack(
                    id="video-1", track_type=MediaType.VIDEO, segments=segments or []
                ),
                TimelineTrack(
                    id="audio-1",
                    track_type=MediaType.AUDIO,
                    segments=audio_segments or [],
                ),
            ],
            beat_grid=build_beat_grid(bpm, 0.0, duration_ms / 1000),
            duration_ms=duration_ms,
            audio_duration_ms=duration_ms + intro_skip_ms,
            intro_skip_ms=intro_skip_ms,
        )

    return _make


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> Path:
    """Executable stand-in for ffmpeg.

    Prints two progress lines on stderr and exits with the code given as the
    first argument. With ``sleep`` as the first argument it blocks instead.
    """
    script = tmp_path / "fake-ffmpeg"
    script.write_text(
        f"#!{sys.executable}\n"
        "import sys, time\n"
        "mode = sys.argv[1] if len(sys.argv) > 1 else '0'\n"
        "sys.stderr.write('frame=1 fps=0.0 time=00:00:01.00 bitrate=N/A\\r')\n"
        "sys.stderr.write('frame=2 fps=0.0 time=00:00:02.50 bitrate=N/A\\n')\n"
        "sys.stderr.flush()\n"
        "if mode == 'sleep':\n"
        "    time.sleep(30)\n"
        "sys.exit(int(mode) if mode.isdigit() else 0)\n"
    )
    script.chmod(0o755)
    return script
