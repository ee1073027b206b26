"""Tests for OpenTimelineIO export."""

import opentimelineio as otio

from beatcutter.export_compiler.otio_writer import build_otio_timeline, write_timeline_otio
from beatcutter.timeline.schemas import ClipSegment, MediaType


def _project(make_clip, make_project, **kwargs):
    return make_project(
        clips=[make_clip("a"), make_clip("song", 10_000, media_type=MediaType.AUDIO)],
        segments=[
            ClipSegment(id="s1", source_clip_id="a", timeline_start_ms=1000, duration_ms=2000),
            ClipSegment(
                id="s2",
                source_clip_id="a",
                timeline_start_ms=3000,
                duration_ms=1000,
                reverse=True,
            ),
        ],
        audio_segments=[
            ClipSegment(id="m", source_clip_id="song", timeline_start_ms=0, duration_ms=8000)
        ],
        **kwargs,
    )


class TestOtioWriter:
    """Test suite for the OTIO timeline builder."""

    def test_video_track_layout(self, make_clip, make_project):
        timeline = build_otio_timeline(_project(make_clip, make_project))
        video = timeline.tracks[0]

        assert video.kind == otio.schema.TrackKind.Video
        assert isinstance(video[0], otio.schema.Gap)
        assert video[0].source_range.duration.value == 30
        assert isinstance(video[1], otio.schema.Clip)
        assert video[1].source_range.duration.value == 60
        assert video[1].metadata["beatcutter"]["segment_id"] == "s1"
        assert len(video[1].effects) == 0

    def test_reverse_uses_negative_time_warp(self, make_clip, make_project):
        timeline = build_otio_timeline(_project(make_clip, make_project))
        reversed_clip = timeline.tracks[0][2]

        assert len(reversed_clip.effects) == 1
        assert isinstance(reversed_clip.effects[0], otio.schema.LinearTimeWarp)
        assert reversed_clip.effects[0].time_scalar == -1.0

    def test_audio_honours_intro_skip(self, make_clip, make_project):
        timeline = build_otio_timeline(_project(make_clip, make_project, intro_skip_ms=500))
        audio = timeline.tracks[1]

        assert audio.kind == otio.schema.TrackKind.Audio
        assert audio[0].source_range.start_time.value == 15
        assert timeline.metadata["beatcutter"]["intro_skip_ms"] == 500

    def test_write_and_read_back(self, make_clip, make_project, tmp_path):
        output = tmp_path / "edit.otio"
        write_timeline_otio(_project(make_clip, make_project), output)

        timeline = otio.adapters.read_from_file(str(output))

        assert timeline.name == "Beatcutter Edit"
        assert len(timeline.tracks) == 2
        assert [item.name for item in timeline.tracks[0]][1:] == ["a.mp4", "a.mp4"]
