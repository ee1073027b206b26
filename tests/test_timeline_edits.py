"""Tests for timeline edit commands."""

import pytest
from pydantic import TypeAdapter

from beatcutter.beat_analyzer.schemas import MAX_BPM
from beatcutter.timeline.edits import apply_edit
from beatcutter.timeline.schemas import (
    AutoSync,
    ClipSegment,
    EditCommand,
    FadeRange,
    InsertSegment,
    RemoveClip,
    RemoveSegment,
    ResizeSegment,
    SelectSegment,
    SetTempo,
    SlipSegment,
    SwapSegments,
    UpdateSegmentEffects,
)


def starts(project):
    return {s.id: s.timeline_start_ms for s in project.video_track.segments}


@pytest.fixture
def project(make_clip, make_project):
    """Three back-to-back segments: s0 [0,1000), s1 [1000,3000), s2 [3000,5000)."""
    clips = [make_clip("a", 4000), make_clip("b", 1000), make_clip("c", 4000)]
    segments = [
        ClipSegment(id="s0", source_clip_id="a", timeline_start_ms=0, duration_ms=1000),
        ClipSegment(
            id="s1",
            source_clip_id="a",
            timeline_start_ms=1000,
            duration_ms=2000,
            source_start_offset_ms=500,
        ),
        ClipSegment(id="s2", source_clip_id="c", timeline_start_ms=3000, duration_ms=2000),
    ]
    return make_project(clips=clips, segments=segments)


class TestResizeSegment:
    """Test suite for ResizeSegment."""

    def test_growing_ripples_later_segments(self, project):
        updated = apply_edit(project, ResizeSegment(segment_id="s1", duration_ms=3000))

        assert updated.video_track.find_segment("s1").duration_ms == 3000
        assert starts(updated) == {"s0": 0, "s1": 1000, "s2": 4000}

    def test_shrinking_pulls_later_segments_back(self, project):
        updated = apply_edit(project, ResizeSegment(segment_id="s1", duration_ms=500))
        assert starts(updated)["s2"] == 1500

    def test_duration_clamped_to_at_least_one(self, project):
        updated = apply_edit(project, ResizeSegment(segment_id="s0", duration_ms=-50))
        assert updated.video_track.find_segment("s0").duration_ms == 1

    def test_duration_clamped_to_eight_bars(self, project):
        """Test the 8 bar ceiling (16 s at 120 BPM in 4/4)."""
        updated = apply_edit(project, ResizeSegment(segment_id="s0", duration_ms=10**9))
        assert updated.video_track.find_segment("s0").duration_ms == 16_000

    def test_offset_reclamped_into_clip(self, project):
        updated = apply_edit(project, ResizeSegment(segment_id="s1", duration_ms=3800))
        segment = updated.video_track.find_segment("s1")
        assert segment.source_start_offset_ms == 200
        assert segment.source_start_offset_ms + segment.duration_ms <= 4000

    def test_preserves_segment_count(self, project):
        updated = apply_edit(project, ResizeSegment(segment_id="s2", duration_ms=7000))
        assert len(updated.video_track.segments) == 3

    def test_original_state_untouched(self, project):
        apply_edit(project, ResizeSegment(segment_id="s1", duration_ms=3000))
        assert project.video_track.find_segment("s1").duration_ms == 2000

    def test_missing_segment_is_a_no_op(self, project):
        assert apply_edit(project, ResizeSegment(segment_id="nope", duration_ms=10)) is project


class TestRemoveSegment:
    """Test suite for RemoveSegment."""

    def test_closes_the_gap(self, project):
        updated = apply_edit(project, RemoveSegment(segment_id="s1"))
        assert starts(updated) == {"s0": 0, "s2": 1000}

    def test_selection_moves_to_next_segment(self, project):
        selected = apply_edit(project, SelectSegment(segment_id="s1"))
        updated = apply_edit(selected, RemoveSegment(segment_id="s1"))
        assert updated.selected_segment_id == "s2"

    def test_removing_last_selected_clears_selection(self, project):
        selected = apply_edit(project, SelectSegment(segment_id="s2"))
        updated = apply_edit(selected, RemoveSegment(segment_id="s2"))
        assert updated.selected_segment_id is None


class TestSwapSegments:
    """Test suite for SwapSegments."""

    def test_exchanges_clips_and_reclamps_offsets(self, project):
        updated = apply_edit(
            project, SwapSegments(first_segment_id="s1", second_segment_id="s0")
        )
        s0 = updated.video_track.find_segment("s0")
        s1 = updated.video_track.find_segment("s1")

        assert s1.source_clip_id == "a"
        assert s0.source_clip_id == "a"
        assert s0.source_start_offset_ms == 500
        assert starts(updated) == starts(project)

    def test_offset_clamped_against_new_clip(self, project):
        updated = apply_edit(
            project, SwapSegments(first_segment_id="s1", second_segment_id="s2")
        )
        s1 = updated.video_track.find_segment("s1")
        s2 = updated.video_track.find_segment("s2")

        assert s1.source_clip_id == "c"
        assert s1.source_start_offset_ms == 0
        assert s2.source_clip_id == "a"
        assert s2.source_start_offset_ms == 500

    def test_swapping_with_itself_is_a_no_op(self, project):
        command = SwapSegments(first_segment_id="s1", second_segment_id="s1")
        assert apply_edit(project, command) is project


class TestInsertSegment:
    """Test suite for InsertSegment."""

    def test_snaps_to_segment_end_and_ripples(self, project):
        command = InsertSegment(
            track_id="video-1", clip_id="b", timeline_start_ms=1500, duration_ms=1000
        )
        updated = apply_edit(project, command)

        inserted = [s for s in updated.video_track.segments if s.id not in starts(project)]
        assert len(inserted) == 1
        assert inserted[0].timeline_start_ms == 3000
        assert starts(updated)["s2"] == 4000

    def test_unknown_clip_is_a_no_op(self, project):
        command = InsertSegment(
            track_id="video-1", clip_id="zzz", timeline_start_ms=0, duration_ms=1000
        )
        assert apply_edit(project, command) is project


class TestSegmentProperties:
    """Test suite for slip and effect edits."""

    def test_slip_is_clamped(self, project):
        updated = apply_edit(
            project, SlipSegment(segment_id="s1", source_start_offset_ms=5000)
        )
        segment = updated.video_track.find_segment("s1")
        assert segment.source_start_offset_ms == 2000
        assert segment.timeline_start_ms == 1000

    @pytest.mark.parametrize(("requested", "expected"), [(100.0, 20.0), (0.001, 0.05), (1.5, 1.5)])
    def test_playback_rate_is_clamped(self, project, requested, expected):
        updated = apply_edit(
            project, UpdateSegmentEffects(segment_id="s0", playback_rate=requested)
        )
        assert updated.video_track.find_segment("s0").playback_rate == expected

    def test_effects_leave_unset_fields(self, project):
        fade = FadeRange(enabled=True, start_ms=0, end_ms=250)
        updated = apply_edit(
            project, UpdateSegmentEffects(segment_id="s0", reverse=True, fade_in=fade)
        )
        segment = updated.video_track.find_segment("s0")
        assert segment.reverse
        assert segment.fade_in == fade
        assert segment.playback_rate == 1.0
        assert not segment.fade_out.enabled


class TestPoolAndTempo:
    """Test suite for clip removal, tempo and auto-sync edits."""

    def test_remove_clip_leaves_gaps(self, project):
        updated = apply_edit(project, RemoveClip(clip_id="a"))
        assert [c.id for c in updated.clips] == ["b", "c"]
        assert starts(updated) == {"s2": 3000}

    def test_set_tempo_rebuilds_grid(self, project):
        updated = apply_edit(project, SetTempo(bpm=60))
        assert updated.beat_grid.bpm == 60
        assert updated.beat_grid.beats == pytest.approx([float(i) for i in range(8)])

    def test_intro_skip_shortens_timeline(self, project):
        updated = apply_edit(project, SetTempo(bpm=60, intro_skip_ms=1000))
        assert updated.intro_skip_ms == 1000
        assert updated.duration_ms == 7000
        assert updated.beat_grid.beats == pytest.approx([float(i) for i in range(7)])

    def test_invalid_bpm_keeps_tempo(self, project):
        updated = apply_edit(project, SetTempo(bpm=-5))
        assert updated.beat_grid.bpm == 120

    def test_extreme_bpm_is_clamped(self, project):
        updated = apply_edit(project, SetTempo(bpm=1e9))
        assert updated.beat_grid.bpm == MAX_BPM
        assert len(updated.beat_grid.beats) == 54

    def test_auto_sync_replaces_video_track(self, project):
        updated = apply_edit(project, AutoSync(preferred_bars=1))
        segments = updated.video_track.segments
        assert [s.duration_ms for s in segments] == [2000, 2000, 2000]
        assert updated.preferred_bars == 1

    def test_commands_parse_from_json(self):
        adapter = TypeAdapter(EditCommand)
        command = adapter.validate_python(
            {"kind": "resize_segment", "segment_id": "s1", "duration_ms": 3000}
        )
        assert isinstance(command, ResizeSegment)

    def test_fade_out_command_defaults_to_segment_tail(self, project):
        command = TypeAdapter(EditCommand).validate_python(
            {
                "kind": "update_segment_effects",
                "segment_id": "s1",
                "fade_out": {"enabled": True},
            }
        )
        assert isinstance(command, UpdateSegmentEffects)

        updated = apply_edit(project, command)
        fade_out = updated.video_track.find_segment("s1").fade_out
        assert (fade_out.enabled, fade_out.start_ms, fade_out.end_ms) == (True, -500, 0)
