"""Tests for the render subprocess runner and the job store."""

import asyncio

import pytest

from beatcutter.common.errors import RendererNotFoundError, RenderJobConflictError
from beatcutter.render.job_store import RenderJobStore
from beatcutter.render.runner import RenderRunner, parse_progress_time, progress_percent
from beatcutter.render.schemas import RenderJobRequest, RenderStage


class TestProgressParsing:
    """Test suite for renderer progress line parsing."""

    def test_parse_time(self):
        line = "frame=  90 fps=30 q=28.0 size=256kB time=01:02:03.50 bitrate=N/A"
        assert parse_progress_time(line) == pytest.approx(3723.5)

    def test_line_without_time(self):
        assert parse_progress_time("Input #0, mov,mp4, from 'a.mp4':") is None

    def test_percent(self):
        assert progress_percent(2.5, 5.0) == pytest.approx(50.0)
        assert progress_percent(9.0, 5.0) == 100.0
        assert progress_percent(1.0, None) is None
        assert progress_percent(1.0, 0.0) is None


class TestRenderRunner:
    """Test suite for RenderRunner."""

    @pytest.fixture
    def spawned(self, monkeypatch):
        """Renderer processes started during the test."""
        processes = []
        create_subprocess_exec = asyncio.create_subprocess_exec

        async def recording_exec(*args, **kwargs):
            process = await create_subprocess_exec(*args, **kwargs)
            processes.append(process)
            return process

        monkeypatch.setattr(asyncio, "create_subprocess_exec", recording_exec)
        return processes

    def test_progress_and_success(self, fake_ffmpeg):
        runner = RenderRunner(ffmpeg_path=str(fake_ffmpeg))
        events = []

        async def on_progress(progress):
            events.append(progress)

        request = RenderJobRequest(job_id="ok", args=["0"], expected_duration_sec=5.0)
        result = asyncio.run(runner.run(request, on_progress))

        assert result.succeeded
        assert result.exit_code == 0
        assert [e.elapsed_sec for e in events] == [pytest.approx(1.0), pytest.approx(2.5)]
        assert [e.percent for e in events] == [pytest.approx(20.0), pytest.approx(50.0)]
        assert not runner.is_running("ok")

    def test_non_zero_exit(self, fake_ffmpeg):
        runner = RenderRunner(ffmpeg_path=str(fake_ffmpeg))
        result = asyncio.run(runner.run(RenderJobRequest(job_id="bad", args=["3"])))

        assert not result.succeeded
        assert result.exit_code == 3
        assert result.termination_signal is None
        assert any("time=00:00:02.50" in line for line in result.log_tail)

    def test_conflict_and_cancel(self, fake_ffmpeg):
        runner = RenderRunner(ffmpeg_path=str(fake_ffmpeg))

        async def scenario():
            started = asyncio.Event()

            async def on_progress(progress):
                started.set()

            task = asyncio.create_task(
                runner.run(RenderJobRequest(job_id="slow", args=["sleep"]), on_progress)
            )
            await asyncio.wait_for(started.wait(), timeout=10)

            assert runner.is_running("slow")
            assert runner.active_job_ids == ["slow"]
            with pytest.raises(RenderJobConflictError):
                await runner.run(RenderJobRequest(job_id="slow", args=["0"]))

            assert runner.cancel("slow")
            return await asyncio.wait_for(task, timeout=10)

        result = asyncio.run(scenario())

        assert result.termination_signal == "SIGTERM"
        assert result.exit_code is None
        assert not result.succeeded
        assert not runner.is_running("slow")

    def test_failing_callback_stops_the_renderer(self, fake_ffmpeg, spawned):
        runner = RenderRunner(ffmpeg_path=str(fake_ffmpeg))

        async def on_progress(progress):
            msg = "progress sink failed"
            raise RuntimeError(msg)

        request = RenderJobRequest(job_id="broken-sink", args=["sleep"])
        with pytest.raises(RuntimeError, match="progress sink failed"):
            asyncio.run(runner.run(request, on_progress))

        assert len(spawned) == 1
        assert spawned[0].returncode is not None
        assert not runner.is_running("broken-sink")

    def test_cancelled_task_stops_the_renderer(self, fake_ffmpeg, spawned):
        runner = RenderRunner(ffmpeg_path=str(fake_ffmpeg))

        async def scenario():
            started = asyncio.Event()

            async def on_progress(progress):
                started.set()

            task = asyncio.create_task(
                runner.run(RenderJobRequest(job_id="abandoned", args=["sleep"]), on_progress)
            )
            await asyncio.wait_for(started.wait(), timeout=10)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert spawned[0].returncode is not None
        assert not runner.is_running("abandoned")

    def test_cancel_unknown_job(self):
        assert not RenderRunner(ffmpeg_path="/nonexistent/ffmpeg").cancel("nope")

    def test_missing_binary(self):
        runner = RenderRunner(ffmpeg_path="/nonexistent/ffmpeg")
        with pytest.raises(RendererNotFoundError):
            asyncio.run(runner.run(RenderJobRequest(job_id="x", args=[])))
        assert not runner.is_running("x")


class TestRenderJobStore:
    """Test suite for RenderJobStore."""

    def test_create_and_update(self):
        store = RenderJobStore()
        store.create("job", "/tmp/out.mp4", 4.0)

        updated = store.update("job", stage=RenderStage.RENDERING, progress_percent=25.0)

        assert updated is not None
        assert updated.stage == RenderStage.RENDERING
        assert updated.progress_percent == 25.0
        assert updated.completed_at is None
        assert store.get("job") == updated

    def test_finishing_stamps_completion(self):
        store = RenderJobStore()
        store.create("job", "/tmp/out.mp4", 4.0)

        status = store.update("job", stage=RenderStage.COMPLETED)

        assert status is not None
        assert status.is_finished
        assert status.completed_at is not None

    def test_unknown_job(self):
        assert RenderJobStore().update("missing", stage=RenderStage.FAILED) is None

    def test_list_newest_first(self):
        store = RenderJobStore()
        store.create("first", "/tmp/a.mp4", 1.0)
        store.create("second", "/tmp/b.mp4", 1.0)

        ids = [status.job_id for status in store.list_jobs()]
        assert set(ids) == {"first", "second"}
        assert store.list_jobs()[0].created_at >= store.list_jobs()[1].created_at
