"""Cooperative per-frame preview loop."""

import asyncio
import logging
from collections.abc import Callable

from beatcutter.playback.engine import PlaybackEngine
from beatcutter.playback.scheduler import SourceElement, resolve_frame, sync_source
from beatcutter.playback.schemas import FrameResolution
from beatcutter.timeline.schemas import ProjectState

logger = logging.getLogger(__name__)

DEFAULT_FRAME_INTERVAL_SEC = 1 / 60


class PreviewLoop:
    """Drives a source element from the transport, one frame at a time.

    The project is read through ``project_getter`` on every frame, so edits
    applied while playing are picked up on the next frame.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        project_getter: Callable[[], ProjectState],
        element: SourceElement,
        on_frame: Callable[[FrameResolution | None], None] | None = None,
        frame_interval_sec: float = DEFAULT_FRAME_INTERVAL_SEC,
    ):
        self.engine = engine
        self.project_getter = project_getter
        self.element = element
        self.on_frame = on_frame
        self.frame_interval_sec = frame_interval_sec
        self._running = False
        self._rendering = False

    @property
    def running(self) -> bool:
        return self._running

    def render_frame(self) -> FrameResolution | None:
        """Resolve and present a single frame.

        Raises:
            RuntimeError: If called while another frame is being rendered.
        """
        if self._rendering:
            msg = "A preview frame is already being rendered"
            raise RuntimeError(msg)

        self._rendering = True
        try:
            project = self.project_getter()
            self.engine.set_duration(project.duration_ms)
            self.engine.set_intro_skip(project.intro_skip_ms)
            state = self.engine.tick()

            frame = resolve_frame(project, state.current_time_ms)
            sync_source(self.element, frame, state.is_playing, state.playback_rate)
            if self.on_frame is not None:
                self.on_frame(frame)
            return frame
        finally:
            self._rendering = False

    async def run(self) -> None:
        """Render frames until ``stop()`` is called."""
        if self._running:
            msg = "Preview loop is already running"
            raise RuntimeError(msg)

        self._running = True
        logger.info("Preview loop started")
        try:
            while self._running:
                self.render_frame()
                await asyncio.sleep(self.frame_interval_sec)
        finally:
            self._running = False
            logger.info("Preview loop stopped")

    def stop(self) -> None:
        self._running = False
