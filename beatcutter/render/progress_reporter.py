"""WebSocket connection manager and export progress reporter."""

import logging

from fastapi import WebSocket, WebSocketDisconnect

from beatcutter.api.schemas.websocket import ProgressMessage
from beatcutter.render.schemas import RenderProgress, RenderStage

logger = logging.getLogger(__name__)

_FINAL_STAGES = (RenderStage.COMPLETED, RenderStage.FAILED, RenderStage.CANCELLED)


class ConnectionManager:
    """Tracks the progress subscribers of each export job."""

    def __init__(self) -> None:
        self.active_connections: dict[str, list[WebSocket]] = {}

    def connection_count(self, job_id: str) -> int:
        return len(self.active_connections.get(job_id, []))

    async def connect(
        self,
        websocket: WebSocket,
        job_id: str,
        snapshot: ProgressMessage | None = None,
    ) -> None:
        """Accept a subscriber and send it the job's current state, if known."""
        await websocket.accept()
        if snapshot is not None:
            await websocket.send_json(snapshot.model_dump(mode="json"))
        self.active_connections.setdefault(job_id, []).append(websocket)
        logger.info(
            "[ws] Client connected for job=%s (total: %d)",
            job_id,
            self.connection_count(job_id),
        )

    def disconnect(self, websocket: WebSocket, job_id: str) -> None:
        connections = self.active_connections.get(job_id, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(job_id, None)

    async def broadcast(self, job_id: str, message: ProgressMessage) -> None:
        """Send a message to every subscriber of a job.

        Subscribers whose socket fails are dropped. The subscriber list is
        released once the job reaches a final stage.
        """
        payload = message.model_dump(mode="json")
        for connection in list(self.active_connections.get(job_id, [])):
            try:
                await connection.send_json(payload)
            except (WebSocketDisconnect, RuntimeError, OSError):
                logger.debug("[ws] Dropping dead connection for job=%s", job_id)
                self.disconnect(connection, job_id)

        if message.stage in _FINAL_STAGES:
            self.active_connections.pop(job_id, None)


# Global instance
connection_manager = ConnectionManager()


class ProgressReporter:
    """Reports export progress to WebSocket clients."""

    def __init__(self, job_id: str, manager: ConnectionManager | None = None) -> None:
        """Initialize the progress reporter.

        Args:
            job_id: The export job ID.
            manager: Connection manager to broadcast through.
        """
        self.job_id = job_id
        self.manager = manager or connection_manager

    async def send_progress(
        self,
        stage: RenderStage,
        progress_percent: float,
        elapsed_sec: float | None = None,
        message: str = "",
    ) -> None:
        """Send a progress update to connected clients.

        Args:
            stage: Current export stage.
            progress_percent: Render progress (0-100).
            elapsed_sec: Output time rendered so far.
            message: Optional status message.
        """
        msg = ProgressMessage(
            job_id=self.job_id,
            stage=stage,
            progress_percent=progress_percent,
            elapsed_sec=elapsed_sec,
            message=message,
        )
        await self.manager.broadcast(self.job_id, msg)

    async def on_render_progress(self, progress: RenderProgress) -> None:
        """Forward a renderer progress event."""
        logger.debug(
            "[job=%s] PROGRESS: elapsed=%.2fs, percent=%s",
            self.job_id,
            progress.elapsed_sec,
            "-" if progress.percent is None else f"{progress.percent:.1f}%",
        )
        await self.send_progress(
            stage=RenderStage.RENDERING,
            progress_percent=progress.percent or 0.0,
            elapsed_sec=progress.elapsed_sec,
        )

    async def send_complete(self, output_path: str) -> None:
        """Send completion notification."""
        logger.info("[job=%s] Export complete: %s", self.job_id, output_path)
        await self.send_progress(
            stage=RenderStage.COMPLETED,
            progress_percent=100.0,
            message=output_path,
        )

    async def send_error(self, error_message: str) -> None:
        """Send error notification."""
        logger.error("[job=%s] Export failed: %s", self.job_id, error_message)
        await self.send_progress(
            stage=RenderStage.FAILED,
            progress_percent=0.0,
            message=error_message,
        )

    async def send_cancelled(self) -> None:
        logger.info("[job=%s] Export cancelled", self.job_id)
        await self.send_progress(
            stage=RenderStage.CANCELLED,
            progress_percent=0.0,
            message="Export cancelled",
        )
