"""WebSocket handler for real-time export progress.

Clients get the job's current status as soon as they connect, then every
progress event the render emits. Sending ``status`` re-requests the snapshot.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from beatcutter.api.schemas.websocket import ProgressMessage
from beatcutter.render.progress_reporter import connection_manager
from beatcutter.render.providers import render_job_store

router = APIRouter()


def _snapshot(job_id: str) -> ProgressMessage | None:
    status = render_job_store().get(job_id)
    return ProgressMessage.from_status(status) if status is not None else None


@router.websocket("/{job_id}")
async def websocket_endpoint(websocket: WebSocket, job_id: str) -> None:
    """WebSocket endpoint for real-time progress updates."""
    await connection_manager.connect(websocket, job_id, snapshot=_snapshot(job_id))
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
            elif data == "status":
                snapshot = _snapshot(job_id)
                if snapshot is not None:
                    await websocket.send_json(snapshot.model_dump(mode="json"))
    except WebSocketDisconnect:
        connection_manager.disconnect(websocket, job_id)
