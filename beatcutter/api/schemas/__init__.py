"""API schemas for requests and responses."""

from beatcutter.api.schemas.requests import (
    AnalyzeBeatsRequest,
    AutoSyncRequest,
    BeatGridRequest,
    EditRequest,
    ExportRequest,
    FrameRequest,
    OtioExportRequest,
)
from beatcutter.api.schemas.responses import ExportJobResponse, FrameResponse
from beatcutter.api.schemas.websocket import ProgressMessage

__all__ = [
    "AnalyzeBeatsRequest",
    "AutoSyncRequest",
    "BeatGridRequest",
    "EditRequest",
    "ExportJobResponse",
    "ExportRequest",
    "FrameRequest",
    "FrameResponse",
    "OtioExportRequest",
    "ProgressMessage",
]
