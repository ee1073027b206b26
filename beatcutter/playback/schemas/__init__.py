"""Playback schemas."""

from beatcutter.playback.schemas.frame import DriveMode, FrameResolution

__all__ = [
    "DriveMode",
    "FrameResolution",
]
