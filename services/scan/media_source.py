"""Camera streams fed by the client device.

The camera itself lives in the browser; the widget asks for permission,
then pushes frames while the preview is shown. `StreamedCameraSource`
keeps the latest frame per open stream so a capture returns exactly what
the user saw when they pressed the shutter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol
from uuid import uuid4

from models.scan_models import CapturedImage
from services.scan.errors import DeviceUnavailable, PermissionDenied

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamHandle:
    stream_id: str


class MediaSource(Protocol):
    """Protocol for camera devices."""

    def open(self, *, permission_granted: bool = True) -> StreamHandle:
        """Open a stream or raise PermissionDenied / DeviceUnavailable."""
        ...

    def capture_frame(self, stream: StreamHandle) -> CapturedImage:
        """Return the current frame of an open stream."""
        ...

    def close(self, stream: StreamHandle) -> None:
        """Release the stream. Closing an unknown stream is a no-op."""
        ...


class StreamedCameraSource:
    """MediaSource backed by frames pushed from the client camera."""

    def __init__(self, max_streams: int = 64) -> None:
        self.max_streams = max_streams
        self._frames: Dict[str, Optional[CapturedImage]] = {}

    def open(self, *, permission_granted: bool = True) -> StreamHandle:
        if not permission_granted:
            raise PermissionDenied("Camera access was denied.")
        if len(self._frames) >= self.max_streams:
            raise DeviceUnavailable("Too many camera streams are open.")
        handle = StreamHandle(stream_id=uuid4().hex)
        self._frames[handle.stream_id] = None
        return handle

    def push_frame(self, stream: StreamHandle, frame: CapturedImage) -> None:
        if stream.stream_id not in self._frames:
            raise DeviceUnavailable("Camera stream is not open.")
        self._frames[stream.stream_id] = frame

    def capture_frame(self, stream: StreamHandle) -> CapturedImage:
        if stream.stream_id not in self._frames:
            raise DeviceUnavailable("Camera stream is not open.")
        frame = self._frames[stream.stream_id]
        if frame is None:
            raise DeviceUnavailable("The camera has not produced a frame yet.")
        return frame

    def close(self, stream: StreamHandle) -> None:
        if self._frames.pop(stream.stream_id, None) is not None:
            LOGGER.debug("Released camera stream %s", stream.stream_id)

    @property
    def open_streams(self) -> int:
        return len(self._frames)
