"""Scan state machine owned by one open chat widget.

States:
    idle           no camera, no image
    camera_active  a media stream is open
    image_ready    one captured image is held, not yet submitted
    analyzing      classifier calls are in flight

At most one CapturedImage and one stream handle are held at a time; both
are released whenever the session leaves the state that owns them.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from models.scan_models import CapturedImage
from services.scan.errors import ScanStateError
from services.scan.media_source import StreamHandle

LOGGER = logging.getLogger(__name__)


class ScanState(str, Enum):
    IDLE = "idle"
    CAMERA_ACTIVE = "camera_active"
    IMAGE_READY = "image_ready"
    ANALYZING = "analyzing"


class ScanSession:
    """Track camera, captured image, and analysis progress for one widget.

    Args:
        release_stream: Called with the stream handle whenever the camera is
            closed by a transition (capture, cancel, file upload, discard).
    """

    def __init__(self, release_stream: Optional[Callable[[StreamHandle], None]] = None) -> None:
        self.state = ScanState.IDLE
        self.image: Optional[CapturedImage] = None
        self.stream: Optional[StreamHandle] = None
        self._release_stream = release_stream

    def _require(self, *allowed: ScanState, action: str) -> None:
        if self.state not in allowed:
            raise ScanStateError(f"Cannot {action} while {self.state.value}.")

    def _close_stream(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None and self._release_stream is not None:
            self._release_stream(stream)

    def _set(self, state: ScanState) -> None:
        LOGGER.debug("Scan state %s -> %s", self.state.value, state.value)
        self.state = state

    def open_camera(self, stream: StreamHandle) -> None:
        """Start streaming; any image held from a previous capture is discarded."""
        self._require(ScanState.IDLE, ScanState.IMAGE_READY, ScanState.CAMERA_ACTIVE, action="open the camera")
        self._close_stream()
        self.image = None
        self.stream = stream
        self._set(ScanState.CAMERA_ACTIVE)

    def capture(self, image: CapturedImage) -> None:
        self._require(ScanState.CAMERA_ACTIVE, action="capture a frame")
        self._close_stream()
        self.image = image
        self._set(ScanState.IMAGE_READY)

    def choose_file(self, image: CapturedImage) -> None:
        self._require(ScanState.IDLE, ScanState.CAMERA_ACTIVE, ScanState.IMAGE_READY, action="choose a file")
        self._close_stream()
        self.image = image
        self._set(ScanState.IMAGE_READY)

    def retake(self, stream: Optional[StreamHandle] = None) -> None:
        """Discard the held image and go back to the camera (when `stream` is given) or idle."""
        self._require(ScanState.IMAGE_READY, action="retake")
        self.image = None
        if stream is not None:
            self.stream = stream
            self._set(ScanState.CAMERA_ACTIVE)
        else:
            self._set(ScanState.IDLE)

    def cancel_camera(self) -> None:
        self._require(ScanState.CAMERA_ACTIVE, action="cancel the camera")
        self._close_stream()
        self._set(ScanState.IDLE)

    def begin_analysis(self) -> CapturedImage:
        self._require(ScanState.IMAGE_READY, action="submit for analysis")
        if self.image is None:
            raise ScanStateError("No image is held for analysis.")
        self._set(ScanState.ANALYZING)
        return self.image

    def complete_analysis(self) -> None:
        self._require(ScanState.ANALYZING, action="commit an analysis")
        self.image = None
        self._set(ScanState.IDLE)

    def fail_analysis(self) -> None:
        """Return to image_ready so the same image can be resubmitted.

        If the image was discarded while the analysis ran, go to idle instead.
        """
        self._require(ScanState.ANALYZING, action="fail an analysis")
        self._set(ScanState.IMAGE_READY if self.image is not None else ScanState.IDLE)

    def discard(self) -> None:
        """Release everything; used when the widget closes."""
        self._close_stream()
        self.image = None
        if self.state != ScanState.ANALYZING:
            self._set(ScanState.IDLE)
