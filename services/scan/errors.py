"""Exceptions raised by the scan workflow."""

from __future__ import annotations


class InvalidInput(ValueError):
    """No image was provided or its encoding is not supported."""


class ScanStateError(RuntimeError):
    """The requested action is not allowed in the current scan state."""


class AnalysisUnavailable(RuntimeError):
    """Both classifiers failed in the parallel attempt and in the fallback."""

    retryable = True


class PersistenceFailure(RuntimeError):
    """The best-effort image cache write failed."""


class MediaSourceError(RuntimeError):
    """Base class for camera stream failures."""


class PermissionDenied(MediaSourceError):
    """The user refused camera access."""


class DeviceUnavailable(MediaSourceError):
    """No camera is available or the stream produced no frame."""
