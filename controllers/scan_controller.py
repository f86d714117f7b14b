"""Scan workflow handlers: camera, uploads, retakes, and analysis."""

from __future__ import annotations

import logging
from typing import Any, Dict, NoReturn

from fastapi import HTTPException, Request, UploadFile

from controllers.payloads import scan_payload, turn_payload
from models.scan_models import ImageSource
from models.session_models import ChatSession
from services.scan.errors import (
    AnalysisUnavailable,
    DeviceUnavailable,
    InvalidInput,
    MediaSourceError,
    PermissionDenied,
    ScanStateError,
)
from services.scan.media_source import StreamedCameraSource
from services.scan.orchestrator import ScanOrchestrator
from services.session_store import SessionStore
from utils.media_validation import read_image_upload

LOGGER = logging.getLogger(__name__)


def raise_http_error(exc: Exception) -> NoReturn:
    """Translate a scan workflow exception into an HTTPException."""
    if isinstance(exc, KeyError):
        raise HTTPException(status_code=404, detail=str(exc).strip("'\"")) from exc
    if isinstance(exc, InvalidInput):
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if isinstance(exc, ScanStateError):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if isinstance(exc, PermissionDenied):
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    if isinstance(exc, DeviceUnavailable):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if isinstance(exc, AnalysisUnavailable):
        raise HTTPException(status_code=503, detail={"message": str(exc), "retryable": True}) from exc
    raise exc


def _session(request: Request, session_id: str) -> ChatSession:
    store: SessionStore = request.app.state.session_store
    try:
        return store.get(session_id)
    except KeyError as exc:
        raise_http_error(exc)


def _camera(request: Request) -> StreamedCameraSource:
    return request.app.state.media_source


def _max_image_bytes(request: Request) -> int:
    return request.app.state.config.max_image_bytes


async def scan_status(request: Request, session_id: str) -> Dict[str, Any]:
    return scan_payload(_session(request, session_id).scan)


async def open_camera(request: Request, session_id: str, permission_granted: bool = True) -> Dict[str, Any]:
    """Open a camera stream for the session."""
    session = _session(request, session_id)
    camera = _camera(request)
    try:
        stream = camera.open(permission_granted=permission_granted)
    except MediaSourceError as exc:
        raise_http_error(exc)
    try:
        session.scan.open_camera(stream)
    except ScanStateError as exc:
        camera.close(stream)
        raise_http_error(exc)
    return {"stream_id": stream.stream_id, **scan_payload(session.scan)}


async def push_frame(request: Request, session_id: str, frame: UploadFile) -> Dict[str, Any]:
    """Store the latest preview frame of the session's camera stream."""
    session = _session(request, session_id)
    if session.scan.stream is None:
        raise HTTPException(status_code=409, detail="The camera is not open.")
    image = await read_image_upload(frame, ImageSource.CAMERA, _max_image_bytes(request))
    try:
        _camera(request).push_frame(session.scan.stream, image)
    except MediaSourceError as exc:
        raise_http_error(exc)
    return {"accepted": True, "size": image.size}


async def capture_frame(request: Request, session_id: str) -> Dict[str, Any]:
    """Freeze the latest camera frame as the image to analyze."""
    session = _session(request, session_id)
    if session.scan.stream is None:
        raise HTTPException(status_code=409, detail="The camera is not open.")
    try:
        image = _camera(request).capture_frame(session.scan.stream)
        session.scan.capture(image)
    except (MediaSourceError, ScanStateError) as exc:
        raise_http_error(exc)
    return scan_payload(session.scan)


async def cancel_camera(request: Request, session_id: str) -> Dict[str, Any]:
    session = _session(request, session_id)
    try:
        session.scan.cancel_camera()
    except ScanStateError as exc:
        raise_http_error(exc)
    return scan_payload(session.scan)


async def upload_image(request: Request, session_id: str, file: UploadFile) -> Dict[str, Any]:
    """Use an uploaded file as the image to analyze."""
    session = _session(request, session_id)
    image = await read_image_upload(file, ImageSource.UPLOAD, _max_image_bytes(request))
    try:
        session.scan.choose_file(image)
    except ScanStateError as exc:
        raise_http_error(exc)
    return scan_payload(session.scan)


async def retake(request: Request, session_id: str, reopen_camera: bool = True) -> Dict[str, Any]:
    """Discard the held image, optionally reopening the camera."""
    session = _session(request, session_id)
    camera = _camera(request)
    stream = None
    try:
        if reopen_camera:
            stream = camera.open()
        session.scan.retake(stream)
    except (MediaSourceError, ScanStateError) as exc:
        if stream is not None:
            camera.close(stream)
        raise_http_error(exc)
    return scan_payload(session.scan)


async def submit_scan(request: Request, session_id: str) -> Dict[str, Any]:
    """Run the analysis and return the committed transcript turn."""
    orchestrator: ScanOrchestrator = request.app.state.orchestrator
    try:
        turn = await orchestrator.submit_for_analysis(session_id)
    except (KeyError, InvalidInput, ScanStateError, AnalysisUnavailable) as exc:
        raise_http_error(exc)
    if turn is None:
        raise HTTPException(status_code=409, detail="Session was closed during analysis.")
    return {"turn": turn_payload(turn), "scan": scan_payload(orchestrator.store.get(session_id).scan)}
