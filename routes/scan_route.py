"""FastAPI routes for the chat widget's scan workflow."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.scan_controller import (
    cancel_camera,
    capture_frame,
    open_camera,
    push_frame,
    retake,
    scan_status,
    submit_scan,
    upload_image,
)

router = APIRouter(prefix="/sessions/{session_id}/scan", tags=["scan"])


class CameraPayload(BaseModel):
    permission_granted: bool = True


class RetakePayload(BaseModel):
    reopen_camera: bool = True


@router.get("", summary="Current scan state")
async def scan_status_route(request: Request, session_id: str):
    try:
        return await scan_status(request, session_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/camera", summary="Open the camera")
async def open_camera_route(request: Request, session_id: str, payload: CameraPayload | None = None):
    payload = payload or CameraPayload()
    try:
        return await open_camera(request, session_id, payload.permission_granted)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/frames", summary="Push the latest camera preview frame")
async def push_frame_route(request: Request, session_id: str, frame: UploadFile = File(...)):
    try:
        return await push_frame(request, session_id, frame)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/capture", summary="Capture the current camera frame")
async def capture_route(request: Request, session_id: str):
    try:
        return await capture_frame(request, session_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/cancel", summary="Close the camera without capturing")
async def cancel_route(request: Request, session_id: str):
    try:
        return await cancel_camera(request, session_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/upload", summary="Choose an image file to analyze")
async def upload_route(request: Request, session_id: str, file: UploadFile = File(...)):
    """Handle an image upload from the user's device.

    Raises:
        HTTPException: 415 for non-image content types, 400 for empty
            uploads, 422 for undecodable images, 409 during an analysis.
    """
    try:
        return await upload_image(request, session_id, file)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/retake", summary="Discard the captured image")
async def retake_route(request: Request, session_id: str, payload: RetakePayload | None = None):
    payload = payload or RetakePayload()
    try:
        return await retake(request, session_id, payload.reopen_camera)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/submit", summary="Analyze the captured image")
async def submit_route(request: Request, session_id: str):
    """Send the held image to both classifiers and append the result to the chat.

    Returns 503 with `retryable: true` when neither classifier could be
    reached; the image stays held so the client can resubmit.
    """
    try:
        return await submit_scan(request, session_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
