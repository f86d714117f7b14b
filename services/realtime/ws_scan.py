"""Drive the scan workflow from realtime websocket messages."""
from __future__ import annotations

from typing import Any, Dict, Optional

from controllers.payloads import scan_payload, turn_payload
from models.scan_models import ImageSource
from services.scan.errors import MediaSourceError, ScanStateError
from services.scan.media_source import StreamedCameraSource
from services.scan.orchestrator import ScanOrchestrator
from services.session_store import SessionStore
from utils.media_validation import build_captured_image, decode_base64_image


class ScanMessageHandler:
	"""Camera, upload, retake and submit events for one chat widget."""

	def __init__(
		self,
		store: SessionStore,
		camera: StreamedCameraSource,
		orchestrator: ScanOrchestrator,
		max_image_bytes: Optional[int] = None,
	) -> None:
		self.store = store
		self.camera = camera
		self.orchestrator = orchestrator
		self.max_image_bytes = max_image_bytes

	def _state(self, session_id: str, message_type: str) -> Dict[str, Any]:
		return {"type": message_type, "scan": scan_payload(self.store.get(session_id).scan)}

	def _image_from(self, payload: Dict[str, Any], source: ImageSource):
		data = decode_base64_image(payload.get("image_b64") or "")
		return build_captured_image(
			data,
			payload.get("mime_type"),
			source=source,
			filename=payload.get("filename"),
			max_bytes=self.max_image_bytes,
		)

	def open_camera(self, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		scan = self.store.get(session_id).scan
		stream = self.camera.open(permission_granted=bool(payload.get("permission_granted", True)))
		try:
			scan.open_camera(stream)
		except ScanStateError:
			self.camera.close(stream)
			raise
		return self._state(session_id, "scan.camera_opened")

	def push_frame(self, session_id: str, payload: Dict[str, Any]) -> None:
		"""Store a preview frame. Frames are not acknowledged."""
		scan = self.store.get(session_id).scan
		if scan.stream is None:
			raise ScanStateError("The camera is not open.")
		self.camera.push_frame(scan.stream, self._image_from(payload, ImageSource.CAMERA))

	def capture(self, session_id: str) -> Dict[str, Any]:
		scan = self.store.get(session_id).scan
		if scan.stream is None:
			raise ScanStateError("The camera is not open.")
		scan.capture(self.camera.capture_frame(scan.stream))
		return self._state(session_id, "scan.image_ready")

	def upload(self, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		scan = self.store.get(session_id).scan
		scan.choose_file(self._image_from(payload, ImageSource.UPLOAD))
		return self._state(session_id, "scan.image_ready")

	def retake(self, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		scan = self.store.get(session_id).scan
		stream = self.camera.open() if payload.get("reopen_camera", True) else None
		try:
			scan.retake(stream)
		except (MediaSourceError, ScanStateError):
			if stream is not None:
				self.camera.close(stream)
			raise
		return self._state(session_id, "scan.retaken")

	def cancel(self, session_id: str) -> Dict[str, Any]:
		self.store.get(session_id).scan.cancel_camera()
		return self._state(session_id, "scan.cancelled")

	async def submit(self, session_id: str) -> Optional[Dict[str, Any]]:
		"""Run the analysis; None when the session closed before it finished."""
		turn = await self.orchestrator.submit_for_analysis(session_id)
		if turn is None:
			return None
		return {"type": "scan.result", "turn": turn_payload(turn), "scan": scan_payload(self.store.get(session_id).scan)}
