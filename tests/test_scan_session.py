"""Tests for the scan state machine and the streamed camera source."""

from __future__ import annotations

import pytest

from models.scan_models import CapturedImage
from services.scan.errors import DeviceUnavailable, PermissionDenied, ScanStateError
from services.scan.media_source import StreamedCameraSource
from services.scan.scan_session import ScanSession, ScanState
from services.session_store import GREETING, SessionStore
from models.session_models import Role


@pytest.fixture()
def camera() -> StreamedCameraSource:
    return StreamedCameraSource()


@pytest.fixture()
def scan(camera: StreamedCameraSource) -> ScanSession:
    return ScanSession(release_stream=camera.close)


class TestTransitions:
    def test_capture_closes_stream_and_holds_image(self, scan: ScanSession, camera, leaf_image: CapturedImage) -> None:
        stream = camera.open()
        scan.open_camera(stream)
        camera.push_frame(stream, leaf_image)

        scan.capture(camera.capture_frame(stream))

        assert scan.state is ScanState.IMAGE_READY
        assert scan.image is leaf_image
        assert scan.stream is None
        assert camera.open_streams == 0

    def test_retake_to_camera_discards_image(self, scan: ScanSession, camera, leaf_image) -> None:
        scan.choose_file(leaf_image)
        scan.retake(camera.open())
        assert scan.state is ScanState.CAMERA_ACTIVE
        assert scan.image is None

    def test_retake_to_idle(self, scan: ScanSession, leaf_image) -> None:
        scan.choose_file(leaf_image)
        scan.retake()
        assert scan.state is ScanState.IDLE
        assert scan.image is None

    def test_cancel_camera_releases_stream(self, scan: ScanSession, camera) -> None:
        scan.open_camera(camera.open())
        scan.cancel_camera()
        assert scan.state is ScanState.IDLE
        assert camera.open_streams == 0

    def test_upload_while_streaming_closes_camera(self, scan: ScanSession, camera, leaf_image) -> None:
        scan.open_camera(camera.open())
        scan.choose_file(leaf_image)
        assert scan.state is ScanState.IMAGE_READY
        assert camera.open_streams == 0

    def test_analysis_success_returns_to_idle(self, scan: ScanSession, leaf_image) -> None:
        scan.choose_file(leaf_image)
        assert scan.begin_analysis() is leaf_image
        scan.complete_analysis()
        assert scan.state is ScanState.IDLE
        assert scan.image is None

    def test_analysis_failure_keeps_image_for_resubmission(self, scan: ScanSession, leaf_image) -> None:
        scan.choose_file(leaf_image)
        scan.begin_analysis()
        scan.fail_analysis()
        assert scan.state is ScanState.IMAGE_READY
        assert scan.image is leaf_image


class TestRejectedTransitions:
    def test_submit_without_image(self, scan: ScanSession) -> None:
        with pytest.raises(ScanStateError):
            scan.begin_analysis()
        assert scan.state is ScanState.IDLE

    def test_no_user_action_while_analyzing(self, scan: ScanSession, camera, leaf_image) -> None:
        scan.choose_file(leaf_image)
        scan.begin_analysis()
        with pytest.raises(ScanStateError):
            scan.begin_analysis()
        with pytest.raises(ScanStateError):
            scan.choose_file(leaf_image)
        with pytest.raises(ScanStateError):
            scan.open_camera(camera.open())
        with pytest.raises(ScanStateError):
            scan.retake()
        assert scan.state is ScanState.ANALYZING

    def test_capture_requires_camera(self, scan: ScanSession, leaf_image) -> None:
        with pytest.raises(ScanStateError):
            scan.capture(leaf_image)

    def test_discard_during_analysis_keeps_state(self, scan: ScanSession, leaf_image) -> None:
        scan.choose_file(leaf_image)
        scan.begin_analysis()
        scan.discard()
        assert scan.state is ScanState.ANALYZING
        assert scan.image is None

    def test_failed_analysis_after_discard_goes_idle(self, scan: ScanSession, leaf_image) -> None:
        scan.choose_file(leaf_image)
        scan.begin_analysis()
        scan.discard()
        scan.fail_analysis()
        assert scan.state is ScanState.IDLE
        assert scan.image is None


class TestStreamedCameraSource:
    def test_permission_denied(self, camera: StreamedCameraSource) -> None:
        with pytest.raises(PermissionDenied):
            camera.open(permission_granted=False)

    def test_capture_before_first_frame(self, camera: StreamedCameraSource) -> None:
        stream = camera.open()
        with pytest.raises(DeviceUnavailable):
            camera.capture_frame(stream)

    def test_closed_stream_is_unavailable(self, camera: StreamedCameraSource, leaf_image) -> None:
        stream = camera.open()
        camera.close(stream)
        camera.close(stream)
        with pytest.raises(DeviceUnavailable):
            camera.push_frame(stream, leaf_image)

    def test_stream_limit(self) -> None:
        camera = StreamedCameraSource(max_streams=1)
        camera.open()
        with pytest.raises(DeviceUnavailable):
            camera.open()


class TestSessionStore:
    def test_new_session_is_greeted(self) -> None:
        store = SessionStore()
        session = store.create()
        assert [(turn.role, turn.text) for turn in session.turns] == [(Role.ASSISTANT, GREETING)]
        assert session.scan.state is ScanState.IDLE

    def test_close_releases_camera_and_forgets_session(self, camera: StreamedCameraSource) -> None:
        store = SessionStore(release_stream=camera.close)
        session = store.create()
        session.scan.open_camera(camera.open())

        closed = store.close(session.session_id)

        assert closed.closed is True
        assert camera.open_streams == 0
        assert not store.is_open(session.session_id)
        with pytest.raises(KeyError):
            store.get(session.session_id)

    def test_pop_last_turn_only_removes_expected(self) -> None:
        store = SessionStore()
        session = store.create(greet=False)
        first = store.add_turn(session.session_id, Role.USER, "first")
        store.add_turn(session.session_id, Role.USER, "second")
        assert store.pop_last_turn(session.session_id, expected=first) is None
        assert [turn.text for turn in session.turns] == ["first", "second"]

    def test_transcript_as_text(self) -> None:
        store = SessionStore()
        session = store.create(greet=False)
        store.add_turn(session.session_id, Role.USER, " When should I irrigate? ")
        store.add_turn(session.session_id, Role.ASSISTANT, "Tomorrow morning.")
        assert store.transcript_as_text(session.session_id) == "USER: When should I irrigate?\nASSISTANT: Tomorrow morning."
