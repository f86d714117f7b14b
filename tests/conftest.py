"""Shared fixtures: real image bytes and scripted classifier services."""

from __future__ import annotations

import asyncio
import io
import json
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence, Union

import httpx
import pytest
from PIL import Image

from models.scan_models import CapturedImage, ClassifierSource, ImageSource
from services.image_store import SqliteImageStore
from services.scan.classifier_client import RemoteClassifier
from services.scan.errors import PersistenceFailure
from services.scan.media_source import StreamedCameraSource
from services.scan.orchestrator import ScanOrchestrator
from services.session_store import SessionStore
from utils.app_config import AppConfig
from utils.database_init import AsyncDatabaseInitializer

PLANT_URL = "http://plant.test/predict"
THERMAL_URL = "http://thermal.test/predict"

ScriptItem = Union[httpx.Response, str]


def make_image_bytes(fmt: str = "PNG", size=(64, 48), color=(40, 160, 60)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture()
def leaf_image(jpeg_bytes: bytes) -> CapturedImage:
    return CapturedImage(data=jpeg_bytes, encoding="image/jpeg", source=ImageSource.CAMERA, filename="leaf.jpg")


class ScriptedClassifiers:
    """MockTransport handler answering each classifier URL from a script.

    Script items are consumed in order; the last one repeats. Besides
    `httpx.Response` objects an item may be "timeout", "connect_error" or
    "corrupt_gzip" (a 200 whose gzip body cannot be decoded).
    Set `gate` to hold every request until the event is set.
    """

    def __init__(self, scripts: Dict[str, Sequence[ScriptItem]]) -> None:
        self.scripts: Dict[str, List[ScriptItem]] = {url: list(items) for url, items in scripts.items()}
        self.calls: List[str] = []
        self.bodies: List[bytes] = []
        self.gate: Optional[asyncio.Event] = None
        self.in_flight = 0
        self.max_in_flight = 0

    def _next(self, url: str) -> ScriptItem:
        items = self.scripts[url]
        return items.pop(0) if len(items) > 1 else items[0]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        self.bodies.append(request.read())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            item = self._next(url)
        finally:
            self.in_flight -= 1
        if item == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if item == "connect_error":
            raise httpx.ConnectError("connection refused", request=request)
        if item == "corrupt_gzip":
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, stream=httpx.ByteStream(b"not gzip at all"))
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    def count(self, url: str) -> int:
        return self.calls.count(url)


def classifier_pair(service: ScriptedClassifiers, timeout_seconds: float = 5.0):
    client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    plant = RemoteClassifier(client, PLANT_URL, ClassifierSource.PLANT, timeout_seconds=timeout_seconds)
    thermal = RemoteClassifier(client, THERMAL_URL, ClassifierSource.THERMAL, timeout_seconds=timeout_seconds)
    return client, plant, thermal


class RecordingImageStore:
    """ImageStore double that remembers every write."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.puts: List[str] = []
        self.thumbnails: Dict[str, bytes] = {}

    async def put(self, key: str, image: CapturedImage) -> None:
        self.puts.append(key)
        if self.fail:
            raise PersistenceFailure(f"disk full while caching {key}")
        self.thumbnails[key] = image.data

    async def get_thumbnail(self, key: str) -> Optional[bytes]:
        return self.thumbnails.get(key)


class StubResponses:
    """Stands in for `AsyncOpenAI().responses`, answering with a function call."""

    def __init__(self, arguments: Optional[dict] = None, error: Optional[Exception] = None) -> None:
        self.arguments = arguments or {}
        self.error = error
        self.requests: List[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        call = SimpleNamespace(
            type="function_call",
            name=kwargs["tool_choice"]["name"],
            arguments=json.dumps(self.arguments),
        )
        return SimpleNamespace(output=[call], usage=SimpleNamespace(input_tokens=120, output_tokens=30))


def stub_openai(arguments: Optional[dict] = None, error: Optional[Exception] = None) -> SimpleNamespace:
    return SimpleNamespace(responses=StubResponses(arguments, error))


def init_app_state(app, tmp_path, service: ScriptedClassifiers, openai_client=None) -> None:
    """Manually initialize app state (ASGITransport does not trigger lifespan)."""
    config = AppConfig.from_env({"DATABASE_DIR": str(tmp_path / "db"), "MAX_IMAGE_BYTES": "200000"})
    db_initializer = AsyncDatabaseInitializer(config.database_dir)
    http_client, plant, thermal = classifier_pair(service)
    media_source = StreamedCameraSource()
    session_store = SessionStore(release_stream=media_source.close)
    image_store = SqliteImageStore(db_initializer)

    app.state.config = config
    app.state.db_initializer = db_initializer
    app.state.openai_client = openai_client or stub_openai({"answer": "Irrigate tomorrow."})
    app.state.http_client = http_client
    app.state.media_source = media_source
    app.state.session_store = session_store
    app.state.image_store = image_store
    app.state.orchestrator = ScanOrchestrator(
        plant, thermal, session_store, image_store, max_image_bytes=config.max_image_bytes
    )
