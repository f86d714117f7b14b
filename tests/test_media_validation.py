"""Tests for image validation helpers and environment configuration."""

from __future__ import annotations

import base64
import io

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from models.scan_models import CapturedImage, ImageSource
from services.scan.errors import InvalidInput
from tests.conftest import make_image_bytes
from utils.app_config import AppConfig
from utils.media_validation import (
    build_captured_image,
    decode_base64_image,
    extension_for,
    normalize_mime_type,
    read_image_upload,
    validate_captured_image,
)


def _upload(data: bytes, content_type: str, filename: str = "leaf.png") -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


class TestCapturedImageValidation:
    def test_encoding_comes_from_the_bytes(self, png_bytes: bytes) -> None:
        image = build_captured_image(png_bytes, "image/jpeg", source=ImageSource.UPLOAD)
        assert image.encoding == "image/png"
        assert image.filename == "upload.png"

    def test_missing_image(self) -> None:
        with pytest.raises(InvalidInput):
            validate_captured_image(None)
        with pytest.raises(InvalidInput):
            build_captured_image(b"", "image/png", source=ImageSource.CAMERA)

    def test_unsupported_declared_type(self, png_bytes: bytes) -> None:
        with pytest.raises(InvalidInput):
            build_captured_image(png_bytes, "application/pdf", source=ImageSource.UPLOAD)

    def test_size_limit(self, png_bytes: bytes) -> None:
        image = CapturedImage(data=png_bytes, encoding="image/png")
        with pytest.raises(InvalidInput):
            validate_captured_image(image, max_bytes=len(png_bytes) - 1)
        assert validate_captured_image(image, max_bytes=len(png_bytes)) is image

    def test_undecodable_bytes(self) -> None:
        with pytest.raises(InvalidInput):
            validate_captured_image(CapturedImage(data=b"not an image at all", encoding="image/gif"))

    def test_mime_helpers(self) -> None:
        assert normalize_mime_type("Image/JPG; charset=binary") == "image/jpeg"
        assert normalize_mime_type(None) == ""
        assert extension_for("image/webp") == "webp"


class TestBase64Images:
    def test_data_url(self, png_bytes: bytes) -> None:
        encoded = base64.b64encode(png_bytes).decode()
        assert decode_base64_image(f"data:image/png;base64,{encoded}") == png_bytes
        assert decode_base64_image(encoded) == png_bytes

    @pytest.mark.parametrize("text", ["", "   ", "data:image/png;base64,", "***not base64***"])
    def test_invalid_payloads(self, text: str) -> None:
        with pytest.raises(InvalidInput):
            decode_base64_image(text)


class TestReadImageUpload:
    async def test_reads_upload(self, png_bytes: bytes) -> None:
        image = await read_image_upload(_upload(png_bytes, "image/png"), ImageSource.UPLOAD)
        assert image.encoding == "image/png"
        assert image.filename == "leaf.png"
        assert image.source is ImageSource.UPLOAD

    async def test_rejects_non_image_content_type(self, png_bytes: bytes) -> None:
        with pytest.raises(HTTPException) as excinfo:
            await read_image_upload(_upload(png_bytes, "text/plain"), ImageSource.UPLOAD)
        assert excinfo.value.status_code == 415

    async def test_rejects_empty_upload(self) -> None:
        with pytest.raises(HTTPException) as excinfo:
            await read_image_upload(_upload(b"", "image/png"), ImageSource.UPLOAD)
        assert excinfo.value.status_code == 400

    async def test_rejects_oversized_upload(self) -> None:
        big = make_image_bytes("BMP", size=(200, 200))
        with pytest.raises(HTTPException) as excinfo:
            await read_image_upload(_upload(big, "image/bmp"), ImageSource.UPLOAD, max_bytes=1_000)
        assert excinfo.value.status_code == 422


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig.from_env({})
        assert config.classifier_timeout_seconds == 20.0
        assert config.classifier_field_name == "file"
        assert config.image_store_backend == "sqlite"
        assert config.image_dir == config.database_dir / "images"
        assert config.image_retention_seconds == 0

    def test_overrides(self) -> None:
        config = AppConfig.from_env(
            {
                "PLANT_CLASSIFIER_URL": "http://plant/api",
                "CLASSIFIER_TIMEOUT_SECONDS": "3.5",
                "RESET_DATABASE_ON_START": "yes",
                "IMAGE_STORE_BACKEND": "FILES",
            }
        )
        assert config.plant_classifier_url == "http://plant/api"
        assert config.classifier_timeout_seconds == 3.5
        assert config.reset_database_on_start is True
        assert config.image_store_backend == "files"

    @pytest.mark.parametrize(
        "env",
        [
            {"IMAGE_STORE_BACKEND": "s3"},
            {"CLASSIFIER_TIMEOUT_SECONDS": "soon"},
            {"CLASSIFIER_TIMEOUT_SECONDS": "0"},
            {"MAX_IMAGE_BYTES": "0"},
            {"CLEANUP_INTERVAL_SECONDS": "-5"},
        ],
    )
    def test_invalid_values(self, env) -> None:
        with pytest.raises(RuntimeError):
            AppConfig.from_env(env)
