"""HTTP client for the remote plant disease and thermal classifiers.

Both services accept a multipart POST with the image under a fixed field
name and answer with a JSON body of arbitrary shape. Every way a call can
go wrong (connection error, timeout, non-2xx status, unparsable body) is
returned as a `ClassifierFailure` instead of raised, so the orchestrator
can reconcile partial results.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time

import httpx

from models.scan_models import (
    CapturedImage,
    ClassificationOutcome,
    ClassificationRequest,
    ClassifierFailure,
    ClassifierSource,
    ClassifierSuccess,
    payload_from_json,
)

LOGGER = logging.getLogger(__name__)


class RemoteClassifier:
    """Send captured images to one remote classification endpoint."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        source: ClassifierSource,
        *,
        field_name: str = "file",
        timeout_seconds: float = 20.0,
    ) -> None:
        if client is None:
            raise ValueError("httpx.AsyncClient is required.")
        self.client = client
        self.url = url
        self.source = source
        self.field_name = field_name
        self.timeout_seconds = timeout_seconds

    async def classify(self, image: CapturedImage) -> ClassificationOutcome:
        """Classify `image`, folding every failure into a ClassifierFailure."""
        request = ClassificationRequest(image=image, field_name=self.field_name)
        start = time.time()
        try:
            response = await asyncio.wait_for(
                self.client.post(self.url, files=request.files(), timeout=self.timeout_seconds),
                self.timeout_seconds,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            return self._failure(f"timed out after {self.timeout_seconds:g}s", transport=True, exc=exc)
        except httpx.TransportError as exc:
            return self._failure(f"transport error: {exc}", transport=True, exc=exc)
        except httpx.RequestError as exc:
            # decoding errors and redirect loops surface here, after the status line
            return self._failure(f"unreadable response: {exc}", exc=exc)

        latency = time.time() - start
        if not response.is_success:
            return self._failure(f"HTTP {response.status_code}")

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return self._failure("response body is not valid JSON", exc=exc)

        LOGGER.info("%s classifier answered in %.3fs", self.source.value, latency)
        return ClassifierSuccess(source=self.source, payload=payload_from_json(body))

    def _failure(self, reason: str, *, transport: bool = False, exc: Exception | None = None) -> ClassifierFailure:
        LOGGER.info("%s classifier failed (%s): %s", self.source.value, self.url, reason)
        if exc is not None:
            LOGGER.debug("%s classifier error detail", self.source.value, exc_info=exc)
        return ClassifierFailure(source=self.source, reason=reason, transport=transport)
