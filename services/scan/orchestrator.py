"""Scan orchestration: dispatch a captured image to both classifiers.

Phase 1 sends the image to the plant and thermal classifiers concurrently
and waits for both to settle. If at least one succeeded, the result is
built from whatever succeeded. Only when both failed does phase 2 run: the
plant classifier is retried alone, and if that retry fails too the thermal
classifier is retried alone. A failed phase 2 raises AnalysisUnavailable.

The image is cached once per submission, concurrently with phase 1. The
cache write is best-effort and never affects the analysis.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from models.scan_models import AnalysisKind, AnalysisResult, CapturedImage
from models.session_models import ConversationTurn, Role
from services.image_store import ImageStore
from services.scan.classifier_client import RemoteClassifier
from services.scan.errors import AnalysisUnavailable, ScanStateError
from services.scan.renderer import summarize
from services.scan.scan_session import ScanState
from services.session_store import SessionStore
from utils.media_validation import validate_captured_image

LOGGER = logging.getLogger(__name__)


class ScanOrchestrator:
    """Run scan analyses and commit their results to chat transcripts."""

    def __init__(
        self,
        plant: RemoteClassifier,
        thermal: RemoteClassifier,
        store: SessionStore,
        image_store: Optional[ImageStore] = None,
        *,
        max_image_bytes: Optional[int] = None,
    ) -> None:
        self.plant = plant
        self.thermal = thermal
        self.store = store
        self.image_store = image_store
        self.max_image_bytes = max_image_bytes

    async def analyze(self, image: CapturedImage, key: Optional[str] = None) -> AnalysisResult:
        """Classify `image` with both services and return the merged result.

        Args:
            image: The captured image; validated before any network call.
            key: Cache key for the image; generated when omitted.

        Raises:
            InvalidInput: If the image is empty or of an unsupported encoding.
            AnalysisUnavailable: If both phases failed.
        """
        validate_captured_image(image, self.max_image_bytes)
        key = key or uuid4().hex

        plant_outcome, thermal_outcome, _ = await asyncio.gather(
            self.plant.classify(image),
            self.thermal.classify(image),
            self._cache_image(key, image),
        )
        result = AnalysisResult.from_outcomes(plant_outcome, thermal_outcome)
        if result.kind is not AnalysisKind.NONE:
            return result

        LOGGER.warning(
            "Both classifiers failed for %s (plant: %s; thermal: %s); retrying sequentially",
            key,
            plant_outcome.reason,
            thermal_outcome.reason,
        )
        fallback = await self.plant.classify(image)
        if not fallback.ok:
            fallback = await self.thermal.classify(image)

        result = AnalysisResult.from_outcomes(fallback)
        if result.kind is AnalysisKind.NONE:
            raise AnalysisUnavailable("Plant analysis is unavailable right now. Please try again.")
        return result

    async def submit_for_analysis(self, session_id: str) -> Optional[ConversationTurn]:
        """Analyze the image held by a chat session and append the result turn.

        On success the scan returns to idle and the new assistant turn is
        returned. When both phases fail, no turn is appended, the scan
        returns to image_ready, and AnalysisUnavailable is raised. If the
        session was closed while the analysis ran, the result is dropped
        and None is returned.

        Raises:
            KeyError: If the session does not exist.
            ScanStateError: If an analysis is already running.
            InvalidInput: If no valid image is held.
            AnalysisUnavailable: If both phases failed.
        """
        chat = self.store.get(session_id)
        scan = chat.scan
        if scan.state is ScanState.ANALYZING:
            raise ScanStateError("An analysis is already running for this session.")
        image = validate_captured_image(scan.image, self.max_image_bytes)
        scan.begin_analysis()

        key = uuid4().hex
        try:
            result = await self.analyze(image, key=key)
        except BaseException:
            if scan.state is ScanState.ANALYZING:
                scan.fail_analysis()
            raise

        if chat.closed:
            LOGGER.info("Session %s closed during analysis; discarding %s result", session_id, result.kind.value)
            scan.complete_analysis()
            return None

        turn = self.store.add_turn(session_id, Role.ASSISTANT, summarize(result), image_key=key, analysis=result)
        scan.complete_analysis()
        LOGGER.info("Committed %s analysis %s to session %s", result.kind.value, key, session_id)
        return turn

    async def _cache_image(self, key: str, image: CapturedImage) -> None:
        if self.image_store is None:
            return
        try:
            await self.image_store.put(key, image)
        except Exception as exc:
            LOGGER.warning("Could not cache scan image %s: %s", key, exc)
