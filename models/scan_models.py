"""Domain models for plant scans and their classification results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

SUPPORTED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/bmp",
    "image/gif",
}


class ImageSource(str, Enum):
    CAMERA = "camera"
    UPLOAD = "upload"


class ClassifierSource(str, Enum):
    """Which remote classifier produced an outcome."""

    PLANT = "plant"
    THERMAL = "thermal"


class AnalysisKind(str, Enum):
    PLANT_ONLY = "plant_only"
    THERMAL_ONLY = "thermal_only"
    BOTH = "both"
    NONE = "none"


@dataclass(frozen=True)
class CapturedImage:
    """An image buffer produced by a camera capture or a file upload.

    Attributes:
        data: Encoded image bytes.
        encoding: MIME type of `data` (e.g. image/jpeg).
        source: Whether the image came from the camera or an upload.
        filename: Name used when the image is sent or stored.
    """

    data: bytes = field(repr=False)
    encoding: str
    source: ImageSource = ImageSource.UPLOAD
    filename: str = "scan.jpg"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ClassificationRequest:
    """Multipart request for a single classifier attempt."""

    image: CapturedImage
    field_name: str = "file"

    def files(self) -> Dict[str, Any]:
        return {self.field_name: (self.image.filename, self.image.data, self.image.encoding)}


@dataclass(frozen=True)
class OpaquePayload:
    """A structured classifier response (JSON object)."""

    values: Mapping[str, Any]


@dataclass(frozen=True)
class ScalarPayload:
    """A classifier response that is not a JSON object."""

    value: Any


ClassifierPayload = Union[OpaquePayload, ScalarPayload]


def payload_from_json(body: Any) -> ClassifierPayload:
    """Tag a decoded JSON body as structured or scalar."""
    if isinstance(body, dict):
        return OpaquePayload(values=dict(body))
    return ScalarPayload(value=body)


@dataclass(frozen=True)
class ClassifierSuccess:
    source: ClassifierSource
    payload: ClassifierPayload

    ok = True


@dataclass(frozen=True)
class ClassifierFailure:
    """A failed classifier attempt.

    `transport` is True when no HTTP response was obtained (connection
    error or timeout), False for non-2xx statuses and unparsable bodies.
    """

    source: ClassifierSource
    reason: str
    transport: bool = False

    ok = False


ClassificationOutcome = Union[ClassifierSuccess, ClassifierFailure]


@dataclass(frozen=True)
class AnalysisResult:
    """Merged result of the plant and thermal classifiers."""

    plant: Optional[ClassifierPayload] = None
    thermal: Optional[ClassifierPayload] = None

    @property
    def kind(self) -> AnalysisKind:
        if self.plant is not None and self.thermal is not None:
            return AnalysisKind.BOTH
        if self.plant is not None:
            return AnalysisKind.PLANT_ONLY
        if self.thermal is not None:
            return AnalysisKind.THERMAL_ONLY
        return AnalysisKind.NONE

    @classmethod
    def from_outcomes(cls, *outcomes: ClassificationOutcome) -> "AnalysisResult":
        payloads: Dict[ClassifierSource, ClassifierPayload] = {}
        for outcome in outcomes:
            if isinstance(outcome, ClassifierSuccess):
                payloads[outcome.source] = outcome.payload
        return cls(
            plant=payloads.get(ClassifierSource.PLANT),
            thermal=payloads.get(ClassifierSource.THERMAL),
        )
