"""Process-wide configuration read from environment variables.

`AppConfig.from_env()` is called once during application startup (after
`load_dotenv()`), stored on `app.state.config`, and handed explicitly to
the services that need it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}
_STORE_BACKENDS = ("sqlite", "files")


def _get(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _get_float(env: Mapping[str, str], name: str, default: float, minimum: float = 0.0) -> float:
    raw = _get(env, name, str(default))
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not a number") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = _get(env, name, str(default))
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not an integer") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class AppConfig:
    """Settings shared by the scan orchestrator, image store, and flows."""

    database_dir: Path
    image_dir: Path
    reset_database_on_start: bool = False
    image_store_backend: str = "sqlite"
    plant_classifier_url: str = "http://localhost:8001/predict"
    thermal_classifier_url: str = "http://localhost:8002/predict"
    classifier_field_name: str = "file"
    classifier_timeout_seconds: float = 20.0
    max_image_bytes: int = 10 * 1024 * 1024
    openai_model: str = "gpt-5"
    image_retention_seconds: int = 0
    cleanup_interval_seconds: int = 3_600

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Build the configuration from `env` (defaults to `os.environ`).

        Raises:
            RuntimeError: If a variable holds an invalid value.
        """
        env = os.environ if env is None else env

        database_dir = Path(_get(env, "DATABASE_DIR", "database")).expanduser()
        image_dir = Path(_get(env, "IMAGE_DIR", str(database_dir / "images"))).expanduser()

        backend = _get(env, "IMAGE_STORE_BACKEND", "sqlite").lower()
        if backend not in _STORE_BACKENDS:
            raise RuntimeError(
                f"IMAGE_STORE_BACKEND={backend!r} is not supported; use one of {', '.join(_STORE_BACKENDS)}"
            )

        timeout = _get_float(env, "CLASSIFIER_TIMEOUT_SECONDS", 20.0)
        if timeout == 0:
            raise RuntimeError("CLASSIFIER_TIMEOUT_SECONDS must be greater than zero")

        return cls(
            database_dir=database_dir,
            image_dir=image_dir,
            reset_database_on_start=_get(env, "RESET_DATABASE_ON_START", "false").lower() in _TRUE_VALUES,
            image_store_backend=backend,
            plant_classifier_url=_get(env, "PLANT_CLASSIFIER_URL", cls.plant_classifier_url),
            thermal_classifier_url=_get(env, "THERMAL_CLASSIFIER_URL", cls.thermal_classifier_url),
            classifier_field_name=_get(env, "CLASSIFIER_FIELD_NAME", cls.classifier_field_name),
            classifier_timeout_seconds=timeout,
            max_image_bytes=_get_int(env, "MAX_IMAGE_BYTES", cls.max_image_bytes, minimum=1),
            openai_model=_get(env, "OPENAI_MODEL", cls.openai_model),
            image_retention_seconds=_get_int(env, "IMAGE_RETENTION_SECONDS", 0),
            cleanup_interval_seconds=_get_int(env, "CLEANUP_INTERVAL_SECONDS", 3_600, minimum=1),
        )
