import asyncio
import inspect
import logging
import os
from contextlib import asynccontextmanager, suppress

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from models.scan_models import ClassifierSource
from routes.image_route import router as image_router
from routes.insights_route import router as insights_router
from routes.realtime_ws import router as realtime_router
from routes.scan_route import router as scan_router
from routes.session_route import router as session_router
from services.image_store import build_image_store
from services.scan.classifier_client import RemoteClassifier
from services.scan.media_source import StreamedCameraSource
from services.scan.orchestrator import ScanOrchestrator
from services.session_store import SessionStore
from utils.app_config import AppConfig
from utils.database_cleaner import DatabaseCleaner
from utils.database_init import AsyncDatabaseInitializer

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOGGER = logging.getLogger(__name__)


async def _close_client(client) -> None:
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception as exc:
        LOGGER.warning("Error while closing %s: %s", type(client).__name__, exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the configuration, read once from the environment
      - the SQLite image cache (at DATABASE_DIR/app.db)
      - the OpenAI async client and the shared HTTP client for the classifiers
      - the session store, camera source, and scan orchestrator
    and attach them to `app.state`.
    """
    config = AppConfig.from_env()
    app.state.config = config

    db_initializer = AsyncDatabaseInitializer(config.database_dir, reset=config.reset_database_on_start)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    # Initialize OpenAI async client
    openai_api_key = os.getenv("OPENAI_API_KEY")
    if not openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    try:
        openai_client = AsyncOpenAI()
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    app.state.openai_client = openai_client

    http_client = httpx.AsyncClient(timeout=config.classifier_timeout_seconds)
    app.state.http_client = http_client

    media_source = StreamedCameraSource()
    session_store = SessionStore(release_stream=media_source.close)
    image_store = build_image_store(config, db_initializer)
    plant = RemoteClassifier(
        http_client,
        config.plant_classifier_url,
        ClassifierSource.PLANT,
        field_name=config.classifier_field_name,
        timeout_seconds=config.classifier_timeout_seconds,
    )
    thermal = RemoteClassifier(
        http_client,
        config.thermal_classifier_url,
        ClassifierSource.THERMAL,
        field_name=config.classifier_field_name,
        timeout_seconds=config.classifier_timeout_seconds,
    )
    app.state.media_source = media_source
    app.state.session_store = session_store
    app.state.image_store = image_store
    app.state.orchestrator = ScanOrchestrator(
        plant,
        thermal,
        session_store,
        image_store,
        max_image_bytes=config.max_image_bytes,
    )

    cleanup_task = None
    if config.image_retention_seconds > 0 and config.image_store_backend == "sqlite":
        cleaner = DatabaseCleaner(db_initializer, retention_seconds=config.image_retention_seconds)
        cleanup_task = asyncio.create_task(cleaner.run_periodic_cleanup(config.cleanup_interval_seconds))

    try:
        yield
    finally:
        if cleanup_task is not None:
            cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await cleanup_task
        await _close_client(http_client)
        await _close_client(openai_client)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the image store and OpenAI client presence.
        """
        state = request.app.state
        has_store = getattr(state, "image_store", None) is not None
        has_openai = getattr(state, "openai_client", None) is not None
        return {
            "ok": True,
            "image_store_available": has_store,
            "openai_available": has_openai,
            "open_sessions": len(state.session_store) if getattr(state, "session_store", None) is not None else 0,
        }

    # Register application routers
    app.include_router(session_router)
    app.include_router(scan_router)
    app.include_router(image_router)
    app.include_router(insights_router)
    app.include_router(realtime_router)

    return app


app = create_app()
