import inspect
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from routes.image_route import router as image_router
from routes.processing_route import router as processing_router
from services.annotation.annotator_factory import create_annotator
from services.annotation.base_annotator import BaseAnnotator
from utils.config import Settings
from utils.database_init import AsyncDatabaseInitializer

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


async def _close_client(client) -> None:
    """Close an OpenAI client whether it exposes an async or sync close."""
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
        LOGGER.warning("Error while closing OpenAI client: %s", exc)


def create_app(annotator: Optional[BaseAnnotator] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        annotator: Optional annotator to use instead of the one selected by
            ANNOTATOR_BACKEND.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - settings read from the environment
          - the SQLite database at DATABASE_DIR/app.db
          - the annotator (and the OpenAI async client when it needs one)
        and attach them to `app.state`.
        """
        settings = Settings.from_env()
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        app.state.settings = settings

        db_initializer = AsyncDatabaseInitializer(
            settings.database_dir, reset_on_startup=settings.reset_database_on_startup
        )
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer

        openai_client = None
        if annotator is None and settings.annotator_backend == "openai":
            try:
                openai_client = AsyncOpenAI()
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc
        app.state.openai_client = openai_client
        app.state.annotator = annotator if annotator is not None else create_annotator(settings, openai_client)

        LOGGER.info("Annotation service ready (database at %s)", db_initializer.db_path)
        try:
            yield
        finally:
            if openai_client is not None:
                await _close_client(openai_client)

    app = FastAPI(title="Image Annotation Pipeline", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports which collaborators are initialized.
        """
        state = request.app.state
        annotator_obj = getattr(state, "annotator", None)
        return {
            "ok": True,
            "db_initialized": hasattr(state, "db_initializer"),
            "annotator": getattr(annotator_obj, "name", None),
            "openai_available": getattr(state, "openai_client", None) is not None,
        }

    # Register application routers
    app.include_router(image_router)
    app.include_router(processing_router)

    return app


app = create_app()
