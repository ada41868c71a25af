import inspect
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI

from dal.session_dal import SessionDAL
from routes.guide_route import router as guide_router
from services.guide.guide_service import GuideService
from services.guide.session_store import SessionStore
from services.image_store import UPLOADS_ROUTE, LocalImageStore
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import GuideSettings

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the OpenAI async client (bounded by OPENAI_TIMEOUT_SECONDS)
      - the optional SQLite durable store (when DATABASE_DIR is set)
      - the session store and guide service
    and attach them to `app.state`.
    """
    settings: GuideSettings = app.state.settings

    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    try:
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.timeout_seconds)
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    app.state.openai_client = openai_client

    session_dal = None
    if settings.database_dir:
        db_initializer = AsyncDatabaseInitializer(settings.database_dir)
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer
        session_dal = SessionDAL(db_initializer)
        LOGGER.info("Durable session store at %s", db_initializer.db_path)

    app.state.guide_service = GuideService(
        openai_client,
        SessionStore(source=session_dal),
        image_store=app.state.image_store,
        recorder=session_dal,
        model=settings.model,
    )

    try:
        yield
    finally:
        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception:  # pylint: disable=broad-exception-caught
                    LOGGER.warning("Error while closing the OpenAI client", exc_info=True)


def create_app(settings: GuideSettings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    settings = settings or GuideSettings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="Museum Label Guide", lifespan=lifespan)
    app.state.settings = settings
    app.state.image_store = None

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Serve uploaded label photos when the local image store is enabled.
    if settings.image_store_dir:
        image_store = LocalImageStore(settings.image_store_dir, settings.public_base_url)
        image_store.root_dir.mkdir(parents=True, exist_ok=True)
        app.mount(UPLOADS_ROUTE, StaticFiles(directory=Path(image_store.root_dir)), name="uploads")
        app.state.image_store = image_store

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting OpenAI client and durable store presence.
        """
        has_openai = getattr(request.app.state, "openai_client", None) is not None
        has_db = hasattr(request.app.state, "db_initializer")
        return {"ok": True, "openai_available": has_openai, "durable_store": has_db}

    app.include_router(guide_router)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    uvicorn.run("main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
