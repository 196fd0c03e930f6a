import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from dal.store_factory import build_attendance_store
from routes.attendance_route import router as attendance_router
from routes.auth_route import router as auth_router
from routes.headcount_route import router as headcount_router
from routes.session_route import router as session_router
from services.attendance.qr_renderer import QRRenderer
from services.attendance.session_manager import SessionController
from services.openai.headcount_oracle import HeadcountOracle
from utils.app_config import AppConfig

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the attendance store (Supabase when configured, else local SQLite)
      - the presenter session controller
      - the OpenAI async client backing the headcount oracle (optional)
    and attach them to `app.state`.
    """
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.config = config

    store = await build_attendance_store(config)
    app.state.attendance_store = store

    controller = SessionController(
        store,
        rotation_seconds=config.rotation_seconds,
        poll_seconds=config.poll_seconds,
    )
    app.state.session_controller = controller
    app.state.qr_renderer = QRRenderer()

    openai_client = None
    if config.openai_api_key:
        try:
            openai_client = AsyncOpenAI(api_key=config.openai_api_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    else:
        logger.warning("OPENAI_API_KEY is not set; headcount estimation is disabled.")
    app.state.openai_client = openai_client
    app.state.headcount_oracle = HeadcountOracle(
        openai_client, model=config.headcount_model, mode=config.headcount_mode
    )

    try:
        yield
    finally:
        await controller.shutdown()
        if openai_client is not None:
            try:
                await openai_client.close()
            except Exception as exc:
                # Shutdown errors must not mask the original exit reason.
                logger.warning("Error closing OpenAI client: %s", exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(title="LiveTrack Attendance", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting the store backend, session phase and oracle availability.
        """
        store = getattr(request.app.state, "attendance_store", None)
        controller = getattr(request.app.state, "session_controller", None)
        oracle = getattr(request.app.state, "headcount_oracle", None)
        return {
            "ok": True,
            "store_backend": getattr(store, "backend", None),
            "phase": controller.phase.value if controller else None,
            "headcount_available": bool(oracle and oracle.available),
        }

    # Register application routers
    app.include_router(auth_router)
    app.include_router(session_router)
    app.include_router(attendance_router)
    app.include_router(headcount_router)

    return app


app = create_app()
