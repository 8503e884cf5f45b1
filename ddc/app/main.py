import sys
import logging

from contextlib import asynccontextmanager
from importlib.metadata import version, PackageNotFoundError
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ddc.app.api.rpc import router as rpc_router
from ddc.app.core.config import Settings, get_settings
from ddc.app.core.responses import json_response
from ddc.app.services.clamav import build_scanner
from ddc.app.services.renderer import DocumentRenderer
from ddc.app.sessions.store import SessionStore

logger = logging.getLogger("ddc.main")


def get_app_version() -> str:
    """
    Resolve application version deterministically.

    Falls back to the source version when running from a checkout.
    """
    try:
        return version("ddc-session-service")
    except PackageNotFoundError:
        return "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Guarantees:
    - One session store per process, swept in the background
    - Scanner and renderer shared by every session
    - Sessions die with the process; nothing is persisted
    """
    settings: Settings = app.state.settings

    logger.info(
        "ddc_startup_begin",
        extra={
            "service": "ddc",
            "version": get_app_version(),
            "clamav_enabled": settings.clamav_enabled,
        },
    )

    # ------------------------------------------------------------------
    # Shared services (FAIL FAST on bad font configuration)
    # ------------------------------------------------------------------
    try:
        app.state.renderer = DocumentRenderer(
            font_path=settings.font_path,
            bold_font_path=settings.bold_font_path,
        )
    except Exception:
        logger.exception("invalid_font_configuration")
        raise

    app.state.scanner = build_scanner(settings)

    # ------------------------------------------------------------------
    # Session store
    # ------------------------------------------------------------------
    store = SessionStore(
        ttl_seconds=settings.session_ttl_seconds,
        sweep_interval_seconds=settings.sweep_interval_seconds,
    )
    store.start()
    app.state.store = store

    try:
        yield
    finally:
        logger.info("ddc_shutdown_begin", extra={"sessions": len(store)})
        await store.stop()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory for the DDC session service.
    """
    app = FastAPI(
        title="DDC Session Service",
        description=(
            "Builds and parses Digital Document Cards through "
            "chunked Builder/Extractor sessions."
        ),
        version=get_app_version(),
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings if settings is not None else get_settings()

    app.include_router(rpc_router)

    @app.get(
        "/health",
        tags=["Monitoring"],
        summary="Liveness probe",
    )
    async def health_check():
        """
        Verifies that the runtime is alive.

        NOTE:
        - Does NOT contact clamd
        """
        store = getattr(app.state, "store", None)
        return json_response(
            {
                "status": "ok",
                "service": "ddc",
                "version": app.version,
                "runtime": f"python {sys.version.split()[0]}",
                "sessions": len(store) if store is not None else 0,
            }
        )

    return app


app = create_app()


def run() -> None:
    """Console entrypoint: serve the RPC API with uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
