"""FastAPI application entrypoint for the thumbnail service."""
from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Final, Optional

import httpx
from fastapi import FastAPI

from tubethumb.api.http import router as api_router
from tubethumb.api.ws import router as ws_router
from tubethumb.core.config import Settings, get_settings
from tubethumb.core.logging_cfg import setup_logging
from tubethumb.infra.history import HistoryStore
from tubethumb.services.analysis import AnalysisClient
from tubethumb.services.orchestrator import Orchestrator


def create_app(settings: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Parameters
    ----------
    settings: Optional[Settings]
        Explicit settings; defaults to the cached environment settings.
    http_client: Optional[httpx.AsyncClient]
        Client used for thumbnail fetches; short-lived clients are used when omitted.

    Notes
    -----
    - The history store, the AI client and the orchestrator are built here and kept
      on ``app.state``; nothing is a module-level singleton.
    - History is loaded once at startup (load-or-empty).
    - Logging is configured up front based on settings.

    Returns
    -------
    FastAPI
        The configured FastAPI application.
    """

    settings = settings or get_settings()
    setup_logging(settings.debug)

    history: HistoryStore = HistoryStore(
        settings.history_path,
        capacity=settings.history_capacity,
        key=settings.history_key,
    )
    analysis_client: AnalysisClient = AnalysisClient(settings.gemini_api_key, model=settings.gemini_model)
    orchestrator: Orchestrator = Orchestrator(settings, history, analysis_client, http_client=http_client)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await orchestrator.shutdown()

    app: FastAPI = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.include_router(api_router)
    app.include_router(ws_router)

    @app.get("/health", tags=["system"])
    def health() -> dict[str, Any]:
        """Health check endpoint.

        Notes
        -----
        - Lightweight liveness probe; does not perform external calls.
        - ``aiEnabled`` tells the UI whether to offer the AI critique at all.
        """

        resp: dict[str, Any] = {
            "status": "ok",
            "aiEnabled": analysis_client.enabled,
            "historyCapacity": history.capacity,
            "defaultDownloadDir": str(settings.default_download_dir),
        }
        if settings.host_downloads_dir is not None:
            resp["hostDownloadsDir"] = str(settings.host_downloads_dir.expanduser().resolve())
        return resp

    return app


app: Final[FastAPI] = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tubethumb.main:app", host="127.0.0.1", port=8000, reload=True)
