from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.analyze import router as analyze_router
from .core.config import Settings, settings as default_settings
from .core.logging_config import setup_logging
from .core.retry import RetryExecutor
from .vision.pipeline import openai_client as build_openai_client

log = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, *, retry_executor: RetryExecutor | None = None, openai_client=None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(title="Chart Cockpit API")
    app.state.settings = settings
    app.state.retry_executor = retry_executor or RetryExecutor(settings.retry, logger=logging.getLogger("cockpit.retry"))
    if openai_client is None and settings.openai_api_key and not settings.demo_mode:
        openai_client = build_openai_client(settings)
    app.state.openai_client = openai_client

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log.exception("Analysis error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error."})

    @app.get("/")
    def root():
        return {"status": "Chart Cockpit API running", "demo_mode": settings.demo_mode}

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(analyze_router)
    return app


setup_logging(default_settings.log_level)
app = create_app()
