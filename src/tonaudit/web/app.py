"""FastAPI application factory for the tonaudit web API."""

from __future__ import annotations

from fastapi import FastAPI

from tonaudit import __version__
from tonaudit.config import TonAuditConfig
from tonaudit.web.cache import ResultCache


def create_app(config: TonAuditConfig | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    config = config or TonAuditConfig.load()

    app = FastAPI(
        title="tonaudit",
        version=__version__,
        docs_url="/api/docs",
    )

    app.state.config = config
    app.state.catalog = config.catalog()
    app.state.cache = ResultCache(config.cache_size)

    from tonaudit.web.api.analysis import router as analysis_router
    from tonaudit.web.api.rules import router as rules_router

    app.include_router(analysis_router, prefix="/api")
    app.include_router(rules_router, prefix="/api")

    return app
