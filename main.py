"""
Authentication API — application entry point.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from auth.jwt import TokenIssuer
from auth.routes import router as auth_router
from config.settings import Settings, get_settings
from database.session import Database

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("sqlalchemy.engine", "asyncpg", "aiosqlite", "httpx"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = Database(settings)
        await db.create_all()
        app.state.db = db
        logger.info("Application ready to accept requests.")
        try:
            yield
        finally:
            await db.dispose()

    app = FastAPI(
        title="Auth API",
        version="1.0.0",
        description="Signup, login and token-based sessions.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.token_issuer = TokenIssuer.from_settings(settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app, expose_details=settings.expose_error_details)

    # Routes
    app.include_router(auth_router, prefix=settings.api_prefix)

    return app


app = create_app()

if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(
        "main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level="debug" if _settings.debug else "info",
    )
