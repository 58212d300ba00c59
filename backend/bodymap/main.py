"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bodymap.config import settings
from bodymap.engine.errors import BodyMapError, ConfigurationError, DomainMismatchError

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.bodymap_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="BodyMap",
        description="Body-map survey engine: stroke pixel maps, sensation areas, spatial bins",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BodyMapError, _engine_error_handler)

    from bodymap.api.router import api_router

    app.include_router(api_router)

    return app


async def _engine_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Engine errors reaching the app: configuration is a server fault, the rest are bad input."""
    if isinstance(exc, ConfigurationError):
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})
    status = 422 if isinstance(exc, DomainMismatchError) else 500
    return JSONResponse(status_code=status, content={"detail": str(exc)})


app = create_app()
