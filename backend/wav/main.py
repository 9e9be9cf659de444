"""
WAV API entry point.

Run with ``uvicorn wav.main:app`` or ``python -m wav.main``.
"""
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from wav import __version__
from wav.api import api_router
from wav.api.utils.error_handling import register_exception_handlers
from wav.core.config import settings
from wav.core.logging import setup_logging
from wav.db.session import engine
from wav.middleware import RequestIdMiddleware
from wav.services.catalog import create_catalog

setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the track catalog client and the database pool for the app's lifetime."""
    app.state.catalog = create_catalog()
    logger.info(
        "wav_api_starting",
        version=__version__,
        debug=settings.api_debug,
        catalog=type(app.state.catalog).__name__,
    )

    yield

    logger.info("wav_api_stopping")
    await app.state.catalog.close()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Collect, trade and play with music cards",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Added last so it runs first and the request id is bound for everything below
app.add_middleware(RequestIdMiddleware)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.debug(
        "request_completed",
        method=request.method,
        status=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wav.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
