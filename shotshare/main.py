"""Main FastAPI application."""
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from shotshare.core.config import settings
from shotshare.core.database import close_db
from shotshare.core.exceptions import ShotShareException
from shotshare.core.redis import redis_client
from shotshare.api.dependencies import get_indexing_dispatcher
from shotshare.api.middleware import RequestTimingMiddleware
from shotshare.api.routes import api_router

handlers = [logging.StreamHandler(sys.stdout)]
if settings.log_file:
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.FileHandler(settings.log_file))

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers
)

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_SECONDS = 5.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Starting ShotShare API")
    logger.info(f"Storage root: {settings.storage_root}")
    logger.info(
        f"Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'configured'}"
    )
    logger.info(f"Caption generator: {settings.caption_generator}, embeddings: {settings.embedding_provider}")
    if not settings.file_search_store_name:
        logger.warning("FILE_SEARCH_STORE_NAME is not set; indexing and search will fail")

    settings.ensure_directories_exist()

    yield

    logger.info("Shutting down ShotShare API")
    dispatcher = get_indexing_dispatcher()
    if dispatcher.pending:
        logger.info(f"Waiting for {dispatcher.pending} indexing job(s)")
        await dispatcher.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
        await dispatcher.cancel_all()
    await redis_client.disconnect()
    await close_db()


app = FastAPI(
    title="ShotShare API",
    description="Photo sharing with grounded conversational search and similar-photo discovery",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(ShotShareException)
async def shotshare_exception_handler(request: Request, exc: ShotShareException):
    """Map domain errors to their status codes."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message}
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with logging."""
    logger.warning(f"HTTP {exc.status_code} on {request.method} {request.url}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.exception(f"Unhandled exception on {request.method} {request.url}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestTimingMiddleware)

app.include_router(api_router)

settings.ensure_directories_exist()
app.mount("/media", StaticFiles(directory=str(settings.storage_root)), name="media")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "ShotShare API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shotshare.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
