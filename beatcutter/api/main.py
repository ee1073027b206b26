"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from beatcutter import __version__
from beatcutter.api.routes import beats, exports, timeline
from beatcutter.api.websockets import progress
from beatcutter.common.config import get_config, resolve_ffmpeg_path
from beatcutter.common.errors import BeatcutterError, RenderJobConflictError
from beatcutter.render.providers import render_runner

config = get_config()

# Configure logging
logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Check the renderer on startup and stop running renders on shutdown."""
    ffmpeg = resolve_ffmpeg_path(config)
    if ffmpeg is None:
        logger.warning(
            "FFmpeg not found at %s; exports will fail until it is installed",
            config.ffmpeg_path,
        )
    else:
        logger.info("Using FFmpeg at %s", ffmpeg)

    yield

    runner = render_runner()
    for job_id in runner.active_job_ids:
        runner.cancel(job_id)


app = FastAPI(
    title="Beatcutter API",
    description="Beat-synchronized video editing API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(beats.router, prefix="/api/beats", tags=["beats"])
app.include_router(timeline.router, prefix="/api/timeline", tags=["timeline"])
app.include_router(exports.router, prefix="/api/exports", tags=["exports"])
app.include_router(progress.router, prefix="/ws", tags=["websocket"])


@app.exception_handler(BeatcutterError)
async def beatcutter_error_handler(request: Request, exc: BeatcutterError) -> JSONResponse:
    """Map domain errors that escape a route to HTTP responses."""
    status_code = 409 if isinstance(exc, RenderJobConflictError) else 400
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
