import logging

from app import config

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from contextlib import asynccontextmanager  # noqa: E402

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from app.api.base import api_router  # noqa: E402
from app.features.binge_timer.errors import TimerError  # noqa: E402
from app.features.binge_timer.registry import TimerRegistry  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the per-user timers for the lifetime of the process"""
    app.state.timer_registry = TimerRegistry()
    logger.info("Timer registry initialised")
    try:
        yield
    finally:
        await app.state.timer_registry.shutdown()


app = FastAPI(
    title="Binge-Free Timer API",
    description="Crash-safe binge-free interval tracking reconciled from persisted timestamps",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Specify your frontend URL in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all API routes
app.include_router(api_router)


@app.exception_handler(TimerError)
async def timer_error_handler(request: Request, exc: TimerError):
    logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.detail}")
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.detail})


@app.get("/")
def read_root():
    return {
        "message": "Binge-Free Timer API",
        "docs": "/docs",
        "version": "1.0.0"
    }
