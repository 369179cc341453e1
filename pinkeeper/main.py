import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from pinkeeper.config import get_settings
from pinkeeper.api.routes import archive, pins
from pinkeeper.integrations.slack import SlackGateway
from pinkeeper.services.runtime import BotRuntime

settings = get_settings()

# Configure application logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Set log level for bot modules
logger = logging.getLogger("pinkeeper")
logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime = BotRuntime(settings, SlackGateway(settings))
    await runtime.start()
    app.state.runtime = runtime
    try:
        yield
    finally:
        await runtime.stop()


app = FastAPI(
    title=settings.app_name,
    description="Keeps pinned support threads alive, retires stale ones and archives threads on request",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(pins.router, prefix="/api/pins", tags=["Pins"])
app.include_router(archive.router, prefix="/api/archive", tags=["Archive"])


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": "0.1.0",
        "endpoints": {
            "sweep": "/api/pins/sweep",
            "archive": "/api/archive",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check(request: Request):
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        return {"status": "starting", "service": settings.app_name}
    status = runtime.status()
    return {
        "status": "healthy" if status["healthy"] else "unhealthy",
        "service": settings.app_name,
        **status,
    }
