"""
FastAPI backend for the esports schedule site.

Serves the match schedule, site content and admin routes over a cache that
degrades to local memory when the remote store is restricted or down.
"""

import asyncio
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.container import container
from core.config import Settings
from core.health import get_health_status, set_startup_time
from core.logging import configure_logging, get_logger
from middleware.auth import AdminAuthMiddleware
from routers import admin, admin_content, cache, content, events

# Initialize settings and logging
settings = Settings()
configure_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting esports schedule service")
    set_startup_time()

    await container.cache().startup()

    warm_task = None
    if settings.warm_cache_on_startup:
        # Do not block startup on the upstream API
        warm_task = asyncio.create_task(container.event_service().warm_default_range())

    logger.info("Services started successfully",
                remote_cache=container.cache().is_remote_available())
    yield

    # Shutdown
    if warm_task is not None and not warm_task.done():
        warm_task.cancel()
        try:
            await warm_task
        except asyncio.CancelledError:
            pass

    await container.esports_client().close()
    await container.cache().shutdown()
    logger.info("Services shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Esports Schedule Service",
    version="1.0.0",
    description="Match schedule, site content and admin API",
    lifespan=lifespan,
    default_response_class=ORJSONResponse
)


class CatchAllExceptionsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error("Unhandled exception", path=request.url.path,
                         error_type=type(e).__name__, error=str(e), exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "success": False,
                    "error": "Internal server error",
                    "detail": f"{type(e).__name__}: {str(e)}" if settings.debug else None
                }
            )


def jsonable_errors(errors):
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in errors]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query params are client errors (400)."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": message, "detail": jsonable_errors(errors)}
    )


app.add_middleware(AdminAuthMiddleware)
app.add_middleware(CatchAllExceptionsMiddleware)

# Add CORS middleware last so it wraps everything, including 401s
logger.info("Configuring CORS middleware",
            origins_count=len(settings.cors_origins),
            origins=settings.cors_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(events.router)
app.include_router(cache.router)
app.include_router(content.router)
app.include_router(admin.router)
app.include_router(admin_content.router)


@app.get("/health")
async def health_check():
    """Detailed health check."""
    health = await get_health_status(container.cache(), settings)
    return {
        **health,
        "service": "esports-schedule",
        "version": app.version,
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    logger.info("Starting esports schedule service",
                host=settings.host, port=settings.port, debug=settings.debug)
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        reload_dirs=["."] if settings.debug else None,
        reload_excludes=["*.pyc", "__pycache__", "*.log"] if settings.debug else None,
        workers=settings.effective_workers
    )
