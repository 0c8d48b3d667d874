"""Main FastAPI application."""

from logly import logger

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.dependencies import peek_live_manager, set_live_manager
from app.api.routes import analyses, health, live, proxy
from app.core.config import settings
from app.db import init_db


logger.configure(
    level="INFO",
    color=False,
    show_function=False,
    show_module=False,
    show_filename=False,
    show_lineno=False,
)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
)


@app.on_event("startup")
async def startup_event():
    """Initialize the database on application startup."""
    logger.info("Initializing database schema...")
    init_db()
    if not settings.ai_gateway_api_key:
        logger.warning("AI gateway API key is not configured; analysis requests will fail")
    logger.info(f"{settings.app_name} {settings.app_version} started")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop live sessions so no timer or capture device outlives the app."""
    manager = peek_live_manager()
    if manager is not None:
        logger.info("Closing live monitoring sessions...")
        await manager.shutdown()
        set_live_manager(None)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include routers
app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(proxy.router, prefix=settings.api_prefix, tags=["gateway"])
app.include_router(analyses.router, prefix=settings.api_prefix, tags=["analyses"])
app.include_router(live.router, prefix=settings.api_prefix, tags=["live"])


@app.get("/")
async def root() -> dict[str, str]:
    """Service banner with a pointer to the API docs."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
    }
