from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import redis
import structlog

from app.config import settings
from app.exceptions import CampaignError
from app.logging import setup_logging
from app.api.routes import campaigns, elections, health, messages, profiles
from app.dependencies import init_db, engine
from app.engine.audience_profiles import get_profile_registry
from app.models.base import utcnow

# Initialize logging before logger creation
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Campaign Messaging API", server_time=utcnow().isoformat())
    await init_db()

    registry = get_profile_registry()
    logger.info("Audience profiles loaded", count=len(registry))

    # Check Redis connection (broker for the scheduled-publish worker)
    try:
        with redis.from_url(settings.get_redis_url) as r:
            r.ping()
            logger.info("Redis connection: SUCCESS")
    except redis.RedisError as e:
        logger.error("Redis connection: FAILED", error=str(e))

    yield

    logger.info("Shutting down Campaign Messaging API")
    await engine.dispose()


async def campaign_error_handler(request: Request, exc: CampaignError) -> JSONResponse:
    """Render domain errors as {"error", "detail"} with their HTTP status."""
    logger.info(
        "Request rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.error,
        detail=exc.detail,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Campaign Messaging API",
        description="Audience-adapted campaign messages with approval and publishing workflow",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CampaignError, campaign_error_handler)

    # Register routes
    app.include_router(profiles.router, prefix="/api/v1/profiles", tags=["Audience Profiles"])
    app.include_router(campaigns.router, prefix="/api/v1/campaigns", tags=["Campaigns"])
    app.include_router(messages.router, prefix="/api/v1/messages", tags=["Messages"])
    app.include_router(elections.router, prefix="/api/v1/elections", tags=["Elections"])
    app.include_router(health.router, prefix="/api/v1/health", tags=["Health"])

    @app.get("/")
    async def root():
        return {
            "message": "Campaign Messaging API is running",
            "docs": "/docs",
            "version": "1.0.0",
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
