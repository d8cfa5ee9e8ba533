"""Main FastAPI application."""
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, WebSocket, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database.connection import DatabaseConnection
from database.repositories.user_repo import UserRepository
from api.routes import articles_router, admin_router
from api.websocket import websocket_endpoint, redis_subscriber
from lifecycle.engine import build_engine
from scheduler.scheduler import ArticleScheduler
from shared.config import settings

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    db = await DatabaseConnection.init_mongo()
    redis_client = await DatabaseConnection.init_redis()

    engine = build_engine(db, redis_client)
    app.state.engine = engine

    # Start Redis subscriber for WebSocket updates
    subscriber_task = asyncio.create_task(redis_subscriber(redis_client))

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = ArticleScheduler(
            engine,
            engine.article_repo,
            user_repo=UserRepository(db),
            fanout=engine.fanout
        )
        await scheduler.start()

    yield

    # Shutdown
    if scheduler:
        await scheduler.stop()
    await engine.drain()

    subscriber_task.cancel()
    try:
        await subscriber_task
    except asyncio.CancelledError:
        pass

    await DatabaseConnection.close_connections()


# Create FastAPI app
app = FastAPI(
    title="Publishing Platform Lifecycle Service",
    description="Article status lifecycle, scheduled publication and notification fanout",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


# Include routers
app.include_router(articles_router)
app.include_router(admin_router)


# WebSocket endpoints
@app.websocket("/ws")
async def websocket_all(websocket: WebSocket):
    """WebSocket endpoint for public article events."""
    await websocket_endpoint(websocket)


@app.websocket("/ws/users/{user_id}")
async def websocket_user(websocket: WebSocket, user_id: str):
    """WebSocket endpoint for one user's notifications plus public events."""
    await websocket_endpoint(websocket, user_id)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Publishing Platform Lifecycle Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug
    )
