import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.cache import cache
from app.config import settings
from app.database import dispose_engine
from app.exceptions import ResourceNotFoundError
from app.logging_config import configure_logging
from app.middleware import TimingMiddleware
from app.routers import authors, categories, comments, metrics, news, notifications, users
from app.services.notifications import sweeper, task_pool

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging(settings.LOG_LEVEL)
    try:
        await cache.connect()
    except Exception:
        logger.warning("Redis unavailable; continuing without cache", exc_info=True)
    task_pool.start()
    if settings.SWEEP_ENABLED:
        sweeper.start()
    yield
    # Shutdown
    await sweeper.stop()
    await task_pool.shutdown(settings.SHUTDOWN_DRAIN_SECONDS)
    await cache.disconnect()
    await dispose_engine()

app = FastAPI(
    title="News Agency API",
    description="News, authors, categories and comments with asynchronous comment notifications",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ResourceNotFoundError)
async def resource_not_found_handler(request: Request, exc: ResourceNotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message, **exc.details})

# Routers
app.include_router(users.router)
app.include_router(authors.router)
app.include_router(categories.router)
app.include_router(news.router)
app.include_router(comments.router)
app.include_router(notifications.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": "1.0.0",
        "notifications": "ACTIVE" if task_pool.running else "STOPPED",
    }
