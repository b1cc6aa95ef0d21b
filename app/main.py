import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from app.cache import cache
from app.config import settings
from app.exceptions import ArticleServiceError
from app.middleware import TimingMiddleware
from app.routers import articles, users, metrics

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Cache unavailable, serving from the database only: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="Article Publishing API",
    description="Articles, tags, favorites and follow feeds",
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

# Error translation
@app.exception_handler(ArticleServiceError)
async def article_service_error_handler(request: Request, exc: ArticleServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # A uniqueness race lost at the storage layer.
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "conflicting write"})

# Routers
app.include_router(articles.router)
app.include_router(users.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
