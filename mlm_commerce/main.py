import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from mlm_commerce.config import settings
from mlm_commerce.core.exceptions import AppError
from mlm_commerce.database import init_db, async_session_factory, get_db_session
from mlm_commerce.api.v1.router import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Configure logging
    - Create tables
    - Seed default tiers, catalogue and demo network when SEED_ON_STARTUP is set
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.COMMISSION_SCHEME} commissions)")

    await init_db()

    if settings.SEED_ON_STARTUP:
        from mlm_commerce.services.seed_service import SeedService

        async with get_db_session() as session:
            await SeedService(session).seed_all()

    yield

    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Users", "description": "Member registration, referral links and points"},
    {"name": "Relationships", "description": "Sponsor assignment with cycle protection"},
    {"name": "Network", "description": "Downline tree and team statistics"},
    {"name": "Commissions", "description": "Commission processing, ledger and reports"},
    {"name": "Orders", "description": "Orders and the commission trigger"},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="E-commerce backend with a multi-level commission engine.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


def _error_response(request: Request, status_code: int, message, error_type: str, details=None):
    content = {
        "error": message,
        "type": error_type,
        "path": str(request.url.path),
        "method": request.method,
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Service errors keep their status: 404 not found, 400 bad request, 500 internal."""
    return _error_response(request, exc.status_code, exc.message, type(exc).__name__, exc.details)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, exc.detail, type(exc).__name__)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unhandled is logged and reported as a 500 without internals."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error_response(request, 500, "Internal server error", type(exc).__name__)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
