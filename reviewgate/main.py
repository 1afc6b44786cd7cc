import logging
import time
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from reviewgate.common.config import settings
from reviewgate.common.database import init_db, close_db
from reviewgate.common.exceptions import AppException, UnauthorizedException
from reviewgate.common.responses import error_response, retry_headers
from reviewgate.common.rate_limit import limiter


# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    await init_db()
    logger.info("%s %s started", settings.app_name, settings.app_version)
    yield
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)


def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Render slowapi rejections with the seconds left in the current window."""
    # Set by the @limiter.limit() decorator
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    retry_after = 60
    if view_rate_limit:
        reset_at, _ = request.app.state.limiter.limiter.get_window_stats(
            view_rate_limit[0], *view_rate_limit[1]
        )
        retry_after = max(1, int(1 + reset_at - time.time()))

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_response("RateLimit", "Too Many Requests", retry_after),
        headers=retry_headers(retry_after),
    )


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Render the exception taxonomy into the error envelope."""
    # Session failures all render as "Unauthorized"; the message tells them apart
    if isinstance(exc, UnauthorizedException):
        error_type = "Unauthorized"
    else:
        error_type = exc.__class__.__name__.removesuffix("Exception")

    retry_after = getattr(exc, "retry_after", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(error_type, exc.message, retry_after),
        headers=retry_headers(retry_after),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            error="InternalServerError",
            message=str(exc) if settings.debug else "An error occurred"
        ),
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers
from reviewgate.api.v1 import auth, projects, clients, tokens, ops

app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(projects.router, prefix="/api/v1", tags=["projects"])
app.include_router(clients.router, prefix="/api/v1", tags=["clients"])
app.include_router(tokens.router, prefix="/api/v1", tags=["tokens"])
app.include_router(ops.router, prefix="/api/v1", tags=["ops"])
