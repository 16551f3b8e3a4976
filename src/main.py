import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from src.config.settings import settings
from src.database import client as db_client
from src.features.auth.router import router as auth_router
from src.features.chat.router import router as chat_router
from src.features.user.router import router as user_router
from src.features.verification.exceptions import VerificationProviderError
from src.shared.middlewares.docs_middleware import admin_docs_middleware
from src.shared.rate_limit import limiter, rate_limit_handler

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def verification_provider_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle SMS provider outages that reach a route."""
    logger.error(f"Verification provider failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Verification service unavailable"},
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    await db_client.init_db()
    yield
    # Shutdown
    await db_client.close_db()


# Admin-only API documentation
# Routes are protected by the admin_docs_middleware below
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add rate limiting middleware
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_exception_handler(VerificationProviderError, verification_provider_handler)
app.add_middleware(SlowAPIMiddleware)

# Add admin-only documentation middleware
app.middleware("http")(admin_docs_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Router Registration

routers: list[APIRouter] = [
    auth_router,
    user_router,
    chat_router,
]

for router in routers:
    app.include_router(router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {"message": settings.app_name, "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
