"""Middleware for protecting API documentation routes to admin users only."""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer

from src.features.auth.dependencies import ADMIN_ONLY, authenticate_request, authorize_identity, get_token_factory

PROTECTED_PATHS = {"/docs", "/redoc", "/openapi.json"}


async def admin_docs_middleware(request: Request, call_next):
    """Middleware to protect API documentation routes to admin users only.

    Protects:
    - /docs (Swagger UI)
    - /redoc (ReDoc)
    - /openapi.json (OpenAPI schema)

    Runs the same authentication and role gates as the API routes; the
    signed claims are trusted, so no database access happens here.
    Non-authenticated or non-admin users receive a 403 Forbidden response.
    """
    if request.url.path in PROTECTED_PATHS:
        security = HTTPBearer(auto_error=False)
        credentials = await security(request)

        if credentials is None:
            return JSONResponse(
                status_code=403,
                content={"detail": "Not authenticated."},
            )

        try:
            identity = authenticate_request(ADMIN_ONLY, credentials.credentials, get_token_factory())
        except HTTPException:
            return JSONResponse(
                status_code=403,
                content={"detail": "Not authenticated."},
            )

        try:
            authorize_identity(ADMIN_ONLY, identity, event=request.url.path)
        except HTTPException:
            return JSONResponse(
                status_code=403,
                content={"detail": "Insufficient permissions."},
            )

    return await call_next(request)
