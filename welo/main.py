"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown.
  3. Routers are registered with their URL prefixes.
  4. Exception handlers turn route-guard denials into 401/403 responses
     and normalise unexpected errors.

Run with:
    uvicorn welo.main:app --reload              # development
    uvicorn welo.main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from welo.api.routes import admin, auth, companies, navigation, tracking
from welo.core.config import settings
from welo.core.cors import PathScopedCORSMiddleware
from welo.core.guard import GuardAction
from welo.core.logging import configure_logging, get_logger
from welo.db.session import engine
from welo.dependencies import RouteDenied
from welo.schemas.navigation import GuardDecisionRead

logger = get_logger(__name__)

# Paths the embeddable tracking script calls from customer sites
PUBLIC_CORS_PATHS = ("/track-event",)

_DENIAL_STATUS = {
    GuardAction.redirect_to_auth: status.HTTP_401_UNAUTHORIZED,
    GuardAction.redirect_to_role_home: status.HTTP_403_FORBIDDEN,
    GuardAction.blocked: status.HTTP_403_FORBIDDEN,
}

_DENIAL_DETAIL = {
    GuardAction.redirect_to_auth: "Not authenticated",
    GuardAction.redirect_to_role_home: "This screen is not available for your role",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging

    Shutdown:
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
    )
    yield
    logger.info("Shutting down, disposing DB engine")
    await engine.dispose()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Company verification backend: sign-in, role-gated dashboard "
            "screens, admin approval workflow and badge view tracking."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        PathScopedCORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        public_paths=PUBLIC_CORS_PATHS,
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(companies.router)
    app.include_router(admin.router)
    app.include_router(tracking.router)
    app.include_router(navigation.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(RouteDenied)
    async def route_denied_handler(request: Request, exc: RouteDenied) -> JSONResponse:
        decision = exc.decision
        body = GuardDecisionRead.from_decision(exc.path, decision).model_dump(mode="json")
        body["detail"] = (
            decision.panel.title if decision.panel else _DENIAL_DETAIL.get(decision.action, "Forbidden")
        )
        logger.info(
            "Route denied",
            path=request.url.path,
            screen=exc.path,
            action=decision.action.value,
        )
        headers = (
            {"WWW-Authenticate": "Bearer"}
            if decision.action is GuardAction.redirect_to_auth
            else None
        )
        return JSONResponse(
            status_code=_DENIAL_STATUS.get(decision.action, status.HTTP_403_FORBIDDEN),
            content=body,
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
