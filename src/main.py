import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from src.config.cors_config import CORSConfigurationError
from src.config.logging_config import configure_logging
from src.config.settings import Settings, settings
from src.database.client import Database
from src.features.auth.jwt_utils import log_token_configuration
from src.features.auth.maintenance import run_token_sweeper
from src.features.auth.router import router as auth_router
from src.features.oauth.router import router as oauth_router
from src.features.user.router import router as user_router
from src.shared.errors.handlers import error_body, register_exception_handlers
from src.shared.middlewares.perimeter import PerimeterGateMiddleware
from src.shared.middlewares.security_headers import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


async def rate_limit_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    return JSONResponse(
        status_code=429,
        content=error_body("Too many requests, please try again later", "RATE_LIMIT_EXCEEDED"),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and start the ledger sweeper; undo both on shutdown."""
    app_settings: Settings = app.state.settings
    log_token_configuration()

    database = Database.from_settings(app_settings)
    await database.connect()
    if app_settings.database_create_tables:
        await database.create_all()
    app.state.database = database

    sweeper = None
    if app_settings.token_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(run_token_sweeper(database, app_settings.token_sweep_interval_seconds))

    logger.info(f"{app_settings.app_name} started (environment={app_settings.environment})")
    yield

    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await database.close()


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Build the application: middleware, error handlers and routers."""
    configure_logging(app_settings)

    docs_enabled = not app_settings.is_production
    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = app_settings

    register_exception_handlers(app)

    # Middleware added last runs first: security headers, CORS, rate limiting, then the perimeter gate
    app.add_middleware(
        PerimeterGateMiddleware,
        api_prefix=app_settings.api_prefix,
        mode=app_settings.perimeter_gate_mode,
    )

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[app_settings.rate_limit],
        enabled=app_settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_middleware(SlowAPIMiddleware)

    try:
        cors_config = app_settings.get_cors_configuration()
        cors_config.log_configuration()

        middleware_config = cors_config.get_middleware_config()
        app.add_middleware(CORSMiddleware, **middleware_config)
    except CORSConfigurationError as exc:
        logger.error(f"CORS configuration error: {exc}")
        raise

    app.add_middleware(SecurityHeadersMiddleware, hsts=app_settings.is_production)

    routers: list[APIRouter] = [auth_router, user_router]
    if app_settings.demo_oauth_active:
        routers.append(oauth_router)
    else:
        logger.info("Demo OAuth endpoints disabled")

    for router in routers:
        app.include_router(router, prefix=app_settings.api_prefix)

    def health_payload() -> dict:
        return {
            "success": True,
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": app_settings.environment,
        }

    @app.get("/")
    async def root():
        return {"message": app_settings.app_name, "status": "running"}

    @app.get("/health")
    async def health():
        return health_payload()

    @app.get(f"{app_settings.api_prefix}/health")
    async def api_health():
        return health_payload()

    @app.get(f"{app_settings.api_prefix}/status")
    async def api_status():
        return {**health_payload(), "version": app_settings.app_version}

    return app


app = create_app()
