from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fleetguard import __version__
from fleetguard.api.guard import AuthorizationGuard
from fleetguard.api.routers import auth, companies, permissions
from fleetguard.common.logger import configure_logging, get_logger
from fleetguard.core.config import Settings, get_settings
from fleetguard.core.exceptions import StoreError
from fleetguard.core.rbac.checker import AccessChecker
from fleetguard.core.rbac.resolver import PermissionResolver
from fleetguard.core.security import TokenService
from fleetguard.core.tenancy import TenantScopeResolver
from fleetguard.db.repository import SqlAlchemyStore
from fleetguard.db.session import create_db_engine, create_session_factory

logger = get_logger("api")


def build_store(settings: Settings) -> SqlAlchemyStore:
    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    return SqlAlchemyStore(create_session_factory(engine))


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SqlAlchemyStore] = None,
    tokens: Optional[TokenService] = None,
) -> FastAPI:
    """Build the application and its services.

    The store is created here once and disposed when the app shuts down.
    Run with ``uvicorn fleetguard.api.main:create_app --factory``.
    """
    settings = settings or get_settings()

    configure_logging(settings)

    store = store or build_store(settings)
    tokens = tokens or TokenService.from_settings(settings)
    resolver = PermissionResolver(store)
    access = AccessChecker(resolver)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s %s starting (%s)", settings.app_name, __version__, settings.environment)
        yield
        store.close()
        logger.info("%s stopped", settings.app_name)

    app = FastAPI(
        title=settings.app_name,
        description="Authorization and tenant scoping for the fleet dashboard",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.tokens = tokens
    app.state.resolver = resolver
    app.state.access = access
    app.state.tenancy = TenantScopeResolver(store)
    app.state.guard = AuthorizationGuard(tokens, access)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(
            "Store failure (%s) on %s %s: %s",
            exc.category.value, request.method, request.url.path, exc.details,
        )
        body = {
            "error": exc.message,
            "type": exc.category.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if not settings.is_production:
            body["details"] = exc.details
        return JSONResponse(body, status_code=500)

    # Include routers
    app.include_router(auth.router, prefix="/api")
    app.include_router(permissions.router, prefix="/api")
    app.include_router(companies.router, prefix="/api")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": __version__}

    return app
