"""
Support Desk Automation Engine - Main FastAPI Application

This is the entry point for the FastAPI application.
It configures middleware, routes, and lifecycle handlers.
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config.settings import settings
from .container import ServiceContainer
from .api.routes import api_router
from .api.middleware import CorrelationIdMiddleware, register_error_handlers
from .repositories.mongo_client import create_indexes, close_connection, health_check
from .repositories.audit_repo import AuditRepository
from .repositories.channel_repo import ChannelConfigRepository
from .repositories.rule_repo import AutomationRuleRepository
from .utils.logger import setup_logging, get_logger

# Setup logging first
setup_logging()
logger = get_logger(__name__)

APP_NAME = "Support Desk Automation Engine"
APP_VERSION = "1.0.0"


def docs_enabled() -> bool:
    """Interactive API docs are never served in production"""
    return settings.debug and not settings.is_production


# =============================================================================
# Application Lifecycle
# =============================================================================

def build_container() -> ServiceContainer:
    """
    Container backed by MongoDB, or in-memory when the database is down

    Without MongoDB the default rules still run; rule edits, channel status
    and audit entries are then not persisted.
    """
    try:
        create_indexes()
        logger.info("MongoDB indexes created")
        return ServiceContainer.from_settings(
            settings,
            channel_repo=ChannelConfigRepository(),
            rule_repo=AutomationRuleRepository(),
            audit_repo=AuditRepository(),
        )
    except Exception as e:
        logger.error(f"MongoDB unavailable, running without persistence: {e}")
        return ServiceContainer.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    
    Startup:
        - Creates MongoDB indexes
        - Builds the service container unless one was injected
    
    Shutdown:
        - Closes database connections
    """
    logger.info(f"Starting {APP_NAME}...")
    
    if getattr(app.state, "container", None) is None:
        app.state.container = build_container()
    
    container = app.state.container
    storage_backend = container.storage.provider_type if container.storage else None
    rule_count = len(container.rule_store.get_rules())
    logger.info(
        f"Application started: {rule_count} rules, email via {container.dispatcher.provider_name}",
        extra={"provider": storage_backend}
    )
    container.audit.log_system_event(
        action="service_started",
        description=f"{APP_NAME} {APP_VERSION} started",
        metadata={
            "environment": settings.environment,
            "rules": rule_count,
            "email_provider": container.dispatcher.provider_name,
            "storage_provider": storage_backend,
        }
    )

    yield
    
    logger.info("Shutting down...")
    close_connection()
    logger.info("Application shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.
    
    Args:
        container: Pre-built services; built during startup when omitted
    
    Returns:
        Configured FastAPI application instance
    """
    application = FastAPI(
        title=APP_NAME,
        description="Ticket automation rules, channel health, outbound email and attachment storage",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs" if docs_enabled() else None,
        redoc_url="/api/redoc" if docs_enabled() else None,
        openapi_url="/api/openapi.json" if docs_enabled() else None,
    )
    application.state.container = container
    
    _configure_middleware(application)
    register_error_handlers(application)
    _configure_routes(application)
    
    return application


def _configure_middleware(app: FastAPI) -> None:
    """Configure application middleware."""
    # allow_credentials must be False when allowing all origins
    allow_all = settings.cors_origins.strip() == "*"
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins_list,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    
    app.add_middleware(CorrelationIdMiddleware)


def _configure_routes(app: FastAPI) -> None:
    """Configure application routes."""
    app.include_router(api_router, prefix="/api/v1")
    
    @app.get("/health", tags=["Health"])
    async def health():
        """
        Health check endpoint.
        
        Returns application health status including database connectivity.
        """
        mongo_health = health_check()
        return {
            "status": "healthy" if mongo_health.get("status") == "healthy" else "degraded",
            "version": APP_VERSION,
            "environment": settings.environment,
            "mongo": mongo_health
        }
    
    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "docs": "/api/docs" if docs_enabled() else None
        }


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()
