import os
from contextlib import asynccontextmanager
from pathlib import Path
from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from secportal_api.errors import PortalError
from secportal_api.errors import handle_broad_exceptions
from secportal_api.errors import handle_http_exceptions
from secportal_api.errors import handle_portal_errors
from secportal_api.errors import handle_pydantic_validation_errors
from secportal_api.monitoring.request_context import RequestContextMiddleware
from secportal_api.routes.routes_auth import ROUTER_AUTH
from secportal_api.routes.routes_health import ROUTER_HEALTH
from secportal_api.routes.routes_notifications import ROUTER_NOTIFICATIONS
from secportal_api.routes.routes_requests import ROUTER_REQUESTS
from secportal_api.settings import Settings
from secportal_api.tracking.db.pool import DomainDBPool
from secportal_api.tracking.db.repository_request import RequestRepository
from secportal_api.tracking.db.repository_role import RoleRepository
from secportal_api.tracking.notifier import WebhookNotifier


def _detect_environment() -> str:
    """Detect if running in a hosted App Service or locally."""
    # App Service sets WEBSITE_INSTANCE_ID
    if os.getenv("WEBSITE_INSTANCE_ID"):
        return "app-service"
    # Check if .env file exists (local development)
    elif Path(".env").exists():
        return "local-env-file"
    else:
        return "local-env-vars"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close database connections on shutdown."""
    yield
    await app.state.db_pool.close()
    logger.info("Database pool closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded directly from environment variables via pydantic-settings.
    - Hosted: set variables as application settings
    - Local development: use a .env file in the project root
    """
    # Initialize settings from environment variables
    settings = settings or Settings()

    logger.info(
        "Configuration loaded successfully",
        environment=_detect_environment(),
        database_url_set=bool(settings.database_url),
        notifications_enabled=bool(settings.notification_webhook_url),
        pool_min_size=settings.db_pool_min_size,
        pool_max_size=settings.db_pool_max_size,
        run_migrations=settings.db_run_migrations,
    )

    app = FastAPI(
        title=settings.service_name,
        version=settings.app_version,
        description=dedent(
            """
        Intake and tracking of security incident reports.

        | Area | Endpoints |
        | --- | --- |
        | Reports | submit, list (role-aware), fetch, statistics, status changes |
        | Roles | resolve role and permissions for a signed-in email |
        | Notifications | webhook card on every new report |
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
        swagger_ui_parameters={
            "defaultModelsExpandDepth": -1,  # Hide schemas section
            "defaultModelExpandDepth": 1,  # Keep models collapsed if shown
        },
    )
    app.state.settings = settings

    # The pool connects lazily on first query; nothing here touches the network
    db_pool = DomainDBPool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout,
        run_migrations=settings.db_run_migrations,
    )
    app.state.db_pool = db_pool
    app.state.request_store = RequestRepository(db_pool)
    app.state.role_store = RoleRepository(db_pool)
    app.state.notifier = WebhookNotifier(
        webhook_url=settings.notification_webhook_url,
        dashboard_url=settings.dashboard_url,
        timeout=settings.notification_timeout_seconds,
    )

    # Add request context middleware for tracking who/where requests come from
    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH)
    app.include_router(ROUTER_AUTH, prefix="/api")
    app.include_router(ROUTER_REQUESTS, prefix="/api")
    app.include_router(ROUTER_NOTIFICATIONS)

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=PortalError,
        handler=handle_portal_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=StarletteHTTPException,
        handler=handle_http_exceptions,
    )

    app.middleware("http")(handle_broad_exceptions)

    logger.info("Security portal API application created", service=settings.service_name, version=settings.app_version)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
