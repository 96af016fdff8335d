"""FastAPI dependencies for accessing app state."""

from fastapi import Depends
from fastapi import Request

from secportal_api.settings import Settings
from secportal_api.tracking.lifecycle import LifecycleController
from secportal_api.tracking.notifier import WebhookNotifier
from secportal_api.tracking.roles import RoleResolver
from secportal_api.tracking.store import RequestStore
from secportal_api.tracking.store import RoleStore


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_request_store(request: Request) -> RequestStore:
    """Get the request store (asyncpg repository in production)."""
    return request.app.state.request_store


def get_role_store(request: Request) -> RoleStore:
    """Get the role store (asyncpg repository in production)."""
    return request.app.state.role_store


def get_notifier(request: Request) -> WebhookNotifier:
    """Get the new-report notifier."""
    return request.app.state.notifier


def get_role_resolver(role_store: RoleStore = Depends(get_role_store)) -> RoleResolver:
    """
    Build a role resolver over the role store.

    Parameters
    ----------
    role_store : RoleStore
        Store holding cached role grants

    Returns
    -------
    RoleResolver
        Resolver for caller identity
    """
    return RoleResolver(role_store)


def get_lifecycle_controller(
    settings: Settings = Depends(get_settings),
    store: RequestStore = Depends(get_request_store),
    role_resolver: RoleResolver = Depends(get_role_resolver),
    notifier: WebhookNotifier = Depends(get_notifier),
) -> LifecycleController:
    """
    Build the lifecycle controller for one request.

    Returns
    -------
    LifecycleController
        Controller wired to the app's store, role resolver and notifier
    """
    return LifecycleController(
        store=store,
        role_resolver=role_resolver,
        notifier=notifier,
        default_owner_id=settings.default_owner_id,
        system_actor_id=settings.system_actor_id,
        system_actor_name=settings.system_actor_name,
    )
