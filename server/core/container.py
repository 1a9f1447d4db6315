"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.cache import CacheStore
from core.cache_backends import create_remote_store
from services.admin_auth import AdminAuthService
from services.content import ContentService
from services.esports_client import EsportsClient
from services.event_cache import RangeEventCache
from services.events import EventService
from services.sessions import SessionStore


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Remote key-value adapter (None when running local-only)
    remote_store = providers.Singleton(
        create_remote_store,
        settings=settings
    )

    # Cache store; startup()/shutdown() are driven by the app lifespan
    cache = providers.Singleton(
        CacheStore,
        remote=remote_store
    )

    event_cache = providers.Singleton(
        RangeEventCache,
        cache=cache,
        ttl=settings.provided.events_cache_ttl
    )

    session_store = providers.Singleton(
        SessionStore,
        cache=cache,
        ttl=settings.provided.session_ttl
    )

    esports_client = providers.Singleton(
        EsportsClient,
        settings=settings
    )

    # Services
    event_service = providers.Factory(
        EventService,
        event_cache=event_cache,
        client=esports_client,
        settings=settings
    )

    content_service = providers.Factory(
        ContentService,
        cache=cache
    )

    admin_auth_service = providers.Factory(
        AdminAuthService,
        sessions=session_store,
        settings=settings
    )


# Global container instance
container = Container()
