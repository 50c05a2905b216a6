from dependency_injector import containers, providers

from api_adapter.config import Settings
from api_adapter.services.cors import CorsPolicy
from api_adapter.services.proxy import ProxyService
from api_adapter.services.transforms import TransformRegistry


class Container(containers.DeclarativeContainer):
    """Dependency injection container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api_adapter.controllers.proxy",
            "api_adapter.controllers.health",
        ]
    )

    # Configuration
    config = providers.Singleton(Settings)

    # CORS header policy
    cors_policy = providers.Singleton(
        CorsPolicy,
        allow_methods=config.provided.cors_allow_methods,
        allow_headers=config.provided.cors_allow_headers,
        allow_credentials=config.provided.cors_allow_credentials,
    )

    # Route transforms (path pattern -> response rewrite)
    transform_registry = providers.Singleton(
        TransformRegistry,
        transforms=config.provided.get_transforms.call(),
    )

    # Proxy Service
    proxy_service = providers.Singleton(
        ProxyService,
        upstream_base_url=config.provided.upstream_base_url.call(),
        cors=cors_policy,
        api_prefix=config.provided.api_prefix,
        transforms=transform_registry,
        timeout=config.provided.proxy_timeout,
    )


async def shutdown_services(container: Container) -> None:
    """Release the upstream connection pool held by the proxy service."""
    proxy_service: ProxyService = container.proxy_service()
    if not proxy_service.is_closed:
        await proxy_service.close()
