from dependency_injector import containers, providers

from portalapi.config import Settings
from portalapi.providers.enrollment.client import EnrollmentClient


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class ClientModule(containers.DeclarativeContainer):
    """Outbound third-party clients."""

    config = providers.DependenciesContainer()

    enrollment_client = providers.Singleton(EnrollmentClient, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "portalapi.routers.enrollment_router",
        ],
    )

    config = providers.Container(ConfigModule)
    clients = providers.Container(ClientModule, config=config)
