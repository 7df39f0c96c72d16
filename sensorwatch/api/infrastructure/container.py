"""Dependency injection container for API layer."""

from dependency_injector import containers, providers

from sensorwatch.api.infrastructure.database import Database
from sensorwatch.config import MonitoringConfig
from sensorwatch.monitoring.application.monitoring_service import MonitoringService
from sensorwatch.monitoring.infrastructure.sql_store import SqlMonitoringStore


class APIContainer(containers.DeclarativeContainer):
    """Dependency injection container for API layer."""

    config = providers.Configuration()

    # Database
    database = providers.Singleton(
        Database,
        async_database_url=config.database.async_url,
    )

    # Monitoring engine
    monitoring_config = providers.Singleton(
        MonitoringConfig.model_validate,
        config.monitoring,
    )

    monitoring_store = providers.Singleton(
        SqlMonitoringStore,
        database=database,
    )

    # Singleton so per-device locks are shared by every request
    monitoring_service = providers.Singleton(
        MonitoringService,
        store=monitoring_store,
        config=monitoring_config,
    )


# Global container instance
_container: APIContainer | None = None


def init_container(config) -> APIContainer:
    """Initialize the global container."""
    global _container
    _container = APIContainer()
    _container.config.from_dict(config)
    return _container


def get_container() -> APIContainer:
    """Get the global container instance."""
    if _container is None:
        raise RuntimeError("Container not initialized. Call init_container() first.")
    return _container
