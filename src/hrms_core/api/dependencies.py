"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_core.config import Settings, get_settings
from hrms_core.database import init_db
from hrms_core.geo.anomalies import AnomalyConfig
from hrms_core.geo.routing import RouteProvider
from hrms_core.services.distance_service import anomaly_config_from_settings, build_route_provider


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_route_provider(settings: Annotated[Settings, Depends(get_settings)]) -> RouteProvider | None:
    return build_route_provider(settings)


def get_anomaly_config(settings: Annotated[Settings, Depends(get_settings)]) -> AnomalyConfig:
    return anomaly_config_from_settings(settings)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
RouteProviderDep = Annotated[RouteProvider | None, Depends(get_route_provider)]
AnomalyConfigDep = Annotated[AnomalyConfig, Depends(get_anomaly_config)]
