"""Repository pattern for database operations."""

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import DatabaseNotInitializedError, session_scope
from app.core.exceptions import DirectoryUnavailableError
from app.core.logging import get_logger
from app.models.geographic import LocationRecord

from .models import HelpLocationModel

logger = get_logger(__name__)


class LocationDirectory(Protocol):
    """Source of candidate locations for distance matching."""

    async def list_active_locations_with_coordinates(self) -> list[LocationRecord]: ...


class HelpLocationRepository:
    """Repository for help locations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.model = HelpLocationModel

    async def list_active_locations_with_coordinates(self) -> list[LocationRecord]:
        """Get all active locations that have both coordinates.

        Raises:
            DirectoryUnavailableError: If the directory cannot be queried
        """
        query = select(self.model).filter(
            self.model.is_active.is_(True),
            self.model.latitude.is_not(None),
            self.model.longitude.is_not(None),
        )
        try:
            result = await self.session.execute(query)
            rows = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            logger.error("directory_query_failed", error=str(e))
            raise DirectoryUnavailableError(
                "Location directory is unavailable"
            ) from e

        return [
            LocationRecord(
                name=row.name,
                phone=row.phone,
                website=row.website_url,
                type=row.type,
                latitude=float(row.latitude),
                longitude=float(row.longitude),
            )
            for row in rows
        ]


class SessionLocationDirectory:
    """Directory that opens a short-lived session for every query."""

    async def list_active_locations_with_coordinates(self) -> list[LocationRecord]:
        """Query the help location table in its own session.

        Raises:
            DirectoryUnavailableError: If no session can be opened or the
                query fails
        """
        try:
            async with session_scope() as session:
                repository = HelpLocationRepository(session)
                return await repository.list_active_locations_with_coordinates()
        except DatabaseNotInitializedError as e:
            logger.error("directory_not_initialized", error=str(e))
            raise DirectoryUnavailableError(
                "Location directory is unavailable"
            ) from e
