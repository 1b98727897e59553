"""
Archives Transfer Service — Reference Data Service
====================================================

What:  Submission identifiers, genre listing, and store health.
How:   Identifiers are uuid4 hex tokens. Genres and the health probe are
       single read-only queries through async SQLAlchemy.
Who:   Called by the submission and health routes.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service import __version__
from transfer_service.database import Database
from transfer_service.exceptions import DatabaseError
from transfer_service.models.reference import Genre, Version
from transfer_service.schemas.upload import GenreResponse

logger = logging.getLogger(__name__)

SERVICE_NAME = "Archives Transfer Service"


def new_submission_identifier() -> str:
    """
    Generate a unique token identifying a new submission.

    The token doubles as the submission's storage subdirectory name, so it
    is restricted to hex characters.
    """
    return uuid.uuid4().hex


def version_string() -> str:
    return f"{SERVICE_NAME} version {__version__}"


class ReferenceService:
    """Read-only queries against the reference store."""

    async def list_genres(self, db: AsyncSession) -> List[GenreResponse]:
        """
        Return every genre as {id, name}.

        Raises:
            DatabaseError carrying the driver message when the query fails.
        """
        try:
            result = await db.execute(select(Genre.id, Genre.name))
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Unable to retrieve genres: %s", str(e))
            raise DatabaseError(
                message=f"Unable to retrieve genres: {e}",
                context={"query": "genres"},
            )
        return [GenreResponse(id=row.id, name=row.name) for row in rows]

    async def store_is_healthy(self, database: Database) -> bool:
        """
        Probe the store by reading the newest schema version.

        Any failure (unreachable host, missing table, no rows) counts as
        unhealthy; this method never raises.
        """
        try:
            async with database.session_factory() as session:
                result = await session.execute(
                    select(Version.version).order_by(Version.created_at.desc()).limit(1)
                )
                version = result.scalar_one()
        except Exception as e:
            logger.warning("Health check: database unreachable: %s", str(e))
            return False
        logger.debug("Health check: schema version %s", version)
        return True
