"""
Archives Transfer Service — Reference Data Models
===================================================

What:  ORM models for the read-only `genres` and `versions` tables.
How:   Inherit from the shared DeclarativeBase. The service never writes to
       these tables; they are provisioned alongside the MySQL database.
Who:   Queried by ReferenceService (genre listing and health check).
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from transfer_service.database import Base


class Genre(Base):
    """A genre a submission may be filed under."""

    __tablename__ = "genres"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Genre(id={self.id}, name={self.name!r})>"


class Version(Base):
    """
    One row per deployed schema version.

    The newest row (by created_at) is read by the health check; being able
    to read it is what "mysql: true" means.
    """

    __tablename__ = "versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    version: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<Version(version={self.version!r}, created_at={self.created_at})>"
