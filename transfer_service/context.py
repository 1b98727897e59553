"""
Archives Transfer Service — Service Context
=============================================

What:  The immutable bundle of collaborators every handler needs.
How:   create_app() builds one ServiceContext from Settings and stores it
       on app.state; the dependencies below hand pieces of it to routes.
       Nothing is read from module-level state at request time, so tests
       can run several apps side by side with different storage roots.
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from transfer_service.config import Settings
from transfer_service.database import Database
from transfer_service.services.reference_service import ReferenceService
from transfer_service.services.upload_service import UploadService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceContext:
    settings: Settings
    database: Database
    uploads: UploadService
    reference: ReferenceService

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContext":
        logger.info("Initializing service context (upload_dir=%s)", settings.upload_dir)
        database = Database(settings)
        logger.info("Database configured for %s", database.host)
        return cls(
            settings=settings,
            database=database,
            uploads=UploadService(settings.upload_dir, copy_buffer=settings.upload_copy_buffer),
            reference=ReferenceService(),
        )


# ── Dependencies ──────────────────────────────────────────────────────────

def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def get_upload_service(request: Request) -> UploadService:
    return get_context(request).uploads


def get_reference_service(request: Request) -> ReferenceService:
    return get_context(request).reference


def get_database(request: Request) -> Database:
    return get_context(request).database


def get_uploader(request: Request) -> str:
    """
    Name of the user behind the request, for attribution in logs.

    The fronting proxy sets remote_user; in development DEV_AUTH_USER
    stands in when the header is absent.
    """
    return request.headers.get("remote_user") or get_context(request).settings.dev_auth_user
