"""
Archives Transfer Service — Submission Route Handlers
=======================================================

What:  GET /identifier (new submission token) and GET /genres.
Who:   Called by the submission form before any file is uploaded.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service.context import get_reference_service
from transfer_service.database import get_db_session
from transfer_service.schemas.upload import ErrorResponse, GenreResponse
from transfer_service.services.reference_service import (
    ReferenceService,
    new_submission_identifier,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Submissions"])


@router.get(
    "/identifier",
    response_class=PlainTextResponse,
    summary="Issue a new submission identifier",
)
async def get_submission_identifier() -> str:
    """
    Generate a unique token identifying a new submission.

    The token is used as the storage subdirectory for the submission's
    files as they are uploaded.
    """
    identifier = new_submission_identifier()
    logger.info("Issued submission identifier %s", identifier)
    return identifier


@router.get(
    "/genres",
    response_model=List[GenreResponse],
    responses={500: {"description": "Store query failed", "model": ErrorResponse}},
    summary="List genres",
)
async def list_genres(
    db: AsyncSession = Depends(get_db_session),
    reference: ReferenceService = Depends(get_reference_service),
) -> List[GenreResponse]:
    return await reference.list_genres(db)
