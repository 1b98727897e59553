"""
Archives Transfer Service — Version & Health Routes
=====================================================

What:  GET /version and GET /healthcheck for monitoring and load balancers.
How:   The health check reads the newest row of the `versions` table. The
       service is alive whenever it can answer; "mysql" reports whether
       that read succeeded.

    Store readable   → 200 {"alive": true, "mysql": true}
    Store unreadable → 500 {"alive": true, "mysql": false}
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from transfer_service.context import get_database, get_reference_service
from transfer_service.database import Database
from transfer_service.schemas.upload import HealthResponse
from transfer_service.services.reference_service import ReferenceService, version_string

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/version", response_class=PlainTextResponse, summary="Service version")
async def get_version() -> str:
    return version_string()


@router.get(
    "/healthcheck",
    response_model=HealthResponse,
    responses={500: {"description": "Store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    database: Database = Depends(get_database),
    reference: ReferenceService = Depends(get_reference_service),
) -> JSONResponse:
    healthy = await reference.store_is_healthy(database)
    body = HealthResponse(alive=True, mysql=healthy)
    return JSONResponse(status_code=200 if healthy else 500, content=body.model_dump())
