"""
Archives Transfer Service — Upload Route Handler
==================================================

What:  Handles POST /upload for whole files and Dropzone chunked uploads.
How:   Reads the multipart form, builds ChunkInfo from the dz* fields and
       delegates to UploadService.accept_upload().

Request Flow:
    1. Client sends multipart/form-data with 'identifier' and 'file'
    2. If 'dzchunkindex' is present the request is one chunk of a file
    3. UploadService validates, creates the area and writes/appends
    4. Single-shot → 200 "Submitted"; chunk → 200 UploadResult JSON

Required fields are declared optional here so that a missing identifier
or file part is reported as 400 by ValidationError instead of FastAPI's
generic 422.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import PlainTextResponse

from transfer_service.context import get_upload_service, get_uploader
from transfer_service.schemas.upload import ChunkInfo, ErrorResponse, UploadResult
from transfer_service.services.upload_service import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Upload"])


@router.post(
    "/upload",
    response_model=None,
    responses={
        200: {"description": "File submitted, or chunk acknowledged", "model": UploadResult},
        400: {"description": "Missing identifier or file part", "model": ErrorResponse},
        409: {"description": "Destination already exists", "model": ErrorResponse},
        422: {"description": "Final chunk size mismatch", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Upload a file or one chunk of a file",
)
async def upload_file(
    identifier: Optional[str] = Form(default=None, description="Submission identifier"),
    file: Optional[UploadFile] = File(default=None, description="File or chunk bytes"),
    dzchunkindex: Optional[str] = Form(default=None),
    dztotalfilesize: Optional[str] = Form(default=None),
    dzchunksize: Optional[str] = Form(default=None),
    dztotalchunkcount: Optional[str] = Form(default=None),
    uploads: UploadService = Depends(get_upload_service),
    uploader: str = Depends(get_uploader),
) -> Union[PlainTextResponse, UploadResult]:
    """
    Accept a whole file, or one chunk of a file, for a submission.

    Error responses (handled by global exception handlers):
        HTTP 400: ValidationError
        HTTP 409: ConflictError
        HTTP 422: IncompleteUploadError
        HTTP 500: FileStorageError
    """
    logger.info("Checking for upload identifier...")
    try:
        chunk = ChunkInfo.from_form(
            chunk_index=dzchunkindex,
            total_file_size=dztotalfilesize,
            chunk_size=dzchunksize,
            total_chunk_count=dztotalchunkcount,
        )
        result = await uploads.accept_upload(
            identifier=identifier,
            source=file,
            chunk=chunk,
            uploader=uploader,
        )
    finally:
        if file is not None:
            await file.close()

    if chunk is None:
        return PlainTextResponse("Submitted")
    return result
