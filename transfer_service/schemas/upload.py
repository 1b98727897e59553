"""
Archives Transfer Service — Pydantic Schemas
==============================================

What:  Request/response models for the API.
How:   Pydantic v2 models. `ChunkInfo` is parsed from the Dropzone form
       fields; the rest are response bodies.
Who:   Used by routes (serialization) and services (typed inputs/outputs).

Dropzone chunk fields (all text-encoded integers, sizes in bytes):
    dzchunkindex       0-based index of this chunk
    dztotalfilesize    size of the whole file
    dzchunksize        nominal size of each chunk
    dztotalchunkcount  number of chunks the file was split into
"""

from typing import Optional

from pydantic import BaseModel, Field

from transfer_service.exceptions import ValidationError


def _parse_count(field: str, raw: Optional[str]) -> Optional[int]:
    """Parse an optional non-negative integer form field."""
    if raw is None or raw.strip() == "":
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValidationError(
            message=f"Form field '{field}' must be an integer, got '{raw}'",
            field=field,
        )
    if value < 0:
        raise ValidationError(
            message=f"Form field '{field}' must not be negative",
            field=field,
            context={"value": value},
        )
    return value


class ChunkInfo(BaseModel):
    """
    Sequencing and sizing hints for one chunk of a chunked upload.

    Only `index` is required; the others are advisory. `total_file_size` is
    checked once the final chunk has been appended.
    """

    index: int = Field(ge=0)
    total_chunks: Optional[int] = Field(default=None, ge=0)
    chunk_size: Optional[int] = Field(default=None, ge=0)
    total_file_size: Optional[int] = Field(default=None, ge=0)

    @classmethod
    def from_form(
        cls,
        chunk_index: Optional[str],
        total_file_size: Optional[str] = None,
        chunk_size: Optional[str] = None,
        total_chunk_count: Optional[str] = None,
    ) -> Optional["ChunkInfo"]:
        """
        Build ChunkInfo from raw form values.

        Returns None when `dzchunkindex` is absent (single-shot mode).
        Raises ValidationError for non-integer or negative values, and for
        an index at or beyond `dztotalchunkcount`.
        """
        index = _parse_count("dzchunkindex", chunk_index)
        if index is None:
            return None
        total_chunks = _parse_count("dztotalchunkcount", total_chunk_count)
        if total_chunks is not None and index >= total_chunks:
            raise ValidationError(
                message=f"Chunk index {index} is out of range for {total_chunks} chunks",
                field="dzchunkindex",
                context={"index": index, "total_chunks": total_chunks},
            )
        return cls(
            index=index,
            total_chunks=total_chunks,
            chunk_size=_parse_count("dzchunksize", chunk_size),
            total_file_size=_parse_count("dztotalfilesize", total_file_size),
        )

    @property
    def is_first(self) -> bool:
        return self.index == 0

    @property
    def is_last(self) -> bool:
        return self.total_chunks is not None and self.index == self.total_chunks - 1


class UploadResult(BaseModel):
    """
    Outcome of one AcceptUpload call.

    status:
        submitted       single-shot upload written
        chunk_received  chunk appended, more expected
        complete        final chunk appended (and size matched, if announced)
    """

    identifier: str
    filename: str
    status: str
    bytes_written: int = Field(description="Bytes written by this request")
    size: int = Field(description="Current size of the destination file")
    chunk_index: Optional[int] = None
    total_chunks: Optional[int] = None


class GenreResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    """Body of GET /healthcheck; status code carries the verdict."""
    alive: bool = True
    mysql: bool


class ErrorResponse(BaseModel):
    """Standardized error response format for all API errors."""
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
