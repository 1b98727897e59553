"""
Archives Transfer Service — Upload Reassembly Service
=======================================================

What:  Receives uploaded files for a submission, either whole or as an
       ordered sequence of chunks, and produces one complete file on disk.
How:   Files live at <upload_dir>/<identifier>/<basename>. The first write
       to a destination is a create-exclusive open ("xb"), so of two racing
       requests for the same name exactly one wins. Later chunks are opened
       for append ("ab") and copied onto the end of the file.
Who:   Called by POST /upload.
When:  Once per request; chunked uploads arrive as one request per chunk.

Directory Structure:
    uploads/
    └── 9f1c0e2a4b7d4c1e8e5f3a2b1c0d9e8f/
        ├── finding-aid.pdf
        └── photo-001.tif

Protocol rules:
    - Single-shot: destination must not exist. On a write failure the
      partial file this request created is removed.
    - Chunked, index 0: destination must not exist.
    - Chunked, index > 0: appended blindly in arrival order. Clients must
      send chunks sequentially; nothing is buffered or reordered here.
    - The chunk with index total_chunks - 1 completes the file. If the
      client announced a total size, the assembled size must match it.
    - A destination is never overwritten or truncated.
"""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Optional

import aiofiles
from starlette.datastructures import UploadFile

from transfer_service.exceptions import (
    ConflictError,
    FileStorageError,
    IncompleteUploadError,
    ValidationError,
)
from transfer_service.schemas.upload import ChunkInfo, UploadResult

logger = logging.getLogger(__name__)

DEFAULT_COPY_BUFFER = 1_048_576


def confine_filename(filename: Optional[str], field: str = "file") -> str:
    """
    Reduce a client-supplied name to its final path segment.

    Both separators are treated as path separators, so "../x", "/etc/x" and
    "..\\x" all become "x". Names that reduce to nothing are rejected.

    Raises:
        ValidationError if the name is empty, "." or "..", or contains NUL.
    """
    if not filename or "\x00" in filename:
        raise ValidationError(
            message=f"A usable name is required for '{field}'",
            field=field,
        )
    base = PurePosixPath(filename.replace("\\", "/")).name
    if base in ("", ".", ".."):
        raise ValidationError(
            message=f"'{filename}' does not name a file",
            field=field,
            context={"name": filename},
        )
    return base


class UploadService:
    """
    Reassembles uploads into per-submission storage areas.

    The service holds no per-upload state: everything it knows about an
    upload in progress is the size of the destination file on disk.
    """

    def __init__(self, upload_dir: str, copy_buffer: int = DEFAULT_COPY_BUFFER):
        self.upload_root = Path(upload_dir).resolve()
        self.copy_buffer = copy_buffer
        self.upload_root.mkdir(parents=True, exist_ok=True)
        logger.info("UploadService initialized with upload_root=%s", self.upload_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_identifier(self, identifier: Optional[str]) -> str:
        """
        Check the submission identifier before any storage is touched.

        The identifier names a directory, so it must be a single path
        segment in its own right. It is used exactly as sent: surrounding
        whitespace is rejected rather than trimmed.
        """
        identifier = identifier or ""
        if not identifier.strip():
            raise ValidationError(message="upload identifier missing", field="identifier")
        if (
            identifier != identifier.strip()
            or confine_filename(identifier, field="identifier") != identifier
        ):
            raise ValidationError(
                message=f"upload identifier '{identifier}' is not valid",
                field="identifier",
            )
        return identifier

    # ── Storage Area ──────────────────────────────────────────────────────

    def area_path(self, identifier: str) -> Path:
        return self.upload_root / identifier

    def ensure_area(self, identifier: str) -> Path:
        """
        Create the submission's directory if needed (idempotent).

        Raises:
            FileStorageError if the directory cannot be created.
        """
        area = self.area_path(identifier)
        try:
            area.mkdir(exist_ok=True)
        except OSError as e:
            logger.error("Failed to create upload area %s: %s", area, str(e))
            raise FileStorageError(
                message=f"Unable to create upload directory: {e.strerror or e}",
                context={"path": str(area), "os_error": str(e)},
            )
        return area

    # ── Byte Copy ─────────────────────────────────────────────────────────

    async def _copy(self, source: UploadFile, out) -> int:
        """Stream the part into an open destination in bounded reads."""
        written = 0
        while True:
            block = await source.read(self.copy_buffer)
            if not block:
                break
            await out.write(block)
            written += len(block)
        return written

    # ── Single-shot ───────────────────────────────────────────────────────

    async def store_file(self, identifier: str, filename: str, source: UploadFile) -> UploadResult:
        """
        Write a complete file to a destination that must not exist yet.

        Raises:
            ConflictError if the destination exists (nothing is written).
            FileStorageError on any other OS error; the partial file is removed.
        """
        dest = self.area_path(identifier) / filename
        created = False
        try:
            async with aiofiles.open(dest, "xb") as out:
                created = True
                written = await self._copy(source, out)
        except FileExistsError:
            logger.warning("File %s already exists", dest)
            raise ConflictError(filename=filename, identifier=identifier)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", dest, str(e))
            if created:
                await self.cleanup_file(dest)
            raise FileStorageError(
                message=f"upload file err: {e.strerror or e}",
                context={"path": str(dest), "os_error": str(e)},
            )

        logger.info("Done receiving %s (%d bytes)", dest, written)
        return UploadResult(
            identifier=identifier,
            filename=filename,
            status="submitted",
            bytes_written=written,
            size=written,
        )

    # ── Chunked ───────────────────────────────────────────────────────────

    async def append_chunk(
        self,
        identifier: str,
        filename: str,
        source: UploadFile,
        chunk: ChunkInfo,
    ) -> UploadResult:
        """
        Append one chunk to its destination.

        Chunk 0 creates the destination exclusively; later chunks append
        (creating the file if it is somehow absent, never truncating).

        Raises:
            ConflictError if chunk 0 finds the destination already present.
            FileStorageError on any other OS error; appended bytes stay.
            IncompleteUploadError if the final size misses total_file_size.
        """
        dest = self.area_path(identifier) / filename
        mode = "xb" if chunk.is_first else "ab"
        try:
            async with aiofiles.open(dest, mode) as out:
                written = await self._copy(source, out)
        except FileExistsError:
            logger.warning("File %s already exists; refusing to restart upload", dest)
            raise ConflictError(filename=filename, identifier=identifier)
        except OSError as e:
            logger.error("Failed to append chunk %d to %s: %s", chunk.index, dest, str(e))
            raise FileStorageError(
                message=f"unable to receive file {e.strerror or e}",
                context={"path": str(dest), "chunk_index": chunk.index, "os_error": str(e)},
            )

        size = dest.stat().st_size
        status = "chunk_received"
        if chunk.is_last:
            if chunk.total_file_size is not None and size != chunk.total_file_size:
                logger.error(
                    "Upload of %s finished at %d bytes, expected %d",
                    dest, size, chunk.total_file_size,
                )
                raise IncompleteUploadError(
                    filename=filename,
                    expected_size=chunk.total_file_size,
                    actual_size=size,
                    context={"identifier": identifier},
                )
            status = "complete"
            logger.info("Done receiving %s (%d bytes in %d chunks)", dest, size, chunk.total_chunks)

        return UploadResult(
            identifier=identifier,
            filename=filename,
            status=status,
            bytes_written=written,
            size=size,
            chunk_index=chunk.index,
            total_chunks=chunk.total_chunks,
        )

    # ── Entry Point ───────────────────────────────────────────────────────

    async def accept_upload(
        self,
        identifier: Optional[str],
        source: Optional[UploadFile],
        chunk: Optional[ChunkInfo] = None,
        uploader: str = "",
    ) -> UploadResult:
        """
        Accept a whole file or one chunk of it for a submission.

        Validation order:
            1. Identifier present and a single path segment
            2. File part present with a usable filename
            3. Storage area created (idempotent)
            4. Bytes written (single-shot) or appended (chunked)

        Steps 1 and 2 raise ValidationError before anything touches disk.
        """
        identifier = self.validate_identifier(identifier)
        if source is None:
            logger.error("No file part submitted for %s", identifier)
            raise ValidationError(message="Unable to get form file: file part missing", field="file")
        filename = confine_filename(source.filename)

        self.ensure_area(identifier)

        if chunk is None:
            logger.info("Receiving non-chunked file %s for %s (user=%s)", filename, identifier, uploader or "-")
            return await self.store_file(identifier, filename, source)

        logger.info(
            "Received CHUNKED request to upload %s for %s, chunk %d of %s size %s (user=%s)",
            filename,
            identifier,
            chunk.index,
            chunk.total_chunks if chunk.total_chunks is not None else "?",
            chunk.chunk_size if chunk.chunk_size is not None else "?",
            uploader or "-",
        )
        return await self.append_chunk(identifier, filename, source, chunk)

    # ── Cleanup ───────────────────────────────────────────────────────────

    async def cleanup_file(self, file_path: Path) -> None:
        """
        Remove a partial file left by a failed single-shot write.

        Best-effort: a failure here is logged, and the original storage error
        is what the caller reports.
        """
        try:
            if file_path.exists():
                os.remove(file_path)
                logger.info("Cleaned up partial file: %s", file_path)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))
