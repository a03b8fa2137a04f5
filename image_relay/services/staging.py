"""
Staging Store Service

Writes an inbound upload to a uniquely named file in the staging directory
and removes it again once the request is done with it.
"""

import logging
import re
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Optional, Protocol

from image_relay.middleware.error_handler import EmptyUpload, StagingIOError
from image_relay.models.staged_file import StagedFile

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB chunks

DEFAULT_FILENAME = "upload"

# Leaves room for the 32-char UUID prefix within a 255-byte filename limit
MAX_FILENAME_BYTES = 200

_ILLEGAL_CHARS = re.compile(r'[\x00-\x1f\x7f<>:"/\\|?*]')

_WINDOWS_RESERVED = {
    "CON", "PRN", "AUX", "NUL",
    *(f"COM{i}" for i in range(1, 10)),
    *(f"LPT{i}" for i in range(1, 10)),
}


class UploadPart(Protocol):
    """A named part of a multipart body, e.g. starlette's UploadFile."""

    filename: Optional[str]

    async def read(self, size: int = -1) -> bytes: ...


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce a client-supplied filename to a safe single path component.

    Directory parts (either separator) are dropped, control and reserved
    characters removed, leading/trailing dots and spaces stripped and
    Windows device names prefixed. An empty result becomes ``upload``.

    Args:
        filename: Filename from the part's Content-Disposition header

    Returns:
        str: Filename safe to join onto the staging directory
    """
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    name = _ILLEGAL_CHARS.sub("", name).strip(" .")

    if name.split(".", 1)[0].upper() in _WINDOWS_RESERVED:
        name = f"_{name}"

    name = name.encode("utf-8")[:MAX_FILENAME_BYTES].decode("utf-8", "ignore")

    return name or DEFAULT_FILENAME


class StagingStore:
    """
    Manages the staging directory for uploads in flight.

    Handles:
    - Writing the first file part of a request to ``<uuid>_<name>``
    - Removing partially written files when a write fails
    - Deleting staged files once forwarding is done
    - Tracking which staged files are still owned by a request
    """

    def __init__(self, staging_dir: str | Path):
        """
        Initialize StagingStore.

        Args:
            staging_dir: Directory that holds staged files
        """
        self.staging_dir = Path(staging_dir)
        self._active: set[str] = set()

    def active_paths(self) -> frozenset[str]:
        """Paths of staged files not yet discarded."""
        return frozenset(self._active)

    def ensure_directory(self) -> None:
        """Create the staging directory if it does not exist."""
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Staging directory ready: {self.staging_dir}")

    async def stage(self, parts: AsyncIterable[UploadPart]) -> StagedFile:
        """
        Write the first file part of a request to the staging directory.

        Parts without a filename are form fields and are skipped. Chunks are
        written in order; the caller owns deletion of the returned file.

        Args:
            parts: Parts of the multipart body

        Returns:
            StagedFile: The staged file

        Raises:
            EmptyUpload: If there is no file part or the file part is empty
            StagingIOError: If the file cannot be written
        """
        async for part in parts:
            if not part.filename:
                continue

            logger.debug(f"Received file: {part.filename!r}")
            return await self._write_part(part)

        logger.warning("No file part in upload request")
        raise EmptyUpload()

    async def _write_part(self, part: UploadPart) -> StagedFile:
        file_id = uuid.uuid4().hex
        filename = sanitize_filename(part.filename)
        file_path = (self.staging_dir / f"{file_id}_{filename}").resolve()
        size = 0

        try:
            f = open(file_path, "xb")
        except OSError as e:
            logger.error(f"Failed to create file {file_path}: {e}")
            raise StagingIOError(str(file_path), e.strerror or str(e))

        try:
            with f:
                while chunk := await part.read(CHUNK_SIZE):
                    f.write(chunk)
                    size += len(chunk)
        except OSError as e:
            logger.error(f"Failed to write staged file {file_path}: {e}")
            self._remove_partial(file_path)
            raise StagingIOError(str(file_path), e.strerror or str(e))
        except BaseException:
            self._remove_partial(file_path)
            raise

        if size == 0:
            self._remove_partial(file_path)
            logger.warning(f"Uploaded file {filename!r} is empty")
            raise EmptyUpload("Uploaded file is empty")

        self._active.add(str(file_path))
        logger.info(f"File created successfully: {file_path} ({size} bytes)")
        return StagedFile(file_id=file_id, filename=filename, path=str(file_path), size=size)

    def _remove_partial(self, file_path: Path) -> None:
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove partial file {file_path}: {e}")

    def discard(self, staged: StagedFile) -> bool:
        """
        Delete a staged file.

        Never raises: a failed deletion is logged as a cleanup warning so it
        cannot change the outcome of the request. A file that is already gone
        counts as deleted.

        Args:
            staged: File returned by stage()

        Returns:
            bool: True if the file no longer exists
        """
        self._active.discard(staged.path)

        try:
            staged.local_path.unlink()
        except FileNotFoundError:
            logger.warning(f"CleanupWarning: staged file already removed: {staged.path}")
            return True
        except OSError as e:
            logger.warning(f"CleanupWarning: failed to delete temporary file {staged.path}: {e}")
            return False

        logger.info(f"Deleted staged file: {staged.path}")
        return True

    @asynccontextmanager
    async def staged(self, parts: AsyncIterable[UploadPart]) -> AsyncIterator[StagedFile]:
        """Stage the upload and delete it on every exit path."""
        staged_file = await self.stage(parts)
        try:
            yield staged_file
        finally:
            self.discard(staged_file)
