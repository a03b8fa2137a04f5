"""
Upload Orchestrator

Runs one upload request through the pipeline:
stage -> acquire slot -> forward -> release slot -> delete staged file.
"""

import logging
from typing import AsyncIterable

from .concurrency import ConcurrencyLimiter
from .platform_uploader import PlatformUploader
from .staging import StagingStore, UploadPart

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Composes the staging store, concurrency limiter and platform uploader.

    The slot is released before the staged file is deleted, and both happen
    whether forwarding succeeded or raised. Errors are RelayError subclasses
    and propagate to the caller unchanged; a failed deletion is only logged.
    """

    def __init__(
        self,
        store: StagingStore,
        limiter: ConcurrencyLimiter,
        uploader: PlatformUploader,
        destination: int | str,
    ):
        self.store = store
        self.limiter = limiter
        self.uploader = uploader
        self.destination = destination

    async def handle(self, parts: AsyncIterable[UploadPart]) -> str:
        """
        Stage an upload, forward it and return the public URL.

        Args:
            parts: Parts of the multipart request body

        Returns:
            str: Public URL of the uploaded image

        Raises:
            EmptyUpload: If the request has no usable file part
            StagingIOError: If the file cannot be written locally
            NoMediaInResponse: If the platform reply has no media
            EmptyMediaSet: If the platform reply has an empty media list
            UpstreamError: On transport or API failures
        """
        async with self.store.staged(parts) as staged_file:
            logger.debug(f"File saved locally at: {staged_file.path}")

            async with self.limiter.slot():
                url = await self.uploader.upload(staged_file.local_path, self.destination)

        logger.info(f"Forwarded {staged_file.filename} to {self.uploader.platform_name}")
        return url
