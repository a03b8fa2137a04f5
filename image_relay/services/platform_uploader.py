"""
PlatformUploader abstraction layer for media hosting backends.

Defines the interface the upload orchestrator forwards staged files through,
so the Telegram implementation can be swapped for a stub in tests.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class PlatformUploader(ABC):
    """
    Abstract base class for platform uploaders.

    Implementations:
    - TelegramUploader: Telegram Bot API (sendPhoto + getFile)
    """

    @abstractmethod
    async def upload(self, file_path: Path, destination: int | str) -> str:
        """
        Upload a local file and resolve its public URL.

        Args:
            file_path: Path of the staged file
            destination: Platform-specific destination (Telegram chat id)

        Returns:
            str: Public URL of the uploaded media

        Raises:
            NoMediaInResponse: If the response carries no media reference
            EmptyMediaSet: If the media reference list is empty
            UpstreamError: For transport, timeout and API-level failures
        """
        pass

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """
        Return platform identifier for logs and health output.

        Returns:
            str: Platform name, e.g. "telegram"
        """
        pass
