"""
Telegram uploader.

Sends a staged photo to a chat with sendPhoto, picks the largest size
variant from the reply, resolves its file path with getFile and builds the
public download URL. Each Bot API call, body included, must finish within
the timeout; failures are not retried here.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, SecretStr, ValidationError

from image_relay.config import Settings
from image_relay.middleware.error_handler import (
    EmptyMediaSet,
    NoMediaInResponse,
    UpstreamError,
    UpstreamTimeout,
)
from image_relay.models.telegram import ApiResponse, Message, PhotoSize, TelegramFile

from .platform_uploader import PlatformUploader

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

REDACTED = "***"


def select_largest_variant(message: Message) -> PhotoSize:
    """
    Pick the highest fidelity size variant of a sent photo.

    Telegram orders ``photo`` from smallest to largest, so the last entry wins.

    Raises:
        NoMediaInResponse: If the message has no photo
        EmptyMediaSet: If the photo size list is empty
    """
    if message.photo is None:
        raise NoMediaInResponse()
    if not message.photo:
        raise EmptyMediaSet()
    return message.photo[-1]


class TelegramUploader(PlatformUploader):
    """Uploads photos through the Telegram Bot API."""

    def __init__(
        self,
        token: SecretStr | str,
        client: httpx.AsyncClient,
        api_base: str = "https://api.telegram.org",
        timeout: float = 30.0,
    ):
        """
        Initialize TelegramUploader.

        Args:
            token: Bot token; only used in request URLs and the final file URL
            client: Shared HTTP client, owned by the caller
            api_base: Bot API base URL
            timeout: Timeout in seconds for each Bot API call
        """
        self._token = token if isinstance(token, SecretStr) else SecretStr(token)
        self.client = client
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient) -> "TelegramUploader":
        return cls(
            token=settings.TELEGRAM_BOT_TOKEN,
            client=client,
            api_base=settings.TELEGRAM_API_BASE,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )

    @property
    def platform_name(self) -> str:
        return "telegram"

    def __repr__(self) -> str:
        return f"TelegramUploader(api_base={self.api_base!r}, timeout={self.timeout})"

    async def upload(self, file_path: Path, destination: int | str) -> str:
        file_path = Path(file_path)
        logger.debug(f"Uploading file: {file_path.name} to Telegram chat: {destination}")

        with open(file_path, "rb") as photo:
            message = await self._call(
                "sendPhoto",
                Message,
                data={"chat_id": str(destination)},
                files={"photo": (file_path.name, photo)},
            )

        variant = select_largest_variant(message)
        logger.debug(
            f"File uploaded to Telegram, received file ID: {variant.file_id} "
            f"({variant.width}x{variant.height})"
        )

        telegram_file = await self._call(
            "getFile",
            TelegramFile,
            http_method="GET",
            params={"file_id": variant.file_id},
        )
        if not telegram_file.file_path:
            raise UpstreamError("getFile response has no file_path")

        logger.debug(f"Resolved Telegram file path: {telegram_file.file_path}")
        return self.file_url(telegram_file.file_path)

    def file_url(self, file_path: str) -> str:
        """Public download URL for a file path returned by getFile."""
        return f"{self.api_base}/file/bot{self._token.get_secret_value()}/{file_path.lstrip('/')}"

    def _method_url(self, method: str) -> str:
        return f"{self.api_base}/bot{self._token.get_secret_value()}/{method}"

    def _scrub(self, text: str) -> str:
        return text.replace(self._token.get_secret_value(), REDACTED)

    async def _call(
        self,
        method: str,
        result_model: type[ModelT],
        http_method: str = "POST",
        **kwargs: Any,
    ) -> ModelT:
        """
        Call a Bot API method and return its validated ``result``.

        Raises:
            UpstreamTimeout: If the call exceeds the timeout
            UpstreamError: On transport errors, non-2xx responses,
                           ``ok: false`` envelopes and malformed bodies
        """
        try:
            # httpx times each connect/read/write step, not the whole exchange
            response = await asyncio.wait_for(
                self.client.request(
                    http_method,
                    self._method_url(method),
                    timeout=self.timeout,
                    **kwargs,
                ),
                self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.error(f"Telegram {method} timed out after {self.timeout}s")
            raise UpstreamTimeout(self.timeout)
        except httpx.HTTPError as e:
            reason = self._scrub(f"{method} request failed: {type(e).__name__}: {e}")
            logger.error(f"Telegram {reason}")
            raise UpstreamError(reason)

        try:
            envelope = ApiResponse[result_model].model_validate_json(response.content)
        except ValidationError:
            if not response.is_success:
                logger.error(f"Telegram {method} returned HTTP {response.status_code}")
                raise UpstreamError(
                    f"{method} returned HTTP {response.status_code}",
                    upstream_status=response.status_code,
                )
            logger.error(f"Telegram {method} returned a malformed response")
            raise UpstreamError(f"malformed {method} response")

        if not response.is_success or not envelope.ok:
            description = envelope.description or f"HTTP {response.status_code}"
            reason = self._scrub(f"{method} failed: {description}")
            logger.error(f"Telegram {reason}")
            raise UpstreamError(reason, upstream_status=response.status_code)

        if envelope.result is None:
            logger.error(f"Telegram {method} response has no result")
            raise UpstreamError(f"{method} response has no result")

        return envelope.result
