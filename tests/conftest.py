"""
Pytest configuration and fixtures
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from image_relay.config import Settings
from image_relay.main import create_app
from image_relay.services.concurrency import ConcurrencyLimiter
from image_relay.services.staging import StagingStore
from image_relay.services.telegram_uploader import TelegramUploader

TOKEN = "123456:TEST-bot-token"
CHAT_ID = -1001234567890
API_BASE = "https://api.telegram.org"
FILE_PATH = "photos/file_42.jpg"


class FakeTelegram:
    """
    Bot API stub served through httpx.MockTransport.

    sendPhoto answers with ``photo`` (omitted when None) and getFile echoes
    the requested file_id with ``file_path``. Set ``error`` to raise a
    transport exception, or the ``*_response`` attributes to return a canned
    response.
    """

    def __init__(self):
        self.photo = [
            {"file_id": "small-id", "file_unique_id": "s1", "width": 90, "height": 67, "file_size": 1200},
            {"file_id": "large-id", "file_unique_id": "l1", "width": 1280, "height": 960, "file_size": 98000},
        ]
        self.file_path = FILE_PATH
        self.error = None
        self.send_photo_response = None
        self.get_file_response = None
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.error is not None:
            raise self.error

        if request.url.path.endswith("/sendPhoto"):
            if self.send_photo_response is not None:
                return self.send_photo_response
            result = {"message_id": 7, "date": 1700000000, "chat": {"id": CHAT_ID, "type": "channel"}}
            if self.photo is not None:
                result["photo"] = self.photo
            return httpx.Response(200, json={"ok": True, "result": result})

        if request.url.path.endswith("/getFile"):
            if self.get_file_response is not None:
                return self.get_file_response
            file_id = request.url.params["file_id"]
            return httpx.Response(
                200,
                json={
                    "ok": True,
                    "result": {
                        "file_id": file_id,
                        "file_unique_id": "u1",
                        "file_size": 98000,
                        "file_path": self.file_path,
                    },
                },
            )

        return httpx.Response(404, json={"ok": False, "error_code": 404, "description": "Not Found"})

    def calls(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(f"/{method}")]


class FakePart:
    """Multipart file part yielding ``chunks`` then raising ``error`` if set."""

    def __init__(self, filename, chunks=(b"\x89PNG fake image bytes",), error=None):
        self.filename = filename
        self._chunks = list(chunks)
        self._error = error

    async def read(self, size: int = -1) -> bytes:
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        return b""


@pytest.fixture
def fake_telegram():
    return FakeTelegram()


@pytest.fixture
def http_client(fake_telegram):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_telegram.handler))


@pytest.fixture
def uploader(http_client):
    return TelegramUploader(TOKEN, http_client, api_base=API_BASE, timeout=5.0)


@pytest.fixture
def settings(tmp_path):
    """Settings with a per-test staging directory"""
    return Settings(
        TELEGRAM_BOT_TOKEN=TOKEN,
        CHAT_ID=CHAT_ID,
        MAX_CONCURRENT_UPLOADS=2,
        STAGING_DIR=str(tmp_path / "staging"),
        UPSTREAM_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def store(staging_dir):
    return StagingStore(staging_dir)


@pytest.fixture
def limiter():
    return ConcurrencyLimiter(2)


@pytest.fixture
def make_part():
    """Factory for fake multipart file parts"""
    return FakePart


@pytest.fixture
def make_parts():
    """Factory turning parts into the async iterable the pipeline consumes"""

    def _make_parts(*parts):
        async def _iterate():
            for part in parts:
                yield part

        return _iterate()

    return _make_parts


@pytest.fixture
def client(settings, uploader):
    """FastAPI test client fixture with the application lifespan running"""
    app = create_app(settings, uploader)
    with TestClient(app) as test_client:
        yield test_client
