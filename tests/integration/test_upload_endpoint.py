"""
Integration Tests for Upload Endpoint

Tests the complete relay flow: multipart request, staging, forwarding to the
Bot API stub, cleanup and the plain-text response.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import API_BASE, CHAT_ID, FILE_PATH, TOKEN
from image_relay.main import create_app
from image_relay.services.platform_uploader import PlatformUploader

PNG_BYTES = b"\x89PNG\r\n\x1a\n fake image payload"
EXPECTED_URL = f"{API_BASE}/file/bot{TOKEN}/{FILE_PATH}"


def test_successful_upload(client, fake_telegram, staging_dir):
    """Test successful upload returns the public URL as plain text."""
    response = client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == EXPECTED_URL

    # Staged file was forwarded and then removed
    [send] = fake_telegram.calls("sendPhoto")
    assert PNG_BYTES in send.content
    assert list(staging_dir.iterdir()) == []


def test_any_field_name_is_accepted(client):
    response = client.post("/upload", files={"image": ("cat.jpg", b"jpeg", "image/jpeg")})

    assert response.status_code == 200
    assert response.text == EXPECTED_URL


def test_largest_variant_is_used(client, fake_telegram):
    """Test the last (largest) size variant is resolved, not the first."""
    response = client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})

    assert response.status_code == 200
    [get_file] = fake_telegram.calls("getFile")
    assert get_file.url.params["file_id"] == "large-id"


def test_empty_body(client, fake_telegram, staging_dir):
    """Test request without a body is rejected as an empty upload."""
    response = client.post("/upload")

    assert response.status_code == 400
    assert "Empty upload" in response.text
    assert fake_telegram.requests == []
    assert list(staging_dir.iterdir()) == []


def test_form_without_file_part(client, fake_telegram, staging_dir):
    response = client.post("/upload", data={"caption": "no file here"})

    assert response.status_code == 400
    assert "Empty upload" in response.text
    assert fake_telegram.requests == []


def test_zero_byte_file(client, fake_telegram, staging_dir):
    response = client.post("/upload", files={"file": ("empty.png", b"", "image/png")})

    assert response.status_code == 400
    assert "empty" in response.text.lower()
    assert fake_telegram.requests == []
    assert list(staging_dir.iterdir()) == []


def test_only_first_file_is_relayed(client, fake_telegram, staging_dir):
    response = client.post(
        "/upload",
        files=[
            ("file", ("first.png", b"first image", "image/png")),
            ("file", ("second.png", b"second image", "image/png")),
        ],
    )

    assert response.status_code == 200
    [send] = fake_telegram.calls("sendPhoto")
    assert b"first image" in send.content
    assert b"second image" not in send.content
    assert list(staging_dir.iterdir()) == []


def test_path_traversal_filename(client, fake_telegram, staging_dir, tmp_path):
    """Test traversal in the filename stays inside the staging directory."""
    response = client.post("/upload", files={"file": ("../../etc/passwd", PNG_BYTES, "image/png")})

    assert response.status_code == 200
    [send] = fake_telegram.calls("sendPhoto")
    assert b'_passwd"' in send.content
    assert b"../" not in send.content
    assert not (tmp_path / "etc").exists()
    assert list(staging_dir.iterdir()) == []


def test_no_photo_in_response(client, fake_telegram, staging_dir):
    """Test success envelope without media maps to 502 and still cleans up."""
    fake_telegram.photo = None

    response = client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})

    assert response.status_code == 502
    assert "no photo" in response.text
    assert list(staging_dir.iterdir()) == []


def test_empty_photo_list(client, fake_telegram, staging_dir):
    fake_telegram.photo = []

    response = client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})

    assert response.status_code == 502
    assert "empty" in response.text
    assert list(staging_dir.iterdir()) == []


def test_upstream_rejection(client, fake_telegram, staging_dir):
    fake_telegram.send_photo_response = httpx.Response(
        400, json={"ok": False, "error_code": 400, "description": "Bad Request: PHOTO_INVALID_DIMENSIONS"}
    )

    response = client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})

    assert response.status_code == 502
    assert "PHOTO_INVALID_DIMENSIONS" in response.text
    assert TOKEN not in response.text
    assert list(staging_dir.iterdir()) == []


def test_upstream_timeout(client, fake_telegram, staging_dir):
    fake_telegram.error = httpx.ConnectTimeout("connect timed out")

    response = client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})

    assert response.status_code == 504
    assert list(staging_dir.iterdir()) == []


def test_unexpected_error_is_contained(settings, staging_dir):
    """Test a fault outside the error taxonomy becomes a 500 without leaking files."""

    class BrokenUploader(PlatformUploader):
        @property
        def platform_name(self):
            return "broken"

        async def upload(self, file_path, destination):
            raise KeyError("unexpected")

    with TestClient(create_app(settings, BrokenUploader())) as client:
        response = client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})
        assert response.status_code == 500
        assert response.text == "Internal server error"

        # The process keeps serving
        assert client.get("/health").status_code == 200

    assert list(staging_dir.iterdir()) == []


def test_sequential_uploads_release_slots(client):
    for i in range(5):
        response = client.post("/upload", files={"file": (f"photo_{i}.png", PNG_BYTES, "image/png")})
        assert response.status_code == 200

    uploads = client.get("/health").json()["uploads"]
    assert uploads["in_flight"] == 0
    assert 1 <= uploads["peak"] <= uploads["capacity"] == 2


def test_destination_chat_is_configured_chat(client, fake_telegram):
    client.post("/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")})

    [send] = fake_telegram.calls("sendPhoto")
    assert str(CHAT_ID).encode() in send.content


@pytest.mark.parametrize("path", ["/upload"])
def test_get_not_allowed(client, path):
    assert client.get(path).status_code == 405
