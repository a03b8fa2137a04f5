"""
Upload API Route

Relays an uploaded image to Telegram and answers with its public URL.
"""

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.datastructures import FormData, UploadFile

from image_relay.dependencies import get_orchestrator
from image_relay.middleware.error_handler import RelayError, error_response
from image_relay.services.orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


async def iter_file_parts(form: FormData) -> AsyncIterator[UploadFile]:
    """Yield the file parts of a parsed multipart form in request order."""
    for _, value in form.multi_items():
        if isinstance(value, UploadFile):
            yield value


@router.post(
    "/upload",
    response_class=PlainTextResponse,
    summary="Upload Image",
    description="""
Upload an image and receive a public URL hosted by Telegram.

**Request:** `multipart/form-data` with one file part (any field name).
Only the first file part is relayed.

**Response:** The public URL as plain text.
""",
    responses={
        200: {
            "description": "Image relayed",
            "content": {
                "text/plain": {
                    "example": "https://api.telegram.org/file/bot<token>/photos/file_0.jpg"
                }
            },
        },
        400: {"description": "No file part or empty file"},
        500: {"description": "Failed to save the file locally"},
        502: {"description": "Telegram rejected the upload or replied without media"},
        504: {"description": "Telegram did not respond in time"},
    },
)
async def upload_image(
    request: Request,
    orchestrator: UploadOrchestrator = Depends(get_orchestrator),
) -> PlainTextResponse:
    """
    Stage, forward and clean up one uploaded image.

    Every pipeline failure is answered here with its own status code and a
    plain-text message; nothing propagates past the request.
    """
    logger.debug(f"Starting upload process for chat ID: {orchestrator.destination}")

    form = await request.form()
    try:
        url = await orchestrator.handle(iter_file_parts(form))
    except RelayError as e:
        if e.status_code < 500:
            logger.warning(f"Rejected upload: {e.message}")
        else:
            logger.error(f"Upload failed: {e.message}")
        return error_response(e)
    finally:
        await form.close()

    logger.debug(f"Successfully uploaded image to Telegram, URL path: {url.rsplit('/', 1)[-1]}")
    return PlainTextResponse(url)
