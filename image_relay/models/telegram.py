"""
Telegram Bot API Pydantic Models

Only the fields of sendPhoto and getFile responses the relay reads.
Unknown fields are ignored so API additions do not break parsing.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

ResultT = TypeVar("ResultT")


class PhotoSize(BaseModel):
    """One size variant of an uploaded photo."""

    model_config = ConfigDict(extra="ignore")

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[int] = None


class Message(BaseModel):
    """Message returned by sendPhoto; ``photo`` is ordered smallest to largest."""

    model_config = ConfigDict(extra="ignore")

    message_id: int
    photo: Optional[list[PhotoSize]] = None


class TelegramFile(BaseModel):
    """File descriptor returned by getFile."""

    model_config = ConfigDict(extra="ignore")

    file_id: str
    file_unique_id: Optional[str] = None
    file_size: Optional[int] = None
    file_path: Optional[str] = None


class ApiResponse(BaseModel, Generic[ResultT]):
    """Bot API response envelope."""

    model_config = ConfigDict(extra="ignore")

    ok: bool
    result: Optional[ResultT] = None
    description: Optional[str] = None
    error_code: Optional[int] = None
