"""Pydantic models for staged files and Telegram Bot API payloads."""

from .staged_file import StagedFile
from .telegram import ApiResponse, Message, PhotoSize, TelegramFile

__all__ = [
    "StagedFile",
    "ApiResponse",
    "Message",
    "PhotoSize",
    "TelegramFile",
]
