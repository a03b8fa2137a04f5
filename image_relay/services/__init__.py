"""Service layer for the upload pipeline and the Telegram integration."""

from .cleanup_scheduler import StaleFileSweeper, sweep_stale_files
from .concurrency import ConcurrencyLimiter, Permit
from .orchestrator import UploadOrchestrator
from .platform_uploader import PlatformUploader
from .staging import StagingStore, sanitize_filename
from .telegram_uploader import TelegramUploader, select_largest_variant

__all__ = [
    "ConcurrencyLimiter",
    "Permit",
    "PlatformUploader",
    "StaleFileSweeper",
    "StagingStore",
    "TelegramUploader",
    "UploadOrchestrator",
    "sanitize_filename",
    "select_largest_variant",
    "sweep_stale_files",
]
