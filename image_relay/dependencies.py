"""FastAPI dependencies resolving the shared pipeline objects built at startup."""

from fastapi import Request

from image_relay.services.cleanup_scheduler import StaleFileSweeper
from image_relay.services.concurrency import ConcurrencyLimiter
from image_relay.services.orchestrator import UploadOrchestrator


def get_orchestrator(request: Request) -> UploadOrchestrator:
    return request.app.state.orchestrator


def get_limiter(request: Request) -> ConcurrencyLimiter:
    return request.app.state.limiter


def get_sweeper(request: Request) -> StaleFileSweeper:
    return request.app.state.sweeper
