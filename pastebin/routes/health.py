"""
Health check route.
"""
from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from pastebin.models import HealthCheck

router = APIRouter()


@router.get("/api/healthz", response_model=HealthCheck)
async def health_check(request: Request) -> HealthCheck:
    """
    Health check endpoint.
    Returns 200 with ok=true if application and storage are healthy.
    """
    storage = request.app.state.handler.storage
    is_healthy = await run_in_threadpool(storage.is_healthy)
    return HealthCheck(ok=is_healthy, backend=storage.name)
