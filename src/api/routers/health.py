"""
Health check endpoints for monitoring and diagnostics.
"""

import time
from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from ..models.common import HealthStatus
from ..dependencies.backend import get_backend_manager
from src.models.manager import BackendManager

router = APIRouter()

API_VERSION = "1.0.0"

# Track server start time for uptime calculation
_server_start_time = time.time()

@router.get("", response_model=HealthStatus)
async def health_check(backend_manager: BackendManager = Depends(get_backend_manager)):
    """
    Basic health check endpoint.

    Reports the relay as healthy when the backend answers its model listing,
    degraded otherwise. Always returns 200 so the relay itself stays probeable.
    """

    uptime = time.time() - _server_start_time
    base_url = backend_manager.config["backend"]["settings"]["base_url"]

    reachable = await run_in_threadpool(backend_manager.health_check)
    dependencies = {
        "backend": f"reachable ({base_url})" if reachable else f"unreachable ({base_url})"
    }

    return HealthStatus(
        status="healthy" if reachable else "degraded",
        version=API_VERSION,
        uptime=uptime,
        dependencies=dependencies,
        stats=backend_manager.get_stats()
    )
