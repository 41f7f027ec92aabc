# venue_backoffice/routes/health.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import logging
import time

from venue_backoffice.utils.auth import get_backend

router = APIRouter(tags=["health"])


@router.get("/health")
@router.head("/health")
async def health_check(backend=Depends(get_backend)):
    """Liveness plus one round trip to the Supabase tables; 503 when they cannot be reached."""
    try:
        backend.ping()
    except Exception as e:
        logging.error(f"Health check could not reach Supabase: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "backend": "unreachable", "timestamp": time.time()},
        )
    return {"status": "ok", "backend": "reachable", "timestamp": time.time()}
