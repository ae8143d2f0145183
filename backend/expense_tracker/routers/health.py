from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from expense_tracker import __version__


router = APIRouter()

_STARTED = time.monotonic()


@router.get("/health", response_model=dict)
async def health() -> dict:
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED, 3),
        "version": __version__,
    }
