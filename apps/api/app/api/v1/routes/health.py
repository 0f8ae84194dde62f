from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_claims_hub
from app.services.realtime.hub import ClaimsHub

router = APIRouter(tags=["health"])


@router.get("/health")
def health(hub: ClaimsHub = Depends(get_claims_hub)) -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "live_connections": hub.live_count,
        "claim_watcher_running": bool(hub.watcher and hub.watcher.running),
    }
