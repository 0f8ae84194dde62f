from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.api.v1.deps import get_claims_hub, get_settings_dep
from app.services.realtime.connections import QueueConnection
from app.services.realtime.hub import ClaimsHub
from app.services.realtime.stream import stream_frames

router = APIRouter(prefix="/enquiries", tags=["stream"])

_STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/stream")
async def enquiries_stream(
    request: Request,
    hub: ClaimsHub = Depends(get_claims_hub),
    settings=Depends(get_settings_dep),
) -> StreamingResponse:
    connection = QueueConnection(max_pending=settings.stream_max_pending_frames)
    frames = stream_frames(
        hub,
        connection,
        retry_ms=settings.stream_retry_ms,
        is_disconnected=request.is_disconnected,
    )
    return StreamingResponse(frames, media_type="text/event-stream", headers=_STREAM_HEADERS)
