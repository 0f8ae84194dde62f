from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from app.services.realtime.connections import QueueConnection
from app.services.realtime.events import retry_frame
from app.services.realtime.hub import ClaimsHub

logger = logging.getLogger(__name__)


async def stream_frames(
    hub: ClaimsHub,
    connection: QueueConnection,
    *,
    retry_ms: int,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
    """Yield server-sent event frames for one client until it goes away."""
    connection.write(retry_frame(retry_ms))
    if not hub.register(connection):
        return
    try:
        async for frame in connection.frames():
            yield frame
            if is_disconnected is not None and await is_disconnected():
                logger.debug("enquiries_stream_client_disconnected", extra={"connection_id": connection.connection_id})
                break
    finally:
        hub.unregister(connection)
