from __future__ import annotations

import asyncio
import itertools
from collections.abc import AsyncIterator

_connection_ids = itertools.count(1)


class TransportWriteError(RuntimeError):
    pass


class ConnectionHandle:
    """One live client's write channel.

    ``write`` must not suspend; it either accepts the frame or raises
    ``TransportWriteError``. Subclasses decide where frames go.
    """

    def __init__(self) -> None:
        self.connection_id = next(_connection_ids)
        self.closed = False

    def write(self, frame: str) -> None:
        if self.closed:
            raise TransportWriteError(f"connection {self.connection_id} is closed")
        self._deliver(frame)

    def _deliver(self, frame: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}(connection_id={self.connection_id}, closed={self.closed})"


_CLOSE = object()


class QueueConnection(ConnectionHandle):
    """Buffers frames on a bounded queue drained by the streaming response."""

    def __init__(self, max_pending: int = 256) -> None:
        super().__init__()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)

    def _deliver(self, frame: str) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull as exc:
            raise TransportWriteError(f"connection {self.connection_id} is not draining frames") from exc

    def close(self) -> None:
        if self.closed:
            return
        super().close()
        try:
            self._queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # The reader checks ``closed`` after every frame.
            pass

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def frames(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield item
            if self.closed and self._queue.empty():
                return
