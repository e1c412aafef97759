"""
Per-connection state and the read loop for newline-delimited streams.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

import aiohttp

from x_transport.exceptions import CancellationError

logger = logging.getLogger(__name__)

CARRIAGE_RETURN = 0x0D
LINE_FEED = 0x0A
# Private out-of-band terminator, never part of the documented framing.
SENTINEL = 0xFF


class StreamState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"


class StreamSession:
    """
    Mutable state scoped to one streaming connection.

    The body is consumed one byte at a time so that the close flag, the
    cancellation signal and the sentinel byte are all observed within a single
    read. The pending read is kept as a future so that :meth:`close` and the
    cancellation signal can interrupt a read that would otherwise block until
    the server sends more data. The same holds for the connect phase.
    """

    def __init__(
        self,
        response: aiohttp.ClientResponse | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> None:
        self.response = response
        self.cancel = cancel
        self.buffer = bytearray()
        self.closed = False
        self._pending: asyncio.Future[Any] | None = None

    def close(self) -> None:
        """Flag the session closed and interrupt any pending connect or read."""
        self.closed = True
        self._interrupt()

    async def connect(
        self, opener: Callable[[], Awaitable[aiohttp.ClientResponse]]
    ) -> bool:
        """
        Await the response produced by ``opener`` unless the session is closed first.

        Returns ``False`` when :meth:`close` ran before or during the connect;
        the close flag is reset in that case.
        """
        if self.closed:
            self.closed = False
            return False

        pending = asyncio.ensure_future(opener())
        self._pending = pending
        try:
            await asyncio.wait({pending})
        except asyncio.CancelledError:
            pending.cancel()
            await asyncio.wait({pending})
            raise
        finally:
            self._pending = None

        if pending.cancelled():
            self.closed = False
            return False
        self.response = pending.result()
        return True

    async def run(self, dispatch: Callable[[str], Awaitable[None]]) -> None:
        """
        Read frames until the stream ends, is closed, or is cancelled.

        Each LF-terminated frame is decoded as UTF-8 and awaited through
        ``dispatch`` before the next byte is read. CR and LF are never part of a
        frame. ``0xFF`` and end of body stop the loop without flushing a
        partially accumulated frame.

        Raises:
            CancellationError: when the cancellation signal fires.
        """
        if self.response is None:
            raise RuntimeError("StreamSession.run() requires a connected response.")

        watcher = (
            asyncio.ensure_future(self._watch_cancel(self.cancel)) if self.cancel else None
        )
        try:
            while not self.closed:
                self._raise_if_cancelled()
                chunk = await self._read_byte()
                self._raise_if_cancelled()
                if self.closed:
                    break
                if not chunk:
                    logger.debug("Stream body ended")
                    break

                value = chunk[0]
                if value == SENTINEL:
                    logger.debug("Stream sentinel byte received")
                    break
                if value not in (CARRIAGE_RETURN, LINE_FEED):
                    self.buffer.append(value)
                if value == LINE_FEED:
                    frame = self.buffer.decode("utf-8", errors="replace")
                    await dispatch(frame)
                    self.buffer = bytearray()
        finally:
            if watcher is not None:
                watcher.cancel()
            self._interrupt()
            self.closed = False
            self.buffer = bytearray()
            self.response.close()

    async def _read_byte(self) -> bytes | None:
        """Read one byte; ``None`` when the read was interrupted, ``b""`` at end of body."""
        pending = asyncio.ensure_future(self.response.content.read(1))
        self._pending = pending
        try:
            await asyncio.wait({pending})
        except asyncio.CancelledError:
            pending.cancel()
            raise
        finally:
            self._pending = None

        if pending.cancelled():
            return None
        return pending.result()

    async def _watch_cancel(self, cancel: asyncio.Event) -> None:
        await cancel.wait()
        self._interrupt()

    def _interrupt(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    def _raise_if_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise CancellationError("Stream cancelled by caller.")
