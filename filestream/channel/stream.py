"""
TCP Stream Channel

Design Decision: Framing over TCP
=================================

Options Considered:
1. Newline-delimited JSON
   - Cannot carry binary chunk payloads without base64
2. WebSocket
   - Has text/binary frames built in, but an extra dependency for a LAN tool
3. Length-prefixed frames with a kind byte
   - Lightweight, preserves the text/binary split of a data channel

Decision: Length-Prefixed Frames
- 4-byte big-endian body length + 1-byte kind + body
- kind 0 = text (UTF-8 control frame), kind 1 = binary (chunk payload)

Frame Format:
```
+----------------+----------+------------------+
| Length (4B)    | Kind (1B)| Body             |
+----------------+----------+------------------+
```

Backpressure maps onto asyncio's transport flow control: the buffered
amount is the transport write-buffer size and the low-watermark wait is
``set_write_buffer_limits`` followed by ``drain()``.
"""

import asyncio
import logging
import struct
from typing import Awaitable, Callable, Optional, Tuple

from .base import Channel, Frame
from ..errors import ChannelClosed

logger = logging.getLogger(__name__)

FRAME_HEADER = struct.Struct('>IB')
KIND_TEXT = 0
KIND_BINARY = 1
MAX_FRAME_SIZE = 100 * 1024 * 1024  # 100MB


def encode_frame(frame: Frame) -> bytes:
    """Wrap a text or binary frame for the byte stream."""
    if isinstance(frame, str):
        body = frame.encode('utf-8')
        kind = KIND_TEXT
    else:
        body = bytes(frame)
        kind = KIND_BINARY
    return FRAME_HEADER.pack(len(body), kind) + body


class StreamChannel(Channel):
    """
    Message channel over an asyncio stream pair.

    Only one task may call ``receive()``; ``send()`` never blocks.
    """

    def __init__(self, reader: asyncio.StreamReader,
                 writer: asyncio.StreamWriter):
        super().__init__()
        self.reader = reader
        self.writer = writer
        self._closed = False

    @property
    def remote_address(self) -> Tuple[str, int]:
        """Get remote peer address."""
        return self.writer.get_extra_info('peername')

    @property
    def is_open(self) -> bool:
        return not self._closed and not self.writer.is_closing()

    @property
    def buffered_amount(self) -> int:
        if self.writer.transport is None:
            return 0
        return self.writer.transport.get_write_buffer_size()

    def send(self, frame: Frame) -> None:
        if not self.is_open:
            raise ChannelClosed("Connection closed")
        self.writer.write(encode_frame(frame))

    async def wait_buffered_amount_low(self) -> None:
        threshold = self.buffered_amount_low_threshold
        self.writer.transport.set_write_buffer_limits(high=threshold, low=threshold)
        try:
            await self.writer.drain()
        except (ConnectionError, RuntimeError) as e:
            self._closed = True
            raise ChannelClosed(f"Connection lost while draining: {e}") from e

    async def receive(self) -> Optional[Frame]:
        """Read the next frame, or None once the peer has gone away."""
        if self._closed:
            return None

        try:
            header = await self.reader.readexactly(FRAME_HEADER.size)
            length, kind = FRAME_HEADER.unpack(header)

            # Sanity check
            if length > MAX_FRAME_SIZE:
                raise ValueError(f"Frame too large: {length}")
            if kind not in (KIND_TEXT, KIND_BINARY):
                raise ValueError(f"Unknown frame kind: {kind}")

            body = await self.reader.readexactly(length) if length else b''

        except asyncio.IncompleteReadError:
            self._closed = True
            return None
        except (ConnectionError, ValueError) as e:
            logger.error(f"Error reading frame: {e}")
            self._closed = True
            return None

        if kind == KIND_TEXT:
            return body.decode('utf-8', errors='replace')
        return body

    async def close(self) -> None:
        """Close the connection."""
        if not self._closed:
            self._closed = True
            self._wake_waiters()
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except ConnectionError:
                pass


ChannelHandler = Callable[[StreamChannel], Awaitable[None]]


class ChannelServer:
    """
    TCP server that hands every accepted connection to a handler.

    The connection is closed when the handler returns.
    """

    def __init__(self, handler: ChannelHandler, host: str = '0.0.0.0',
                 port: int = 8470):
        self.host = host
        self.port = port
        self.handler = handler
        self.server: Optional[asyncio.AbstractServer] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.sockets[0].getsockname()[:2]

    async def start(self):
        """Start listening."""
        self.server = await asyncio.start_server(
            self._handle_connection,
            self.host,
            self.port
        )
        logger.info(f"Channel server listening on {self.address}")

    async def stop(self):
        """Stop listening."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info("Channel server stopped")

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        channel = StreamChannel(reader, writer)
        peer = channel.remote_address
        logger.info(f"New connection from {peer}")

        try:
            await self.handler(channel)
        except Exception as e:
            logger.error(f"Error handling connection from {peer}: {e}")
        finally:
            await channel.close()
            logger.debug(f"Connection closed: {peer}")


async def connect_channel(host: str, port: int,
                          timeout: float = 10.0) -> Optional[StreamChannel]:
    """
    Connect to a peer's channel server.

    Returns:
        StreamChannel, or None if connection failed
    """
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout
        )
        return StreamChannel(reader, writer)
    except (OSError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to connect to {host}:{port}: {e}")
        return None
