"""
One connected client on the push channel.

Events are never written to the transport directly: they go into the connection's outbox (an asyncio.Queue)
and a single sender loop drains it in order. A slow client therefore never holds up a broadcast.
"""

import asyncio
from typing import Awaitable, Callable, Optional
from uuid import uuid4

from loguru import logger

from src.realtime.protocol import OutboundEvent, encode

Transport = Callable[[str], Awaitable[None]]


class Connection:
    def __init__(self, connection_id: Optional[str] = None) -> None:
        self.connection_id = connection_id or uuid4().hex
        self.identity: Optional[str] = None
        self.outbox: asyncio.Queue[Optional[OutboundEvent]] = asyncio.Queue()
        self.closed = False

    def __repr__(self) -> str:
        return f"Connection({self.connection_id!r}, identity={self.identity!r})"

    def send(self, event: OutboundEvent) -> None:
        """Queue an event. Events sent after close are dropped."""
        if self.closed:
            return
        self.outbox.put_nowait(event)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # sentinel: stops the sender loop once everything before it got written
        self.outbox.put_nowait(None)

    def pending(self) -> list[OutboundEvent]:
        """Take every queued event without waiting (used when there is no sender loop, ex. in tests)."""
        events: list[OutboundEvent] = []
        while not self.outbox.empty():
            event = self.outbox.get_nowait()
            if event is not None:
                events.append(event)
        return events

    async def drain(self, transport: Transport) -> None:
        """Sender loop: write queued events to the transport until the connection closes."""
        while True:
            event = await self.outbox.get()
            if event is None:
                return
            try:
                await transport(encode(event))
            except Exception as exc:
                # the peer is gone, nothing else can be delivered
                logger.debug(f"{self!r}: dropping outbox after failed write: {exc}")
                self.closed = True
                return
