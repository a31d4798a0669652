"""Unbuffered rendezvous channel connecting producers and consumers."""
import asyncio
import logging
from typing import Generic, TypeVar
from fairshares.core.exceptions import ChannelClosed

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """
    Hand-off channel with no buffer.

    ``send`` suspends until a receiver has taken that exact item, so a
    producer can never run ahead of its consumers. Blocked senders are the
    only admission control: there is no depth limit and no timeout.

    Each item is delivered to exactly one receiver. A sender that is
    cancelled while waiting withdraws its item and it is never delivered.
    If a receiver already took the item when the cancel lands, the send
    still counts as delivered and the cancellation propagates.
    """

    def __init__(self, name: str = "channel"):
        """
        Initialize channel.

        Args:
            name: Name used in log messages
        """
        self.name = name
        # (item, delivered future) for every sender currently blocked
        self._waiting: asyncio.Queue = asyncio.Queue()
        self._closed = False

        # Metrics
        self.sent_count = 0
        self.received_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_senders(self) -> int:
        """Number of senders currently blocked on this channel."""
        return self._waiting.qsize()

    async def send(self, item: T) -> None:
        """
        Send an item and wait until a receiver takes it.

        Args:
            item: Item to hand off

        Raises:
            ChannelClosed: If the channel is, or gets, closed before delivery
        """
        if self._closed:
            raise ChannelClosed(f"Channel {self.name} is closed")

        delivered = asyncio.get_running_loop().create_future()
        self._waiting.put_nowait((item, delivered))
        try:
            await delivered
        except asyncio.CancelledError:
            if delivered.done() and not delivered.cancelled():
                # Taken before the cancel landed
                self.sent_count += 1
            else:
                delivered.cancel()
            raise
        self.sent_count += 1

    async def receive(self) -> T:
        """
        Wait for the next item from a blocked sender.

        Returns:
            The received item

        Raises:
            ChannelClosed: If the channel is closed
        """
        while True:
            entry = await self._waiting.get()
            if entry is _CLOSED:
                # Leave the marker for the other receivers
                self._waiting.put_nowait(_CLOSED)
                raise ChannelClosed(f"Channel {self.name} is closed")

            item, delivered = entry
            if delivered.done():
                # Sender withdrew
                continue

            delivered.set_result(None)
            self.received_count += 1
            return item

    def close(self) -> None:
        """
        Close the channel.

        Blocked senders fail with ChannelClosed, their items are dropped,
        and every current and future receiver gets ChannelClosed.
        """
        if self._closed:
            return
        self._closed = True

        dropped = 0
        while not self._waiting.empty():
            _item, delivered = self._waiting.get_nowait()
            if not delivered.done():
                delivered.set_exception(ChannelClosed(f"Channel {self.name} is closed"))
                dropped += 1
        self._waiting.put_nowait(_CLOSED)

        if dropped:
            logger.warning(f"Channel {self.name} closed with {dropped} undelivered items")
