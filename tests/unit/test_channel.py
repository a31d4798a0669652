"""Unit tests for the rendezvous Channel."""
import asyncio
import pytest
from fairshares.core.exceptions import ChannelClosed
from fairshares.worker.channel import Channel


@pytest.mark.asyncio
class TestChannel:
    """Test Channel hand-off semantics."""

    async def test_send_blocks_until_received(self):
        """Test send does not complete before a receiver takes the item."""
        channel = Channel("test")

        send_task = asyncio.create_task(channel.send("job-1"))
        await asyncio.sleep(0.05)

        assert not send_task.done()
        assert channel.pending_senders == 1

        item = await channel.receive()
        await asyncio.wait_for(send_task, timeout=1.0)

        assert item == "job-1"
        assert channel.sent_count == 1
        assert channel.received_count == 1

    async def test_receive_blocks_until_sent(self):
        """Test receive waits for a sender."""
        channel = Channel("test")

        receive_task = asyncio.create_task(channel.receive())
        await asyncio.sleep(0.05)
        assert not receive_task.done()

        await channel.send(42)
        assert await asyncio.wait_for(receive_task, timeout=1.0) == 42

    async def test_each_item_received_exactly_once(self):
        """Test items are neither duplicated nor lost across receivers."""
        channel = Channel("test")
        received = []

        async def receiver():
            while True:
                try:
                    received.append(await channel.receive())
                except ChannelClosed:
                    return

        receivers = [asyncio.create_task(receiver()) for _ in range(4)]

        async def sender(start):
            for i in range(start, start + 25):
                await channel.send(i)

        await asyncio.gather(*(sender(s) for s in (0, 25, 50, 75)))
        channel.close()
        await asyncio.gather(*receivers)

        assert sorted(received) == list(range(100))

    async def test_single_sender_order_preserved(self):
        """Test items from one sender arrive in send order."""
        channel = Channel("test")

        async def sender():
            for i in range(5):
                await channel.send(i)

        task = asyncio.create_task(sender())
        items = [await channel.receive() for _ in range(5)]
        await task

        assert items == [0, 1, 2, 3, 4]

    async def test_cancelled_sender_withdraws_item(self):
        """Test an item whose sender was cancelled is never delivered."""
        channel = Channel("test")

        withdrawn = asyncio.create_task(channel.send("withdrawn"))
        await asyncio.sleep(0.01)
        withdrawn.cancel()
        with pytest.raises(asyncio.CancelledError):
            await withdrawn

        kept = asyncio.create_task(channel.send("kept"))
        assert await asyncio.wait_for(channel.receive(), timeout=1.0) == "kept"
        await kept

    async def test_sender_cancelled_after_delivery_counts_send(self):
        """Test a cancel landing after the receiver took the item still counts it."""
        channel = Channel("test")

        sender = asyncio.create_task(channel.send("job"))
        await asyncio.sleep(0.01)
        assert await channel.receive() == "job"

        # The sender has not resumed yet
        sender.cancel()
        with pytest.raises(asyncio.CancelledError):
            await sender

        assert channel.sent_count == 1
        assert channel.received_count == 1

    async def test_close_fails_blocked_senders(self):
        """Test closing the channel fails senders still waiting."""
        channel = Channel("test")

        send_task = asyncio.create_task(channel.send("job"))
        await asyncio.sleep(0.01)
        channel.close()

        with pytest.raises(ChannelClosed):
            await send_task

    async def test_close_wakes_all_receivers(self):
        """Test every waiting receiver gets ChannelClosed."""
        channel = Channel("test")

        receivers = [asyncio.create_task(channel.receive()) for _ in range(3)]
        await asyncio.sleep(0.01)
        channel.close()

        results = await asyncio.gather(*receivers, return_exceptions=True)
        assert all(isinstance(r, ChannelClosed) for r in results)

    async def test_send_on_closed_channel_raises(self):
        """Test sending after close raises immediately."""
        channel = Channel("test")
        channel.close()

        assert channel.closed is True
        with pytest.raises(ChannelClosed, match="Channel test is closed"):
            await channel.send("late")
