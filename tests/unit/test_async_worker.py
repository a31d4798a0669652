"""Unit tests for AsyncWorker dispatch and pacing."""
import asyncio
import time
import pytest
from fairshares.core.enums import JobType
from fairshares.core.exceptions import FatalNotificationError
from fairshares.worker.async_worker import AsyncWorker
from fairshares.worker.channel import Channel
from fairshares.worker.handler_registry import HandlerRegistry
from fairshares.worker.job_executor import JobExecutor
from fairshares.worker.models import Job


def balance_job(address="0xABC"):
    return Job(poolname="flexpool", address=address, type=JobType.FETCH_BALANCE)


def make_executor(handler):
    registry = HandlerRegistry()
    registry.register_handler(JobType.FETCH_BALANCE, handler)
    return JobExecutor(registry)


async def send_all(channel, jobs):
    for job in jobs:
        await channel.send(job)


@pytest.mark.asyncio
class TestAsyncWorker:
    """Test AsyncWorker behaviour."""

    async def test_worker_starts_and_stops_gracefully(self):
        """Test worker can start and stop without errors."""

        async def handler(job):
            return None

        worker = AsyncWorker("test-worker-1", Channel("jobs"), make_executor(handler), job_pacing=0.01)

        worker_task = asyncio.create_task(worker.start())
        await asyncio.sleep(0.05)
        assert worker.is_running is True

        await worker.stop()
        await asyncio.wait_for(worker_task, timeout=1.0)

        assert worker.is_running is False

    async def test_pacing_between_dequeues(self):
        """Test successive dequeues are at least job_pacing apart."""
        dequeued_at = []

        async def handler(job):
            dequeued_at.append(time.monotonic())

        jobs = Channel("jobs")
        worker = AsyncWorker("test-worker-2", jobs, make_executor(handler), job_pacing=0.2)
        worker_task = asyncio.create_task(worker.start())

        await asyncio.wait_for(
            send_all(jobs, [balance_job("0x1"), balance_job("0x2"), balance_job("0x3")]),
            timeout=3.0,
        )
        await asyncio.sleep(0.05)
        await worker.stop()
        await worker_task

        assert len(dequeued_at) == 3
        gaps = [b - a for a, b in zip(dequeued_at, dequeued_at[1:])]
        assert all(gap >= 0.19 for gap in gaps)

    async def test_dispatch_does_not_wait_for_fetch(self):
        """Test in-flight fetches can exceed the single worker."""
        release = asyncio.Event()
        started = []

        async def handler(job):
            started.append(job.address)
            await release.wait()

        jobs = Channel("jobs")
        worker = AsyncWorker("test-worker-3", jobs, make_executor(handler), job_pacing=0.01)
        worker_task = asyncio.create_task(worker.start())

        await asyncio.wait_for(send_all(jobs, [balance_job(f"0x{i}") for i in range(3)]), timeout=1.0)
        await asyncio.sleep(0.05)

        assert started == ["0x0", "0x1", "0x2"]
        assert worker.in_flight == 3

        release.set()
        await worker.stop()
        await worker_task
        assert worker.jobs_succeeded == 3

    async def test_max_in_flight_bounds_running_fetches(self):
        """Test the worker stops dequeuing while at its in-flight limit."""
        release = asyncio.Event()

        async def handler(job):
            await release.wait()

        jobs = Channel("jobs")
        worker = AsyncWorker(
            "test-worker-4", jobs, make_executor(handler), job_pacing=0.01, max_in_flight=2
        )
        worker_task = asyncio.create_task(worker.start())

        sender = asyncio.create_task(send_all(jobs, [balance_job(f"0x{i}") for i in range(3)]))
        await asyncio.sleep(0.1)

        assert worker.in_flight == 2
        assert not sender.done()

        release.set()
        await asyncio.wait_for(sender, timeout=1.0)
        await worker.stop()
        await worker_task
        assert worker.jobs_processed == 3

    async def test_results_published(self):
        """Test one Result per job reaches the result channel."""

        async def handler(job):
            if job.address == "0xBAD":
                raise RuntimeError("boom")

        jobs = Channel("jobs")
        results = Channel("results")
        worker = AsyncWorker(
            "test-worker-5", jobs, make_executor(handler), results=results, job_pacing=0.01
        )
        worker_task = asyncio.create_task(worker.start())

        sender = asyncio.create_task(send_all(jobs, [balance_job("0xGOOD"), balance_job("0xBAD")]))
        received = [await asyncio.wait_for(results.receive(), timeout=1.0) for _ in range(2)]
        await sender

        outcome = {r.job.address: r.success for r in received}
        assert outcome == {"0xGOOD": True, "0xBAD": False}
        assert worker.jobs_succeeded == 1
        assert worker.jobs_failed == 1

        await worker.stop()
        await worker_task

    async def test_stop_cancels_stuck_fetches(self, caplog):
        """Test fetches still running after the stop timeout are cancelled."""

        async def handler(job):
            await asyncio.sleep(10)

        jobs = Channel("jobs")
        worker = AsyncWorker("test-worker-6", jobs, make_executor(handler), job_pacing=0.01)
        worker_task = asyncio.create_task(worker.start())

        await jobs.send(balance_job())
        await asyncio.sleep(0.02)
        assert worker.in_flight == 1

        await worker.stop(timeout=0.1)
        await worker_task
        await asyncio.sleep(0.01)

        assert worker.in_flight == 0
        assert "cancelling" in caplog.text

    async def test_fatal_error_reported(self):
        """Test a fatal notification failure reaches on_fatal."""
        fatal = []

        async def handler(job):
            raise FatalNotificationError("mailjet down")

        jobs = Channel("jobs")
        worker = AsyncWorker(
            "test-worker-7",
            jobs,
            make_executor(handler),
            job_pacing=0.01,
            on_fatal=fatal.append,
        )
        worker_task = asyncio.create_task(worker.start())

        await jobs.send(balance_job())
        await asyncio.sleep(0.05)
        await worker.stop()
        await worker_task

        assert len(fatal) == 1
        assert isinstance(fatal[0], FatalNotificationError)

    async def test_worker_exits_when_channel_closed(self):
        async def handler(job):
            return None

        jobs = Channel("jobs")
        worker = AsyncWorker("test-worker-8", jobs, make_executor(handler), job_pacing=0.01)
        worker_task = asyncio.create_task(worker.start())
        await asyncio.sleep(0.01)

        jobs.close()
        await asyncio.wait_for(worker_task, timeout=1.0)
        assert worker.is_running is False
