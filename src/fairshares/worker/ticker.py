"""Ticker producers: periodically turn tracked addresses into fetch jobs."""
import asyncio
import logging
from typing import List, Optional, Protocol, Sequence
from fairshares.core.enums import JobType
from fairshares.core.exceptions import ChannelClosed
from fairshares.worker.channel import Channel
from fairshares.worker.models import Job

logger = logging.getLogger(__name__)


class AddressDirectory(Protocol):
    def get_addresses(self, pool_name: str) -> List[str]: ...


class JobTicker:
    """
    Emits one job per tracked address on a fixed interval.

    Fire times lie on a fixed grid. A tick that is held up by a blocked
    channel delays the following ticks but never drops or merges them:
    overdue ticks run back to back.
    """

    def __init__(
        self,
        name: str,
        job_type: JobType,
        interval: float,
        pool_names: Sequence[str],
        address_directory: AddressDirectory,
        jobs: Channel[Job],
        fire_on_start: bool = False,
    ):
        """
        Initialize ticker.

        Args:
            name: Ticker name used in logs
            job_type: Type of the jobs emitted
            interval: Seconds between fires
            pool_names: Pools to enumerate on each fire
            address_directory: Source of tracked addresses per pool
            jobs: Channel the jobs are sent to
            fire_on_start: Fire immediately instead of after one interval
        """
        self.name = name
        self.job_type = job_type
        self.interval = interval
        self.pool_names = list(pool_names)
        self.address_directory = address_directory
        self.jobs = jobs
        self.fire_on_start = fire_on_start

        self.is_running = False
        self.ticks = 0
        self._stop_event = asyncio.Event()
        self._tick_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Run the ticker until stopped or the job channel is closed."""
        self.is_running = True
        logger.info(f"run {self.name} ticker (interval: {self.interval}s)")
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + (0 if self.fire_on_start else self.interval)

        try:
            while not self._stop_event.is_set():
                if not await self._wait_until(next_fire):
                    break

                self._tick_task = asyncio.ensure_future(self.tick())
                try:
                    await self._tick_task
                except asyncio.CancelledError:
                    if asyncio.current_task().cancelling():
                        raise
                    break  # Tick cancelled by stop()
                except ChannelClosed:
                    logger.info(f"{self.name} ticker: job channel closed")
                    break
                finally:
                    self._tick_task = None

                next_fire += self.interval
        finally:
            self.is_running = False
            logger.info(f"{self.name} ticker stopped")

    async def _wait_until(self, deadline: float) -> bool:
        """Sleep until ``deadline`` (loop time). Returns False if stopped first."""
        delay = max(0.0, deadline - asyncio.get_running_loop().time())
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    async def stop(self) -> None:
        """Stop the ticker, abandoning a tick blocked on the job channel."""
        self._stop_event.set()
        if self._tick_task is not None:
            self._tick_task.cancel()

    async def tick(self) -> int:
        """
        Enumerate addresses of every pool and send one job per address.

        A pool whose addresses cannot be listed is skipped for this tick.

        Returns:
            int: Number of jobs sent
        """
        self.ticks += 1
        sent = 0
        for pool_name in self.pool_names:
            try:
                addresses = await asyncio.to_thread(
                    self.address_directory.get_addresses, pool_name
                )
            except Exception as e:
                logger.error(f"{self.name} ticker: listing addresses of {pool_name} failed: {e}")
                continue

            for address in addresses:
                try:
                    job = Job(poolname=pool_name, address=address, type=self.job_type)
                except ValueError as e:
                    logger.warning(f"{self.name} ticker: skipping address {address!r}: {e}")
                    continue
                await self.jobs.send(job)
                sent += 1

        logger.debug(f"{self.name} ticker: tick {self.ticks} sent {sent} jobs")
        return sent
