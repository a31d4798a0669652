"""Fetch handlers: one remote call plus its follow-up for each job type."""
import asyncio
import logging
from typing import Awaitable, List, Protocol, Sequence, TypeVar
from fairshares.core.enums import JobType
from fairshares.worker.channel import Channel
from fairshares.worker.handler_registry import HandlerRegistry
from fairshares.worker.models import ChartPoint, Job, PoolWorker

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FetchGateway(Protocol):
    """Remote pool API operations."""

    async def list_workers(self, address: str) -> List[PoolWorker]: ...

    async def get_chart(self, address: str, worker_name: str) -> List[ChartPoint]: ...

    async def get_balance(self, address: str) -> int: ...


class ResultSink(Protocol):
    """Storage for fetched data. Must serialize its own writes."""

    def save_worker_chart(
        self, pool_name: str, address: str, worker_name: str, chart: Sequence[ChartPoint]
    ) -> int: ...

    def save_balance(self, pool_name: str, address: str, balance: int) -> None: ...


class Notifier(Protocol):
    async def notify(self, worker_name: str) -> bool: ...


class FetchJobHandlers:
    """
    Handlers for the three job types.

    Only the remote call is bounded by the fetch deadline. A call that
    times out raises asyncio.TimeoutError and is treated like any other
    gateway error: nothing is persisted and nothing is requeued.
    """

    def __init__(
        self,
        gateway: FetchGateway,
        sink: ResultSink,
        notifier: Notifier,
        charts: Channel[Job],
        fetch_timeout: float = 10.0,
    ):
        """
        Initialize handlers.

        Args:
            gateway: Pool API client
            sink: Storage for charts and balances
            notifier: Offline notification service
            charts: Channel feeding the chart-fetch stage
            fetch_timeout: Deadline for each remote call in seconds
        """
        self.gateway = gateway
        self.sink = sink
        self.notifier = notifier
        self.charts = charts
        self.fetch_timeout = fetch_timeout

    def register(self, registry: HandlerRegistry) -> None:
        """Register all fetch handlers with the registry."""
        registry.register_handler(JobType.FETCH_WORKERS, self.fetch_workers)
        registry.register_handler(JobType.FETCH_CHART, self.fetch_chart)
        registry.register_handler(JobType.FETCH_BALANCE, self.fetch_balance)

    async def _bounded(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self.fetch_timeout)

    async def fetch_workers(self, job: Job) -> List[PoolWorker]:
        """
        Discover the rigs of an address.

        Queues one chart job per rig and notifies for every offline rig.

        Returns:
            List[PoolWorker]: Rigs reported by the pool
        """
        logger.info(f"run fetch_workers: {job.poolname} {job.address}")
        workers = await self._bounded(self.gateway.list_workers(job.address))

        for worker in workers:
            logger.info(
                f"add fetch chart job poolname {job.poolname} "
                f"address {job.address} worker {worker.name}"
            )
            await self.charts.send(
                Job(
                    poolname=job.poolname,
                    address=job.address,
                    workername=worker.name,
                    type=JobType.FETCH_CHART,
                )
            )
            if not worker.online:
                await self.notifier.notify(worker.name)

        return workers

    async def fetch_chart(self, job: Job) -> int:
        """
        Fetch and store one rig's chart.

        Returns:
            int: Number of chart samples stored
        """
        logger.info(f"run fetch_chart: {job.poolname} {job.address} {job.workername}")
        chart = await self._bounded(self.gateway.get_chart(job.address, job.workername))
        return await asyncio.to_thread(
            self.sink.save_worker_chart, job.poolname, job.address, job.workername, chart
        )

    async def fetch_balance(self, job: Job) -> int:
        """
        Fetch and store the balance of an address.

        Returns:
            int: The stored balance
        """
        logger.info(f"run fetch_balance: {job.poolname} {job.address}")
        balance = await self._bounded(self.gateway.get_balance(job.address))
        await asyncio.to_thread(self.sink.save_balance, job.poolname, job.address, balance)
        logger.info(f"balance saved: {job.address} {balance}")
        return balance
