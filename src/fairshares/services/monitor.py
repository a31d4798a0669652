"""Pool monitor: wires tickers, worker pools and result observers together."""
import asyncio
import logging
from typing import List, Optional
from fairshares.config import Settings
from fairshares.core.enums import JobType
from fairshares.worker.async_worker import AsyncWorker
from fairshares.worker.channel import Channel
from fairshares.worker.handler_registry import HandlerRegistry
from fairshares.worker.job_executor import JobExecutor
from fairshares.worker.job_handlers import FetchGateway, FetchJobHandlers, Notifier, ResultSink
from fairshares.worker.models import Job, Result
from fairshares.worker.result_observer import ResultObserver
from fairshares.worker.ticker import AddressDirectory, JobTicker

logger = logging.getLogger(__name__)


class PoolMonitor:
    """
    Runs the fetch pipeline.

    Two stages, each with its own channel and worker pool:

    - discovery: the worker and balance tickers send FETCH_WORKERS and
      FETCH_BALANCE jobs to ``jobs``
    - charts: FETCH_WORKERS handlers send one FETCH_CHART job per rig
      to ``charts``

    Every executed job produces a Result on ``results``, drained by the
    observers. All timing comes from the settings passed in.
    """

    def __init__(
        self,
        settings: Settings,
        address_directory: AddressDirectory,
        gateway: FetchGateway,
        sink: ResultSink,
        notifier: Notifier,
    ):
        """
        Initialize pool monitor.

        Args:
            settings: Scheduling configuration
            address_directory: Source of tracked addresses
            gateway: Pool API client
            sink: Storage for fetched data
            notifier: Offline notification service
        """
        self.settings = settings

        # Channels
        self.jobs: Channel[Job] = Channel("jobs")
        self.charts: Channel[Job] = Channel("charts")
        self.results: Channel[Result] = Channel("results")

        # Dispatch
        self.registry = HandlerRegistry()
        self.handlers = FetchJobHandlers(
            gateway,
            sink,
            notifier,
            self.charts,
            fetch_timeout=settings.FETCH_TIMEOUT,
        )
        self.handlers.register(self.registry)
        self.registry.ensure_complete()
        self.executor = JobExecutor(self.registry)

        pool_size = settings.WORKER_POOL_SIZE
        self.discovery_workers = [
            self._make_worker(f"discovery-{i}", self.jobs) for i in range(pool_size)
        ]
        self.chart_workers = [
            self._make_worker(f"chart-{i}", self.charts) for i in range(pool_size)
        ]
        self.observers = [
            ResultObserver(f"observer-{i}", self.results) for i in range(pool_size)
        ]

        # Producers
        self.worker_ticker = JobTicker(
            "worker",
            JobType.FETCH_WORKERS,
            settings.WORKER_TICK_INTERVAL,
            settings.POOL_NAMES,
            address_directory,
            self.jobs,
            fire_on_start=settings.TICK_ON_START,
        )
        self.balance_ticker = JobTicker(
            "balance",
            JobType.FETCH_BALANCE,
            settings.BALANCE_TICK_INTERVAL,
            settings.POOL_NAMES,
            address_directory,
            self.jobs,
            fire_on_start=settings.TICK_ON_START,
        )

        # State
        self.is_running = False
        self.fatal_error: Optional[BaseException] = None
        self._tasks: List[asyncio.Task] = []
        self._stopping = False
        self._stopped = asyncio.Event()
        self._stop_task: Optional[asyncio.Task] = None

    @property
    def workers(self) -> List[AsyncWorker]:
        return self.discovery_workers + self.chart_workers

    def _make_worker(self, worker_id: str, jobs: Channel[Job]) -> AsyncWorker:
        return AsyncWorker(
            worker_id=worker_id,
            jobs=jobs,
            executor=self.executor,
            results=self.results,
            job_pacing=self.settings.JOB_PACING,
            max_in_flight=self.settings.MAX_IN_FLIGHT_FETCHES,
            on_fatal=self._on_fatal,
        )

    async def start(self) -> None:
        """Start observers, workers and tickers."""
        if self.is_running:
            logger.warning("Pool monitor already running")
            return
        if self.jobs.closed:
            raise RuntimeError("Pool monitor cannot be restarted after stop")

        self.is_running = True
        self._stopped.clear()
        logger.info(
            f"Starting pool monitor for pools {self.settings.POOL_NAMES} "
            f"({len(self.discovery_workers)} workers per stage)"
        )

        for observer in self.observers:
            self._tasks.append(asyncio.create_task(observer.start()))
        for worker in self.workers:
            self._tasks.append(asyncio.create_task(worker.start()))
        for ticker in (self.worker_ticker, self.balance_ticker):
            self._tasks.append(asyncio.create_task(ticker.start()))

        logger.info(f"Started {len(self._tasks)} monitor tasks")

    async def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop the pipeline stage by stage.

        Producers stop first, then the discovery stage drains (its tasks may
        still send chart jobs), then the chart stage, and finally the
        observers once every result has been handed over.

        Args:
            timeout: Per-stage drain timeout (defaults to SHUTDOWN_TIMEOUT)
        """
        if not self.is_running:
            return
        if self._stopping:
            await self._stopped.wait()
            return
        self._stopping = True
        if timeout is None:
            timeout = self.settings.SHUTDOWN_TIMEOUT

        logger.info("Stopping pool monitor...")
        await self.worker_ticker.stop()
        await self.balance_ticker.stop()

        for stage in (self.discovery_workers, self.chart_workers):
            await asyncio.gather(*(worker.stop(timeout=timeout) for worker in stage))

        self.jobs.close()
        self.charts.close()
        self.results.close()
        for observer in self.observers:
            await observer.stop()

        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Monitor task failed: {result}")

        self._tasks.clear()
        self.is_running = False
        self._stopping = False
        self._stopped.set()
        logger.info("Pool monitor stopped")

    async def wait(self) -> None:
        """
        Wait until the monitor has stopped.

        Raises:
            FatalNotificationError: If a fatal notification failure stopped it
        """
        await self._stopped.wait()
        if self.fatal_error is not None:
            raise self.fatal_error

    def _on_fatal(self, exc: BaseException) -> None:
        if self.fatal_error is not None:
            return
        self.fatal_error = exc
        logger.critical(f"Stopping pool monitor after fatal error: {exc}")
        self._stop_task = asyncio.create_task(self.stop())
