"""Async worker: dequeues jobs and dispatches them as tracked fetch tasks."""
import asyncio
import logging
from typing import Callable, Optional, Set
from fairshares.core.exceptions import ChannelClosed, FatalNotificationError
from fairshares.observability import metrics
from fairshares.worker.channel import Channel
from fairshares.worker.job_executor import JobExecutor
from fairshares.worker.models import Job, Result

logger = logging.getLogger(__name__)


class AsyncWorker:
    """
    Worker that receives jobs from a channel and executes them concurrently.

    Dispatch is decoupled from execution: each job runs in its own task
    and the worker only paces itself before accepting the next job. The
    pool size therefore bounds the dequeue rate, not the number of fetches
    in flight; ``max_in_flight`` adds that bound when set.

    Running tasks are tracked so ``stop`` can drain or cancel them.
    """

    def __init__(
        self,
        worker_id: str,
        jobs: Channel[Job],
        executor: JobExecutor,
        results: Optional[Channel[Result]] = None,
        job_pacing: float = 2.0,
        max_in_flight: Optional[int] = None,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        """
        Initialize async worker.

        Args:
            worker_id: Worker identifier used in logs
            jobs: Channel to receive jobs from
            executor: Executor running the job handlers
            results: Optional channel receiving one Result per job
            job_pacing: Seconds to wait between two dequeues
            max_in_flight: Maximum concurrently running jobs (None = unbounded)
            on_fatal: Called with the error when a job fails fatally
        """
        self.worker_id = worker_id
        self.jobs = jobs
        self.executor = executor
        self.results = results
        self.job_pacing = job_pacing
        self.max_in_flight = max_in_flight
        self.on_fatal = on_fatal

        # Concurrency control
        self._semaphore = asyncio.Semaphore(max_in_flight) if max_in_flight else None
        self._running_tasks: Set[asyncio.Task] = set()

        # State
        self.is_running = False
        self._stop_event = asyncio.Event()

        # Metrics
        self.jobs_processed = 0
        self.jobs_succeeded = 0
        self.jobs_failed = 0

    @property
    def in_flight(self) -> int:
        return len(self._running_tasks)

    async def start(self):
        """
        Start the receive loop.

        Runs until stopped or until the job channel is closed.
        """
        self.is_running = True
        logger.info(f"Worker {self.worker_id} starting...")

        try:
            await self._receive_loop()
        finally:
            self.is_running = False
            logger.info(f"Worker {self.worker_id} stopped")

    async def stop(self, timeout: float = 30.0):
        """
        Stop the worker gracefully.

        Args:
            timeout: Maximum time to wait for running jobs before cancelling them
        """
        logger.info(f"Worker {self.worker_id} stopping...")
        self._stop_event.set()

        if self._running_tasks:
            logger.info(f"Waiting for {len(self._running_tasks)} running jobs...")
            try:
                await asyncio.wait_for(
                    asyncio.gather(*self._running_tasks, return_exceptions=True),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Timeout waiting for jobs, cancelling...")
                for task in list(self._running_tasks):
                    task.cancel()

    async def _receive_loop(self):
        while not self._stop_event.is_set():
            # Take an in-flight slot before accepting a job so senders block
            if self._semaphore is not None:
                await self._semaphore.acquire()
            try:
                job = await self._next_job()
            except ChannelClosed:
                logger.info(f"Worker {self.worker_id}: job channel closed")
                job = None
            if job is None:
                if self._semaphore is not None:
                    self._semaphore.release()
                break

            logger.info(f"job {job.type} data {job.address} input: {self.worker_id}")
            metrics.record_job_enqueued(job.type.value)

            task = asyncio.create_task(self._execute_job(job))
            self._running_tasks.add(task)
            task.add_done_callback(self._running_tasks.discard)

            await self._pace()

    async def _next_job(self) -> Optional[Job]:
        """Receive the next job, or None if the worker is stopped first."""
        if self._stop_event.is_set():
            return None
        receive = asyncio.ensure_future(self.jobs.receive())
        stopping = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({receive, stopping}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            receive.cancel()
            raise
        finally:
            stopping.cancel()

        if not receive.done():
            receive.cancel()
            await asyncio.wait({receive})
        if receive.cancelled():
            return None
        return receive.result()

    async def _pace(self):
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.job_pacing)
        except asyncio.TimeoutError:
            pass  # Normal pacing delay elapsed

    async def _execute_job(self, job: Job):
        """
        Execute one job and report its Result.

        Args:
            job: Job to execute
        """
        try:
            result = await self.executor.execute(job)
        except FatalNotificationError as e:
            self.jobs_failed += 1
            logger.critical(f"Worker {self.worker_id}: fatal notification failure: {e}")
            if self.on_fatal is not None:
                self.on_fatal(e)
            return
        except asyncio.CancelledError:
            logger.warning(f"Job {job.type} {job.address} {job.workername} cancelled")
            raise
        except Exception as e:
            self.jobs_failed += 1
            logger.error(f"Unexpected error executing job: {e}", exc_info=True)
            return
        finally:
            if self._semaphore is not None:
                self._semaphore.release()

        self.jobs_processed += 1
        if result.success:
            self.jobs_succeeded += 1
        else:
            self.jobs_failed += 1
        logger.debug(f"Job {job.type} {job.address} done in {result.duration:.2f}s")

        if self.results is not None:
            try:
                await self.results.send(result)
            except ChannelClosed:
                logger.debug(f"Result for {job.type} {job.address} dropped, channel closed")
