"""Result observer: drains job results, logs them and records metrics."""
import asyncio
import logging
from collections import Counter
from fairshares.core.exceptions import ChannelClosed
from fairshares.observability import metrics
from fairshares.worker.channel import Channel
from fairshares.worker.models import Result

logger = logging.getLogger(__name__)


class ResultObserver:
    """Consumes the result channel until it is closed or the observer is stopped."""

    def __init__(self, observer_id: str, results: Channel[Result]):
        self.observer_id = observer_id
        self.results = results
        self.is_running = False
        self.succeeded: Counter = Counter()
        self.failed: Counter = Counter()
        self._stopping = False
        self._task = None

    async def start(self) -> None:
        self.is_running = True
        self._task = asyncio.current_task()
        try:
            while True:
                try:
                    result = await self.results.receive()
                except ChannelClosed:
                    break
                self.observe(result)
        except asyncio.CancelledError:
            if not self._stopping:
                raise
        finally:
            self.is_running = False

    async def stop(self) -> None:
        self._stopping = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def observe(self, result: Result) -> None:
        """Log a result and record it in the counters and metrics."""
        job = result.job
        job_type = result.type.value
        if result.success:
            self.succeeded[result.type] += 1
            metrics.record_job_succeeded(job_type, result.duration)
            logger.info(f"result {job_type} ok {job.address} {job.workername} output: {self.observer_id}")
        else:
            self.failed[result.type] += 1
            metrics.record_job_failed(job_type, result.duration, timed_out=result.timed_out)
            logger.warning(
                f"result {job_type} failed {job.address} {job.workername}: "
                f"{result.error_message} output: {self.observer_id}"
            )
