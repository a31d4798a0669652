"""Job executor: runs a job's handler and turns the outcome into a Result."""
import asyncio
import logging
import time
from fairshares.core.exceptions import FatalNotificationError
from fairshares.worker.handler_registry import HandlerRegistry
from fairshares.worker.models import Job, Result

logger = logging.getLogger(__name__)


class JobExecutor:
    """
    Executes jobs by invoking registered handlers.

    Every failure, including a missed deadline, is logged and reported in
    the Result. Jobs are never retried.
    """

    def __init__(self, handler_registry: HandlerRegistry):
        """
        Initialize job executor.

        Args:
            handler_registry: Registry of job type -> handler mappings
        """
        self.registry = handler_registry

    async def execute(self, job: Job) -> Result:
        """
        Execute a job using its registered handler.

        Args:
            job: Job to execute

        Returns:
            Result: Outcome of execution

        Raises:
            FatalNotificationError: If a notification failed under the FATAL policy
        """
        started = time.monotonic()
        try:
            handler = self.registry.get_handler(job.type)
            await handler(job)

        except asyncio.TimeoutError:
            duration = time.monotonic() - started
            logger.error(f"{job.type} {job.address} {job.workername} timed out after {duration:.1f}s")
            return Result(
                job=job,
                success=False,
                error_message="fetch timed out",
                timed_out=True,
                duration=duration,
            )

        except FatalNotificationError:
            raise

        except Exception as e:
            duration = time.monotonic() - started
            logger.error(f"{job.type} {job.address} {job.workername} error: {e}")
            return Result(
                job=job,
                success=False,
                error_message=str(e) or type(e).__name__,
                duration=duration,
            )

        return Result(job=job, success=True, duration=time.monotonic() - started)
