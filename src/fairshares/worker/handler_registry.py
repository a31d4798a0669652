"""Registry mapping job types to the coroutine that executes them."""
from typing import Awaitable, Callable, Dict
from fairshares.core.enums import JobType
from fairshares.worker.models import Job

JobHandler = Callable[[Job], Awaitable[object]]


class HandlerRegistry:
    """
    One handler per job type.

    The handler fixes which remote operation and which persistence call a
    job of that type may trigger.
    """

    def __init__(self):
        self._handlers: Dict[JobType, JobHandler] = {}

    def register_handler(self, job_type: JobType, handler: JobHandler) -> None:
        """
        Register the handler for a job type.

        Raises:
            ValueError: If a handler for this job type is already registered
        """
        if job_type in self._handlers:
            raise ValueError(f"Handler for job type '{job_type}' already registered")

        self._handlers[job_type] = handler

    def get_handler(self, job_type: JobType) -> JobHandler:
        """
        Get the handler for a job type.

        Raises:
            KeyError: If no handler registered for this job type
        """
        try:
            return self._handlers[job_type]
        except KeyError:
            raise KeyError(f"No handler registered for job type: {job_type}") from None

    def ensure_complete(self) -> None:
        """
        Check every job type has a handler.

        Raises:
            ValueError: Naming the job types left without a handler
        """
        missing = [job_type.value for job_type in JobType if job_type not in self._handlers]
        if missing:
            raise ValueError(f"No handler registered for job types: {', '.join(missing)}")
