"""Job, result and pool data classes passed between the monitor stages."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from fairshares.core.enums import JobType


@dataclass(frozen=True)
class Job:
    """
    A unit of fetch work for one address (and optionally one rig).

    Jobs are immutable and consumed exactly once by whichever worker
    receives them. They are never retried or requeued.
    """

    poolname: str
    address: str
    type: JobType
    workername: str = ""
    id: int = 0

    def __post_init__(self):
        if not self.poolname:
            raise ValueError("Job poolname must not be empty")
        if not self.address:
            raise ValueError("Job address must not be empty")
        if self.type == JobType.FETCH_CHART and not self.workername:
            raise ValueError("fetch_chart job requires a workername")


@dataclass
class Result:
    """
    Outcome of executing a job.

    Tracks whether the fetch succeeded and, if not, why.
    """

    job: Job
    success: bool
    error_message: Optional[str] = None
    timed_out: bool = False
    duration: float = 0.0
    id: int = 0

    @property
    def type(self) -> JobType:
        return self.job.type


@dataclass(frozen=True)
class PoolWorker:
    """A mining rig as reported by the pool."""

    name: str
    online: bool


@dataclass(frozen=True)
class ChartPoint:
    """One sample from a rig's performance chart."""

    timestamp: datetime
    reported_hashrate: float = 0.0
    effective_hashrate: float = 0.0
    average_effective_hashrate: float = 0.0
    valid_shares: int = 0
    stale_shares: int = 0
    invalid_shares: int = 0
