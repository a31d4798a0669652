"""Core enumerations for the Fairshares pool monitor."""
from enum import Enum


class JobType(str, Enum):
    """
    Kinds of fetch jobs moved through the job channels.

    - FETCH_WORKERS: list the rigs reporting for an address (discovery stage)
    - FETCH_CHART: fetch one rig's performance chart (chart stage)
    - FETCH_BALANCE: fetch the unpaid balance for an address
    """

    FETCH_WORKERS = "fetch_workers"
    FETCH_CHART = "fetch_chart"
    FETCH_BALANCE = "fetch_balance"

    def __str__(self) -> str:
        """Return string representation of the enum value."""
        return self.value


class NotificationFailurePolicy(str, Enum):
    """
    What to do when an offline notification cannot be delivered.

    - LOG: log the failure and keep monitoring
    - FATAL: stop the monitor and exit with an error
    """

    LOG = "log"
    FATAL = "fatal"

    def __str__(self) -> str:
        """Return string representation of the enum value."""
        return self.value
