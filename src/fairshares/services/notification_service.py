"""Offline rig notifications sent through Mailjet."""
import logging
from typing import Optional

import httpx

from fairshares.config import MonitorConfig, WorkerInfo
from fairshares.core.enums import NotificationFailurePolicy
from fairshares.core.exceptions import FatalNotificationError, NotificationError
from fairshares.observability import metrics

logger = logging.getLogger(__name__)

MAILJET_SEND_URL = "https://api.mailjet.com/v3.1/send"
POOL_PAGE_URL = "https://www.flexpool.io/miner/eth/{address}"
SENDER_NAME = "Fairshares"


class NotificationService:
    """
    Service telling a rig's owner that the rig went offline.

    No rate limiting or deduplication: every call for a configured rig
    sends a new email.
    """

    def __init__(
        self,
        config: MonitorConfig,
        failure_policy: NotificationFailurePolicy = NotificationFailurePolicy.LOG,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize notification service.

        Args:
            config: Monitor configuration with rigs and Mailjet credentials
            failure_policy: Whether a failed send is logged or fatal
            client: HTTP client (created on demand if not provided)
        """
        self.config = config
        self.failure_policy = failure_policy
        self._client = client
        self.sent_count = 0

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def notify(self, worker_name: str) -> bool:
        """
        Notify every configured contact of an offline rig.

        Args:
            worker_name: Rig name as reported by the pool

        Returns:
            bool: True if at least one email was sent

        Raises:
            FatalNotificationError: If sending failed and the policy is FATAL
        """
        contacts = self.config.find_workers(worker_name)
        if not contacts:
            logger.info(f"{worker_name} is offline, no notification contact configured")
            return False

        if not self.config.mailjet.is_configured:
            logger.warning("Mailjet credentials not configured, notification skipped")
            return False

        sent = False
        for worker in contacts:
            logger.info(f"{worker.name} is offline, sending notification: {worker.notify}")
            try:
                response = await self._send(worker)
            except NotificationError as e:
                if self.failure_policy == NotificationFailurePolicy.FATAL:
                    raise FatalNotificationError(str(e)) from e
                logger.error(f"Notification for {worker.name} failed: {e}")
                continue

            self.sent_count += 1
            metrics.record_notification_sent()
            logger.info(f"Mailjet: {response}")
            sent = True
        return sent

    def build_message(self, worker: WorkerInfo) -> dict:
        """Build the Mailjet v3.1 message for an offline rig."""
        pool_page = POOL_PAGE_URL.format(address=self.config.flexpool.address)
        return {
            "From": {"Email": self.config.mailjet.email, "Name": SENDER_NAME},
            "To": [{"Email": worker.notify, "Name": worker.name}],
            "Subject": f"{worker.name} Is Offline",
            "TextPart": (
                f"Worker `{worker.name}` Is Offline.\n\n"
                f"Please check your pool: {pool_page}."
            ),
        }

    async def _send(self, worker: WorkerInfo) -> dict:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=15)

        mailjet = self.config.mailjet
        try:
            r = await self._client.post(
                MAILJET_SEND_URL,
                json={"Messages": [self.build_message(worker)]},
                auth=(mailjet.key, mailjet.secret),
            )
            r.raise_for_status()
            return r.json()
        except httpx.HTTPError as e:
            raise NotificationError(f"Mailjet send failed: {e}") from e
        except ValueError as e:
            raise NotificationError("Mailjet returned invalid JSON") from e
