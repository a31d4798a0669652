"""Flexpool API client: lists rigs, fetches rig charts and balances."""
import datetime
import logging
from typing import Any, List, Optional

import httpx

from fairshares.core.exceptions import PoolAPIError
from fairshares.worker.models import ChartPoint, PoolWorker

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.flexpool.io/v2"


class FlexpoolClient:
    """
    Async client for the Flexpool v2 miner API.

    Callers bound each call with their own deadline; the client-level
    timeout only guards against a hung connection.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        coin: str = "eth",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30,
    ):
        self.coin = coin
        self._client = httpx.AsyncClient(
            base_url=endpoint,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        await self._client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_value, tb):
        await self._client.__aexit__(exc_type, exc_value, tb)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, **params) -> Any:
        try:
            r = await self._client.get(path, params={"coin": self.coin, **params})
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise PoolAPIError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise PoolAPIError(f"GET {path} returned invalid JSON") from e

        logger.debug(f"GET {path} {params} -> {r.status_code}")
        if not isinstance(data, dict):
            raise PoolAPIError(f"GET {path} returned unexpected payload")
        if data.get("error"):
            raise PoolAPIError(f"GET {path} error: {data['error']}")
        return data.get("result")

    async def list_workers(self, address: str) -> List[PoolWorker]:
        """
        List the rigs reporting to the pool for an address.

        Args:
            address: Account address

        Returns:
            List[PoolWorker]: Rig name and online flag
        """
        result = await self._get("/miner/workers", address=address)
        return [
            PoolWorker(name=w["name"], online=bool(w.get("isOnline", False)))
            for w in result or []
        ]

    async def get_chart(self, address: str, worker_name: str) -> List[ChartPoint]:
        """
        Fetch a rig's performance chart.

        Args:
            address: Account address
            worker_name: Rig name

        Returns:
            List[ChartPoint]: Chart samples with UTC timestamps
        """
        result = await self._get("/miner/chart", address=address, worker=worker_name)
        # unify timestamps to datetime for caller convenience
        return [
            ChartPoint(
                timestamp=datetime.datetime.fromtimestamp(p["timestamp"], tz=datetime.timezone.utc),
                reported_hashrate=p.get("reportedHashrate", 0.0),
                effective_hashrate=p.get("effectiveHashrate", 0.0),
                average_effective_hashrate=p.get("averageEffectiveHashrate", 0.0),
                valid_shares=p.get("validShares", 0),
                stale_shares=p.get("staleShares", 0),
                invalid_shares=p.get("invalidShares", 0),
            )
            for p in result or []
        ]

    async def get_balance(self, address: str) -> int:
        """
        Fetch the unpaid balance of an address.

        Returns:
            int: Balance in the coin's smallest unit
        """
        result = await self._get("/miner/balance", address=address)
        try:
            return int(result["balance"])
        except (TypeError, KeyError, ValueError) as e:
            raise PoolAPIError(f"Unexpected balance response: {result!r}") from e
