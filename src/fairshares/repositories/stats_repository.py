"""Stats repository: persists fetched worker charts and balances."""
import threading
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from sqlalchemy.orm import sessionmaker
from fairshares.core.database import session_scope
from fairshares.models.stats import Balance, WorkerChartPoint
from fairshares.worker.models import ChartPoint


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class StatsRepository:
    """
    Repository for chart samples and balances.

    Called concurrently from fetch tasks running in worker threads;
    all writes go through a single lock, one at a time.
    """

    def __init__(self, session_factory: sessionmaker, lock: Optional[threading.Lock] = None):
        """
        Initialize repository.

        Args:
            session_factory: Factory producing SQLAlchemy sessions
            lock: Lock serializing database access
        """
        self.session_factory = session_factory
        self._lock = lock or threading.Lock()

    def save_worker_chart(
        self,
        pool_name: str,
        address: str,
        worker_name: str,
        chart: Iterable[ChartPoint],
    ) -> int:
        """
        Store a rig's chart samples, overwriting samples with the same timestamp.

        Args:
            pool_name: Pool identifier
            address: Account address
            worker_name: Rig name
            chart: Chart samples

        Returns:
            int: Number of samples stored
        """
        count = 0
        with self._lock, session_scope(self.session_factory) as db:
            for point in chart:
                db.merge(
                    WorkerChartPoint(
                        poolname=pool_name,
                        address=address,
                        workername=worker_name,
                        timestamp=_naive_utc(point.timestamp),
                        reported_hashrate=point.reported_hashrate,
                        effective_hashrate=point.effective_hashrate,
                        average_effective_hashrate=point.average_effective_hashrate,
                        valid_shares=point.valid_shares,
                        stale_shares=point.stale_shares,
                        invalid_shares=point.invalid_shares,
                    )
                )
                count += 1
            db.commit()
        return count

    def save_balance(self, pool_name: str, address: str, balance: int) -> None:
        """
        Store the latest balance for an address.

        Saving the same balance again leaves the stored value unchanged.
        """
        with self._lock, session_scope(self.session_factory) as db:
            row = db.get(Balance, (pool_name, address))
            if row is None:
                db.add(Balance(poolname=pool_name, address=address, balance=balance))
            else:
                row.balance = balance
            db.commit()

    def get_balance(self, pool_name: str, address: str) -> Optional[int]:
        with self._lock, session_scope(self.session_factory) as db:
            row = db.get(Balance, (pool_name, address))
            return row.balance if row else None

    def get_worker_chart(
        self, pool_name: str, address: str, worker_name: str
    ) -> List[ChartPoint]:
        """
        Load a rig's stored chart samples, oldest first.

        Returns:
            List[ChartPoint]: Samples with naive UTC timestamps
        """
        with self._lock, session_scope(self.session_factory) as db:
            rows = (
                db.query(WorkerChartPoint)
                .filter(
                    WorkerChartPoint.poolname == pool_name,
                    WorkerChartPoint.address == address,
                    WorkerChartPoint.workername == worker_name,
                )
                .order_by(WorkerChartPoint.timestamp)
                .all()
            )
            return [
                ChartPoint(
                    timestamp=row.timestamp,
                    reported_hashrate=row.reported_hashrate,
                    effective_hashrate=row.effective_hashrate,
                    average_effective_hashrate=row.average_effective_hashrate,
                    valid_shares=row.valid_shares,
                    stale_shares=row.stale_shares,
                    invalid_shares=row.invalid_shares,
                )
                for row in rows
            ]
