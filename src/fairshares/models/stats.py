"""Fetched pool statistics: worker charts and balances."""
from datetime import datetime
from sqlalchemy import BigInteger, DateTime, Float, Integer, String, Index
from sqlalchemy.orm import Mapped, mapped_column
from fairshares.core.database import Base
from fairshares.models.base import TimestampMixin


class WorkerChartPoint(Base, TimestampMixin):
    """
    One sample of a rig's performance chart.

    Keyed by pool, address, rig name and sample timestamp so that
    re-fetching an overlapping chart window overwrites existing samples.
    """

    __tablename__ = "worker_charts"

    poolname: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    workername: Mapped[str] = mapped_column(String(128), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, primary_key=True)  # naive UTC

    reported_hashrate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    effective_hashrate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    average_effective_hashrate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    valid_shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stale_shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    invalid_shares: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_worker_charts_worker", "poolname", "address", "workername"),
    )

    def __repr__(self) -> str:
        """Return string representation of WorkerChartPoint."""
        return (
            f"<WorkerChartPoint(workername={self.workername}, "
            f"timestamp={self.timestamp}, effective={self.effective_hashrate})>"
        )


class Balance(Base, TimestampMixin):
    """Latest unpaid balance of an address, in the pool's smallest unit."""

    __tablename__ = "balances"

    poolname: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of Balance."""
        return f"<Balance(address={self.address}, balance={self.balance})>"
