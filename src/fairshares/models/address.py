"""Tracked pool address model."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from fairshares.core.database import Base
from fairshares.models.base import TimestampMixin


class PoolAddress(Base, TimestampMixin):
    """
    An account address tracked on a mining pool.

    The (address, poolname) pair is unique; the tickers enumerate
    addresses per pool in registration order.
    """

    __tablename__ = "addresses"

    address: Mapped[str] = mapped_column(String(128), primary_key=True)
    poolname: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)

    def __repr__(self) -> str:
        """Return string representation of PoolAddress."""
        return f"<PoolAddress(address={self.address}, poolname={self.poolname})>"
