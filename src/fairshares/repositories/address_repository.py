"""Address repository: the directory of tracked pool addresses."""
import threading
from typing import List, Optional
from sqlalchemy.orm import sessionmaker
from fairshares.core.database import session_scope
from fairshares.core.exceptions import AddressExistsError
from fairshares.models.address import PoolAddress


class AddressRepository:
    """Repository for tracked PoolAddress rows."""

    def __init__(self, session_factory: sessionmaker, lock: Optional[threading.Lock] = None):
        """
        Initialize repository.

        Args:
            session_factory: Factory producing SQLAlchemy sessions
            lock: Lock serializing database access, shared with other
                repositories on the same database
        """
        self.session_factory = session_factory
        self._lock = lock or threading.Lock()

    def get_addresses(self, pool_name: str) -> List[str]:
        """
        List the addresses tracked for a pool.

        Args:
            pool_name: Pool identifier

        Returns:
            List[str]: Addresses in registration order
        """
        with self._lock, session_scope(self.session_factory) as db:
            rows = (
                db.query(PoolAddress.address)
                .filter(PoolAddress.poolname == pool_name)
                .order_by(PoolAddress.created_at, PoolAddress.address)
                .all()
            )
            return [row.address for row in rows]

    def register_address(self, address: str, pool_name: str) -> PoolAddress:
        """
        Start tracking an address on a pool.

        Args:
            address: Account address
            pool_name: Pool identifier

        Returns:
            PoolAddress: Created row

        Raises:
            AddressExistsError: If the address is already tracked for the pool
        """
        with self._lock, session_scope(self.session_factory) as db:
            if db.get(PoolAddress, (address, pool_name)) is not None:
                raise AddressExistsError(f"Address {address} already tracked on {pool_name}")

            row = PoolAddress(address=address, poolname=pool_name)
            db.add(row)
            db.commit()
            db.refresh(row)
            db.expunge(row)
            return row
