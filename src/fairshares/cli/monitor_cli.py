"""CLI entry point for running the pool monitor."""
import asyncio
import logging
import signal
import sys
import threading
from typing import Optional
from fairshares.config import Settings, get_settings, load_monitor_config
from fairshares.core.database import create_db_engine, create_session_factory, init_database
from fairshares.core.exceptions import AddressExistsError, ConfigError, FatalNotificationError
from fairshares.repositories.address_repository import AddressRepository
from fairshares.repositories.stats_repository import StatsRepository
from fairshares.services.flexpool_client import FlexpoolClient
from fairshares.services.monitor import PoolMonitor
from fairshares.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def register_configured_address(
    addresses: AddressRepository, address: str, pool_names
) -> None:
    """
    Make sure the configured address is tracked on every pool.

    Args:
        addresses: Address repository
        address: Configured account address
        pool_names: Pools to register it on
    """
    for pool_name in pool_names:
        try:
            addresses.register_address(address, pool_name)
            logger.info(f"reg address: {address} pool: {pool_name}")
        except AddressExistsError:
            logger.info(f"address exist {address}")


async def run_monitor(settings: Optional[Settings] = None) -> None:
    """
    Run the pool monitor until SIGINT/SIGTERM or a fatal error.

    Args:
        settings: Settings to use (loaded from the environment if not provided)

    Raises:
        ConfigError: If the monitor config file is missing or invalid
        FatalNotificationError: If a notification failed under the FATAL policy
    """
    settings = settings or get_settings()

    config = load_monitor_config(settings.CONFIG_FILE)
    logger.info(f"configured address {config.flexpool.address}")

    # Setup database
    engine = create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    logger.info(f"open database: {settings.DATABASE_URL}")
    init_database(engine)
    session_factory = create_session_factory(engine)
    db_lock = threading.Lock()
    addresses = AddressRepository(session_factory, db_lock)
    stats = StatsRepository(session_factory, db_lock)

    register_configured_address(addresses, config.flexpool.address, settings.POOL_NAMES)

    gateway = FlexpoolClient(settings.FLEXPOOL_API_ENDPOINT, coin=settings.FLEXPOOL_COIN)
    notifier = NotificationService(config, settings.NOTIFICATION_FAILURE_POLICY)
    monitor = PoolMonitor(settings, addresses, gateway, stats, notifier)

    # Setup signal handlers for graceful shutdown
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler(signum):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        stop_event.set()

    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, signal_handler, signum)

    await monitor.start()

    stop_wait = asyncio.create_task(stop_event.wait())
    monitor_wait = asyncio.create_task(monitor.wait())
    try:
        await asyncio.wait({stop_wait, monitor_wait}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_wait.cancel()
        monitor_wait.cancel()

        # Graceful shutdown
        await monitor.stop()
        await gateway.aclose()
        await notifier.aclose()
        engine.dispose()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)

    if monitor.fatal_error is not None:
        raise monitor.fatal_error
    logger.info("Monitor stopped")


def main():
    """Main entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        asyncio.run(run_monitor(settings))
    except KeyboardInterrupt:
        logger.info("Monitor interrupted")
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except FatalNotificationError as e:
        logger.error(f"Monitor stopped by notification failure: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Monitor error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
