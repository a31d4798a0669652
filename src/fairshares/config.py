"""Configuration management for Fairshares."""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

import tomli
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from fairshares.core.enums import NotificationFailurePolicy
from fairshares.core.exceptions import ConfigError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Timing values are in seconds.
    """

    # Application
    APP_NAME: str = "Fairshares"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///fairshares.db"
    DATABASE_ECHO: bool = False

    # Monitor configuration file (pool address, mail credentials, rigs)
    CONFIG_FILE: str = "config/config.toml"

    # Pool API
    FLEXPOOL_API_ENDPOINT: str = "https://api.flexpool.io/v2"
    FLEXPOOL_COIN: str = "eth"
    POOL_NAMES: List[str] = ["flexpool"]

    # Scheduling
    FETCH_TIMEOUT: float = 10.0  # Deadline for a single remote fetch
    WORKER_TICK_INTERVAL: float = 1800.0  # Seconds between worker discovery ticks
    BALANCE_TICK_INTERVAL: float = 600.0  # Seconds between balance ticks
    JOB_PACING: float = 2.0  # Pause between two dequeues of one worker
    WORKER_POOL_SIZE: int = Field(default=1, ge=1)
    MAX_IN_FLIGHT_FETCHES: Optional[int] = None  # None = unbounded
    TICK_ON_START: bool = False
    SHUTDOWN_TIMEOUT: float = 30.0

    # Notifications
    NOTIFICATION_FAILURE_POLICY: NotificationFailurePolicy = NotificationFailurePolicy.LOG

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Singleton settings instance
    """
    return Settings()


class FlexpoolInfo(BaseModel):
    """Pool account being monitored."""

    address: str = Field(min_length=1)


class MailjetInfo(BaseModel):
    """Mailjet credentials and sender address."""

    key: str = ""
    secret: str = ""
    email: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.key and self.secret and self.email)


class WorkerInfo(BaseModel):
    """A rig to watch and who to tell when it goes offline."""

    name: str
    notify: str


class MonitorConfig(BaseModel):
    """
    Contents of the TOML monitor configuration file.

    Example::

        [flexpool]
        address = "0x..."

        [mailjet]
        key = "..."
        secret = "..."
        email = "monitor@example.com"

        [[worker]]
        name = "rig1"
        notify = "owner@example.com"
    """

    flexpool: FlexpoolInfo
    mailjet: MailjetInfo = Field(default_factory=MailjetInfo)
    worker: List[WorkerInfo] = Field(default_factory=list)

    def find_workers(self, name: str) -> List[WorkerInfo]:
        """Return every configured contact for the rig with exactly this name."""
        return [worker for worker in self.worker if worker.name == name]


def load_monitor_config(path: Union[str, Path]) -> MonitorConfig:
    """
    Load and validate the TOML monitor configuration.

    Args:
        path: Path to the TOML file

    Returns:
        MonitorConfig: Parsed configuration

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            data = tomli.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    try:
        return MonitorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid monitor config in {path}: {e}") from e
