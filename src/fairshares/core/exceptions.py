"""Custom exceptions for Fairshares."""


class FairsharesException(Exception):
    """Base exception for all Fairshares-specific exceptions."""

    pass


class ConfigError(FairsharesException):
    """Raised when the monitor configuration file is missing or invalid."""

    pass


class PoolAPIError(FairsharesException):
    """Raised when the mining pool API returns an error or an unusable response."""

    pass


class AddressExistsError(FairsharesException):
    """Raised when registering an address that is already tracked for a pool."""

    pass


class NotificationError(FairsharesException):
    """Raised when an offline notification could not be delivered."""

    pass


class FatalNotificationError(NotificationError):
    """Raised when a failed notification must stop the monitor."""

    pass


class ChannelClosed(FairsharesException):
    """Raised when sending to or receiving from a closed channel."""

    pass
