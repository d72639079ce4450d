"""
Heartbeat Errors

Exception hierarchy shared by the ping handler, sweep driver and stores.
"""


class BeaconError(Exception):
    """Base class for all Beacon errors."""

    pass


class InputError(BeaconError):
    """Raised when a request is rejected before the engine runs."""

    pass


class AuthenticationError(InputError):
    """Raised when a bearer token is missing or does not match."""

    pass


class UnknownEntityError(InputError):
    """Raised when an entity name is missing or not in the allow-list."""

    def __init__(self, name: str | None, allowed: list[str] | None = None) -> None:
        self.name = name
        self.allowed = list(allowed or [])
        if not name:
            message = "Missing server name"
        else:
            message = f"Invalid server name '{name}'. Allowed: {', '.join(self.allowed)}"
        super().__init__(message)


class StoreError(BeaconError):
    """Raised when the record store fails to read or write."""

    pass


class ConcurrentUpdateError(StoreError):
    """Raised when a conditional write keeps losing to concurrent writers."""

    def __init__(self, name: str, attempts: int) -> None:
        self.name = name
        self.attempts = attempts
        super().__init__(f"Record for '{name}' changed concurrently {attempts} times; giving up")


class NotificationError(BeaconError):
    """Raised by notifiers when a message cannot be delivered."""

    pass
