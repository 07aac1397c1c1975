"""Goal engine error taxonomy."""

from typing import Optional


class GoalEngineError(Exception):
    """Base class for goal engine errors."""


class RemoteUnavailable(GoalEngineError):
    """The POS API could not be reached or answered with an error."""


class NetworkError(RemoteUnavailable):
    """Transport-level failure talking to the POS API."""


class ServerError(RemoteUnavailable):
    """The POS API answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotAuthenticated(GoalEngineError):
    """No active session or store scope to operate on."""


class MalformedCacheEntry(GoalEngineError):
    """A cached goal could not be parsed."""


class NotificationDeliveryFailure(GoalEngineError):
    """An achievement announcement could not be delivered."""
