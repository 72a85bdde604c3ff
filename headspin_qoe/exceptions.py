"""
Exception hierarchy for the HeadSpin QoE integration.

Remote failures carry the HTTP status, reason phrase and response body so
that a failing setup/teardown hook can be diagnosed from the test output alone.
Local precondition violations raise InvalidStateError before any request is made.
"""

from typing import Any, List, Optional


class HeadspinError(Exception):
    """Base exception for all HeadSpin integration failures."""

    pass


class ConfigurationError(HeadspinError):
    """Raised when the access token or device id cannot be resolved."""

    pass


class InvalidStateError(HeadspinError):
    """Raised when an operation is called out of lifecycle order."""

    pass


class HeadspinAPIError(HeadspinError):
    """A request to the HeadSpin API failed or returned an unexpected body."""

    action = "HeadSpin request failed"

    def __init__(
        self,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        body: Any = None,
        url: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.url = url
        if status_code is None:
            message = f"{self.action}: {reason or 'request error'}"
        else:
            message = f"{self.action}: {status_code} - {reason or ''}".rstrip(" -")
        super().__init__(message)


class DeviceLockError(HeadspinAPIError):
    """Raised when the device could not be locked."""

    action = "Failed to lock HeadSpin device"


class DeviceUnlockError(HeadspinAPIError):
    """Raised when the device could not be unlocked."""

    action = "Failed to unlock HeadSpin device"


class SessionStartError(HeadspinAPIError):
    """Raised when the capture session could not be created."""

    action = "Failed to start the HeadSpin session"


class SessionStopError(HeadspinAPIError):
    """Raised when the capture session could not be stopped."""

    action = "Failed to stop HeadSpin session"


class LabelSubmitError(HeadspinAPIError):
    """Raised when a label could not be attached to the session."""

    action = "Failed to push label to HeadSpin"


class LabelFlushError(HeadspinError):
    """One or more label submissions failed during a flush.

    Every submission is awaited before this is raised; ``errors`` holds each
    individual LabelSubmitError in queue order.
    """

    def __init__(self, errors: List[HeadspinError], total: int) -> None:
        self.errors = errors
        self.total = total
        super().__init__(f"{len(errors)} of {total} HeadSpin label submissions failed: {errors[0]}")


__all__ = [
    "HeadspinError",
    "ConfigurationError",
    "InvalidStateError",
    "HeadspinAPIError",
    "DeviceLockError",
    "DeviceUnlockError",
    "SessionStartError",
    "SessionStopError",
    "LabelSubmitError",
    "LabelFlushError",
]
