"""HeadSpin QoE recording for pytest suites."""

from .config import HeadspinConfig
from .constants import HEADSPIN_QOE_VERSION
from .exceptions import (
    ConfigurationError,
    DeviceLockError,
    DeviceUnlockError,
    HeadspinAPIError,
    HeadspinError,
    InvalidStateError,
    LabelFlushError,
    LabelSubmitError,
    SessionStartError,
    SessionStopError,
)
from .labels import Label, LabelKind, LabelQueue, LabelSpan
from .run import RecordingRun
from .session import HeadspinSession

__version__ = HEADSPIN_QOE_VERSION

__all__ = [
    "ConfigurationError",
    "DeviceLockError",
    "DeviceUnlockError",
    "HeadspinAPIError",
    "HeadspinConfig",
    "HeadspinError",
    "HeadspinSession",
    "InvalidStateError",
    "Label",
    "LabelFlushError",
    "LabelKind",
    "LabelQueue",
    "LabelSpan",
    "LabelSubmitError",
    "RecordingRun",
    "SessionStartError",
    "SessionStopError",
]
