"""Hardware session manager - serialized access to one attached authentication device."""

from .errors import (
    HwSessionError,
    CallbackContractError,
    BootloaderModeError,
    DeviceBusyError,
    DeviceDisconnectedError,
    InteractionUnavailableError,
    SessionClosedError,
)
from .guard import CallbackGuard, Once, ensure_callback, ensure_callback_close
from .models import DeviceFeatures, DeviceListConfig, SessionConfig
from .readiness import DeviceReadiness, ReadinessState
from .session import SessionCoordinator, create_session

__all__ = [
    "HwSessionError",
    "CallbackContractError",
    "BootloaderModeError",
    "DeviceBusyError",
    "DeviceDisconnectedError",
    "InteractionUnavailableError",
    "SessionClosedError",
    "CallbackGuard",
    "Once",
    "ensure_callback",
    "ensure_callback_close",
    "DeviceFeatures",
    "DeviceListConfig",
    "SessionConfig",
    "DeviceReadiness",
    "ReadinessState",
    "SessionCoordinator",
    "create_session",
]
