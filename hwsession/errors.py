"""Exception hierarchy for hardware session management."""


class HwSessionError(RuntimeError):
    """Base class for errors raised by hwsession."""
    pass


class CallbackContractError(HwSessionError, TypeError):
    """Raised when a session callback returns something other than a future."""
    pass


class BootloaderModeError(HwSessionError):
    """Raised when the attached device is in bootloader mode."""

    def __init__(self, message: str = "Device is in bootloader mode, reconnect it"):
        super().__init__(message)


class DeviceBusyError(HwSessionError):
    """Raised when the device is claimed by another process."""
    pass


class DeviceDisconnectedError(HwSessionError):
    """Raised for queued work whose device went away."""
    pass


class InteractionUnavailableError(HwSessionError):
    """Raised when the device asks for input and no handler is installed."""
    pass


class SessionClosedError(HwSessionError):
    """Value used to force-fail outstanding prompts on shutdown."""

    def __init__(self, message: str = "exit"):
        super().__init__(message)
